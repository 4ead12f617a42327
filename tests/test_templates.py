import pytest

from taskmap.core.expand.templates import (
    DEFAULT_TEMPLATES,
    TemplateConfigError,
    load_and_merge,
    load_template_file,
    merged_templates,
    select_template,
    template_stubs,
)


def test_keyword_selection_in_catalog_order():
    assert select_template("Add login").name == "auth"
    assert select_template("REST api with auth").name == "auth"
    assert select_template("backend service").name == "api"
    assert select_template("New design for the dashboard").name == "ui"
    assert select_template("a todo app").name == "default"


def test_keywords_match_at_word_start():
    # "build" contains "ui" but not at a word start
    assert select_template("build a thing").name == "default"
    assert select_template("Authentication flow").name == "auth"


def test_template_stubs_fill_input():
    stubs = template_stubs("  a todo app ")
    assert [s.title for s in stubs] == [t["title"] for t in DEFAULT_TEMPLATES["default"].tasks]
    assert stubs[0].description == "Plan and break down the requirements for: a todo app"
    assert stubs[3].dependencies == [2]


def test_builtin_dependencies_point_backwards():
    for tpl in DEFAULT_TEMPLATES.values():
        for i, item in enumerate(tpl.tasks):
            assert all(0 <= d < i for d in item["dependencies"]), (tpl.name, i)


def test_template_file_adds_before_default():
    templates = load_and_merge("examples/templates.yaml")
    assert list(templates) == ["auth", "api", "ui", "mobile", "default"]
    assert select_template("an ios app", templates).name == "mobile"
    stubs = template_stubs("an ios app", templates)
    assert stubs[0].description == "Install the SDKs needed for: an ios app"


def test_override_replaces_same_name():
    custom = load_template_file("examples/templates.yaml")["mobile"]
    merged = merged_templates({"auth": custom, "default": custom})
    assert merged["auth"] is custom
    assert list(merged)[-1] == "default"
    assert merged["default"] is custom


@pytest.mark.parametrize(
    "body, fragment",
    [
        ("- not a mapping\n", "mapping of name"),
        ("x: 1\n", "must be a mapping"),
        ("x:\n  tasks: []\n", "non-empty tasks"),
        ("x:\n  keywords: [1]\n  tasks: [{title: a}]\n", "keywords"),
        ("x:\n  tasks: [{title: ''}]\n", "title"),
        ("x:\n  tasks: [{title: a, dependencies: [0]}]\n", "earlier tasks"),
    ],
)
def test_invalid_template_files(tmp_path, body, fragment):
    p = tmp_path / "t.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(TemplateConfigError) as exc:
        load_template_file(p)
    assert fragment in str(exc.value)


def test_empty_template_file(tmp_path):
    p = tmp_path / "t.yaml"
    p.write_text("", encoding="utf-8")
    assert load_template_file(p) == {}
