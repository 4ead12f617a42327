import json

import pytest

from taskmap.core.errors import TaskLoadError
from taskmap.core.io.task_file import dump_task_file, load_task_file, project_from_doc, tasks_from_rows
from taskmap.core.model import Project, Task


def test_load_example_project():
    doc = load_task_file("examples/project.yaml")
    project = project_from_doc(doc)
    tasks = tasks_from_rows(doc["tasks"], project.id)
    assert project.id == "shop"
    assert project.name == "Online Shop"
    assert project.tech_stack == ["nextjs", "postgres"]
    assert [t.id for t in tasks] == ["setup-repo", "db-schema", "product-api", "catalog-ui", "e2e-tests"]
    assert tasks[3].progress == 40
    assert all(t.project_id == "shop" for t in tasks)


@pytest.mark.parametrize(
    "name, text, code",
    [
        ("bad.yaml", "tasks: [\n", "E_YAML_PARSE"),
        ("bad.json", "{", "E_JSON_PARSE"),
        ("bad.txt", "", "E_UNSUPPORTED_FORMAT"),
        ("bad.yaml", "- a\n- b\n", "E_INVALID_TOP_LEVEL"),
        ("bad.yaml", "tasks: {}\n", "E_INVALID_TYPE"),
    ],
)
def test_load_errors(tmp_path, name, text, code):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    with pytest.raises(TaskLoadError) as exc:
        load_task_file(str(p))
    assert exc.value.code == code
    assert exc.value.file == str(p)


def test_missing_file():
    with pytest.raises(TaskLoadError) as exc:
        load_task_file("examples/does-not-exist.yaml")
    assert exc.value.code == "E_FILE_NOT_FOUND"


def test_project_defaults_from_file_stem(tmp_path):
    p = tmp_path / "garden.yaml"
    p.write_text("tasks: []\n", encoding="utf-8")
    project = project_from_doc(load_task_file(str(p)))
    assert project == Project(id="garden", name="Untitled Project")


def test_rows_are_coerced():
    rows = [
        {"id": "a", "title": "A", "status": "pending", "priority": "HIGH", "estimated_time": 3, "progress": 140},
        {"id": "b", "status": "weird", "dependencies": ["a", 1, None]},
        {"title": "no id"},
        "junk",
    ]
    tasks = tasks_from_rows(rows, "p")
    assert [t.id for t in tasks] == ["a", "b"]
    a, b = tasks
    assert (a.status, a.priority, a.estimated_time, a.progress) == ("ready", "high", "3 hours", 100)
    assert (b.status, b.title, b.dependencies, b.priority) == ("ready", "", ["a"], "medium")


def test_dump_then_load_json(tmp_path):
    project = Project(id="p", name="P", tech_stack=["python"])
    tasks = [
        Task(id="a", title="A", description="", status="completed", priority="low", dependencies=[], estimated_time="1 hour", progress=100),
        Task(id="b", title="B", description="", status="ready", priority="high", dependencies=["a"], estimated_time="2 hours"),
    ]
    path = tmp_path / "nested" / "p.json"
    dump_task_file(project, tasks, str(path))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["project"]["tech_stack"] == ["python"]
    assert "progress" not in raw["tasks"][1]

    doc = load_task_file(str(path))
    assert project_from_doc(doc) == project
    assert tasks_from_rows(doc["tasks"]) == tasks
