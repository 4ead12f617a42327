from taskmap.core.mindmap.group import DEFAULT_CATEGORY, classify_title, group_by_category
from taskmap.core.model import Task


def _task(tid, title):
    return Task(
        id=tid,
        title=title,
        description="",
        status="ready",
        priority="medium",
        dependencies=[],
        estimated_time="1 hour",
    )


def test_classify_by_keyword():
    assert classify_title("Setup Database") == "Setup"
    assert classify_title("Login Component") == "Frontend"
    assert classify_title("REST API routes") == "Backend"
    assert classify_title("User model") == "Database"
    assert classify_title("Write unit tests") == "Testing"
    assert classify_title("Deploy to Vercel") == "Deployment"
    assert classify_title("Write docs") == DEFAULT_CATEGORY


def test_first_rule_wins():
    # matches both Setup and Database
    assert classify_title("Configure DB") == "Setup"


def test_keywords_match_at_word_start():
    assert classify_title("Build Main Layout") == "Deployment"
    assert classify_title("Fix Guide") == DEFAULT_CATEGORY
    assert classify_title("Rapid prototype") == DEFAULT_CATEGORY


def test_groups_keep_first_appearance_and_relative_order():
    tasks = [
        _task("1", "Setup DB"),
        _task("2", "Login Component"),
        _task("3", "API routes"),
        _task("4", "Write tests"),
        _task("5", "Signup Component"),
    ]
    groups = group_by_category(tasks)
    assert list(groups) == ["Setup", "Frontend", "Backend", "Testing"]
    assert [t.id for t in groups["Frontend"]] == ["2", "5"]
    assert sum(len(v) for v in groups.values()) == len(tasks)


def test_empty_list_has_no_groups():
    assert group_by_category([]) == {}
