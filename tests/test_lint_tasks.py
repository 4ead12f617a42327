from taskmap.core.io.task_file import load_task_file
from taskmap.core.lint.lint_tasks import detect_cycles, lint_tasks


def test_clean_project_has_no_findings():
    assert lint_tasks(load_task_file("examples/project.yaml")) == []


def test_invalid_graph_findings():
    errors = lint_tasks(load_task_file("examples/invalid-graph.yaml"))
    found = {(e.code, e.path) for e in errors}
    assert ("L_DUPLICATE_ID", "tasks[4].id") in found
    assert ("L_DANGLING_DEPENDENCY", "tasks[1].dependencies[1]") in found
    assert ("L_SELF_DEPENDENCY", "tasks[3].dependencies[0]") in found
    assert ("L_EMPTY_TITLE", "tasks[3].title") in found
    cycles = [e for e in errors if e.code == "L_CYCLE_DETECTED"]
    assert len(cycles) == 1
    assert "a -> c -> b -> a" in cycles[0].message
    assert all(e.file == "examples/invalid-graph.yaml" for e in errors)


def test_findings_are_sorted():
    errors = lint_tasks(load_task_file("examples/invalid-graph.yaml"))
    keys = [(e.file or "", e.path or "", e.code) for e in errors]
    assert keys == sorted(keys)


def test_detect_cycles_skips_self_loops_and_unknown_ids():
    assert detect_cycles({"a": ["a", "ghost"]}) == []
    out = detect_cycles({"a": ["b"], "b": ["a"]})
    assert [tid for tid, _ in out] == ["b"]


def test_detect_cycles_handles_long_chains():
    n = 5000
    chain = {f"t{i}": [f"t{i + 1}"] for i in range(n)}
    chain[f"t{n}"] = []
    assert detect_cycles(chain) == []

    chain[f"t{n}"] = ["t0"]
    out = detect_cycles(chain)
    assert len(out) == 1
    assert out[0][0] == f"t{n}"
    assert out[0][1].startswith("dependency cycle detected: t0 -> t1 -> ")
    assert out[0][1].endswith(f"t{n} -> t0")
