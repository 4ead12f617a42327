import json

import httpx
import pytest

from taskmap.core.errors import DispatchError
from taskmap.core.execute.dispatch import apply_progress, dispatch_task
from taskmap.core.execute.editor_client import ExecutionResult, HttpEditorClient
from taskmap.core.execute.prompts import build_task_prompt
from taskmap.core.model import Task


def _task(tid, status="ready", deps=(), title=None, progress=None):
    return Task(
        id=tid,
        title=title or tid.upper(),
        description="desc",
        status=status,
        priority="high",
        dependencies=list(deps),
        estimated_time="1 hour",
        progress=progress,
    )


class FakeEditorClient:
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc
        self.seen = []

    def request_execution(self, task):
        self.seen.append(task)
        if self.exc is not None:
            raise self.exc
        return self.result


def test_completed_answer_completes_task():
    client = FakeEditorClient(ExecutionResult(status="completed", file_path="src/a.ts"))
    out = dispatch_task([_task("a"), _task("b", deps=["a"])], "a", client)
    assert out.dispatched is True
    assert out.result.file_path == "src/a.ts"
    assert (out.tasks[0].status, out.tasks[0].progress) == ("completed", 100)
    assert client.seen[0].status == "in_progress"
    assert client.seen[0].progress == 0


def test_in_progress_answer_keeps_running():
    out = dispatch_task([_task("a")], "a", FakeEditorClient(ExecutionResult(status="in_progress")))
    assert out.dispatched is True
    assert (out.tasks[0].status, out.tasks[0].progress) == ("in_progress", 0)


def test_failed_answer_reverts():
    before = [_task("a", progress=None)]
    out = dispatch_task(before, "a", FakeEditorClient(ExecutionResult(status="failed")))
    assert out.dispatched is False
    assert out.tasks == before


def test_client_error_reverts_and_is_reported():
    err = DispatchError(code="E_EDITOR_UNAVAILABLE", message="down")
    out = dispatch_task([_task("a")], "a", FakeEditorClient(exc=err))
    assert out.dispatched is False
    assert out.error is err
    assert out.tasks[0].status == "ready"


def test_blocked_and_unknown_tasks_are_not_sent():
    client = FakeEditorClient(ExecutionResult(status="completed"))
    tasks = [_task("a"), _task("b", deps=["a"])]
    assert dispatch_task(tasks, "b", client).dispatched is False
    assert dispatch_task(tasks, "zzz", client).dispatched is False
    assert client.seen == []


def test_apply_progress():
    tasks = [_task("a", "in_progress", progress=0), _task("b")]
    assert apply_progress(tasks, "a", 55.7)[0].progress == 55
    done = apply_progress(tasks, "a", 120)[0]
    assert (done.status, done.progress) == ("completed", 100)
    assert apply_progress(tasks, "b", 50) == tasks


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_apply_progress_ignores_non_finite_values(value):
    tasks = [_task("a", "in_progress", progress=40)]
    assert apply_progress(tasks, "a", value) == tasks


def test_prompt_appends_first_matching_requirements():
    prompt = build_task_prompt(_task("a", title="Login Component for auth API"))
    assert prompt.startswith("Task: Login Component for auth API\nDescription: desc\nPriority: high")
    assert "Additional requirements for React component" in prompt
    assert "Additional requirements for API" not in prompt
    assert "Additional requirements" not in build_task_prompt(_task("a", title="Write docs"))


def _client(handler):
    return HttpEditorClient("http://editor.local/", transport=httpx.MockTransport(handler))


def test_http_client_posts_prompt():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "filePath": "app/page.tsx"})

    result = _client(handler).request_execution(_task("a", title="Build API"))
    assert result == ExecutionResult(status="completed", file_path="app/page.tsx")
    assert seen["url"] == "http://editor.local/execute"
    assert seen["body"]["language"] == "typescript"
    assert seen["body"]["framework"] == "nextjs"
    assert "Additional requirements for API" in seen["body"]["prompt"]


def test_http_client_reads_explicit_status():
    result = _client(lambda r: httpx.Response(200, json={"status": "in_progress"})).request_execution(_task("a"))
    assert result.status == "in_progress"
    result = _client(lambda r: httpx.Response(200, json={"success": False})).request_execution(_task("a"))
    assert result.status == "failed"


@pytest.mark.parametrize(
    "handler, code",
    [
        (lambda r: httpx.Response(500, json={"error": "boom"}), "E_EDITOR_HTTP"),
        (lambda r: httpx.Response(200, content=b"not json"), "E_EDITOR_BAD_RESPONSE"),
        (lambda r: httpx.Response(200, json=[1, 2]), "E_EDITOR_BAD_RESPONSE"),
    ],
)
def test_http_client_errors(handler, code):
    with pytest.raises(DispatchError) as exc:
        _client(handler).request_execution(_task("a"))
    assert exc.value.code == code
    assert exc.value.path == "a"


def test_http_client_connection_and_timeout_errors():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(DispatchError) as exc:
        _client(refuse).request_execution(_task("a"))
    assert exc.value.code == "E_EDITOR_UNAVAILABLE"

    with pytest.raises(DispatchError) as exc:
        _client(slow).request_execution(_task("a"))
    assert exc.value.code == "E_EDITOR_TIMEOUT"
