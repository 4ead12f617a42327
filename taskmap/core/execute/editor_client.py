from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

import httpx

from taskmap.core.errors import DispatchError
from taskmap.core.execute.prompts import build_task_prompt
from taskmap.core.model import Task


logger = logging.getLogger(__name__)

ExecutionStatus = Literal["completed", "in_progress", "failed"]


@dataclass(frozen=True)
class ExecutionResult:
    status: ExecutionStatus
    file_path: Optional[str] = None


class EditorClient(Protocol):
    def request_execution(self, task: Task) -> ExecutionResult: ...


class HttpEditorClient:
    """Client for the local companion service that drives the code editor."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def request_execution(self, task: Task) -> ExecutionResult:
        payload = {
            "prompt": build_task_prompt(task),
            "language": "typescript",
            "framework": "nextjs",
        }
        try:
            response = self._client.post(f"{self._base_url}/execute", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise DispatchError(code="E_EDITOR_TIMEOUT", message="editor service execution timeout", path=task.id) from e
        except httpx.HTTPStatusError as e:
            raise DispatchError(
                code="E_EDITOR_HTTP",
                message=f"editor service responded with {e.response.status_code}",
                path=task.id,
            ) from e
        except httpx.HTTPError as e:
            raise DispatchError(code="E_EDITOR_UNAVAILABLE", message=f"editor service is not available: {e}", path=task.id) from e
        except ValueError as e:
            raise DispatchError(code="E_EDITOR_BAD_RESPONSE", message="editor service returned invalid JSON", path=task.id) from e

        if not isinstance(body, dict):
            raise DispatchError(code="E_EDITOR_BAD_RESPONSE", message="editor service returned a non-object", path=task.id)

        file_path = body.get("filePath", body.get("file_path"))
        status = body.get("status")
        if status not in ("completed", "in_progress", "failed"):
            status = "completed" if body.get("success") else "failed"
        logger.info("editor service answered %s for %s", status, task.id)
        return ExecutionResult(status=status, file_path=file_path if isinstance(file_path, str) else None)

    def close(self) -> None:
        self._client.close()
