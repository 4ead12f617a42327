from __future__ import annotations

import json
import os
from typing import Any

import openai
from openai import OpenAI

from taskmap.core.errors import GenerationError


SYSTEM_PROMPT = """You are a planning assistant for software projects.

Break the user's project description into development tasks.

Return ONLY a JSON object with fields:
- project_name: a short name for the project
- tasks: [{"title", "description", "priority", "dependencies", "estimated_time"}]

Rules:
- priority is one of low, medium, high.
- dependencies are zero-based indices of earlier tasks in the same list.
- estimated_time is a short duration label such as "2 hours".
- Keep the dependency graph acyclic.
"""


# OpenAI Structured Outputs requirements:
# - For ALL object schemas, `additionalProperties` MUST be present and MUST be false.
# - For ALL object schemas, `required` MUST include EVERY key in `properties`.


TASK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "priority": {"type": "string", "enum": ["low", "medium", "high"]},
        "dependencies": {"type": "array", "items": {"type": "integer"}},
        "estimated_time": {"type": "string"},
    },
    "required": ["title", "description", "priority", "dependencies", "estimated_time"],
}


GENERATION_JSON_SCHEMA: dict[str, Any] = {
    "name": "task_breakdown",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "project_name": {"type": ["string", "null"]},
            "tasks": {"type": "array", "minItems": 1, "items": TASK_SCHEMA},
        },
        "required": ["project_name", "tasks"],
    },
}


class OpenAITaskGenerator:
    def __init__(self, *, model: str, base_url: str | None = None) -> None:
        self._model = model
        self._base_url = base_url

    def generate(self, text: str) -> Any:
        """Ask the model for a task breakdown; returns the decoded, unvalidated JSON."""
        if not os.getenv("OPENAI_API_KEY"):
            raise GenerationError(code="E_AI_NO_API_KEY", message="OPENAI_API_KEY is not set", path="OPENAI_API_KEY")

        client = OpenAI(base_url=self._base_url) if self._base_url else OpenAI()

        try:
            resp = client.responses.create(
                model=self._model,
                temperature=0,
                input=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": GENERATION_JSON_SCHEMA["name"],
                        "schema": GENERATION_JSON_SCHEMA["schema"],
                        "strict": True,
                    }
                },
            )
        except openai.OpenAIError as e:
            raise GenerationError(code="E_AI_REQUEST_FAILED", message=str(e)) from e

        raw_text = _extract_output_text(resp)
        try:
            return json.loads(raw_text)
        except json.JSONDecodeError as e:
            snippet = raw_text[:800]
            raise GenerationError(
                code="E_AI_BAD_JSON", message=f"Failed to parse model JSON. First 800 chars: {snippet}"
            ) from e


def _extract_output_text(resp: Any) -> str:
    """Extract response text across OpenAI SDK response shapes."""
    raw = getattr(resp, "output_text", None)
    if isinstance(raw, str) and raw.strip():
        return raw

    out = getattr(resp, "output", None)
    if isinstance(out, list):
        texts: list[str] = []
        for item in out:
            content = getattr(item, "content", None)
            if isinstance(content, list):
                for c in content:
                    t = getattr(c, "text", None)
                    if isinstance(t, str) and t.strip():
                        texts.append(t)
        if texts:
            return "\n".join(texts)

    return str(resp)
