from __future__ import annotations

import re

from taskmap.core.model import Task


DEFAULT_CATEGORY = "General"

# Precedence order: the first category with a matching keyword wins.
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Setup", ("setup", "config", "install")),
    ("Frontend", ("frontend", "ui", "component")),
    ("Backend", ("backend", "api", "server")),
    ("Database", ("database", "db", "model")),
    ("Testing", ("test", "testing")),
    ("Deployment", ("deploy", "build", "production")),
]

_RULE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (name, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")"))
    for name, keywords in CATEGORY_RULES
]


def classify_title(title: str) -> str:
    """Category of a task title.

    A keyword matches at the start of a word, so "tests" counts as test but
    "build" does not count as ui.
    """
    lowered = title.lower()
    for name, pattern in _RULE_PATTERNS:
        if pattern.search(lowered):
            return name
    return DEFAULT_CATEGORY


def group_by_category(tasks: list[Task]) -> dict[str, list[Task]]:
    """Categories in order of first appearance; tasks keep their relative order."""
    out: dict[str, list[Task]] = {}
    for t in tasks:
        out.setdefault(classify_title(t.title), []).append(t)
    return out
