from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from taskmap.core.ai.contracts import RawTaskStub


@dataclass(frozen=True)
class TaskTemplate:
    name: str
    keywords: list[str]
    tasks: list[dict[str, Any]]


DEFAULT_TEMPLATES: dict[str, TaskTemplate] = {
    # Catalog order is match precedence; "default" has no keywords and always comes last.
    "auth": TaskTemplate(
        name="auth",
        keywords=["auth", "login", "signup"],
        tasks=[
            {
                "title": "Setup Authentication Provider",
                "description": "Configure authentication service (Supabase, Auth0, or Firebase)",
                "priority": "high",
                "dependencies": [],
                "estimated_time": "2 hours",
            },
            {
                "title": "Create Login Component",
                "description": "Build login form with email/password and social auth options",
                "priority": "high",
                "dependencies": [0],
                "estimated_time": "3 hours",
            },
            {
                "title": "Create Signup Component",
                "description": "Build registration form with validation and email confirmation",
                "priority": "high",
                "dependencies": [0],
                "estimated_time": "3 hours",
            },
            {
                "title": "Implement Protected Routes",
                "description": "Add middleware to protect authenticated pages and API routes",
                "priority": "medium",
                "dependencies": [1, 2],
                "estimated_time": "2 hours",
            },
            {
                "title": "Setup User Profile Management",
                "description": "Create user profile page with update functionality",
                "priority": "low",
                "dependencies": [3],
                "estimated_time": "2 hours",
            },
        ],
    ),
    "api": TaskTemplate(
        name="api",
        keywords=["api", "backend"],
        tasks=[
            {
                "title": "Design API Architecture",
                "description": "Plan REST API endpoints and data models",
                "priority": "high",
                "dependencies": [],
                "estimated_time": "2 hours",
            },
            {
                "title": "Setup Database Schema",
                "description": "Create database tables and relationships",
                "priority": "high",
                "dependencies": [0],
                "estimated_time": "2 hours",
            },
            {
                "title": "Implement CRUD Operations",
                "description": "Build Create, Read, Update, Delete operations for main entities",
                "priority": "medium",
                "dependencies": [1],
                "estimated_time": "4 hours",
            },
            {
                "title": "Add API Validation",
                "description": "Implement request validation and error handling",
                "priority": "medium",
                "dependencies": [2],
                "estimated_time": "2 hours",
            },
        ],
    ),
    "ui": TaskTemplate(
        name="ui",
        keywords=["ui", "frontend", "design"],
        tasks=[
            {
                "title": "Create Design System",
                "description": "Setup colors, typography, and component library",
                "priority": "high",
                "dependencies": [],
                "estimated_time": "3 hours",
            },
            {
                "title": "Build Main Layout",
                "description": "Create header, footer, and navigation components",
                "priority": "high",
                "dependencies": [0],
                "estimated_time": "2 hours",
            },
            {
                "title": "Implement Responsive Design",
                "description": "Ensure mobile-first responsive design across all screens",
                "priority": "medium",
                "dependencies": [1],
                "estimated_time": "3 hours",
            },
            {
                "title": "Add Loading States",
                "description": "Implement skeleton screens and loading indicators",
                "priority": "low",
                "dependencies": [1],
                "estimated_time": "1 hour",
            },
        ],
    ),
    "default": TaskTemplate(
        name="default",
        keywords=[],
        tasks=[
            {
                "title": "Project Planning",
                "description": "Plan and break down the requirements for: {input}",
                "priority": "high",
                "dependencies": [],
                "estimated_time": "1 hour",
            },
            {
                "title": "Setup Development Environment",
                "description": "Configure tools, dependencies, and development workflow",
                "priority": "medium",
                "dependencies": [0],
                "estimated_time": "1 hour",
            },
            {
                "title": "Implementation",
                "description": "Implement the main functionality for: {input}",
                "priority": "high",
                "dependencies": [1],
                "estimated_time": "4 hours",
            },
            {
                "title": "Testing & Documentation",
                "description": "Write tests and update documentation",
                "priority": "medium",
                "dependencies": [2],
                "estimated_time": "2 hours",
            },
        ],
    ),
}


class TemplateConfigError(ValueError):
    pass


def select_template(text: str, templates: dict[str, TaskTemplate] | None = None) -> TaskTemplate:
    """First template (catalog order) with a keyword starting a word of text."""
    tpl_map = templates or DEFAULT_TEMPLATES
    lowered = text.lower()
    for tpl in tpl_map.values():
        if any(re.search(r"\b" + re.escape(kw.lower()), lowered) for kw in tpl.keywords):
            return tpl
    return tpl_map.get("default", DEFAULT_TEMPLATES["default"])


def template_stubs(text: str, templates: dict[str, TaskTemplate] | None = None) -> list[RawTaskStub]:
    tpl = select_template(text, templates)
    stubs: list[RawTaskStub] = []
    for item in tpl.tasks:
        stubs.append(
            RawTaskStub(
                title=item["title"],
                description=str(item.get("description", "")).replace("{input}", text.strip()),
                priority=item.get("priority"),
                dependencies=list(item.get("dependencies", [])),
                estimated_time=item.get("estimated_time"),
            )
        )
    return stubs


def load_template_file(path: str | Path) -> dict[str, TaskTemplate]:
    """Load templates from a YAML file.

    Format:
      <name>:
        keywords: ["word", ...]
        tasks:
          - title: "..."
            description: "..."
            priority: high|medium|low
            dependencies: [0, 1]   # indices into this template's tasks
            estimated_time: "2 hours"

    Returns a mapping of template name -> TaskTemplate.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TemplateConfigError("template file must be a mapping of name -> template")

    out: dict[str, TaskTemplate] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            raise TemplateConfigError("template names must be non-empty strings")
        name = k.strip()
        if not isinstance(v, dict):
            raise TemplateConfigError(f"template '{name}' must be a mapping")

        keywords = v.get("keywords", [])
        if not isinstance(keywords, list) or any(not isinstance(x, str) or not x.strip() for x in keywords):
            raise TemplateConfigError(f"template '{name}' keywords must be a list of non-empty strings")

        tasks = v.get("tasks")
        if not isinstance(tasks, list) or not tasks:
            raise TemplateConfigError(f"template '{name}' must have a non-empty tasks list")
        for i, item in enumerate(tasks):
            if not isinstance(item, dict):
                raise TemplateConfigError(f"template '{name}' tasks[{i}] must be a mapping")
            title = item.get("title")
            if not isinstance(title, str) or not title.strip():
                raise TemplateConfigError(f"template '{name}' tasks[{i}].title must be a non-empty string")
            deps = item.get("dependencies", [])
            if not isinstance(deps, list) or any(
                isinstance(d, bool) or not isinstance(d, int) or not 0 <= d < i for d in deps
            ):
                raise TemplateConfigError(
                    f"template '{name}' tasks[{i}].dependencies must index earlier tasks"
                )

        out[name] = TaskTemplate(
            name=name,
            keywords=[x.strip() for x in keywords],
            tasks=[dict(item) for item in tasks],
        )
    return out


def merged_templates(overrides: dict[str, TaskTemplate] | None = None) -> dict[str, TaskTemplate]:
    """Return DEFAULT_TEMPLATES merged with optional overrides.

    Overrides replace templates of the same name, and may add new ones. New
    templates are matched before "default".
    """
    merged = {k: v for k, v in DEFAULT_TEMPLATES.items() if k != "default"}
    default = DEFAULT_TEMPLATES["default"]
    if overrides:
        for k, v in overrides.items():
            if k == "default":
                default = v
            else:
                merged[k] = v
    merged["default"] = default
    return merged


def load_and_merge(template_file: str | None) -> dict[str, TaskTemplate]:
    if not template_file:
        return merged_templates()
    overrides = load_template_file(template_file)
    return merged_templates(overrides)
