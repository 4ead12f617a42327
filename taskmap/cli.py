from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from taskmap.config import Settings, SettingsError, load_settings, model_for_role
from taskmap.core.ai.openai_client import OpenAITaskGenerator
from taskmap.core.ai.orchestrator import generate_tasks
from taskmap.core.errors import TaskLoadError, TaskMapError, ValidationError, sort_errors
from taskmap.core.execute.dispatch import dispatch_task
from taskmap.core.execute.editor_client import HttpEditorClient
from taskmap.core.expand.templates import TemplateConfigError, load_and_merge
from taskmap.core.graph.board import board_columns
from taskmap.core.io.store import FileTaskStore, save_tasks_or_keep
from taskmap.core.io.task_file import load_task_file, project_from_doc, tasks_from_rows
from taskmap.core.lint.lint_tasks import lint_tasks
from taskmap.core.mindmap.build import tasks_to_mindmap
from taskmap.core.mindmap.layout import layout
from taskmap.core.mindmap.scheduler import AsyncioScheduler
from taskmap.core.mindmap.sequencer import ExecutionSequencer, MindMapState, SequencerTimings
from taskmap.core.mindmap.visibility import toggle_children
from taskmap.core.model import MindMapData, Project, Size, Task
from taskmap.observability import configure_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="Optional YAML settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG|INFO|WARNING|ERROR"),
) -> None:
    """taskmap: dependency-aware task boards and mind maps."""
    try:
        settings = load_settings(config)
    except (SettingsError, OSError) as e:
        _print_errors([ValidationError(code="E_CONFIG_INVALID", message=str(e), file=config, path="config")])
        raise typer.Exit(code=2)
    try:
        configure_logging(log_level or settings.log_level)
    except ValueError as e:
        _print_errors([ValidationError(code="E_CONFIG_INVALID", message=str(e), path="log_level")])
        raise typer.Exit(code=2)
    ctx.obj = settings


@app.command("generate")
def generate(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Free-text description of the project"),
    out: str = typer.Option(..., "--out", help="Project file to create or extend (.yaml/.yml/.json)"),
    project_id: str = typer.Option("project-1", "--project-id", help="Project id for a new file"),
    offline: bool = typer.Option(False, "--offline", help="Skip the model and use the template catalog"),
    model: Optional[str] = typer.Option(None, "--model"),
    base_url: Optional[str] = typer.Option(None, "--base-url"),
    template_file: Optional[str] = typer.Option(
        None, "--template-file", help="Optional YAML file to add/override templates"
    ),
) -> None:
    """Generate dependency-ordered tasks from a description and save them."""
    settings: Settings = ctx.obj
    templates_map = _load_templates(template_file)

    store = FileTaskStore(out, project=Project(id=project_id, name="Untitled Project"))
    try:
        project = store.project()
        existing = store.load_tasks(project.id)
    except TaskLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    generator = None
    if not offline:
        generator = OpenAITaskGenerator(
            model=model or model_for_role("generate", settings.openai_model), base_url=base_url
        )

    try:
        outcome = generate_tasks(
            text,
            project=project,
            generator=generator,
            existing_tasks=existing,
            templates=templates_map,
            fallback_estimated_time=settings.fallback_estimated_time,
        )
    except ValidationError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    tasks, saved = save_tasks_or_keep(store, outcome.tasks)
    if not saved:
        _print_errors([TaskLoadError(code="E_SAVE_FAILED", message="tasks were not saved; retry", file=out)])
        raise typer.Exit(code=1)

    if outcome.project.name != project.name:
        try:
            store.update_project(project.id, {"name": outcome.project.name})
        except TaskLoadError as e:
            _print_errors([e])
            raise typer.Exit(code=1)

    source = "template" if outcome.used_fallback else "ai"
    typer.echo(f"OK: wrote {len(outcome.tasks)} tasks to {out} (source={source}, total={len(tasks)})")


@app.command("board")
def board(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Show tasks as kanban columns by derived status."""
    _check_format(format, "E_BOARD_UNKNOWN_FORMAT")
    _, project, tasks = _load(path)
    columns = board_columns(tasks)

    if format == "json":
        payload = {
            "tool": "taskmap",
            "command": "board",
            "project": project.name,
            "columns": [
                {"id": c.id, "title": c.title, "tasks": [_task_item(t) for t in c.tasks]} for c in columns
            ],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    table = Table(title=project.name)
    for column in columns:
        table.add_column(f"{column.title} ({len(column.tasks)})")
    depth = max((len(c.tasks) for c in columns), default=0)
    for i in range(depth):
        table.add_row(*[c.tasks[i].title if i < len(c.tasks) else "" for c in columns])
    console.print(table)


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Report duplicate ids, dangling or self dependencies, and cycles."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, errors: list[TaskMapError], exit_code: int) -> None:
        payload = {
            "tool": "taskmap",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [
                {
                    "code": e.code,
                    "message": e.message,
                    "file": e.file,
                    "path": e.path,
                    "source": "load" if isinstance(e, TaskLoadError) else "lint",
                }
                for e in errors
            ],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_task_file(path)
    except TaskLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    errors = lint_tasks(doc)
    if format == "json":
        _emit_json(not errors, errors, 2 if errors else 0)
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("mindmap")
def mindmap(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    layout_kind: Optional[str] = typer.Option(None, "--layout", help="tree|radial"),
    width: Optional[float] = typer.Option(None, "--width"),
    height: Optional[float] = typer.Option(None, "--height"),
    expand: list[str] = typer.Option([], "--expand", help="Card id or branch title to toggle open (repeatable)"),
    out: Optional[str] = typer.Option(None, "--out", help="Write JSON here instead of stdout"),
) -> None:
    """Lay out the project as a mind map and print it as JSON."""
    settings: Settings = ctx.obj
    kind = layout_kind or settings.layout
    if kind not in ("tree", "radial"):
        _print_errors(
            [ValidationError(code="E_MINDMAP_UNKNOWN_LAYOUT", message=f"unknown layout: {kind} (choose one of: tree, radial)", path="layout")]
        )
        raise typer.Exit(code=2)

    _, project, tasks = _load(path)
    data = tasks_to_mindmap(tasks, project.name)
    for key in expand:
        card_id = _resolve_card(data, key)
        if card_id is None:
            _print_errors([ValidationError(code="E_MINDMAP_UNKNOWN_CARD", message=f"unknown card: {key}", file=path, path="expand")])
            raise typer.Exit(code=2)
        data = toggle_children(data, card_id)

    canvas = Size(width or settings.canvas_width, height or settings.canvas_height)
    positioned = layout(data, canvas, kind=kind)  # type: ignore[arg-type]
    text = json.dumps(mindmap_payload(positioned), indent=2)
    if out:
        p = Path(out)
        if str(p.parent) not in (".", ""):
            p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"OK: wrote mind map to {out}")
        return
    typer.echo(text)


@app.command("templates")
def templates(
    template_file: Optional[str] = typer.Option(
        None,
        "--template-file",
        help="Optional YAML file to add/override templates",
    ),
) -> None:
    """List the fallback task templates in match order."""
    templates_map = _load_templates(template_file)
    typer.echo("Templates:")
    for name, tpl in templates_map.items():
        keywords = ", ".join(tpl.keywords) if tpl.keywords else "(fallback)"
        typer.echo(f"- {name} [{keywords}]: {', '.join(t['title'] for t in tpl.tasks)}")


@app.command("execute")
def execute(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    task_id: str = typer.Argument(..., help="Id of a ready task"),
    editor_url: Optional[str] = typer.Option(None, "--editor-url", help="Companion editor service URL"),
) -> None:
    """Send one ready task to the editor automation service and save the result."""
    settings: Settings = ctx.obj
    _, _, tasks = _load(path)

    client = HttpEditorClient(editor_url or settings.editor_url, timeout=settings.editor_timeout)
    try:
        outcome = dispatch_task(tasks, task_id, client)
    finally:
        client.close()

    store = FileTaskStore(path)
    _, saved = save_tasks_or_keep(store, outcome.tasks)
    if not saved:
        _print_errors([TaskLoadError(code="E_SAVE_FAILED", message="task status was not saved; retry", file=path)])
        raise typer.Exit(code=1)

    if outcome.error is not None:
        _print_errors([outcome.error])
        raise typer.Exit(code=2)
    if not outcome.dispatched:
        reason = "editor reported failure" if outcome.result else "task is not ready"
        _print_errors([ValidationError(code="E_EXECUTE_NOT_DISPATCHED", message=reason, file=path, path=task_id)])
        raise typer.Exit(code=2)

    status = next(t.status for t in outcome.tasks if t.id == task_id)
    extra = f" file={outcome.result.file_path}" if outcome.result and outcome.result.file_path else ""
    typer.echo(f"OK: {task_id} -> {status}{extra}")


@app.command("animate")
def animate(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    speed: float = typer.Option(1.0, "--speed", help="Playback speed multiplier"),
) -> None:
    """Play the execution walk from the root to the first ready task."""
    settings: Settings = ctx.obj
    _, project, tasks = _load(path)
    data = layout(
        tasks_to_mindmap(tasks, project.name),
        Size(settings.canvas_width, settings.canvas_height),
        kind=settings.layout,
    )
    timings = SequencerTimings(
        particle_duration=settings.particle_duration,
        glow_duration=settings.glow_duration,
        handoff_delay=settings.handoff_delay,
    ).scaled(speed)

    async def run() -> bool:
        done = asyncio.Event()
        sequencer = ExecutionSequencer(state=MindMapState(data=data), scheduler=AsyncioScheduler(), timings=timings)

        def show(state: MindMapState) -> None:
            console.print(
                f"{state.phase:<22} edges={sorted(state.animated_connection_ids)} "
                f"glow={sorted(state.processing_connection_ids)} cards={sorted(state.processing_card_ids)}",
                markup=False,
                highlight=False,
            )
            if state.phase == "idle":
                done.set()

        sequencer.subscribe(show)
        if not sequencer.start():
            return False
        await done.wait()
        return True

    if not asyncio.run(run()):
        typer.echo("No ready task: nothing to animate")


@app.command("rename")
def rename(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    name: str = typer.Argument(..., help="New project name"),
) -> None:
    """Rename the project stored in a file."""
    _, project, _ = _load(path)
    try:
        updated = FileTaskStore(path).update_project(project.id, {"name": name})
    except ValidationError as e:
        _print_errors([e])
        raise typer.Exit(code=2)
    except TaskLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)
    typer.echo(f"OK: renamed project to {updated.name}")


def mindmap_payload(data: MindMapData) -> dict[str, Any]:
    return {
        "project_name": data.project_name,
        "root_id": data.root_id,
        "canvas": asdict(data.canvas),
        "cards": {cid: asdict(card) for cid, card in data.cards.items()},
        "connections": [{"id": c.id, "from": c.source, "to": c.target, "type": c.type} for c in data.connections],
    }


def _load(path: str) -> tuple[dict[str, Any], Project, list[Task]]:
    try:
        doc = load_task_file(path)
    except TaskLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)
    project = project_from_doc(doc)
    return doc, project, tasks_from_rows(doc["tasks"], project.id)


def _load_templates(template_file: Optional[str]):
    try:
        return load_and_merge(template_file)
    except FileNotFoundError:
        _print_errors(
            [
                TaskLoadError(
                    code="E_TEMPLATE_FILE_NOT_FOUND",
                    message=f"template file not found: {template_file}",
                    path="template_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except TemplateConfigError as e:
        _print_errors([ValidationError(code="E_TEMPLATE_FILE_INVALID", message=str(e), path="template_file")])
        raise typer.Exit(code=2)


def _resolve_card(data: MindMapData, key: str) -> Optional[str]:
    if key in data.cards:
        return key
    for card in data.cards.values():
        if card.type == "branch" and card.title.lower() == key.lower():
            return card.id
    return None


def _task_item(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "priority": task.priority,
        "estimated_time": task.estimated_time,
        "dependencies": list(task.dependencies),
        "progress": task.progress,
    }


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _print_errors(
            [ValidationError(code=code, message=f"unknown format: {format} (choose one of: text, json)", path="format")]
        )
        raise typer.Exit(code=2)


def _print_errors(errors: list[TaskMapError]) -> None:
    for e in sort_errors(errors):
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="taskmap")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
