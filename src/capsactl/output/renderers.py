"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer. Task titles
and comments are user text full of ``[brackets]``, so everything goes
through :class:`~rich.text.Text` rather than console markup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from capsactl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from capsactl.services.result import ServiceResult

NO_OWNER = "(none)"


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if not result.ok:
        _render_error(result, console, verbose=verbose)
    elif result.meta and result.meta.get("dry_run"):
        _render_preview(result, console, verbose=verbose)
    else:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` / ``--oneline`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    data = result.data
    if "content" in data:
        return str(data["content"]).rstrip("\n")
    if "tasks" in data:
        return "\n".join(str(task["id"]) for task in data["tasks"])
    if "released" in data:
        return "\n".join(data["released"])
    if "paths" in data:
        return "\n".join(data["paths"])
    if "id" in data:
        return str(data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _line(console: Console, text: str, style: str = "") -> None:
    console.print(Text(text, style=style), soft_wrap=True)


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="capsa.key")
    if key == "id":
        v = Text(str(value), style="capsa.id")
    elif key in ("path", "file", "node_ref"):
        v = Text(str(value), style="capsa.path")
    elif key == "title":
        v = Text(str(value), style="capsa.title")
    else:
        v = Text(str(value))
    console.print(k, v, sep="", soft_wrap=True)


def _owner(value: Any) -> str:
    return str(value) if value else NO_OWNER


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including the command trace (verbose only)."""
    if not result.meta:
        return

    console.print()
    _line(console, "  meta:", "dim")

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_trace(console, v)
        else:
            _line(console, f"    {k}: {v}")


def _render_trace(console: Console, trace: dict[str, Any]) -> None:
    """One line per command: color-coded timing, name and recorded facts."""
    duration = trace.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text("    ")
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {trace.get('name', '?')}")
    facts = trace.get("facts") or {}
    if facts:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in facts.items())})")
    console.print(line, soft_wrap=True)


def _task_table(tasks: list[dict[str, Any]], *, with_file: bool = True) -> Table:
    """Build a Rich Table for a list of task dicts."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="capsa.id", no_wrap=True)
    table.add_column("TITLE", style="capsa.title")
    if with_file:
        table.add_column("FILE", style="capsa.path")
    table.add_column("STATUS")
    table.add_column("OWNER", style="capsa.owner")

    for task in tasks:
        status = str(task.get("status", ""))
        row = [Text(str(task.get("id", ""))), Text(task.get("title") or "-")]
        if with_file:
            row.append(Text(str(task.get("node_ref", ""))))
        row.append(Text(status, style=style_for_status(status)))
        row.append(Text(_owner(task.get("owner"))))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="capsa.error")
    op = Text(f"  {result.op}", style="capsa.op")
    console.print(label, op, Text(" — "), Text(msg), sep="", soft_wrap=True)
    if err is None:
        return

    for candidate in err.detail.get("candidates", []):
        _line(console, f"  {candidate}", "capsa.path")
    hint = err.detail.get("hint")
    if hint:
        _line(console, f"Hint: {hint}", "capsa.hint")

    if verbose and err.detail:
        _line(console, "  detail:", "dim")
        for k, v in err.detail.items():
            _line(console, f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_id(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add/take results as the bare task id."""
    _line(console, str(result.data.get("id", "")), "capsa.id")
    if verbose:
        for key in ("node_ref", "title", "owner", "status", "action", "created", "path"):
            if key in result.data:
                _field(console, key, result.data[key])
        _render_meta(console, result)


def _render_release(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    log = result.data.get("log")
    if log is not None:
        _render_task_log(log, console)
    else:
        for task_id in result.data.get("released", []):
            _line(console, task_id, "capsa.id")
        for task_id in result.data.get("skipped", []):
            _line(console, f"{task_id} (unchanged)", "dim")
    if verbose:
        _render_meta(console, result)


def _render_preview(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a dry-run preview: what would be written, nothing more."""
    data = result.data
    preview = data.get("preview", {})
    file_name = preview.get("file", "TASK.md")

    if result.op == "task_release":
        _line(console, f"--- {file_name} changes ---")
        for change in data.get("changes", []):
            old_box, new_box = change["checkbox"]
            old_owner, new_owner = change["owner"]
            _line(console, f"{change['id']}: {old_box} -> {new_box}, {old_owner} -> {new_owner}")
        _line(console, "---")
        _line(console, f"Would release {len(data.get('released', []))} task(s)")
    elif result.op == "task_comment":
        _line(console, f"--- {file_name} (append) ---")
        for line in preview.get("lines", []):
            _line(console, line)
        _line(console, "---")
        _line(console, f"Would append to: {data.get('id')}")
    else:
        action = data.get("action")
        heading = "new entry" if action == "insert" else "updated entry"
        _line(console, f"--- {file_name} ({heading}) ---")
        for line in preview.get("lines", []):
            if line:
                _line(console, line)
        _line(console, "---")
        if action == "none":
            _line(console, "No change")
        elif preview.get("header"):
            _line(console, f"Would insert under header: {preview['header']}")
        elif action == "insert":
            _line(console, "Would insert at the top of the task body")
        else:
            _line(console, f"Would update: {data.get('id')}")

    if verbose:
        _render_meta(console, result)


# ── Query renderers ───────────────────────────────────────────────────


def _render_task_log(data: dict[str, Any], console: Console) -> None:
    _line(console, f"{data.get('id')}: {data.get('title')}", "capsa.title")
    _line(console, f"Status: {data.get('status')} | Owner: {_owner(data.get('owner'))}")
    _line(console, "---")
    comments = data.get("comments", [])
    if not comments:
        _line(console, "(no comments)", "dim")
    for comment in comments:
        _line(console, f"- {comment}")


def _render_log(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render task_log / task_comment results as the task's comment log."""
    _render_task_log(result.data, console)
    if verbose:
        _render_meta(console, result)


def _render_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single task as a panel."""
    d = result.data
    status = str(d.get("status", ""))
    body = Text()
    body.append(f"Title:    {d.get('title') or '-'}\n")
    body.append("Status:   ")
    body.append(status, style=style_for_status(status))
    body.append(f"\nOwner:    {_owner(d.get('owner'))}\n")
    body.append(f"File:     {d.get('node_ref', '')}\n")
    body.append(f"Comments: {d.get('comment_count', len(d.get('comments', [])))}")
    console.print(Panel(body, title=Text(str(d.get("id", "?"))), border_style="dim", expand=False))
    if verbose:
        _render_meta(console, result)


def _render_task_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render task_list / task_find results as a table."""
    tasks = result.data.get("tasks", [])
    if not tasks and result.op == "task_find":
        return
    console.print(_task_table(tasks, with_file=result.op == "task_list"))
    console.print(f"\n{result.data.get('count', len(tasks))} tasks")
    if verbose:
        _render_meta(console, result)


def _render_resolve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    for path in result.data.get("paths", []):
        _line(console, path, "capsa.path")
    if verbose:
        _render_meta(console, result)


def _render_print(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Note text as-is: no markup, highlighting or wrapping."""
    console.out(result.data.get("content", ""), end="", highlight=False)
    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    label = Text("OK", style="capsa.ok")
    op = Text(f"  {result.op}", style="capsa.op")
    console.print(label, op, sep="")
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS = {
    "task_add": _render_id,
    "task_take": _render_id,
    "task_comment": _render_log,
    "task_release": _render_release,
    "task_list": _render_task_table,
    "task_find": _render_task_table,
    "task_show": _render_show,
    "task_log": _render_log,
    "resolve": _render_resolve,
    "print": _render_print,
}
