"""Command-line interface for varcalc."""

from __future__ import annotations

import json
from pathlib import Path

import click

from varcalc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="varcalc")
def main() -> None:
    """varcalc -- named variables, formulas and runtime placeholders."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_context(items: tuple[str, ...]) -> dict[str, str]:
    context: dict[str, str] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --ctx format: {item!r}. Use name=value.")
        k, v = item.split("=", 1)
        context[k.strip()] = v
    return context


def _load_workbook(directory: str):
    from varcalc.logging import set_project_dir
    from varcalc.workbook import Workbook

    project_dir = Path(directory)
    try:
        wb = Workbook(project_dir)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))
    set_project_dir(project_dir)
    return wb


# ---------------------------------------------------------------------------
# New
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path())
def new(directory: str) -> None:
    """Scaffold a demo project at DIRECTORY."""
    from varcalc.project import scaffold_project

    try:
        result = scaffold_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created project at {result}")


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("expression")
def eval_cmd(expression: str) -> None:
    """Evaluate a numeric EXPRESSION, e.g. "(2 + 3) * 4"."""
    from varcalc.formulas import EvaluationError, evaluate
    from varcalc.workbook import format_number

    try:
        value = evaluate(expression)
    except EvaluationError as e:
        raise click.ClickException(str(e))
    click.echo(format_number(value))


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def resolve(directory: str, as_json: bool) -> None:
    """Resolve every variable in DIRECTORY and show values or errors."""
    from varcalc.workbook import format_number

    wb = _load_workbook(directory)
    result = wb.resolve()

    if as_json:
        click.echo(json.dumps({"values": result.values, "errors": result.errors}, indent=2))
        return

    if not wb.variables:
        click.echo("No variables defined.")
        return

    for variable in wb.variables:
        if variable.name in result.values:
            shown = format_number(result.values[variable.name], wb.precision)
        else:
            shown = f"ERROR: {result.errors[variable.name]}"
        click.echo(f"  {variable.name:20s} {variable.kind.value.lower():8s} {shown}")


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(exists=True))
def formulas(directory: str) -> None:
    """List formulas in DIRECTORY with the runtime inputs they need."""
    wb = _load_workbook(directory)
    defs = wb.formulas()
    if not defs:
        click.echo("No formulas defined.")
        return
    for formula in defs:
        names = wb.context_names(formula.name)
        needs = f"  needs: {', '.join(names)}" if names else ""
        click.echo(f"  {formula.name:20s} {formula.expression}{needs}")


@main.command()
@click.argument("directory", type=click.Path(exists=True))
@click.argument("formula_name")
@click.option("--ctx", "context_items", multiple=True, help="Context value as name=value.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def execute(
    ctx: click.Context,
    directory: str,
    formula_name: str,
    context_items: tuple[str, ...],
    as_json: bool,
) -> None:
    """Execute FORMULA_NAME from DIRECTORY with runtime context values."""
    from varcalc.formulas import EvaluationError
    from varcalc.workbook import format_number

    wb = _load_workbook(directory)
    context = _parse_context(context_items)

    try:
        value = wb.execute(formula_name, context)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    except EvaluationError as e:
        if not as_json:
            raise click.ClickException(str(e))
        click.echo(json.dumps({"formula": formula_name.upper(), "error": str(e), "kind": e.kind.value}))
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps({"formula": formula_name.upper(), "result": value}))
    else:
        click.echo(format_number(value, wb.precision))


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(exists=True))
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", type=int, default=None, help="Port (auto-select if omitted).")
def ui(directory: str, host: str, port: int | None) -> None:
    """Serve the JSON API for DIRECTORY."""
    import socket

    import uvicorn

    from varcalc.ui.server import create_app

    project_dir = Path(directory)
    try:
        app = create_app(project_dir)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    if port is None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            port = s.getsockname()[1]

    click.echo(f"Serving API at http://{host}:{port}/api")
    click.echo("Press Ctrl+C to stop")

    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        click.echo("\nStopped.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--name", "subject", default=None, help="Only events about this formula or variable.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    subject: str | None,
    limit: int,
) -> None:
    """Show structured event log for DIRECTORY."""
    from varcalc.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_events(level=level, event_type=event_type, subject=subject, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)
