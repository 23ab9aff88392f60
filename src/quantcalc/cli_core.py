"""Command-line interface for quantcalc."""

from __future__ import annotations

import json
from pathlib import Path

import click

from quantcalc import __version__
from quantcalc.formulas import FormulaError


@click.group()
@click.version_option(version=__version__, prog_name="quantcalc")
@click.option(
    "--project",
    "project_dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Project directory holding quantcalc.yaml and logs/.",
)
@click.pass_context
def main(ctx: click.Context, project_dir: str | None) -> None:
    """quantcalc -- deterministic arithmetic formulas over numeric contexts."""
    from quantcalc.logging.events import set_project_dir
    from quantcalc.project import get_max_depth

    project = Path(project_dir) if project_dir else None
    try:
        max_depth = get_max_depth(project)
    except ValueError as e:
        raise click.ClickException(str(e))
    set_project_dir(project)
    ctx.obj = {"project_dir": project, "max_depth": max_depth}


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_values(items: tuple[str, ...]) -> dict[str, float]:
    values: dict[str, float] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --set format: {item!r}. Use name=value.")
        k, v = item.split("=", 1)
        try:
            values[k.strip()] = float(v)
        except ValueError:
            raise click.ClickException(f"Invalid number for {k.strip()!r}: {v!r}")
    return values


def _parse_formulas(items: tuple[str, ...]) -> dict[str, str]:
    formulas: dict[str, str] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --formula format: {item!r}. Use name=expr.")
        k, v = item.split("=", 1)
        formulas[k.strip()] = v
    return formulas


def _format_value(value: float) -> str:
    return repr(value)


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path())
def init(directory: str) -> None:
    """Scaffold a quantcalc.yaml config at DIRECTORY."""
    from quantcalc.project import scaffold_project

    try:
        result = scaffold_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created project at {result}")


# ---------------------------------------------------------------------------
# Parse / eval
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Print the AST transport JSON.")
@click.pass_obj
def parse(obj: dict, formula: str, as_json: bool) -> None:
    """Parse FORMULA and show its structure."""
    from quantcalc.formulas import (
        ast_depth,
        dumps,
        extract_functions,
        extract_identifiers,
        parse_formula,
    )

    try:
        expr = parse_formula(formula, max_depth=obj["max_depth"])
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(dumps(expr))
        return
    click.echo(f"Identifiers: {', '.join(sorted(extract_identifiers(expr))) or '-'}")
    click.echo(f"Functions: {', '.join(sorted(extract_functions(expr))) or '-'}")
    click.echo(f"Depth: {ast_depth(expr)}")


@main.command("eval")
@click.argument("formula", required=False)
@click.option("--set", "values", multiple=True, help="Context value as name=value.")
@click.option(
    "--ast-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Evaluate a serialized AST (from 'parse --json') instead of FORMULA.",
)
@click.pass_obj
def eval_cmd(obj: dict, formula: str | None, values: tuple[str, ...], ast_file: str | None) -> None:
    """Evaluate FORMULA against --set values."""
    from quantcalc.formulas import evaluate_formula, loads, parse_formula

    if (formula is None) == (ast_file is None):
        raise click.ClickException("Provide exactly one of FORMULA or --ast-file")

    context = _parse_values(values)
    try:
        if ast_file is not None:
            expr = loads(Path(ast_file).read_text(), max_depth=obj["max_depth"])
        else:
            expr = parse_formula(formula, max_depth=obj["max_depth"])
        result = evaluate_formula(expr, context, max_depth=obj["max_depth"])
    except FormulaError as e:
        raise click.ClickException(str(e))
    click.echo(_format_value(result))


# ---------------------------------------------------------------------------
# Compute
# ---------------------------------------------------------------------------


@main.command("compute")
@click.option("--set", "values", multiple=True, help="Context value as name=value.")
@click.option("--formula", "formulas", multiple=True, help="Computed field as name=expr.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def compute_cmd(obj: dict, values: tuple[str, ...], formulas: tuple[str, ...], as_json: bool) -> None:
    """Compute named formulas against one shared context."""
    from quantcalc.compute import compute_mapping

    context = _parse_values(values)
    named = _parse_formulas(formulas)
    try:
        result = compute_mapping(context, named, max_depth=obj["max_depth"])
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return
    for name, value in result.items():
        click.echo(f"{name} = {_format_value(value)}")


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


@main.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--formula", "formulas", multiple=True, required=True, help="Computed column as name=expr.")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False), help="Write results to CSV.")
@click.pass_obj
def batch(obj: dict, csv_path: str, formulas: tuple[str, ...], output: str | None) -> None:
    """Compute formula columns for every row of CSV_PATH."""
    from quantcalc.records import compute_frame, load_records_csv

    named = _parse_formulas(formulas)
    df = load_records_csv(Path(csv_path))
    try:
        result = compute_frame(df, named, max_depth=obj["max_depth"])
    except FormulaError as e:
        raise click.ClickException(str(e))

    if output:
        result.write_csv(output)
        click.echo(f"Rows: {result.height}")
        click.echo(f"Wrote {output}")
    else:
        click.echo(result.write_csv())


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


@main.command()
def functions() -> None:
    """List built-in functions and their arities."""
    from quantcalc.functions import list_functions

    for spec in list_functions():
        click.echo(f"{spec.name:<8} args={spec.signature()}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--compute-id", default=None, help="Filter by compute ID.")
@click.option("--formula", "formula_name", default=None, help="Filter by computed field name.")
@click.option("--limit", default=100, type=click.IntRange(min=1), help="Maximum events to show.")
@click.pass_obj
def events_cmd(
    obj: dict,
    level: str | None,
    event_type: str | None,
    compute_id: str | None,
    formula_name: str | None,
    limit: int,
) -> None:
    """Show the structured event log of the --project directory."""
    from quantcalc.logging.sink import EventSink
    from quantcalc.project import load_project_config

    project = obj["project_dir"]
    if project is None:
        raise click.ClickException("events requires --project")

    tail_bytes = load_project_config(project).get("logging_tail_bytes")
    sink = EventSink(project, tail_bytes=int(tail_bytes) if tail_bytes is not None else None)
    events = sink.read_events(
        level=level,
        event_type=event_type,
        compute_id=compute_id,
        formula_name=formula_name,
        limit=limit,
    )

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        line = f"[{evt.get('ts', '')}] {evt.get('level', '').upper():7s} {evt.get('event_type', '')}: {evt.get('message', '')}"
        if evt.get("error_code"):
            line += f"  ({evt['error_code']})"
        click.echo(line)
