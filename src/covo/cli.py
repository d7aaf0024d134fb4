"""COVO CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from covo import __version__


@click.group()
@click.version_option(version=__version__, prog_name="covo")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """COVO - consistency validator for layered enterprise-architecture models."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("model_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--select",
    "selected",
    multiple=True,
    help="Element or relationship id to validate (repeatable; enables partial validation).",
)
@click.option(
    "--selection",
    "selection_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file listing the ids to validate.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: .covo/config.yml).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if violations found.",
)
def validate(
    *,
    model_path: Path,
    selected: tuple[str, ...],
    selection_file: Path | None,
    config_path: Path | None,
    fmt: str | None,
    strict: bool,
) -> None:
    """Validate MODEL_PATH against consistency rules C0-C15.

    MODEL_PATH is a YAML model file or a directory of them.  With --select or
    --selection only the selected part is validated.
    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = model or configuration error.
    """
    from covo.config import ConfigError, load_config
    from covo.graph.loader import load_model, load_selection
    from covo.graph.model import ModelError, Selection
    from covo.validation.engine import validate_model
    from covo.validation.report import format_json, format_porcelain, format_rich

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        config = load_config(config_path)
        model = load_model(model_path)
        selection: Selection | None = None
        if selection_file is not None:
            selection = load_selection(selection_file, model)
        if selected:
            extra = Selection.from_ids(model, selected)
            if selection is None:
                selection = extra
            else:
                selection = Selection(
                    selection.element_ids | extra.element_ids,
                    selection.relationship_ids | extra.relationship_ids,
                )
        report = validate_model(model, selection, config=config)
    except (ModelError, ConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if fmt == "rich":
        output = format_rich(
            report, examples=config.violation_examples, color=sys.stdout.isatty()
        )
    elif fmt == "json":
        output = format_json(report)
    else:
        output = format_porcelain(report)
    if output:
        click.echo(output)

    if strict and not report.summary.ok:
        sys.exit(1)


@main.command("rules")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
def list_rules(*, output_json: bool) -> None:
    """List the consistency rules."""
    from covo.validation.rules import default_rules

    rules = default_rules()
    if output_json:
        data = [{"id": r.rule_id, "name": r.name, "statement": r.statement} for r in rules]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    for rule in rules:
        click.echo(f"{rule.rule_id:<4} {rule.name}")
        click.echo(f"     {rule.statement}")
