"""Report formatters for validation results: rich console text, JSON, porcelain."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covo.validation.engine import ValidationReport

_HIERARCHY_RULES = ("C1", "C2")


def format_rich(report: ValidationReport, *, examples: int = 5, color: bool = False) -> str:
    """Format a ValidationReport as a human-readable console report.

    Lists at most *examples* violating items per failed rule.  Example
    output with violations::

        ─────────── Validation Report ───────────
          Overall status: FAILED (full validation)
          Checked: 12 elements, 18 relationships

          Total violations: 2
          Rules failed: C6, C9

          Fix C1 and C2 violations before proceeding to the other ones.

        ✗ C6 - Capability impact: 1
          Each business capability must transform exactly one ...
          - Billing: transforms no object
    """
    from io import StringIO

    from rich.console import Console
    from rich.markup import escape
    from rich.text import Text

    buf = StringIO()
    console = Console(file=buf, force_terminal=color, width=100, highlight=False)

    summary = report.summary
    mode = "partial" if report.partial else "full"

    console.rule("[bold]Validation Report[/bold]", style="blue")
    status = Text("  Overall status: ", style="bold")
    if summary.total_violations or summary.failed_ids:
        status.append("FAILED", style="bold red")
    else:
        status.append("PASSED", style="bold green")
    status.append(f" ({mode} validation)")
    console.print(status)
    console.print(
        f"  Checked: {report.elements_checked} elements, "
        f"{report.relationships_checked} relationships"
    )
    console.print()

    if summary.failed_ids:
        console.print(f"  Total violations: [bold]{summary.total_violations}[/bold]")
        console.print(f"  Rules failed: {', '.join(summary.failed_ids)}")
        console.print()
        note_style = "bold yellow" if needs_hierarchy_fix(report) else "dim"
        console.print(
            "  Fix C1 and C2 violations before proceeding to the other ones.", style=note_style
        )

        for result in report.results:
            if result.passed:
                continue
            console.print()
            console.print(
                f"[red]✗[/red] [bold]{result.rule_id} - {escape(result.name)}[/bold]: "
                f"{result.violation_count}"
            )
            console.print(f"  {escape(result.statement)}", style="dim")
            if result.error is not None:
                console.print(f"  [red]{escape(result.error)}[/red]")
            for violation in result.violations[:examples]:
                console.print(f"  - {escape(violation.label)}: {escape(violation.message)}")
            hidden = result.violation_count - examples
            if hidden > 0:
                console.print(f"  ... and {hidden} more")
    else:
        console.print(
            f"[green]✓[/green] All {len(report.results)} rules passed "
            f"({report.elapsed_ms / 1000:.1f}s)"
        )

    return buf.getvalue().rstrip("\n")


def format_json(report: ValidationReport) -> str:
    """Format a ValidationReport as structured JSON."""
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def format_porcelain(report: ValidationReport) -> str:
    """Format violations as machine-readable lines.

    Format: ``rule_id:subject:ref_id[,ref_id...]``, one line per violation
    (a host can highlight the listed ids).  Rules that raised produce
    ``rule_id:error:``.  Returns an empty string when everything passed.
    """
    lines: list[str] = []
    for result in report.results:
        if result.error is not None:
            lines.append(f"{result.rule_id}:error:")
        for v in result.violations:
            lines.append(f"{result.rule_id}:{v.subject}:{','.join(v.ref_ids)}")
    return "\n".join(lines)


def needs_hierarchy_fix(report: ValidationReport) -> bool:
    """Return True if C1 or C2 failed, which makes other results unreliable."""
    return any(rule_id in report.summary.failed_ids for rule_id in _HIERARCHY_RULES)
