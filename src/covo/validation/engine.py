"""Rule engine orchestrator: build the context, run every rule, aggregate results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from covo.config import ValidatorConfig
from covo.validation.context import build_context
from covo.validation.rules import default_rules

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covo.graph.model import Model, Selection
    from covo.validation.context import ValidationContext
    from covo.validation.rules import Rule, Violation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule, with its metadata."""

    rule_id: str
    name: str
    statement: str
    violations: tuple[Violation, ...] = ()
    error: str | None = None  # set when the rule itself raised

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def passed(self) -> bool:
        return self.error is None and not self.violations

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.rule_id,
            "name": self.name,
            "statement": self.statement,
            "violation_count": self.violation_count,
            "error": self.error,
            "violations": [
                {
                    "subject": v.subject,
                    "ref_ids": list(v.ref_ids),
                    "label": v.label,
                    "message": v.message,
                }
                for v in self.violations
            ],
        }


@dataclass(frozen=True)
class ValidationSummary:
    """Pass/fail classification of a run."""

    passed_ids: tuple[str, ...] = ()
    failed_ids: tuple[str, ...] = ()
    total_violations: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed_ids


@dataclass
class ValidationReport:
    """Result of a validation run."""

    results: list[RuleResult] = field(default_factory=list)
    summary: ValidationSummary = field(default_factory=ValidationSummary)
    partial: bool = False
    elements_checked: int = 0
    relationships_checked: int = 0
    elapsed_ms: float = 0.0

    def get(self, rule_id: str) -> RuleResult | None:
        for result in self.results:
            if result.rule_id == rule_id:
                return result
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "partial": self.partial,
            "elements_checked": self.elements_checked,
            "relationships_checked": self.relationships_checked,
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "passed_ids": list(self.summary.passed_ids),
                "failed_ids": list(self.summary.failed_ids),
                "total_violations": self.summary.total_violations,
            },
            "elapsed_ms": self.elapsed_ms,
        }


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def run_rules(context: ValidationContext, rules: Iterable[Rule]) -> list[RuleResult]:
    """Run *rules* in order over *context*.

    A rule that raises is recorded with its error and counts as failed; the
    remaining rules still run.
    """
    results: list[RuleResult] = []
    for rule in rules:
        logger.debug("Executing rule %s (%s)", rule.rule_id, rule.name)
        try:
            outcome = rule.validate(context)
        except Exception as exc:
            logger.exception("Rule %s failed with error", rule.rule_id)
            results.append(
                RuleResult(
                    rule_id=rule.rule_id,
                    name=rule.name,
                    statement=rule.statement,
                    error=f"Rule execution failed: {exc}",
                )
            )
            continue
        results.append(
            RuleResult(
                rule_id=rule.rule_id,
                name=rule.name,
                statement=rule.statement,
                violations=outcome.violations,
            )
        )
    return results


def summarize(results: Iterable[RuleResult]) -> ValidationSummary:
    passed: list[str] = []
    failed: list[str] = []
    total = 0
    for result in results:
        total += result.violation_count
        if result.passed:
            passed.append(result.rule_id)
        else:
            failed.append(result.rule_id)
    return ValidationSummary(
        passed_ids=tuple(passed), failed_ids=tuple(failed), total_violations=total
    )


def validate_model(
    model: Model,
    selection: Selection | None = None,
    *,
    config: ValidatorConfig | None = None,
    rules: Iterable[Rule] | None = None,
) -> ValidationReport:
    """Validate *model*, fully or limited to *selection*.

    Parameters
    ----------
    model:
        The full model.
    selection:
        When given, the run is partial: only the selection-derived universe
        is checked, at the hierarchy levels it touches.
    config:
        Settings; ``disabled_rules`` are skipped.
    rules:
        Rules to run instead of the default C0-C15 set.

    Raises
    ------
    ModelError
        When the selection references ids outside *model*.
    """
    start = time.monotonic()
    config = config or ValidatorConfig()

    context = build_context(model, selection)
    candidates = rules if rules is not None else default_rules()
    active = [r for r in candidates if config.is_enabled(r.rule_id)]

    logger.info(
        "Validating %d elements and %d relationships (%s) with %d rules",
        len(context.elements),
        len(context.relationships),
        "partial" if context.partial else "full",
        len(active),
    )

    results = run_rules(context, active)
    summary = summarize(results)

    logger.info(
        "Validation finished: %d violations, failed rules: %s",
        summary.total_violations,
        ", ".join(summary.failed_ids) or "none",
    )

    return ValidationReport(
        results=results,
        summary=summary,
        partial=context.partial,
        elements_checked=len(context.elements),
        relationships_checked=len(context.relationships),
        elapsed_ms=(time.monotonic() - start) * 1000,
    )
