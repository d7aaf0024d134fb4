"""Validation domain: context builder, consistency rules, engine, and report formatters."""

from covo.validation.context import PartialScope, ValidationContext, build_context
from covo.validation.engine import (
    RuleResult,
    ValidationReport,
    ValidationSummary,
    run_rules,
    summarize,
    validate_model,
)
from covo.validation.report import format_json, format_porcelain, format_rich
from covo.validation.rules import (
    RULE_IDS,
    RULES,
    Rule,
    RuleOutcome,
    Violation,
    default_rules,
    get_rule,
)

__all__ = [
    "RULES",
    "RULE_IDS",
    "PartialScope",
    "Rule",
    "RuleOutcome",
    "RuleResult",
    "ValidationContext",
    "ValidationReport",
    "ValidationSummary",
    "Violation",
    "build_context",
    "default_rules",
    "format_json",
    "format_porcelain",
    "format_rich",
    "get_rule",
    "run_rules",
    "summarize",
    "validate_model",
]
