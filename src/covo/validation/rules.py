"""Consistency rules C0-C15 for layered enterprise-architecture models.

Each rule is a pure function of a :class:`~covo.validation.context.ValidationContext`.
Candidates are read from the context (and its partial scope); evidence such
as parents, children, and companion relations is read from the full-model
graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from covo.graph.model import Element, Relationship
from covo.metamodel import (
    CAPABILITY,
    MANIFESTATION,
    MATERIAL,
    OBJECT,
    SUCCESSION,
    SUPPORT,
    TRANSFORMATION,
    VALUE_STREAM,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from covo.validation.context import ValidationContext

# A rule check yields (subject, message) pairs.  The subject is an element,
# a relationship, or a group of elements.
Subject = Element | Relationship | tuple[Element, ...]
Finding = tuple[Subject, str]

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Violation:
    """A single rule violation."""

    rule_id: str
    subject: str  # "element" | "relationship" | "group"
    ref_ids: tuple[str, ...]
    label: str  # display name of the violating item(s)
    message: str

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        return (self.subject, self.ref_ids)


@dataclass(frozen=True)
class RuleOutcome:
    """Violations produced by one rule, deduplicated in discovery order."""

    rule_id: str
    violations: tuple[Violation, ...]


@dataclass(frozen=True)
class Rule:
    """A named consistency rule."""

    rule_id: str
    name: str
    statement: str
    check: Callable[[ValidationContext], Iterable[Finding]]

    def validate(self, context: ValidationContext) -> RuleOutcome:
        seen: set[tuple[str, tuple[str, ...]]] = set()
        violations: list[Violation] = []
        for subject, message in self.check(context):
            violation = _make_violation(self.rule_id, subject, message)
            if violation.key in seen:
                continue
            seen.add(violation.key)
            violations.append(violation)
        return RuleOutcome(rule_id=self.rule_id, violations=tuple(violations))


def _make_violation(rule_id: str, subject: Subject, message: str) -> Violation:
    if isinstance(subject, Relationship):
        return Violation(rule_id, "relationship", (subject.id,), subject.label, message)
    if isinstance(subject, Element):
        return Violation(rule_id, "element", (subject.id,), subject.label, message)
    return Violation(
        rule_id,
        "group",
        tuple(e.id for e in subject),
        ", ".join(e.label for e in subject),
        message,
    )


# ---------------------------------------------------------------------------
# Hierarchy rules
# ---------------------------------------------------------------------------


def check_valid_level(ctx: ValidationContext) -> Iterator[Finding]:
    """C0: a stored level must equal the number of ancestors."""
    for element in ctx.elements:
        if element.stored_level is None:
            continue
        ancestors = ctx.graph.get_ancestor_count(element)
        if element.stored_level != ancestors:
            yield element, f"stored level {element.stored_level}, but {ancestors} ancestors"


def check_unique_parent(ctx: ValidationContext) -> Iterator[Finding]:
    """C1."""
    for element in ctx.elements:
        if ctx.graph.has_multiple_parents(element):
            parents = ", ".join(p.label for p in ctx.graph.get_parents(element))
            yield element, f"refines several parents: {parents}"


def check_acyclicity(ctx: ValidationContext) -> Iterator[Finding]:
    """C2."""
    for element in ctx.elements:
        if ctx.graph.is_own_ancestor(element):
            yield element, "is its own ancestor"


def check_refinement_depth(ctx: ValidationContext) -> Iterator[Finding]:
    """C3: leaves off the dominant leaf depth of the whole model."""
    graph = ctx.graph
    dominant = graph.get_dominant_depth(e for e in graph.model.elements if graph.is_leaf(e))
    for element in ctx.elements:
        if not graph.is_leaf(element):
            continue
        level = graph.get_level(element)
        if level != dominant:
            yield element, f"leaf at depth {level}, most leaves are at depth {dominant}"


# ---------------------------------------------------------------------------
# Coherence rules
# ---------------------------------------------------------------------------


def _same_top_value_stream(ctx: ValidationContext, relationship: Relationship) -> bool:
    source, target = relationship.source, relationship.target
    if source.kind != target.kind or source.kind not in (CAPABILITY, OBJECT):
        return False
    graph = ctx.graph
    return bool(graph.get_top_value_streams(source) & graph.get_top_value_streams(target))


def check_upward_coherence(ctx: ValidationContext) -> Iterator[Finding]:
    """C4: a relation between two elements needs one between their parents."""
    graph = ctx.graph
    for rel in ctx.scope.upward:
        if graph.get_level(rel.source) == 0 and graph.get_level(rel.target) == 0:
            continue
        if _same_top_value_stream(ctx, rel):
            continue

        source_parent = graph.get_parent(rel.source)
        target_parent = graph.get_parent(rel.target)
        if source_parent is None or target_parent is None:
            orphan = rel.source if source_parent is None else rel.target
            yield rel, f"'{orphan.label}' has no parent to carry the relation upward"
            continue
        if source_parent.id == target_parent.id:
            continue

        kind = graph.kind_of(rel)
        scope = graph.relationships_of(kind) if kind is not None else ()
        if not graph.is_overlapping(graph.get_targets([source_parent], scope), [target_parent]):
            yield rel, (
                f"no {kind.name if kind else rel.type_tag} relation between parents "
                f"'{source_parent.label}' and '{target_parent.label}'"
            )


def check_downward_coherence(ctx: ValidationContext) -> Iterator[Finding]:
    """C5: a relation between two parents needs one between some of their children."""
    graph = ctx.graph
    for rel in ctx.scope.downward:
        source_children = graph.get_children(rel.source)
        target_children = graph.get_children(rel.target)
        if not source_children and not target_children:
            continue
        if not source_children or not target_children:
            leaf = rel.source if not source_children else rel.target
            yield rel, f"'{leaf.label}' is a leaf while the other end is refined"
            continue

        kind = graph.kind_of(rel)
        scope = graph.relationships_of(kind) if kind is not None else ()
        if not graph.is_overlapping(graph.get_targets(source_children, scope), target_children):
            yield rel, "no corresponding relation between any pair of children"


# ---------------------------------------------------------------------------
# Cardinality rules
# ---------------------------------------------------------------------------


def check_capability_impact(ctx: ValidationContext) -> Iterator[Finding]:
    """C6."""
    graph = ctx.graph
    transformations = graph.relationships_of(TRANSFORMATION)
    for capability in ctx.scope.transforming_capabilities:
        objects = graph.get_targets([capability], transformations, OBJECT)
        if not objects:
            yield capability, "transforms no object"
        elif len(objects) > 1 and not graph.is_leaf(capability):
            yield capability, f"non-leaf capability transforms {len(objects)} objects"


def check_object_relevance(ctx: ValidationContext) -> Iterator[Finding]:
    """C7."""
    graph = ctx.graph
    transformations = graph.relationships_of(TRANSFORMATION)
    for obj in ctx.scope.transformed_objects:
        capabilities = graph.get_sources([obj], transformations, CAPABILITY)
        if not capabilities:
            yield obj, "is transformed by no capability"
        elif len(capabilities) > 1 and not graph.is_leaf(obj):
            yield obj, f"non-leaf object is transformed by {len(capabilities)} capabilities"


def check_capability_purpose(ctx: ValidationContext) -> Iterator[Finding]:
    """C8."""
    graph = ctx.graph
    scope = graph.relationships_of(SUPPORT, MANIFESTATION)
    for capability in ctx.scope.purposeful_capabilities:
        if not graph.is_related_transitively(capability, scope, VALUE_STREAM):
            yield capability, "neither realizes a value stream nor supports a capability that does"


def check_traceability(ctx: ValidationContext) -> Iterator[Finding]:
    """C9."""
    graph = ctx.graph
    manifestations = graph.relationships_of(MANIFESTATION)
    for value_stream in ctx.scope.traced_value_streams:
        capabilities = graph.get_sources([value_stream], manifestations, CAPABILITY)
        if len(capabilities) != 1:
            yield value_stream, f"realized by {len(capabilities)} capabilities"


def check_exclusive_manifestation(ctx: ValidationContext) -> Iterator[Finding]:
    """C10."""
    graph = ctx.graph
    manifestations = graph.relationships_of(MANIFESTATION)
    for capability in ctx.scope.manifesting_capabilities:
        if graph.is_leaf(capability):
            continue
        value_streams = graph.get_targets([capability], manifestations, VALUE_STREAM)
        roots = graph.get_roots(value_streams)
        if len(value_streams) > len(roots):
            yield capability, (
                f"manifests {len(value_streams)} value streams "
                f"under {len(roots)} top-level value streams"
            )


# ---------------------------------------------------------------------------
# Structure rules
# ---------------------------------------------------------------------------


def check_cohesion(ctx: ValidationContext) -> Iterator[Finding]:
    """C11: one connected group per (root, level) bucket."""
    graph = ctx.graph
    reflexive = graph.relationships_of(SUCCESSION, SUPPORT, MATERIAL)

    touched = {(graph.get_root(e).id, graph.get_level(e)) for e in ctx.elements}
    buckets: dict[tuple[str, int], list[Element]] = {}
    for element in graph.model.elements:
        key = (graph.get_root(element).id, graph.get_level(element))
        if key in touched:
            buckets.setdefault(key, []).append(element)

    for (root_id, level), members in buckets.items():
        if not graph.is_connected(members, reflexive):
            yield tuple(members), f"level {level} under '{root_id}' is not connected"


def check_compartmentalization(ctx: ValidationContext) -> Iterator[Finding]:
    """C12."""
    graph = ctx.graph
    for rel in ctx.horizontal_reflexive:
        if graph.crosses_boundary(rel):
            yield rel, (
                f"crosses from '{graph.get_root(rel.source).label}' "
                f"to '{graph.get_root(rel.target).label}'"
            )


# ---------------------------------------------------------------------------
# Dependency rules
# ---------------------------------------------------------------------------


def check_object_dependency(ctx: ValidationContext) -> Iterator[Finding]:
    """C13."""
    graph = ctx.graph
    transformations = graph.relationships_of(TRANSFORMATION)
    materials = graph.relationships_of(MATERIAL)
    for rel in ctx.scope.supports:
        source_objects = graph.get_targets([rel.source], transformations, OBJECT)
        target_objects = graph.get_targets([rel.target], transformations, OBJECT)
        if not graph.is_related(source_objects, target_objects, materials):
            yield rel, "no material relation between the transformed objects"


def check_object_flow(ctx: ValidationContext) -> Iterator[Finding]:
    """C14."""
    graph = ctx.graph
    manifestations = graph.relationships_of(MANIFESTATION)
    transformations = graph.relationships_of(TRANSFORMATION)
    materials = graph.relationships_of(MATERIAL)
    for rel in ctx.scope.successions:
        source_capabilities = graph.get_sources([rel.source], manifestations, CAPABILITY)
        target_capabilities = graph.get_sources([rel.target], manifestations, CAPABILITY)
        source_objects = graph.get_targets(source_capabilities, transformations, OBJECT)
        target_objects = graph.get_targets(target_capabilities, transformations, OBJECT)
        if not graph.is_related(source_objects, target_objects, materials):
            yield rel, "no material relation between the objects of the realizing capabilities"


def check_grounded_dependencies(ctx: ValidationContext) -> Iterator[Finding]:
    """C15."""
    graph = ctx.graph
    transformations = graph.relationships_of(TRANSFORMATION)
    manifestations = graph.relationships_of(MANIFESTATION)
    supports = graph.relationships_of(SUPPORT)
    successions = graph.relationships_of(SUCCESSION)
    for rel in ctx.scope.materials:
        source_capabilities = graph.get_sources([rel.source], transformations, CAPABILITY)
        target_capabilities = graph.get_sources([rel.target], transformations, CAPABILITY)
        if graph.is_overlapping(source_capabilities, target_capabilities):
            continue
        if graph.is_related(source_capabilities, target_capabilities, supports):
            continue
        source_streams = graph.get_targets(source_capabilities, manifestations, VALUE_STREAM)
        target_streams = graph.get_targets(target_capabilities, manifestations, VALUE_STREAM)
        if graph.is_related(source_streams, target_streams, successions):
            continue
        yield rel, "not justified by a shared, supporting, or succeeding capability"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

RULES: tuple[Rule, ...] = (
    Rule(
        "C0",
        "Valid level",
        "Each element must be assigned a level that corresponds to its number of ancestors.",
        check_valid_level,
    ),
    Rule(
        "C1",
        "Unique parent",
        "Each element has at most one parent.",
        check_unique_parent,
    ),
    Rule(
        "C2",
        "Acyclicity",
        "An element cannot be its own ancestor.",
        check_acyclicity,
    ),
    Rule(
        "C3",
        "Consistent refinement depth",
        "All leaf elements (elements without children) must have the same number of ancestors.",
        check_refinement_depth,
    ),
    Rule(
        "C4",
        "Upward coherence",
        "A non-hierarchical relationship between two elements requires a corresponding "
        "relationship between their parents (if any), provided the parents are distinct and "
        "with one exception: the relationship does not need to be propagated if both elements "
        "trace to the same top-level value stream.",
        check_upward_coherence,
    ),
    Rule(
        "C5",
        "Downward coherence",
        "A relationship between two parent elements requires that at least one pair of their "
        "respective children (if any) is also related.",
        check_downward_coherence,
    ),
    Rule(
        "C6",
        "Capability impact",
        "Each business capability must transform exactly one business object, with one "
        "exception: at the leaf level it may transform multiple objects.",
        check_capability_impact,
    ),
    Rule(
        "C7",
        "Object relevance",
        "Each business object must be transformed by exactly one business capability, with one "
        "exception: at the leaf level, an object may be transformed by multiple capabilities.",
        check_object_relevance,
    ),
    Rule(
        "C8",
        "Capability purpose",
        "Each capability must either directly realize a value stream stage or support another "
        "capability that does.",
        check_capability_purpose,
    ),
    Rule(
        "C9",
        "Traceability",
        "Each value stream stage must be realized by exactly one capability.",
        check_traceability,
    ),
    Rule(
        "C10",
        "Exclusive manifestation",
        "Each capability may manifest only once as primary per top-level value stream, with an "
        "exception for the leaf-level.",
        check_exclusive_manifestation,
    ),
    Rule(
        "C11",
        "Cohesion",
        "The elements sharing a top-level element and a level must form one connected group "
        "through succession, support, or material relationships.",
        check_cohesion,
    ),
    Rule(
        "C12",
        "Compartmentalization",
        "Succession, support, and material relationships must stay within the hierarchy of one "
        "top-level element.",
        check_compartmentalization,
    ),
    Rule(
        "C13",
        "Object dependency",
        "A support relationship between two capabilities requires a material relationship "
        "between the objects they transform.",
        check_object_dependency,
    ),
    Rule(
        "C14",
        "Object flow",
        "A succession between two value stream stages requires a material relationship between "
        "the objects transformed by the capabilities realizing them.",
        check_object_flow,
    ),
    Rule(
        "C15",
        "Grounded dependencies",
        "A material relationship between two objects requires that their transforming "
        "capabilities are identical, support one another, or realize succeeding value stream "
        "stages.",
        check_grounded_dependencies,
    ),
)

RULE_IDS: tuple[str, ...] = tuple(rule.rule_id for rule in RULES)


def default_rules() -> list[Rule]:
    """Return the full ordered rule set."""
    return list(RULES)


def get_rule(rule_id: str) -> Rule:
    """Return the rule registered under *rule_id*.

    Raises ``KeyError`` for unknown ids.
    """
    for rule in RULES:
        if rule.rule_id == rule_id:
            return rule
    raise KeyError(rule_id)
