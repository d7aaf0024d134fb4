"""Validation context: the read-only universe every rule operates on.

A context holds the *candidates* of one run (the whole model, or the part
reachable from a selection) partitioned by element kind and relation kind.
Rules consult the full-model :class:`~covo.graph.queries.ModelGraph` for
evidence, so restricting candidates to a selection can hide violations but
never create new ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from covo.graph.queries import ModelGraph
from covo.metamodel import (
    CAPABILITY,
    MANIFESTATION,
    MATERIAL,
    OBJECT,
    REFINEMENT,
    SUCCESSION,
    SUPPORT,
    TRANSFORMATION,
    VALUE_STREAM,
)

if TYPE_CHECKING:
    from covo.graph.model import Element, Model, Relationship, Selection

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PartialScope:
    """Per-rule candidate sets after partial-validation scoping.

    In full validation every field holds the unrestricted candidates.
    """

    upward: tuple[Relationship, ...]  # C4
    downward: tuple[Relationship, ...]  # C5
    transforming_capabilities: tuple[Element, ...]  # C6
    transformed_objects: tuple[Element, ...]  # C7
    purposeful_capabilities: tuple[Element, ...]  # C8
    traced_value_streams: tuple[Element, ...]  # C9
    manifesting_capabilities: tuple[Element, ...]  # C10
    supports: tuple[Relationship, ...]  # C13
    successions: tuple[Relationship, ...]  # C14
    materials: tuple[Relationship, ...]  # C15


@dataclass(frozen=True)
class ValidationContext:
    """Candidates of one validation run, partitioned by kind."""

    graph: ModelGraph
    partial: bool
    elements: tuple[Element, ...]
    value_streams: tuple[Element, ...]
    capabilities: tuple[Element, ...]
    objects: tuple[Element, ...]
    relationships: tuple[Relationship, ...]
    refinement: tuple[Relationship, ...]
    succession: tuple[Relationship, ...]
    support: tuple[Relationship, ...]
    material: tuple[Relationship, ...]
    manifestation: tuple[Relationship, ...]
    transformation: tuple[Relationship, ...]
    scope: PartialScope

    @property
    def horizontal(self) -> tuple[Relationship, ...]:
        """Candidate relationships of every non-refinement kind, in model order."""
        return tuple(
            r for r in self.relationships if self.graph.kind_of(r) not in (None, REFINEMENT)
        )

    @property
    def horizontal_reflexive(self) -> tuple[Relationship, ...]:
        """Candidate succession, support, and material relationships."""
        return self._of_kinds({SUCCESSION.name, SUPPORT.name, MATERIAL.name})

    def _of_kinds(self, names: set[str]) -> tuple[Relationship, ...]:
        result: list[Relationship] = []
        for rel in self.relationships:
            descriptor = self.graph.kind_of(rel)
            if descriptor is not None and descriptor.name in names:
                result.append(rel)
        return tuple(result)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _partition(
    graph: ModelGraph, relationships: tuple[Relationship, ...]
) -> dict[str, tuple[Relationship, ...]]:
    buckets: dict[str, list[Relationship]] = {}
    unmatched = 0
    for rel in relationships:
        descriptor = graph.kind_of(rel)
        if descriptor is None:
            unmatched += 1
            continue
        buckets.setdefault(descriptor.name, []).append(rel)
    if unmatched:
        logger.debug("%d relationships match no relation kind", unmatched)
    return {name: tuple(rels) for name, rels in buckets.items()}


def _full_scope(
    horizontal: tuple[Relationship, ...],
    value_streams: tuple[Element, ...],
    capabilities: tuple[Element, ...],
    objects: tuple[Element, ...],
    buckets: dict[str, tuple[Relationship, ...]],
) -> PartialScope:
    return PartialScope(
        upward=horizontal,
        downward=horizontal,
        transforming_capabilities=capabilities,
        transformed_objects=objects,
        purposeful_capabilities=capabilities,
        traced_value_streams=value_streams,
        manifesting_capabilities=capabilities,
        supports=buckets.get(SUPPORT.name, ()),
        successions=buckets.get(SUCCESSION.name, ()),
        materials=buckets.get(MATERIAL.name, ()),
    )


def _partial_scope(
    graph: ModelGraph,
    horizontal: tuple[Relationship, ...],
    value_streams: tuple[Element, ...],
    capabilities: tuple[Element, ...],
    objects: tuple[Element, ...],
    buckets: dict[str, tuple[Relationship, ...]],
) -> PartialScope:
    """Restrict candidates to the hierarchy levels the selection touches.

    A rule is only evaluated at the levels where its companion relation
    kind is present in the selection; relations between levels are only
    evaluated when the adjacent level is represented as well.
    """
    transformation = buckets.get(TRANSFORMATION.name, ())
    manifestation = buckets.get(MANIFESTATION.name, ())

    transforming_levels = graph.get_related_levels(capabilities, transformation)
    transformed_levels = graph.get_related_levels(objects, transformation)
    manifesting_levels = graph.get_related_levels(capabilities, manifestation)
    manifested_levels = graph.get_related_levels(value_streams, manifestation)

    return PartialScope(
        upward=graph.filter_by_level_adjacency(horizontal, -1),
        downward=graph.filter_by_level_adjacency(horizontal, 1),
        transforming_capabilities=graph.filter_by_level(capabilities, transforming_levels),
        transformed_objects=graph.filter_by_level(objects, transformed_levels),
        purposeful_capabilities=graph.filter_by_level(capabilities, manifesting_levels),
        traced_value_streams=graph.filter_by_level(value_streams, manifested_levels),
        manifesting_capabilities=graph.filter_by_level(capabilities, manifesting_levels),
        supports=graph.filter_by_level(buckets.get(SUPPORT.name, ()), transforming_levels),
        successions=graph.filter_by_level(buckets.get(SUCCESSION.name, ()), manifested_levels),
        materials=graph.filter_by_level(buckets.get(MATERIAL.name, ()), transformed_levels),
    )


def build_context(
    model: Model,
    selection: Selection | None = None,
    *,
    graph: ModelGraph | None = None,
) -> ValidationContext:
    """Build the validation context for *model*.

    Parameters
    ----------
    model:
        The full model.  Hierarchy and evidence queries always run against it.
    selection:
        When given, candidates are limited to the selection-derived universe
        and the run is partial.
    graph:
        An existing query index over *model* to reuse.  A fresh one (with an
        empty level cache) is built when omitted.

    Raises
    ------
    ModelError
        When the selection references ids outside *model*.
    """
    if graph is None or graph.model is not model:
        graph = ModelGraph(model)

    partial = selection is not None
    if selection is not None:
        elements, relationships = selection.resolve(model)
    else:
        elements, relationships = model.elements, model.relationships

    value_streams = tuple(e for e in elements if e.kind == VALUE_STREAM)
    capabilities = tuple(e for e in elements if e.kind == CAPABILITY)
    objects = tuple(e for e in elements if e.kind == OBJECT)

    buckets = _partition(graph, relationships)
    horizontal = tuple(r for r in relationships if graph.kind_of(r) not in (None, REFINEMENT))

    if partial:
        scope = _partial_scope(graph, horizontal, value_streams, capabilities, objects, buckets)
    else:
        scope = _full_scope(horizontal, value_streams, capabilities, objects, buckets)

    logger.debug(
        "Context (%s): %d value streams, %d capabilities, %d objects, %d relationships",
        "partial" if partial else "full",
        len(value_streams),
        len(capabilities),
        len(objects),
        len(relationships),
    )

    return ValidationContext(
        graph=graph,
        partial=partial,
        elements=elements,
        value_streams=value_streams,
        capabilities=capabilities,
        objects=objects,
        relationships=relationships,
        refinement=buckets.get(REFINEMENT.name, ()),
        succession=buckets.get(SUCCESSION.name, ()),
        support=buckets.get(SUPPORT.name, ()),
        material=buckets.get(MATERIAL.name, ()),
        manifestation=buckets.get(MANIFESTATION.name, ()),
        transformation=buckets.get(TRANSFORMATION.name, ()),
        scope=scope,
    )
