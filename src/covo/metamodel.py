"""Metamodel registry: element kinds, relation kinds, and relationship matching.

The metamodel is fixed: three element kinds and six relation kinds, each
mapped onto an ArchiMate type tag.  Support and manifestation share the
``serving-relationship`` tag and are told apart by their endpoint kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covo.graph.model import Element, Relationship

# ---------------------------------------------------------------------------
# Element kinds
# ---------------------------------------------------------------------------

VALUE_STREAM = "value_stream"
CAPABILITY = "capability"
OBJECT = "object"

ELEMENT_TYPES: dict[str, str] = {
    VALUE_STREAM: "business-process",
    CAPABILITY: "business-function",
    OBJECT: "business-object",
}

ELEMENT_KINDS: frozenset[str] = frozenset(ELEMENT_TYPES)

_KIND_BY_TYPE: dict[str, str] = {tag: kind for kind, tag in ELEMENT_TYPES.items()}


# ---------------------------------------------------------------------------
# Relation kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelationKindDescriptor:
    """Static description of one relation kind.

    ``source_kind`` of ``None`` marks a reflexive kind: source and target
    must share the same element kind, whatever it is.  ``inverse`` tells
    whether the semantic direction is reversed relative to the stored
    source/target of a relationship.
    """

    name: str
    type_tag: str
    source_kind: str | None = None
    target_kind: str | None = None
    inverse: bool = False

    @property
    def is_reflexive(self) -> bool:
        return self.source_kind is None

    @property
    def is_horizontal(self) -> bool:
        return self.source_kind is not None or self.target_kind is not None


REFINEMENT = RelationKindDescriptor(
    name="refinement",
    type_tag="composition-relationship",
)
SUCCESSION = RelationKindDescriptor(
    name="succession",
    type_tag="triggering-relationship",
    source_kind=VALUE_STREAM,
    target_kind=VALUE_STREAM,
)
SUPPORT = RelationKindDescriptor(
    name="support",
    type_tag="serving-relationship",
    source_kind=CAPABILITY,
    target_kind=CAPABILITY,
)
MATERIAL = RelationKindDescriptor(
    name="material",
    type_tag="association-relationship",
    source_kind=OBJECT,
    target_kind=OBJECT,
)
MANIFESTATION = RelationKindDescriptor(
    name="manifestation",
    type_tag="serving-relationship",
    source_kind=CAPABILITY,
    target_kind=VALUE_STREAM,
)
TRANSFORMATION = RelationKindDescriptor(
    name="transformation",
    type_tag="access-relationship",
    source_kind=CAPABILITY,
    target_kind=OBJECT,
)

RELATION_KINDS: tuple[RelationKindDescriptor, ...] = (
    REFINEMENT,
    SUCCESSION,
    SUPPORT,
    MATERIAL,
    MANIFESTATION,
    TRANSFORMATION,
)

RELATIONSHIP_TYPES: frozenset[str] = frozenset(d.type_tag for d in RELATION_KINDS)

_KIND_BY_NAME: dict[str, RelationKindDescriptor] = {d.name: d for d in RELATION_KINDS}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def element_kind_for_type(type_tag: str) -> str | None:
    """Return the element kind for an ArchiMate element type, or ``None``."""
    return _KIND_BY_TYPE.get(type_tag)


def relation_kind(name: str) -> RelationKindDescriptor:
    """Return the descriptor registered under *name*.

    Raises ``KeyError`` for names outside the metamodel.
    """
    return _KIND_BY_NAME[name]


def horizontal_relation_kinds() -> tuple[RelationKindDescriptor, ...]:
    """All relation kinds except refinement."""
    return tuple(d for d in RELATION_KINDS if d.is_horizontal)


def horizontal_reflexive_relation_kinds() -> tuple[RelationKindDescriptor, ...]:
    """Horizontal kinds whose source and target share one element kind."""
    return tuple(
        d for d in RELATION_KINDS if d.source_kind is not None and d.source_kind == d.target_kind
    )


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def matches(relationship: Relationship, descriptor: RelationKindDescriptor) -> bool:
    """Return True if *relationship* is an instance of *descriptor*."""
    if relationship.type_tag != descriptor.type_tag:
        return False
    source_kind = relationship.source.kind
    target_kind = relationship.target.kind
    if descriptor.is_reflexive:
        return source_kind == target_kind
    if descriptor.inverse:
        return source_kind == descriptor.target_kind and target_kind == descriptor.source_kind
    return source_kind == descriptor.source_kind and target_kind == descriptor.target_kind


def classify(relationship: Relationship) -> RelationKindDescriptor | None:
    """Return the first relation kind *relationship* matches, or ``None``."""
    for descriptor in RELATION_KINDS:
        if matches(relationship, descriptor):
            return descriptor
    return None


def semantic_ends(
    relationship: Relationship, descriptor: RelationKindDescriptor | None
) -> tuple[Element, Element]:
    """Return ``(source, target)`` in the semantic direction of *descriptor*."""
    if descriptor is not None and descriptor.inverse:
        return relationship.target, relationship.source
    return relationship.source, relationship.target
