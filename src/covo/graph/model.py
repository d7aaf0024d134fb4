"""Model value types: elements, relationships, the model universe, and selections.

A :class:`Model` is integrity-checked on construction.  Everything the
validator needs to reject (unknown types, dangling relationship ends,
duplicate ids) is rejected here, before any rule runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from covo.metamodel import ELEMENT_KINDS, RELATIONSHIP_TYPES

if TYPE_CHECKING:
    from collections.abc import Iterable


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ModelError(Exception):
    """Raised when a model or selection is malformed."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Element:
    """A node of the model: value stream, capability, or object."""

    id: str
    kind: str  # "value_stream" | "capability" | "object"
    name: str = ""
    stored_level: int | None = None  # level recorded in the model, if any

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Relationship:
    """A typed, directed edge between two elements."""

    id: str
    type_tag: str  # ArchiMate relationship type
    source: Element
    target: Element
    name: str = ""

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        return f"{self.source.label} -[{self.type_tag}]-> {self.target.label}"


@dataclass(frozen=True)
class Model:
    """The full element/relationship universe of one validation run."""

    elements: tuple[Element, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    _elements_by_id: dict[str, Element] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    _relationships_by_id: dict[str, Relationship] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        errors: list[str] = []

        for element in self.elements:
            if not element.id:
                errors.append("Element with empty id")
                continue
            if element.kind not in ELEMENT_KINDS:
                errors.append(f"Element '{element.id}' has unknown kind '{element.kind}'")
            if element.id in self._elements_by_id:
                errors.append(f"Duplicate element id '{element.id}'")
                continue
            self._elements_by_id[element.id] = element

        for rel in self.relationships:
            if not rel.id:
                errors.append("Relationship with empty id")
                continue
            if rel.id in self._relationships_by_id or rel.id in self._elements_by_id:
                errors.append(f"Duplicate relationship id '{rel.id}'")
                continue
            if rel.type_tag not in RELATIONSHIP_TYPES:
                errors.append(
                    f"Relationship '{rel.id}' has unknown type '{rel.type_tag}', "
                    f"must be one of {sorted(RELATIONSHIP_TYPES)}"
                )
            for end_name, end in (("source", rel.source), ("target", rel.target)):
                if self._elements_by_id.get(end.id) != end:
                    errors.append(
                        f"Relationship '{rel.id}' {end_name} '{end.id}' is not an element "
                        f"of the model"
                    )
            self._relationships_by_id[rel.id] = rel

        if errors:
            raise ModelError("; ".join(errors))

    def get_element(self, element_id: str) -> Element | None:
        return self._elements_by_id.get(element_id)

    def get_relationship(self, relationship_id: str) -> Relationship | None:
        return self._relationships_by_id.get(relationship_id)

    def __contains__(self, ref_id: object) -> bool:
        return ref_id in self._elements_by_id or ref_id in self._relationships_by_id


@dataclass(frozen=True)
class Selection:
    """Ids a user selected for partial validation."""

    element_ids: frozenset[str] = frozenset()
    relationship_ids: frozenset[str] = frozenset()

    @classmethod
    def from_ids(cls, model: Model, ref_ids: Iterable[str]) -> Selection:
        """Split mixed element/relationship ids using *model*.

        Raises :class:`ModelError` for ids the model does not contain.
        """
        element_ids: set[str] = set()
        relationship_ids: set[str] = set()
        unknown: list[str] = []
        for ref_id in ref_ids:
            if model.get_element(ref_id) is not None:
                element_ids.add(ref_id)
            elif model.get_relationship(ref_id) is not None:
                relationship_ids.add(ref_id)
            else:
                unknown.append(ref_id)
        if unknown:
            msg = f"Selection references unknown ids: {', '.join(sorted(unknown))}"
            raise ModelError(msg)
        return cls(frozenset(element_ids), frozenset(relationship_ids))

    def resolve(self, model: Model) -> tuple[tuple[Element, ...], tuple[Relationship, ...]]:
        """Return the selection-derived universe in model order.

        Elements: the selected ones plus both ends of selected relationships.
        Relationships: the selected ones plus every relationship whose two
        ends are selected elements.
        """
        unknown = sorted(
            {i for i in self.element_ids if model.get_element(i) is None}
            | {i for i in self.relationship_ids if model.get_relationship(i) is None}
        )
        if unknown:
            msg = f"Selection references unknown ids: {', '.join(unknown)}"
            raise ModelError(msg)

        element_ids = set(self.element_ids)
        for rel_id in self.relationship_ids:
            rel = model.get_relationship(rel_id)
            if rel is not None:
                element_ids.add(rel.source.id)
                element_ids.add(rel.target.id)

        elements = tuple(e for e in model.elements if e.id in element_ids)
        relationships = tuple(
            r
            for r in model.relationships
            if r.id in self.relationship_ids
            or (r.source.id in self.element_ids and r.target.id in self.element_ids)
        )
        return elements, relationships

    def __bool__(self) -> bool:
        return bool(self.element_ids or self.relationship_ids)
