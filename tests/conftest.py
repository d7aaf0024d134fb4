"""Shared test fixtures for COVO."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml

from covo.graph.model import Element, Model, Relationship
from covo.metamodel import CAPABILITY, ELEMENT_TYPES, OBJECT, VALUE_STREAM

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class ModelFactory:
    """Incrementally build a :class:`Model` by id.

    Relationship ids default to ``<source>-<kind>-<target>``.
    """

    def __init__(self) -> None:
        self.elements: dict[str, Element] = {}
        self.relationships: list[Relationship] = []

    def element(
        self, ref_id: str, kind: str, *, name: str = "", level: int | None = None
    ) -> Element:
        element = Element(id=ref_id, kind=kind, name=name, stored_level=level)
        self.elements[ref_id] = element
        return element

    def vs(self, *ref_ids: str) -> None:
        for ref_id in ref_ids:
            self.element(ref_id, VALUE_STREAM)

    def cap(self, *ref_ids: str) -> None:
        for ref_id in ref_ids:
            self.element(ref_id, CAPABILITY)

    def obj(self, *ref_ids: str) -> None:
        for ref_id in ref_ids:
            self.element(ref_id, OBJECT)

    def relate(
        self, type_tag: str, source: str, target: str, *, ref_id: str | None = None
    ) -> Relationship:
        rel = Relationship(
            id=ref_id or f"{source}-{type_tag}-{target}",
            type_tag=type_tag,
            source=self.elements[source],
            target=self.elements[target],
        )
        self.relationships.append(rel)
        return rel

    def refine(self, parent: str, *children: str) -> None:
        for child in children:
            self.relate(
                "composition-relationship", parent, child, ref_id=f"{parent}-refines-{child}"
            )

    def succession(self, source: str, target: str) -> Relationship:
        return self.relate(
            "triggering-relationship", source, target, ref_id=f"{source}-succ-{target}"
        )

    def support(self, source: str, target: str) -> Relationship:
        return self.relate(
            "serving-relationship", source, target, ref_id=f"{source}-supp-{target}"
        )

    def material(self, source: str, target: str) -> Relationship:
        return self.relate(
            "association-relationship", source, target, ref_id=f"{source}-mat-{target}"
        )

    def manifest(self, capability: str, value_stream: str) -> Relationship:
        ref_id = f"{capability}-man-{value_stream}"
        return self.relate("serving-relationship", capability, value_stream, ref_id=ref_id)

    def transform(self, capability: str, obj: str) -> Relationship:
        return self.relate(
            "access-relationship", capability, obj, ref_id=f"{capability}-trans-{obj}"
        )

    def build(self) -> Model:
        return Model(
            elements=tuple(self.elements.values()), relationships=tuple(self.relationships)
        )


@pytest.fixture()
def factory() -> ModelFactory:
    """Provide an empty model factory."""
    return ModelFactory()


def _consistent(factory: ModelFactory) -> ModelFactory:
    factory.vs("VS", "VS-a", "VS-b")
    factory.cap("Cap", "Cap-a", "Cap-b")
    factory.obj("Obj", "Obj-a", "Obj-b")
    factory.refine("VS", "VS-a", "VS-b")
    factory.refine("Cap", "Cap-a", "Cap-b")
    factory.refine("Obj", "Obj-a", "Obj-b")
    factory.succession("VS-a", "VS-b")
    factory.manifest("Cap", "VS")
    factory.manifest("Cap-a", "VS-a")
    factory.manifest("Cap-b", "VS-b")
    factory.support("Cap-a", "Cap-b")
    factory.transform("Cap", "Obj")
    factory.transform("Cap-a", "Obj-a")
    factory.transform("Cap-b", "Obj-b")
    factory.material("Obj-a", "Obj-b")
    return factory


@pytest.fixture()
def consistent_model(factory: ModelFactory) -> Model:
    """A two-level model that satisfies every rule.

    One value stream, capability, and object hierarchy, each with two
    children, fully linked at both levels.
    """
    return _consistent(factory).build()


@pytest.fixture()
def scenario_model(factory: ModelFactory) -> Model:
    """VS0 realized by Cap1; Cap1 refines into Cap2, which transforms Obj1."""
    factory.vs("VS0")
    factory.cap("Cap1", "Cap2")
    factory.obj("Obj1")
    factory.refine("Cap1", "Cap2")
    factory.transform("Cap2", "Obj1")
    factory.manifest("Cap1", "VS0")
    return factory.build()


def model_to_data(model: Model) -> dict[str, list[dict[str, object]]]:
    elements: list[dict[str, object]] = []
    for e in model.elements:
        entry: dict[str, object] = {"id": e.id, "type": ELEMENT_TYPES[e.kind]}
        if e.name:
            entry["name"] = e.name
        if e.stored_level is not None:
            entry["level"] = e.stored_level
        elements.append(entry)
    relationships = [
        {"id": r.id, "type": r.type_tag, "source": r.source.id, "target": r.target.id}
        for r in model.relationships
    ]
    return {"elements": elements, "relationships": relationships}


@pytest.fixture()
def write_model(tmp_path: Path) -> Callable[..., Path]:
    """Write a model as YAML under *tmp_path* and return the file path."""

    def _write(model: Model, name: str = "model.yml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(model_to_data(model), sort_keys=False), encoding="utf-8")
        return path

    return _write
