"""Tests for covo.validation.context: partitions and partial-validation scoping."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from covo.graph.model import ModelError, Selection
from covo.graph.queries import ModelGraph
from covo.validation.context import build_context

if TYPE_CHECKING:
    from conftest import ModelFactory

    from covo.graph.model import Model
    from covo.validation.context import ValidationContext


def _ids(items: tuple[object, ...]) -> list[str]:
    return [item.id for item in items]  # type: ignore[attr-defined]


def _partial(model: Model, *ref_ids: str) -> ValidationContext:
    return build_context(model, Selection.from_ids(model, ref_ids))


class TestFullContext:
    def test_partitions(self, consistent_model: Model) -> None:
        ctx = build_context(consistent_model)
        assert not ctx.partial
        assert _ids(ctx.value_streams) == ["VS", "VS-a", "VS-b"]
        assert _ids(ctx.capabilities) == ["Cap", "Cap-a", "Cap-b"]
        assert _ids(ctx.objects) == ["Obj", "Obj-a", "Obj-b"]
        assert len(ctx.refinement) == 6
        assert len(ctx.manifestation) == 3
        assert len(ctx.transformation) == 3
        assert _ids(ctx.support) == ["Cap-a-supp-Cap-b"]
        assert _ids(ctx.succession) == ["VS-a-succ-VS-b"]
        assert _ids(ctx.material) == ["Obj-a-mat-Obj-b"]

    def test_horizontal_views(self, consistent_model: Model) -> None:
        ctx = build_context(consistent_model)
        assert len(ctx.horizontal) == 9
        assert _ids(ctx.horizontal_reflexive) == [
            "VS-a-succ-VS-b",
            "Cap-a-supp-Cap-b",
            "Obj-a-mat-Obj-b",
        ]

    def test_full_scope_is_unrestricted(self, consistent_model: Model) -> None:
        ctx = build_context(consistent_model)
        assert ctx.scope.upward == ctx.horizontal
        assert ctx.scope.downward == ctx.horizontal
        assert ctx.scope.transforming_capabilities == ctx.capabilities
        assert ctx.scope.traced_value_streams == ctx.value_streams
        assert ctx.scope.materials == ctx.material

    def test_mismatched_relationship_is_not_partitioned(self, factory: ModelFactory) -> None:
        factory.cap("C")
        factory.obj("O")
        factory.relate("triggering-relationship", "C", "O")
        ctx = build_context(factory.build())
        assert len(ctx.relationships) == 1
        assert ctx.horizontal == ()
        assert ctx.succession == ()

    def test_reuses_graph_of_same_model(self, consistent_model: Model) -> None:
        graph = ModelGraph(consistent_model)
        assert build_context(consistent_model, graph=graph).graph is graph

    def test_rebuilds_graph_of_other_model(
        self, consistent_model: Model, scenario_model: Model
    ) -> None:
        foreign = ModelGraph(scenario_model)
        ctx = build_context(consistent_model, graph=foreign)
        assert ctx.graph is not foreign
        assert ctx.graph.model is consistent_model


class TestPartialContext:
    def test_single_capability_has_no_companion_levels(self, consistent_model: Model) -> None:
        ctx = _partial(consistent_model, "Cap-a")
        assert ctx.partial
        assert _ids(ctx.elements) == ["Cap-a"]
        assert ctx.relationships == ()
        assert ctx.scope.transforming_capabilities == ()
        assert ctx.scope.purposeful_capabilities == ()

    def test_transformation_enables_cardinality_rules(self, consistent_model: Model) -> None:
        ctx = _partial(consistent_model, "Cap-a", "Obj-a")
        assert _ids(ctx.relationships) == ["Cap-a-trans-Obj-a"]
        assert _ids(ctx.scope.transforming_capabilities) == ["Cap-a"]
        assert _ids(ctx.scope.transformed_objects) == ["Obj-a"]
        assert ctx.scope.purposeful_capabilities == ()
        assert ctx.scope.traced_value_streams == ()

    def test_manifestation_enables_traceability(self, consistent_model: Model) -> None:
        ctx = _partial(consistent_model, "Cap-b-man-VS-b")
        assert _ids(ctx.elements) == ["VS-b", "Cap-b"]
        assert _ids(ctx.scope.traced_value_streams) == ["VS-b"]
        assert _ids(ctx.scope.purposeful_capabilities) == ["Cap-b"]
        assert _ids(ctx.scope.manifesting_capabilities) == ["Cap-b"]

    def test_support_needs_transformation_at_its_level(self, consistent_model: Model) -> None:
        without = _partial(consistent_model, "Cap-a", "Cap-b")
        assert _ids(without.relationships) == ["Cap-a-supp-Cap-b"]
        assert without.scope.supports == ()

        with_objects = _partial(consistent_model, "Cap-a", "Cap-b", "Obj-a")
        assert _ids(with_objects.scope.supports) == ["Cap-a-supp-Cap-b"]

    def test_coherence_needs_adjacent_layer(self, consistent_model: Model) -> None:
        lower_only = _partial(consistent_model, "Cap-a-man-VS-a")
        assert lower_only.scope.upward == ()
        assert lower_only.scope.downward == ()

        both = _partial(consistent_model, "Cap-a-man-VS-a", "Cap-man-VS")
        assert _ids(both.scope.upward) == ["Cap-a-man-VS-a"]
        assert _ids(both.scope.downward) == ["Cap-man-VS"]

    def test_selection_keeps_model_order(self, consistent_model: Model) -> None:
        ctx = _partial(consistent_model, "Obj-b", "Cap")
        assert _ids(ctx.elements) == ["Cap", "Obj-b"]

    def test_unknown_selection_id(self, consistent_model: Model) -> None:
        selection = Selection(element_ids=frozenset({"ghost"}))
        with pytest.raises(ModelError):
            build_context(consistent_model, selection)
