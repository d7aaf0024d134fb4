"""Graph query layer: hierarchy and horizontal queries over one model.

:class:`ModelGraph` indexes the refinement hierarchy of the full model and
answers the queries the consistency rules are built on.  Horizontal queries
take an explicit *scope* (an iterable of relationships) so that a rule
decides which relationships count as evidence.

Levels are memoized per :class:`ModelGraph` instance.  Build a new graph per
validation run (or call :meth:`ModelGraph.reset_cache`) after model edits.
"""

from __future__ import annotations

from collections import Counter, deque
from typing import TYPE_CHECKING, TypeVar

from covo.metamodel import (
    CAPABILITY,
    MANIFESTATION,
    OBJECT,
    REFINEMENT,
    TRANSFORMATION,
    VALUE_STREAM,
    RelationKindDescriptor,
    classify,
    semantic_ends,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covo.graph.model import Element, Model, Relationship

_C = TypeVar("_C", "Element", "Relationship")


def _unique(elements: Iterable[Element]) -> tuple[Element, ...]:
    """Deduplicate by id, keeping first-seen order."""
    seen: set[str] = set()
    result: list[Element] = []
    for element in elements:
        if element.id not in seen:
            seen.add(element.id)
            result.append(element)
    return tuple(result)


def _ids(elements: Iterable[Element]) -> set[str]:
    return {e.id for e in elements}


class ModelGraph:
    """Read-only query index over a :class:`~covo.graph.model.Model`."""

    def __init__(self, model: Model) -> None:
        self.model = model
        self._kind_of: dict[str, RelationKindDescriptor | None] = {}
        self._by_kind: dict[str, list[Relationship]] = {}
        self._parents: dict[str, list[Element]] = {}
        self._children: dict[str, list[Element]] = {}
        self._level_cache: dict[str, int] = {}

        for rel in model.relationships:
            descriptor = classify(rel)
            self._kind_of[rel.id] = descriptor
            if descriptor is None:
                continue
            self._by_kind.setdefault(descriptor.name, []).append(rel)
            if descriptor is REFINEMENT:
                parent, child = semantic_ends(rel, descriptor)
                self._parents.setdefault(child.id, []).append(parent)
                self._children.setdefault(parent.id, []).append(child)

    # -----------------------------------------------------------------------
    # Relation kinds
    # -----------------------------------------------------------------------

    def kind_of(self, relationship: Relationship) -> RelationKindDescriptor | None:
        """Return the relation kind of *relationship* (``None`` if unmatched)."""
        if relationship.id in self._kind_of:
            return self._kind_of[relationship.id]
        return classify(relationship)

    def relationships_of(self, *kinds: RelationKindDescriptor) -> tuple[Relationship, ...]:
        """Return the full-model relationships of the given kinds, in model order."""
        names = {k.name for k in kinds}
        result: list[Relationship] = []
        for rel in self.model.relationships:
            descriptor = self._kind_of.get(rel.id)
            if descriptor is not None and descriptor.name in names:
                result.append(rel)
        return tuple(result)

    # -----------------------------------------------------------------------
    # Hierarchy (vertical)
    # -----------------------------------------------------------------------

    def get_parent(self, element: Element) -> Element | None:
        """Return the refinement parent of *element*.

        With several parents (a C1 violation) the first one in model order
        is returned.
        """
        parents = self._parents.get(element.id)
        return parents[0] if parents else None

    def get_parents(self, element: Element) -> tuple[Element, ...]:
        return tuple(self._parents.get(element.id, ()))

    def has_multiple_parents(self, element: Element) -> bool:
        return len(self._parents.get(element.id, ())) > 1

    def get_children(self, element: Element) -> tuple[Element, ...]:
        return tuple(self._children.get(element.id, ()))

    def is_leaf(self, element: Element) -> bool:
        return not self._children.get(element.id)

    def get_root(self, element: Element) -> Element:
        """Ascend to the top of the hierarchy.

        On a refinement cycle the ascent stops at the first repeated node.
        """
        current = element
        visited: set[str] = set()
        while current.id not in visited:
            visited.add(current.id)
            parent = self.get_parent(current)
            if parent is None:
                return current
            current = parent
        return current

    def get_roots(self, elements: Iterable[Element]) -> tuple[Element, ...]:
        """Distinct roots of *elements*, first-seen order."""
        return _unique(self.get_root(e) for e in elements)

    def get_ancestor_count(self, element: Element) -> int:
        """Count refinement-parent hops up to a root (cycle-guarded, uncached)."""
        depth = 0
        current = element
        visited: set[str] = set()
        while current.id not in visited:
            visited.add(current.id)
            parent = self.get_parent(current)
            if parent is None:
                break
            current = parent
            depth += 1
        return depth

    def get_level(self, element: Element) -> int:
        """Return the hierarchy depth of *element* (0 = root), memoized."""
        cached = self._level_cache.get(element.id)
        if cached is not None:
            return cached
        level = self.get_ancestor_count(element)
        self._level_cache[element.id] = level
        return level

    def get_levels(self, concepts: Iterable[Element | Relationship]) -> list[int]:
        """Distinct levels of elements and of relationship ends, first-seen order."""
        levels: dict[int, None] = {}
        for concept in concepts:
            if hasattr(concept, "source"):
                levels[self.get_level(concept.source)] = None
                levels[self.get_level(concept.target)] = None
            else:
                levels[self.get_level(concept)] = None
        return list(levels)

    def reset_cache(self) -> None:
        self._level_cache.clear()

    def is_own_ancestor(self, element: Element) -> bool:
        """Return True if *element* appears among its own ancestors."""
        current = element
        visited: set[str] = {element.id}
        while True:
            parent = self.get_parent(current)
            if parent is None:
                return False
            if parent.id == element.id:
                return True
            if parent.id in visited:
                # Cycle above *element* that does not pass through it.
                return False
            visited.add(parent.id)
            current = parent

    def get_dominant_depth(self, elements: Iterable[Element]) -> int | None:
        """Return the most frequent level among *elements*.

        Ties go to the level seen first.  ``None`` for an empty input.
        """
        counts: Counter[int] = Counter()
        for element in elements:
            counts[self.get_level(element)] += 1

        dominant: int | None = None
        max_count = 0
        for level, count in counts.items():
            if count > max_count:
                max_count = count
                dominant = level
        return dominant

    # -----------------------------------------------------------------------
    # Set operations
    # -----------------------------------------------------------------------

    @staticmethod
    def get_intersection(
        first: Iterable[Element], *rest: Iterable[Element]
    ) -> tuple[Element, ...]:
        """Elements of *first* whose ids occur in every collection of *rest*."""
        result = _unique(first)
        for other in rest:
            other_ids = _ids(other)
            result = tuple(e for e in result if e.id in other_ids)
        return result

    @classmethod
    def is_overlapping(cls, first: Iterable[Element], *rest: Iterable[Element]) -> bool:
        return bool(cls.get_intersection(first, *rest))

    # -----------------------------------------------------------------------
    # Horizontal relations
    # -----------------------------------------------------------------------

    def get_related(
        self,
        elements: Iterable[Element],
        scope: Iterable[Relationship],
        end_kind: str | None = None,
    ) -> tuple[Element, ...]:
        """Elements at the other end of *scope* relationships touching *elements*."""
        element_ids = _ids(elements)
        related: list[Element] = []
        for rel in scope:
            if rel.source.id in element_ids:
                related.append(rel.target)
            if rel.target.id in element_ids:
                related.append(rel.source)
        return _unique(e for e in related if end_kind is None or e.kind == end_kind)

    def get_sources(
        self,
        targets: Iterable[Element],
        scope: Iterable[Relationship],
        source_kind: str | None = None,
    ) -> tuple[Element, ...]:
        """Semantic sources of *scope* relationships pointing at *targets*."""
        target_ids = _ids(targets)
        sources: list[Element] = []
        for rel in scope:
            source, target = semantic_ends(rel, self.kind_of(rel))
            if target.id in target_ids and (source_kind is None or source.kind == source_kind):
                sources.append(source)
        return _unique(sources)

    def get_targets(
        self,
        sources: Iterable[Element],
        scope: Iterable[Relationship],
        target_kind: str | None = None,
    ) -> tuple[Element, ...]:
        """Semantic targets of *scope* relationships leaving *sources*."""
        source_ids = _ids(sources)
        targets: list[Element] = []
        for rel in scope:
            source, target = semantic_ends(rel, self.kind_of(rel))
            if source.id in source_ids and (target_kind is None or target.kind == target_kind):
                targets.append(target)
        return _unique(targets)

    @staticmethod
    def is_related(
        first: Iterable[Element], second: Iterable[Element], scope: Iterable[Relationship]
    ) -> bool:
        """Return True if a *scope* relationship joins *first* and *second* (any direction)."""
        first_ids = _ids(first)
        second_ids = _ids(second)
        if not first_ids or not second_ids:
            return False
        for rel in scope:
            if rel.source.id in first_ids and rel.target.id in second_ids:
                return True
            if rel.source.id in second_ids and rel.target.id in first_ids:
                return True
        return False

    def is_related_transitively(
        self, start: Element, scope: Iterable[Relationship], target_kind: str
    ) -> bool:
        """Breadth-first search from *start* to any element of *target_kind*.

        The search continues only through elements of *start*'s own kind,
        following semantic source -> target direction.
        """
        successors: dict[str, list[Element]] = {}
        for rel in scope:
            source, target = semantic_ends(rel, self.kind_of(rel))
            successors.setdefault(source.id, []).append(target)

        queue: deque[Element] = deque([start])
        visited: set[str] = {start.id}
        while queue:
            current = queue.popleft()
            for nxt in successors.get(current.id, ()):
                if nxt.kind == target_kind:
                    return True
                if nxt.kind == start.kind and nxt.id not in visited:
                    visited.add(nxt.id)
                    queue.append(nxt)
        return False

    @staticmethod
    def is_connected(nodes: Iterable[Element], scope: Iterable[Relationship]) -> bool:
        """Return True if *nodes* form one component under *scope* (undirected)."""
        node_list = _unique(nodes)
        if len(node_list) <= 1:
            return True

        node_ids = _ids(node_list)
        adjacency: dict[str, set[str]] = {}
        for rel in scope:
            if rel.source.id in node_ids and rel.target.id in node_ids:
                adjacency.setdefault(rel.source.id, set()).add(rel.target.id)
                adjacency.setdefault(rel.target.id, set()).add(rel.source.id)

        start = node_list[0].id
        visited: set[str] = {start}
        queue: deque[str] = deque([start])
        while queue:
            current = queue.popleft()
            for neighbor in adjacency.get(current, ()):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)
        return len(visited) == len(node_ids)

    def crosses_boundary(self, relationship: Relationship) -> bool:
        """Return True if the ends of *relationship* sit under different roots."""
        return self.get_root(relationship.source).id != self.get_root(relationship.target).id

    # -----------------------------------------------------------------------
    # Level scoping (partial validation)
    # -----------------------------------------------------------------------

    def get_related_levels(
        self, elements: Iterable[Element], scope: Iterable[Relationship]
    ) -> set[int]:
        """Levels of those *elements* that are an end of some *scope* relationship."""
        element_ids = _ids(elements)
        levels: set[int] = set()
        for rel in scope:
            for end in (rel.source, rel.target):
                if end.id in element_ids:
                    levels.add(self.get_level(end))
        return levels

    def filter_by_level(self, concepts: Iterable[_C], levels: set[int]) -> tuple[_C, ...]:
        """Keep elements whose level is in *levels*, and relationships whose two ends are."""
        kept: list[_C] = []
        for concept in concepts:
            if hasattr(concept, "source"):
                ends = (concept.source, concept.target)
            else:
                ends = (concept,)
            if all(self.get_level(end) in levels for end in ends):
                kept.append(concept)
        return tuple(kept)

    def filter_by_level_adjacency(
        self, relationships: Iterable[Relationship], offset: int
    ) -> tuple[Relationship, ...]:
        """Keep relationships whose adjacent level is also represented.

        Relationships are bucketed by relation kind.  A relationship is kept
        when its source level ``L`` and ``L + offset`` both occur among the
        source levels of its bucket (``offset`` -1 for the parent layer, +1
        for the child layer).
        """
        rels = tuple(relationships)
        buckets: dict[str, set[int]] = {}
        for rel in rels:
            buckets.setdefault(self._bucket_key(rel), set()).add(self.get_level(rel.source))

        kept: list[Relationship] = []
        for rel in rels:
            levels = buckets[self._bucket_key(rel)]
            level = self.get_level(rel.source)
            if level in levels and level + offset in levels:
                kept.append(rel)
        return tuple(kept)

    def _bucket_key(self, relationship: Relationship) -> str:
        descriptor = self.kind_of(relationship)
        if descriptor is not None:
            return descriptor.name
        return f"{relationship.source.kind}->{relationship.target.kind}"

    # -----------------------------------------------------------------------
    # Value-stream tracing
    # -----------------------------------------------------------------------

    def get_top_value_streams(self, element: Element) -> set[str]:
        """Ids of the root value streams *element* traces to.

        Capabilities trace through their manifestations, objects through the
        capabilities transforming them.  Value streams trace to nothing.
        """
        manifestations = self._by_kind.get(MANIFESTATION.name, [])
        if element.kind == CAPABILITY:
            capabilities: tuple[Element, ...] = (element,)
        elif element.kind == OBJECT:
            capabilities = self.get_sources(
                [element], self._by_kind.get(TRANSFORMATION.name, []), CAPABILITY
            )
        else:
            return set()
        value_streams = self.get_targets(capabilities, manifestations, VALUE_STREAM)
        return {root.id for root in self.get_roots(value_streams)}
