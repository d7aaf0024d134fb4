"""YAML model parser and loader.

Reads one model file, or every ``*.yml`` file of a directory in sorted
order, and builds an integrity-checked :class:`~covo.graph.model.Model`.
Element and relationship entries use ArchiMate type tags, so an export from
the modelling tool maps onto the format one to one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from covo.graph.model import Element, Model, ModelError, Relationship, Selection
from covo.metamodel import element_kind_for_type

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ParsedFile:
    """Result of parsing a single YAML model file."""

    elements: list[dict[str, Any]] = field(default_factory=list)
    relationships: list[dict[str, Any]] = field(default_factory=list)


def parse_model_file(path: Path) -> ParsedFile:
    """Parse a single YAML model file into raw element and relationship entries."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        msg = f"{path.name}: invalid YAML: {exc}"
        raise ModelError(msg) from exc
    if data is None:
        return ParsedFile()
    if not isinstance(data, dict):
        msg = f"{path.name}: model file must be a YAML mapping"
        raise ModelError(msg)

    elements = data.get("elements") or []
    relationships = data.get("relationships") or []
    if not isinstance(elements, list):
        msg = f"{path.name}: 'elements' must be a list"
        raise ModelError(msg)
    if not isinstance(relationships, list):
        msg = f"{path.name}: 'relationships' must be a list"
        raise ModelError(msg)
    return ParsedFile(elements=elements, relationships=relationships)


def _model_files(path: Path) -> list[Path]:
    if path.is_dir():
        return sorted(path.glob("*.yml")) + sorted(path.glob("*.yaml"))
    return [path]


def _parse_element(entry: object, idx: int) -> Element:
    if not isinstance(entry, dict):
        msg = f"Element at index {idx} must be a mapping"
        raise ModelError(msg)

    ref_id = entry.get("id")
    if ref_id is None or not str(ref_id).strip():
        msg = f"Element at index {idx} missing required 'id' field"
        raise ModelError(msg)
    ref_id = str(ref_id)

    type_tag = str(entry.get("type", ""))
    kind = element_kind_for_type(type_tag)
    if kind is None:
        msg = f"Element '{ref_id}' has unsupported type '{type_tag}'"
        raise ModelError(msg)

    level_raw = entry.get("level")
    stored_level: int | None = None
    if level_raw is not None:
        try:
            stored_level = int(level_raw)
        except (TypeError, ValueError) as exc:
            msg = f"Element '{ref_id}': level must be an integer, got {level_raw!r}"
            raise ModelError(msg) from exc

    return Element(
        id=ref_id,
        kind=kind,
        name=str(entry.get("name", "")),
        stored_level=stored_level,
    )


def _parse_relationship(entry: object, idx: int, elements: dict[str, Element]) -> Relationship:
    if not isinstance(entry, dict):
        msg = f"Relationship at index {idx} must be a mapping"
        raise ModelError(msg)

    ref_id = entry.get("id")
    if ref_id is None or not str(ref_id).strip():
        msg = f"Relationship at index {idx} missing required 'id' field"
        raise ModelError(msg)
    ref_id = str(ref_id)

    source = elements.get(str(entry.get("source", "")))
    target = elements.get(str(entry.get("target", "")))
    if source is None:
        msg = f"Relationship '{ref_id}': source '{entry.get('source')}' not found in model"
        raise ModelError(msg)
    if target is None:
        msg = f"Relationship '{ref_id}': target '{entry.get('target')}' not found in model"
        raise ModelError(msg)

    return Relationship(
        id=ref_id,
        type_tag=str(entry.get("type", "")),
        source=source,
        target=target,
        name=str(entry.get("name", "")),
    )


def load_model(path: Path) -> Model:
    """Load a model from a YAML file or a directory of YAML files.

    Two passes: all elements first (so relationships may reference elements
    declared in any file), then relationships.  Raises :class:`ModelError`
    on the first malformed entry, and the :class:`Model` constructor rejects
    duplicate ids and unknown relationship types.
    """
    if not path.exists():
        msg = f"Model path not found: {path}"
        raise ModelError(msg)

    raw_elements: list[dict[str, Any]] = []
    raw_relationships: list[dict[str, Any]] = []
    for yml_path in _model_files(path):
        parsed = parse_model_file(yml_path)
        raw_elements.extend(parsed.elements)
        raw_relationships.extend(parsed.relationships)

    # --- Pass 1: elements ---
    elements: list[Element] = []
    by_id: dict[str, Element] = {}
    for idx, entry in enumerate(raw_elements):
        element = _parse_element(entry, idx)
        elements.append(element)
        by_id.setdefault(element.id, element)

    # --- Pass 2: relationships ---
    relationships = [
        _parse_relationship(entry, idx, by_id) for idx, entry in enumerate(raw_relationships)
    ]

    model = Model(elements=tuple(elements), relationships=tuple(relationships))
    logger.debug(
        "Loaded model from %s: %d elements, %d relationships",
        path,
        len(model.elements),
        len(model.relationships),
    )
    return model


def load_selection(path: Path, model: Model) -> Selection:
    """Load a selection file and resolve its ids against *model*.

    The file holds either a YAML list of ids, or a mapping with optional
    ``elements`` and ``relationships`` lists.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read selection file {path}: {exc}"
        raise ModelError(msg) from exc

    ref_ids: list[str] = []
    if isinstance(data, list):
        ref_ids = [str(item) for item in data]
    elif isinstance(data, dict):
        for key in ("elements", "relationships"):
            items = data.get(key) or []
            if not isinstance(items, list):
                msg = f"{path.name}: '{key}' must be a list"
                raise ModelError(msg)
            ref_ids.extend(str(item) for item in items)
    elif data is not None:
        msg = f"{path.name}: selection must be a list or a mapping"
        raise ModelError(msg)

    return Selection.from_ids(model, ref_ids)
