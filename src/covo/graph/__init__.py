"""Graph domain: model types, YAML loader, and the hierarchy/relation query layer."""

from covo.graph.loader import ParsedFile, load_model, load_selection, parse_model_file
from covo.graph.model import Element, Model, ModelError, Relationship, Selection
from covo.graph.queries import ModelGraph

__all__ = [
    "Element",
    "Model",
    "ModelError",
    "ModelGraph",
    "ParsedFile",
    "Relationship",
    "Selection",
    "load_model",
    "load_selection",
    "parse_model_file",
]
