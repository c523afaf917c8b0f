"""Conversion between rule trees and their persisted document form.

A document mirrors the tree exactly::

    {"type": "operator", "value": "AND",
     "left": {"type": "operand", "value": "age > 30"},
     "right": {"type": "operand", "value": "department == 'Sales'"}}

Storage of documents is left to the caller; everything here is pure.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from . import config
from .errors import CorruptDocument, InvalidTree
from .models import Node, NodeDocument, RuleDocument

logger = logging.getLogger(__name__)

DOCUMENT_KEYS = ("type", "value", "left", "right")


def encode(node: Node) -> Dict[str, Any]:
    root: Dict[str, Any] = {}
    stack: List[Tuple[Any, Dict[str, Any]]] = [(node, root)]
    while stack:
        current, target = stack.pop()
        if not isinstance(current, Node):
            raise InvalidTree(f"Expected a node, got {type(current).__name__}")
        if current.kind not in ("operator", "operand"):
            raise InvalidTree(f"Unknown node kind: {current.kind!r}")
        if current.is_operand and (current.left is not None or current.right is not None):
            raise InvalidTree(f"Operand {current.value!r} must not have children")
        target["type"] = current.kind
        target["value"] = current.value
        for side in ("left", "right"):
            child = getattr(current, side)
            if child is not None:
                target[side] = {}
                stack.append((child, target[side]))
    return root


def decode(document: Any) -> Node:
    # Validate level by level in pre-order, then link nodes bottom-up.
    levels: List[Tuple[NodeDocument, Dict[str, int]]] = []
    stack: List[Tuple[Any, str, int, Optional[int], str]] = [(document, "$", 1, None, "")]
    while stack:
        raw, path, depth, parent, side = stack.pop()
        parsed = _parse_level(raw, path, depth)
        index = len(levels)
        levels.append((parsed, {}))
        if parent is not None:
            levels[parent][1][side] = index
        for child_side in ("right", "left"):
            child = getattr(parsed, child_side)
            if child is not None:
                stack.append((child, f"{path}.{child_side}", depth + 1, index, child_side))

    built: List[Optional[Node]] = [None] * len(levels)
    for index in range(len(levels) - 1, -1, -1):
        parsed, children = levels[index]
        built[index] = Node(
            kind=parsed.type,
            value=parsed.value,
            left=built[children["left"]] if "left" in children else None,
            right=built[children["right"]] if "right" in children else None,
        )
    return built[0]


def encode_rule(name: str, node: Node) -> Dict[str, Any]:
    if not isinstance(name, str) or not name:
        raise ValueError("Rule name must be a non-empty string")
    return {"rule_name": name, "ast": encode(node)}


def decode_rule(document: Any) -> Tuple[str, Node]:
    try:
        record = RuleDocument.model_validate(document)
    except ValidationError as exc:
        logger.debug("Rejected rule document: %s", exc)
        raise CorruptDocument(f"Invalid rule document: {_describe(exc)}") from exc
    return record.rule_name, decode(record.ast)


def dump_yaml(node: Node) -> str:
    return yaml.safe_dump(encode(node), sort_keys=False, allow_unicode=True)


def load_yaml(text: str) -> Node:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CorruptDocument("Rule YAML is not well-formed") from exc
    return decode(data)


def dumps_json(node: Node, indent: Optional[int] = None) -> str:
    return json.dumps(encode(node), indent=indent)


def loads_json(text: str) -> Node:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptDocument("Rule JSON is not well-formed") from exc
    return decode(data)


def _parse_level(document: Any, path: str, depth: int) -> NodeDocument:
    if not isinstance(document, Mapping):
        raise CorruptDocument(
            f"{path}: node document must be a mapping, got {type(document).__name__}"
        )
    max_depth = config.settings.max_document_depth
    if max_depth is not None and depth > max_depth:
        raise CorruptDocument(f"{path}: document nests deeper than {max_depth} levels")

    prepared = dict(document)
    if not config.settings.strict_documents:
        prepared = {key: value for key, value in prepared.items() if key in DOCUMENT_KEYS}
    try:
        return NodeDocument.model_validate(prepared)
    except ValidationError as exc:
        logger.debug("Rejected node document at %s: %s", path, exc)
        raise CorruptDocument(f"{path}: invalid node document: {_describe(exc)}") from exc


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "$"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
