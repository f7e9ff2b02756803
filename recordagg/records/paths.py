"""Dotted/indexed path access into loosely-structured records."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, List, Mapping, MutableMapping, MutableSequence, Optional, Sequence, Tuple, Union

PathToken = Union[str, int]

_SEGMENT = re.compile(r"^(?P<name>[^\[\]]*)(?P<indices>(?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")


@lru_cache(maxsize=1024)
def parse_path(path: str) -> Tuple[PathToken, ...]:
    """Split ``a.b[0].c`` into ``("a", "b", 0, "c")``.

    Segments whose brackets do not hold a plain non-negative integer are kept as
    literal keys.
    """
    if not path:
        raise ValueError("Field paths must be non-empty strings.")
    tokens: List[PathToken] = []
    for segment in path.split("."):
        match = _SEGMENT.match(segment)
        if match is None:
            tokens.append(segment)
            continue
        name = match.group("name")
        if name:
            tokens.append(name)
        tokens.extend(int(index) for index in _INDEX.findall(match.group("indices")))
    return tuple(tokens)


def _is_sequence(node: Any) -> bool:
    return isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray))


def _step(node: Any, token: PathToken) -> Tuple[bool, Any]:
    if isinstance(token, int):
        if _is_sequence(node):
            if token < len(node):
                return True, node[token]
            return False, None
        token = str(token)
    if isinstance(node, Mapping) and token in node:
        return True, node[token]
    return False, None


def get_path(record: Any, path: str, default: Optional[Any] = None) -> Any:
    """Read the value at ``path``, returning ``default`` when any segment is missing."""
    node = record
    for token in parse_path(path):
        found, node = _step(node, token)
        if not found:
            return default
    return node


def _empty_container(token: PathToken) -> Union[List[Any], dict]:
    return [] if isinstance(token, int) else {}


def _ensure_slot(node: MutableSequence[Any], index: int) -> None:
    if index >= len(node):
        node.extend([None] * (index + 1 - len(node)))


def set_path(record: MutableMapping[str, Any], path: str, value: Any) -> MutableMapping[str, Any]:
    """Write ``value`` at ``path`` in place, creating intermediate containers as needed.

    Intermediate nodes of the wrong shape (scalars, or a mapping where a list index
    is requested and vice versa) are replaced by a fresh container. Sequences are
    padded with ``None`` up to the requested index.
    """
    tokens = parse_path(path)
    node: Any = record
    for position, token in enumerate(tokens):
        last = position == len(tokens) - 1
        if isinstance(token, int) and isinstance(node, list):
            _ensure_slot(node, token)
            if last:
                node[token] = value
                break
            child = node[token]
            next_token = tokens[position + 1]
            if not _fits(child, next_token):
                child = _empty_container(next_token)
                node[token] = child
            node = child
            continue

        key = str(token)
        if last:
            node[key] = value
            break
        child = node.get(key)
        next_token = tokens[position + 1]
        if not _fits(child, next_token):
            child = _empty_container(next_token)
            node[key] = child
        node = child
    return record


def _fits(child: Any, next_token: PathToken) -> bool:
    if isinstance(next_token, int):
        return isinstance(child, (list, dict))
    return isinstance(child, dict)


__all__ = ["PathToken", "get_path", "parse_path", "set_path"]
