"""Generic tree model helpers.

Purpose
-------
Describe the shapes a decoded YAML document can take (``None``, scalars,
sequences, mappings) and the dotted-path vocabulary used to address them. The
module contains no I/O and no YAML dependency so the merge engine, the value
handle, and the decode adapter can share it freely.

Contents
--------
* :data:`ROOT` / :data:`SEPARATOR` – path vocabulary.
* :func:`is_scalar` / :func:`is_sequence` / :func:`is_mapping` – shape checks.
* :func:`describe` – human name of a node's shape for error messages.
* :func:`find_key` – type-exact key lookup (``1`` never matches ``true``).
* :func:`split_key` – dotted key to path tuple.
* :func:`nest_under` – wrap a value in single-key mappings along a path.
* :func:`overlay` – deep-merge a mapping node over plain data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final, Sequence

ROOT: Final[str] = ""
"""Key that addresses the entire document."""

SEPARATOR: Final[str] = "."


def is_mapping(node: Any) -> bool:
    """Return ``True`` for mapping nodes."""

    return isinstance(node, Mapping)


def is_sequence(node: Any) -> bool:
    """Return ``True`` for sequence nodes (``str`` and ``bytes`` are scalars)."""

    return isinstance(node, (list, tuple))


def is_scalar(node: Any) -> bool:
    """Return ``True`` for anything that is neither a mapping nor a sequence.

    Examples
    --------
    >>> is_scalar(1), is_scalar("x"), is_scalar(None), is_scalar([1]), is_scalar({})
    (True, True, True, False, False)
    """

    return not is_mapping(node) and not is_sequence(node)


def describe(node: Any) -> str:
    """Name the shape of *node* for diagnostics.

    Examples
    --------
    >>> describe({}), describe([]), describe(None), describe(3)
    ('mapping', 'sequence', 'null', 'scalar')
    """

    if node is None:
        return "null"
    if is_mapping(node):
        return "mapping"
    if is_sequence(node):
        return "sequence"
    return "scalar"


def find_key(mapping: Mapping[Any, Any], key: Any) -> tuple[Any, bool]:
    """Return ``(stored_key, True)`` when *mapping* holds *key* with the same type.

    ``1``, ``1.0`` and ``True`` are equal in Python but distinct YAML keys, so
    a lookup for one never reaches another.

    Examples
    --------
    >>> find_key({1: "one"}, 1), find_key({1: "one"}, True)
    ((1, True), (None, False))
    """

    try:
        if key not in mapping:
            return None, False
    except TypeError:
        return None, False
    for candidate in mapping:
        if type(candidate) is type(key) and candidate == key:
            return candidate, True
    return None, False


def split_key(key: str) -> tuple[str, ...]:
    """Split a dotted *key* into path segments; :data:`ROOT` yields the empty path.

    Examples
    --------
    >>> split_key("service.port")
    ('service', 'port')
    >>> split_key(ROOT)
    ()
    """

    if key == ROOT:
        return ()
    return tuple(key.split(SEPARATOR))


def nest_under(path: Sequence[Any], value: Any) -> Any:
    """Wrap *value* in nested single-key mappings so it sits at *path*.

    Examples
    --------
    >>> nest_under(("a", "b"), {"z": 9})
    {'a': {'b': {'z': 9}}}
    >>> nest_under((), 5)
    5
    """

    wrapped = value
    for segment in reversed(path):
        wrapped = {segment: wrapped}
    return wrapped


def overlay(base: Any, incoming: Any) -> Any:
    """Return *incoming* deep-merged over *base* without mutating either.

    Mappings merge key by key; every other combination takes *incoming*.

    Examples
    --------
    >>> overlay({"a": {"x": 1}, "b": 2}, {"a": {"y": 2}})
    {'a': {'x': 1, 'y': 2}, 'b': 2}
    >>> overlay({"a": 1}, [1, 2])
    [1, 2]
    """

    if not (is_mapping(base) and is_mapping(incoming)):
        return incoming
    merged = dict(base)
    for key, value in incoming.items():
        merged[key] = overlay(merged[key], value) if key in merged else value
    return merged
