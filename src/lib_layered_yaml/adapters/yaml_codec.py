"""YAML codec adapter.

Purpose
-------
Translate between YAML text and the generic tree model (``None``, scalars,
``list`` and ``dict``) used by the merge engine and the provider. The adapter is
a small wrapper around PyYAML's safe loader and dumper so duplicate-key
validation, error translation, and logging live in one place.

Contents
--------
* :data:`EMPTY` – sentinel returned when a document has no content at all.
* :class:`PermissiveLoader` – ``SafeLoader`` that refuses keys Python would conflate.
* :class:`StrictLoader` – additionally rejects repeated mapping keys.
* :func:`decode` – parse bytes/text into a tree (strict or permissive).
* :func:`encode` – serialise a tree back to plain block-style YAML.
* :func:`parse_key` – interpret a path segment as a YAML scalar key.

System Role
-----------
Used by :mod:`lib_layered_yaml.application.merge` to read sources, by
:mod:`lib_layered_yaml.core` to decode the expanded document, and by the
populate path to deep-copy nodes.
"""

from __future__ import annotations

from typing import Any, ClassVar, Final

import yaml
from yaml.constructor import ConstructorError

from ..domain.errors import DuplicateKeyError, SerializationError, SourceParseError
from ..domain.tree import is_scalar
from ..observability import log_error

_MERGE_TAG: Final[str] = "tag:yaml.org,2002:merge"
_ABSENT: Final = object()


class _Empty:
    """Marker type for documents that contain no YAML node (blank or comments only)."""

    _instance: _Empty | None = None

    def __new__(cls) -> _Empty:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"

    def __bool__(self) -> bool:
        return False


EMPTY: Final = _Empty()
"""Returned by :func:`decode` when the stream holds no document.

An explicit ``null`` document decodes to ``None`` instead; the two must stay
distinguishable because an explicit null overrides lower-priority sources while
an empty source is skipped.
"""


class _DuplicateKeyFound(ConstructorError):
    """Internal marker raised from :class:`StrictLoader` and translated by :func:`decode`."""

    def __init__(self, key: object, node: yaml.Node, key_node: yaml.Node) -> None:
        self.key = key
        super().__init__(
            "while constructing a mapping",
            node.start_mark,
            f"found duplicate key {key!r}",
            key_node.start_mark,
        )


class _KeyCollision(ConstructorError):
    """Raised when two distinct YAML keys are equal as Python dict keys (``1``, ``1.0``, ``true``)."""

    def __init__(self, first: object, second: object, node: yaml.Node, key_node: yaml.Node) -> None:
        super().__init__(
            "while constructing a mapping",
            node.start_mark,
            f"keys {first!r} and {second!r} are distinct in YAML but collide as mapping keys",
            key_node.start_mark,
        )


class PermissiveLoader(yaml.SafeLoader):
    """Safe loader that keeps the last of repeated keys.

    Keys are compared by type as well as value: ``1``, ``1.0`` and ``true`` are
    different YAML keys but a single ``dict`` key, so a mapping holding more
    than one of them is refused instead of silently dropping data. The check
    inspects the raw mapping node before PyYAML flattens merge keys (``<<``),
    so keys inherited through a merge may still be overridden explicitly.

    Examples
    --------
    >>> yaml.load("a: 1\\na: 2\\n", Loader=PermissiveLoader)
    {'a': 2}
    """

    reject_duplicates: ClassVar[bool] = False

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        if isinstance(node, yaml.MappingNode):
            self._check_keys(node)
        return super().construct_mapping(node, deep=deep)

    def _check_keys(self, node: yaml.MappingNode) -> None:
        seen: dict[Any, Any] = {}
        for key_node, _ in node.value:
            if key_node.tag == _MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=True)
            try:
                previous = seen.get(key, _ABSENT)
            except TypeError:
                # unhashable keys are reported by SafeLoader itself
                continue
            if previous is _ABSENT:
                seen[key] = key
            elif type(previous) is not type(key):
                raise _KeyCollision(previous, key, node, key_node)
            elif self.reject_duplicates:
                raise _DuplicateKeyFound(key, node, key_node)


class StrictLoader(PermissiveLoader):
    """Safe loader that also refuses mappings which define the same key twice.

    Examples
    --------
    >>> yaml.load("a: 1\\nb: 2\\n", Loader=StrictLoader)
    {'a': 1, 'b': 2}
    """

    reject_duplicates: ClassVar[bool] = True


def decode(data: bytes | str, *, strict: bool, origin: str = "document") -> Any:
    """Parse a single YAML document into the generic tree model.

    Why
    ----
    Every YAML read in the library goes through one function so strictness and
    error translation stay consistent.

    Parameters
    ----------
    data:
        YAML bytes (any encoding PyYAML detects) or text.
    strict:
        When true, repeated mapping keys raise :class:`DuplicateKeyError`;
        otherwise the last occurrence wins.
    origin:
        Label used in error messages (file path or ``source[i]``).

    Returns
    -------
    Any
        The decoded tree, or :data:`EMPTY` when the stream has no document.

    Raises
    ------
    DuplicateKeyError
        Strict mode only.
    SourceParseError
        When the text is not valid YAML, holds more than one document, or
        uses keys such as ``1`` and ``true`` in one mapping, which cannot be
        told apart once decoded.

    Examples
    --------
    >>> decode(b"service:\\n  port: 8080\\n", strict=True)
    {'service': {'port': 8080}}
    >>> decode(b"# nothing here\\n", strict=True) is EMPTY
    True
    >>> decode(b"~", strict=True) is None
    True
    >>> decode(b"a: 1\\na: 2\\n", strict=False)
    {'a': 2}
    """

    loader = StrictLoader(data) if strict else PermissiveLoader(data)
    try:
        node = loader.get_single_node()
        if node is None:
            return EMPTY
        return loader.construct_document(node)
    except _DuplicateKeyFound as exc:
        line = exc.problem_mark.line + 1 if exc.problem_mark is not None else None
        log_error("source_invalid", origin=origin, reason="duplicate_key", line=line)
        raise DuplicateKeyError(exc.key, origin=origin, line=line) from exc
    except _KeyCollision as exc:
        line = exc.problem_mark.line + 1 if exc.problem_mark is not None else None
        log_error("source_invalid", origin=origin, reason="key_collision", line=line)
        raise SourceParseError(f"couldn't decode YAML from {origin}: {exc}") from exc
    except yaml.YAMLError as exc:
        log_error("source_invalid", origin=origin, reason="syntax", error=str(exc))
        raise SourceParseError(f"couldn't decode YAML from {origin}: {exc}") from exc
    finally:
        loader.dispose()


def encode(tree: Any) -> str:
    """Serialise *tree* to block-style YAML text.

    Keys keep their insertion order and original types, and long strings are
    never folded so later text substitution sees every scalar on one line.

    Raises
    ------
    SerializationError
        When *tree* contains objects the safe dumper cannot represent.

    Examples
    --------
    >>> print(encode({"b": 1, "a": [True, None]}), end="")
    b: 1
    a:
    - true
    - null
    >>> encode({1: "one"})
    '1: one\\n'
    """

    try:
        return yaml.safe_dump(
            tree,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=float("inf"),
        )
    except yaml.YAMLError as exc:
        raise SerializationError(f"can't represent {type(tree).__name__} as YAML: {exc}") from exc


def parse_key(segment: str) -> tuple[Any, bool]:
    """Interpret a path *segment* as a YAML scalar mapping key.

    Returns ``(key, True)`` when the segment decodes to a hashable scalar and
    ``(None, False)`` otherwise; parse failures are never raised.

    Examples
    --------
    >>> parse_key("42"), parse_key("true"), parse_key("[1, 2]")
    ((42, True), (True, True), (None, False))
    """

    try:
        key = yaml.safe_load(segment)
    except yaml.YAMLError:
        return None, False
    if not is_scalar(key):
        return None, False
    try:
        hash(key)
    except TypeError:
        return None, False
    return key, True
