"""Application-layer merge policy.

Purpose
-------
Convert an ordered sequence of YAML sources into one serialised document with
deterministic precedence: later sources win. Remains free of I/O so alternative
composition roots can reuse it.

Contents
    - ``merge_sources``: public entry point driven by a simple loop.
    - ``merge_trees``: recursive rule combining two decoded trees.
    - ``_merge_mapping``: key-by-key stanza for mapping/mapping pairs.

System Role
-----------
Called by :func:`lib_layered_yaml.core.new_yaml` before variable expansion.
The output is re-serialised plain YAML so comments and formatting quirks of
individual sources never reach the expander, and so the expander runs exactly
once on the final text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Sequence

from ..adapters.yaml_codec import EMPTY, decode, encode
from ..domain.errors import SourceParseError
from ..domain.tree import find_key, is_mapping
from ..observability import log_debug, log_error


def merge_sources(
    sources: Sequence[bytes],
    *,
    strict: bool,
    origins: Iterable[str] | None = None,
) -> str:
    """Merge YAML *sources* (lowest priority first) into a single YAML document.

    Why
    ----
    Decoding every source up front surfaces malformed or ambiguous documents
    (duplicate keys in strict mode) before any value is combined.

    Parameters
    ----------
    sources:
        Raw YAML buffers ordered from lowest to highest precedence.
    strict:
        Reject repeated keys inside a single source.
    origins:
        Optional labels matching *sources* for error messages; defaults to
        ``source[i]``.

    Returns
    -------
    str
        Serialised merged document, or ``""`` when no source had content.

    Raises
    ------
    SourceParseError / DuplicateKeyError
        Propagated from :func:`lib_layered_yaml.adapters.yaml_codec.decode`,
        or raised when a source adds a key (``true``) that equals an existing
        key of another type (``1``).

    Examples
    --------
    >>> print(merge_sources([b"a:\\n  x: 1\\n", b"a:\\n  y: 2\\n"], strict=True), end="")
    a:
      x: 1
      y: 2
    >>> merge_sources([b"", b"# only a comment"], strict=True)
    ''
    """

    labels = list(origins) if origins is not None else [f"source[{idx}]" for idx in range(len(sources))]
    merged: Any = None
    has_content = False
    for data, origin in zip(sources, labels):
        contents = decode(data, strict=strict, origin=origin)
        if contents is EMPTY:
            # blank and comment-only sources are skipped; an explicit null is not
            log_debug("source_skipped", origin=origin)
            continue
        has_content = True
        try:
            merged = merge_trees(merged, contents)
        except SourceParseError as exc:
            log_error("source_invalid", origin=origin, reason="key_collision")
            raise SourceParseError(f"couldn't merge {origin}: {exc}") from exc

    log_debug("sources_merged", sources=len(labels), has_content=has_content)
    if not has_content:
        return ""
    return encode(merged)


def merge_trees(into: Any, incoming: Any) -> Any:
    """Combine two decoded trees, letting *incoming* take precedence.

    Rules
    -----
    * Nothing merged yet (``into is None``): take *incoming*.
    * Explicit null in *incoming*: the result is null, clearing lower layers.
    * Mapping and mapping: merge recursively.
    * Anything else (scalar/scalar, sequence/sequence, shape mismatch):
      *incoming* replaces *into* wholesale.

    Examples
    --------
    >>> merge_trees({"a": {"x": 1}}, {"a": {"y": 2}})
    {'a': {'x': 1, 'y': 2}}
    >>> merge_trees({"a": [1, 2]}, {"a": [3]})
    {'a': [3]}
    >>> merge_trees({"a": {"x": 1}}, {"a": None})
    {'a': None}
    """

    if into is None:
        return incoming
    if incoming is None:
        return None
    if is_mapping(into) and is_mapping(incoming):
        return _merge_mapping(into, incoming)
    return incoming


def _merge_mapping(into: Mapping[Any, Any], incoming: Mapping[Any, Any]) -> dict[Any, Any]:
    """Merge *incoming* over a copy of *into*; keys only in *into* survive."""

    merged = dict(into)
    for key, value in incoming.items():
        if key in merged and not find_key(merged, key)[1]:
            existing = next(candidate for candidate in merged if candidate == key)
            raise SourceParseError(f"keys {existing!r} and {key!r} are distinct in YAML but collide as mapping keys")
        merged[key] = merge_trees(merged.get(key), value)
    return merged
