"""Composition root for ``lib_layered_yaml``.

Purpose
-------
Provide the single entry point that orchestrates source escaping, merging,
variable expansion, and the final decode into an immutable provider.

Contents
--------
* :class:`Source` – one ordered YAML input plus its raw flag and label.
* :func:`new_yaml` – high-level API returning a :class:`YAMLProvider`.
* :class:`YAMLProvider` – frozen tree with path lookup, populate, and
  default-overlay reconstruction.
* :func:`nop_provider` / :func:`new_provider_group` – convenience providers.

System Role
-----------
This module connects the YAML codec, merge policy, and expander while emitting
structured observability signals. It is the canonical location for adjusting
construction order. Providers never change after construction; every
"mutation" builds a new one from the recorded sources.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path
from typing import IO, Any, Final, Sequence, Union

from pydantic import BaseModel

from .adapters.decode import decode_into
from .adapters.yaml_codec import EMPTY, decode, encode, parse_key
from .application.expand import escape_variables, expand_variables
from .application.merge import merge_sources
from .application.ports import LookupFunc, Provider
from .domain.errors import ConfigError, InternalInvariantError, NotFound, SerializationError
from .domain.tree import ROOT, SEPARATOR, find_key, is_mapping, split_key
from .observability import log_debug, log_error, log_info, make_event
from .value import Value

DEFAULT_NAME: Final[str] = "YAML"
NOP_NAME: Final[str] = "no-op"

SourceInput = Union["Source", bytes, str, IO[Any]]


@dataclass(frozen=True, slots=True)
class Source:
    """An ordered YAML input.

    Attributes
    ----------
    data:
        Raw YAML bytes.
    raw:
        When true the text is protected from variable expansion.
    origin:
        Label used in diagnostics; ``None`` means "use the position".

    Examples
    --------
    >>> Source.from_reader("a: 1").data
    b'a: 1'
    >>> Source.static({"cmd": "echo ${HOME}"}).raw
    True
    """

    data: bytes
    raw: bool = False
    origin: str | None = None

    @classmethod
    def from_reader(cls, reader: bytes | str | IO[Any], *, raw: bool = False, origin: str | None = None) -> Source:
        """Read bytes, text, or a file-like object into a source."""

        if hasattr(reader, "read"):
            payload = reader.read()
            if origin is None and isinstance(getattr(reader, "name", None), str):
                origin = reader.name
        else:
            payload = reader
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return cls(bytes(payload), raw=raw, origin=origin)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str], *, raw: bool = False) -> Source:
        """Read the YAML file at *path*; raises :class:`NotFound` when it is missing."""

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Configuration file not found: {file_path}")
        payload = file_path.read_bytes()
        log_debug("config_file_read", origin=str(file_path), size=len(payload))
        return cls(payload, raw=raw, origin=str(file_path))

    @classmethod
    def static(cls, value: Any, *, origin: str = "static") -> Source:
        """Serialise an in-memory *value* (plain data, a pydantic model or a dataclass) as a raw source.

        Raises
        ------
        SerializationError
            When the value cannot be represented as YAML.
        """

        return cls(encode(_plain(value)).encode("utf-8"), raw=True, origin=origin)


def new_yaml(
    *sources: SourceInput,
    name: str = DEFAULT_NAME,
    strict: bool = True,
    lookup: LookupFunc | None = os.environ.get,
) -> YAMLProvider:
    """Build a provider from YAML *sources* (lowest priority first).

    Why
    ----
    Consumers need one call that merges layered documents, expands
    environment references, and hands back an immutable, queryable tree.

    What
    ----
    1. Escape ``$`` in raw sources so expansion leaves them untouched.
    2. Merge all sources, validating duplicate keys when *strict*.
    3. Expand ``${NAME}`` / ``${NAME:default}`` once on the merged text.
    4. Decode the result; a document without content yields an empty provider.

    Parameters
    ----------
    sources:
        :class:`Source` objects, or bytes/text/readers treated as non-raw sources.
    name:
        Identifier for diagnostics; defaults to ``"YAML"``.
    strict:
        ``False`` makes the provider permissive: duplicate keys are accepted
        (last wins) and populate ignores undeclared fields.
    lookup:
        Variable lookup; defaults to :func:`os.environ.get`. ``None`` is
        treated as "no variable is defined".

    Raises
    ------
    SourceParseError, DuplicateKeyError, MissingVariableError
        Construction is aborted; no partial provider is returned.

    Examples
    --------
    >>> provider = new_yaml(
    ...     "service:\\n  host: localhost\\n  port: 80\\n",
    ...     "service:\\n  port: ${PORT:8080}\\n",
    ...     lookup={}.get,
    ... )
    >>> provider.get("service").value()
    {'host': 'localhost', 'port': 8080}
    """

    resolved = [_as_source(item) for item in sources]
    buffers = [escape_variables(source.data) if source.raw else source.data for source in resolved]
    origins = [source.origin or f"source[{idx}]" for idx, source in enumerate(resolved)]
    return _build(buffers, origins, name=name, strict=strict, lookup=lookup or _undefined)


def _build(
    buffers: Sequence[bytes],
    origins: Sequence[str],
    *,
    name: str,
    strict: bool,
    lookup: LookupFunc,
) -> YAMLProvider:
    """Run merge → expand → decode over already-escaped *buffers*."""

    merged = merge_sources(buffers, strict=strict, origins=origins)
    expanded = expand_variables(merged, lookup)
    contents = decode(expanded, strict=strict, origin=f"merged {name} document")
    empty = contents is EMPTY
    provider = YAMLProvider(
        name=name,
        raw=tuple(buffers),
        origins=tuple(origins),
        lookup=lookup,
        contents=None if empty else contents,
        strict=strict,
        empty=empty,
    )
    if empty:
        log_info("provider_empty", **make_event(name, None, {"sources": len(buffers)}))
    else:
        log_info("provider_built", **make_event(name, None, {"sources": len(buffers), "strict": strict}))
    return provider


@dataclass(frozen=True, slots=True, eq=False)
class YAMLProvider:
    """Immutable provider backed by merged YAML sources.

    Instances are created by :func:`new_yaml`; the tree is never modified
    afterwards and every method is a pure read, so providers and the values
    derived from them are safe to share between threads.
    """

    name: str
    raw: tuple[bytes, ...]
    origins: tuple[str, ...]
    lookup: LookupFunc
    contents: Any
    strict: bool
    empty: bool

    def __repr__(self) -> str:
        return f"YAMLProvider(name={self.name!r}, sources={len(self.raw)}, strict={self.strict})"

    def get(self, key: str) -> Value:
        """Return a :class:`Value` for dotted *key*; :data:`ROOT` addresses the whole document.

        Examples
        --------
        >>> provider = new_yaml("a:\\n  b:\\n    c: 1\\n")
        >>> provider.get("a.b").get("c") == provider.get("a.b.c")
        True
        """

        return Value(split_key(key), self)

    def _at(self, path: Sequence[str]) -> tuple[Any, bool]:
        """Return ``(node, True)`` at *path* or ``(None, False)`` when absent.

        Examples
        --------
        >>> provider = new_yaml("ports:\\n  80: http\\n  true: yes-key\\n")
        >>> provider._at(("ports", "80"))
        ('http', True)
        >>> provider._at(("ports", "true"))
        ('yes-key', True)
        >>> provider._at(("ports", "80", "deeper"))
        (None, False)
        """

        _, node, found = self._locate(path)
        return node, found

    def _locate(self, path: Sequence[str]) -> tuple[tuple[Any, ...], Any, bool]:
        """Walk *path* and return ``(keys, node, found)``.

        Each segment first matches a mapping key literally, then as a YAML
        scalar of the same type, so ``"1"`` reaches an integer key ``1`` but
        never a ``true`` key. *keys* holds the stored key for every matched
        segment followed by the remaining segments as text. Non-mappings,
        missing keys, and empty providers all report not-found.

        Examples
        --------
        >>> provider = new_yaml("ports:\\n  80: http\\n")
        >>> provider._locate(("ports", "80"))
        (('ports', 80), 'http', True)
        >>> provider._locate(("ports", "443", "tls"))
        (('ports', '443', 'tls'), None, False)
        """

        if self.empty:
            return tuple(path), None, False
        keys: list[Any] = []
        current = self.contents
        for index, segment in enumerate(path):
            key, ok = _match_segment(current, segment)
            if not ok:
                return (*keys, *path[index:]), None, False
            keys.append(key)
            current = current[key]
        return tuple(keys), current, True

    def _populate(self, path: Sequence[str], target: Any) -> Any:
        """Decode the node at *path* into *target*; absent paths leave *target* untouched.

        The node is re-serialised and decoded afresh, so the caller never
        receives provider-owned objects.
        """

        node, found = self._at(path)
        if not found:
            return target if _is_instance_target(target) else None
        where = SEPARATOR.join(path) or "<root>"
        try:
            text = encode(node)
        except SerializationError as exc:
            log_error("populate_failed", **make_event(self.name, None, {"key": where, "reason": "encode"}))
            raise InternalInvariantError(f"couldn't marshal config at key {where} to YAML: {exc}") from exc
        try:
            fresh = decode(text, strict=self.strict, origin=f"{self.name} key {where}")
        except ConfigError as exc:
            raise InternalInvariantError(f"couldn't re-read config at key {where}: {exc}") from exc
        return decode_into(fresh, target, strict=self.strict, where=where)

    def _with_default(self, default: Any) -> YAMLProvider:
        """Rebuild the provider with *default* as the lowest-priority source.

        Re-merging the recorded sources (instead of patching the tree) keeps an
        explicit ``null`` in any original source stronger than the default.
        """

        payload = escape_variables(encode(_plain(default)).encode("utf-8"))
        log_debug("default_applied", **make_event(self.name, "default", {"sources": len(self.raw) + 1}))
        return _build(
            (payload, *self.raw),
            ("default", *self.origins),
            name=self.name,
            strict=self.strict,
            lookup=self.lookup,
        )


def nop_provider() -> YAMLProvider:
    """Return an empty provider named ``"no-op"``.

    Examples
    --------
    >>> nop_provider().get(ROOT).has_value()
    False
    """

    return new_yaml(name=NOP_NAME)


def new_provider_group(name: str, *providers: Provider) -> YAMLProvider:
    """Compose several providers into one; later providers take precedence.

    Each provider contributes its whole document as a raw static source, so
    values that were already expanded are not expanded again. The group is
    permissive because its members were already validated on their own.

    Examples
    --------
    >>> base = new_yaml("db:\\n  host: localhost\\n  port: 5432\\n")
    >>> override = new_yaml("db:\\n  port: 6543\\n")
    >>> new_provider_group("combined", base, override).get("db").value()
    {'host': 'localhost', 'port': 6543}
    """

    sources = []
    for provider in providers:
        value = provider.get(ROOT)
        if value.has_value():
            sources.append(Source.static(value.value(), origin=provider.name))
    return new_yaml(*sources, name=name, strict=False)


def _as_source(item: SourceInput) -> Source:
    if isinstance(item, Source):
        return item
    return Source.from_reader(item)


def _plain(value: Any) -> Any:
    """Convert pydantic models and dataclass instances (at any depth) to plain data before YAML encoding."""

    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _match_segment(node: Any, segment: str) -> tuple[Any, bool]:
    if not is_mapping(node):
        return None, False
    key, ok = find_key(node, segment)
    if ok:
        return key, True
    parsed, ok = parse_key(segment)
    if not ok:
        return None, False
    return find_key(node, parsed)


def _is_instance_target(target: Any) -> bool:
    return isinstance(target, (BaseModel, dict))


def _undefined(name: str) -> None:
    return None


__all__ = [
    "DEFAULT_NAME",
    "NOP_NAME",
    "ROOT",
    "Source",
    "YAMLProvider",
    "new_provider_group",
    "new_yaml",
    "nop_provider",
]
