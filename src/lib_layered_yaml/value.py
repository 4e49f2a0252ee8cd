"""Path-addressed handles into a provider's tree.

Purpose
-------
A :class:`Value` is a coordinate – ``(path, provider)`` – that never owns data.
It descends further into the document, reports presence, decodes into typed
destinations, and layers defaults by asking the provider for a rebuilt copy.

Contents
--------
* :class:`Value` – the handle returned by ``provider.get``.
* :func:`new_value` – deprecated validating constructor kept for old callers.
* :func:`same_tree` – YAML-level equality used by :func:`new_value`.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from .adapters.yaml_codec import decode, encode
from .domain.errors import ConfigError, InconsistentValueError, InternalInvariantError
from .domain.tree import ROOT, nest_under, split_key

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .application.ports import Provider
    from .core import YAMLProvider

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Value:
    """A subset of a provider's configuration.

    Two values are equal when they address the same path of the same provider
    instance.

    Examples
    --------
    >>> from lib_layered_yaml import new_yaml
    >>> value = new_yaml("db:\\n  port: 5432\\n").get("db")
    >>> value.get("port").value()
    5432
    >>> value.get("missing").has_value()
    False
    """

    path: tuple[str, ...]
    provider: YAMLProvider

    def source(self) -> str:
        """Return the owning provider's name."""

        return self.provider.name

    def get(self, path: str) -> Value:
        """Descend into the configuration; *path* is split on dots, :data:`ROOT` is a no-op."""

        if path == ROOT:
            return self
        return Value((*self.path, *split_key(path)), self.provider)

    def has_value(self) -> bool:
        """Report whether any configuration exists here, counting an explicit ``null``."""

        _, found = self.provider._at(self.path)
        return found

    def populate(self, target: T) -> T:
        """Decode this value into *target* and return the result.

        *target* may be a pydantic model class or instance, a ``dict`` instance,
        or any type annotation pydantic accepts. Instances act as a base that
        the configuration is deep-merged over. When nothing is configured here
        the instance is returned untouched (``None`` for a type target).

        Raises
        ------
        DecodeError
            The configuration does not fit *target*.
        InternalInvariantError
            Re-serialising the stored node failed, which indicates a library bug.

        Examples
        --------
        >>> from pydantic import BaseModel
        >>> from lib_layered_yaml import new_yaml
        >>> class Database(BaseModel):
        ...     host: str = "localhost"
        ...     port: int = 5432
        >>> new_yaml("db:\\n  port: 6543\\n").get("db").populate(Database)
        Database(host='localhost', port=6543)
        """

        return self.provider._populate(self.path, target)

    def value(self) -> Any:
        """Return a private deep copy of the configuration here (``None`` when absent).

        Mutating the result never affects the provider.
        """

        try:
            return self.populate(Any)
        except ConfigError as exc:
            # the node was decoded from YAML moments ago; re-decoding it as Any cannot fail
            raise InternalInvariantError(f"couldn't copy config at key {'.'.join(self.path)!r}: {exc}") from exc

    def with_default(self, default: Any) -> Value:
        """Return a value at the same path whose provider treats *default* as lowest priority.

        The default only applies beneath this path; every original source,
        including explicit nulls, still overrides it. Segments that matched a
        non-string key (``ports.80`` reaching ``80``) nest the default under
        that same key.

        Raises
        ------
        SerializationError
            The default cannot be represented as YAML.

        Examples
        --------
        >>> from lib_layered_yaml import new_yaml
        >>> value = new_yaml("a:\\n  b:\\n    x: 1\\n").get("a.b")
        >>> value.with_default({"z": 9}).value()
        {'z': 9, 'x': 1}
        """

        keys, _, _ = self.provider._locate(self.path)
        provider = self.provider._with_default(nest_under(keys, default))
        return Value(self.path, provider)

    def __str__(self) -> str:
        return str(self.value())


def new_value(provider: Provider, key: str, value: Any, found: bool) -> Value:
    """Return ``provider.get(key)`` after checking the caller's expectations.

    .. deprecated::
        Use ``provider.get(key)`` directly. This constructor only survives for
        backward compatibility and raises :class:`InconsistentValueError` (an
        ``AssertionError``) when *found* or *value* disagree with the provider.
    """

    warnings.warn("new_value is deprecated; use provider.get(key)", DeprecationWarning, stacklevel=2)
    actual = provider.get(key)
    has = actual.has_value()
    if has != found:
        if has:
            message = f"inconsistent parameters: provider {provider.name} has value at key {key!r} but found parameter was false"
        else:
            message = f"inconsistent parameters: provider {provider.name} has no value at key {key!r} but found parameter was true"
        raise InconsistentValueError(message)
    contents = actual.value()
    try:
        same = same_tree(contents, value)
    except ConfigError as exc:
        raise InconsistentValueError(f"can't check new_value parameter consistency: {exc}") from exc
    if not same:
        raise InconsistentValueError(
            f"inconsistent parameters: provider {provider.name} has {contents!r} at key {key!r} but value was {value!r}"
        )
    return actual


def same_tree(left: Any, right: Any) -> bool:
    """Compare two values after a YAML round trip, so ``(1, 2)`` equals ``[1, 2]``.

    Examples
    --------
    >>> same_tree({"a": (1, 2)}, {"a": [1, 2]})
    True
    >>> same_tree({"a": 1}, {"a": "1"})
    False
    """

    return decode(encode(left), strict=False) == decode(encode(right), strict=False)
