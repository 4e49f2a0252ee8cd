"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the merge engine, the variable
expander, the YAML adapters, and consuming applications. The hierarchy lives in
the domain layer so every outer layer can raise and catch the same types.

Contents
--------
* :class:`ConfigError` – umbrella base class for all user-facing failures.
* :class:`NotFound` – a source file does not exist.
* :class:`SourceParseError` – a source (or the merged/expanded document) is not
  valid YAML, or a variable reference is malformed.
* :class:`ValidationError` – base for semantic failures.
* :class:`DuplicateKeyError` – strict mode found a key twice in one mapping.
* :class:`DecodeError` – a populate target rejected the node.
* :class:`MissingVariableError` – a referenced variable has no value and no
  default.
* :class:`SerializationError` – a caller-supplied value cannot be encoded.
* :class:`InternalInvariantError` – a step that cannot fail failed anyway.
* :class:`InconsistentValueError` – the deprecated ``new_value`` guard tripped.

System Role
-----------
Callers catch :class:`ConfigError` to handle "your input is wrong" uniformly.
:class:`InternalInvariantError` and :class:`InconsistentValueError` sit outside
that family on purpose so they are never mistaken for recoverable input errors.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all user-facing exceptions emitted by ``lib_layered_yaml``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class NotFound(ConfigError):
    """Raised when a file-backed source points at a missing file."""


class SourceParseError(ConfigError):
    """Raised when YAML text cannot be parsed into the generic tree model.

    Typical Sources
    ---------------
    Individual sources during merge, the expanded document during
    construction, and malformed ``${...}`` references during expansion.
    """


class ValidationError(ConfigError):
    """Signifies that syntactically valid input failed semantic checks."""


class DuplicateKeyError(ValidationError):
    """Raised in strict mode when one mapping of one document repeats a key.

    Attributes
    ----------
    key:
        The repeated mapping key.
    origin:
        Label of the offending source (file path or ``source[i]``).
    line:
        One-based line number of the second occurrence, when known.

    Examples
    --------
    >>> str(DuplicateKeyError("port", origin="source[0]", line=3))
    'duplicate key "port" in source[0] (line 3)'
    """

    def __init__(self, key: object, *, origin: str | None = None, line: int | None = None) -> None:
        self.key = key
        self.origin = origin
        self.line = line
        where = f" in {origin}" if origin else ""
        at = f" (line {line})" if line is not None else ""
        super().__init__(f'duplicate key "{key}"{where}{at}')


class DecodeError(ValidationError):
    """Raised when a populate target cannot accept the node at a path.

    Strict providers also raise it for mapping keys the target does not declare.
    """


class MissingVariableError(ConfigError):
    """Raised when ``${NAME}`` references an undefined variable without a default.

    Examples
    --------
    >>> MissingVariableError("HOME").variable
    'HOME'
    """

    def __init__(self, variable: str, message: str | None = None) -> None:
        self.variable = variable
        super().__init__(message or f'variable "{variable}" is not set and has no default')


class SerializationError(ConfigError):
    """Raised when a default or static value cannot be represented as YAML."""


class InternalInvariantError(RuntimeError):
    """Signals a failure the library guarantees cannot happen.

    Why
    ----
    Re-serialising a node that was just decoded from YAML cannot fail. If it
    ever does, the library is broken, not the caller's input, so the error is
    deliberately kept out of the :class:`ConfigError` family.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"{message} (this is a bug in lib_layered_yaml)")


class InconsistentValueError(AssertionError):
    """Raised by the deprecated ``new_value`` when caller claims disagree with the provider."""
