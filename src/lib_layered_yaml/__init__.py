"""Public package surface for ``lib_layered_yaml``.

Build a provider from layered YAML sources with :func:`new_yaml`, then read it
through dotted paths::

    provider = new_yaml(Source.from_file("base.yaml"), Source.from_file("prod.yaml"))
    port = provider.get("service.port").populate(int)

Everything re-exported here is considered stable API.
"""

from __future__ import annotations

from .application.ports import LookupFunc, Provider
from .core import DEFAULT_NAME, NOP_NAME, Source, YAMLProvider, new_provider_group, new_yaml, nop_provider
from .domain.errors import (
    ConfigError,
    DecodeError,
    DuplicateKeyError,
    InconsistentValueError,
    InternalInvariantError,
    MissingVariableError,
    NotFound,
    SerializationError,
    SourceParseError,
    ValidationError,
)
from .domain.tree import ROOT
from .observability import bind_trace_id, get_logger
from .value import Value, new_value

__all__ = [
    "ConfigError",
    "DEFAULT_NAME",
    "DecodeError",
    "DuplicateKeyError",
    "InconsistentValueError",
    "InternalInvariantError",
    "LookupFunc",
    "MissingVariableError",
    "NOP_NAME",
    "NotFound",
    "Provider",
    "ROOT",
    "SerializationError",
    "Source",
    "SourceParseError",
    "ValidationError",
    "Value",
    "YAMLProvider",
    "bind_trace_id",
    "get_logger",
    "new_provider_group",
    "new_value",
    "new_yaml",
    "nop_provider",
]
