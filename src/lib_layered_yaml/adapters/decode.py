"""Typed decode adapter backed by pydantic.

Purpose
-------
Turn a generic tree node into the caller's destination: a pydantic model (class
or pre-filled instance), a plain ``dict`` instance, or any annotation pydantic's
:class:`~pydantic.TypeAdapter` understands (``int``, ``list[str]``, standard
dataclasses, ``Any``...).

Contents
--------
* :func:`decode_into` – public entry point used by ``Value.populate``.
* :func:`reject_unknown_fields` – strict-mode check for undeclared keys.
* :func:`_declared_fields` – field-name/annotation table for models and dataclasses.

System Role
-----------
pydantic always rejects type mismatches. Strict providers additionally refuse
mapping keys the destination does not declare, mirroring strict YAML
unmarshalling; permissive providers ignore them.
"""

from __future__ import annotations

import copy
import dataclasses
import types
from collections import abc
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import DecodeError
from ..domain.tree import describe, is_mapping, is_sequence, overlay

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, abc.Sequence, abc.MutableSequence, abc.Set)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


def decode_into(node: Any, target: Any, *, strict: bool, where: str = "<root>") -> Any:
    """Decode *node* into *target* and return the result.

    Parameters
    ----------
    node:
        Freshly decoded tree; callers must not pass provider-owned state.
    target:
        A pydantic model class, a model instance (its current field values act
        as a base that *node* is deep-merged over), a ``dict`` instance (same
        overlay rule), or any type annotation.
    strict:
        Reject mapping keys the destination does not declare.
    where:
        Dotted path used in error messages.

    Raises
    ------
    DecodeError
        When the destination rejects the node, including a scalar or
        sequence decoded into a ``dict`` instance.

    Examples
    --------
    >>> from pydantic import BaseModel
    >>> class Service(BaseModel):
    ...     host: str = "localhost"
    ...     port: int = 80
    >>> decode_into({"port": 8080}, Service, strict=True).port
    8080
    >>> decode_into({"port": 8080}, Service(host="db"), strict=True).host
    'db'
    >>> decode_into(["a", "b"], list[str], strict=True)
    ['a', 'b']
    """

    if isinstance(target, BaseModel):
        base = target.model_dump(by_alias=True)
        return _validate(type(target), overlay(base, node), strict=strict, where=where)
    if isinstance(target, dict):
        if node is not None and not is_mapping(node):
            raise DecodeError(f"can't decode {where} into dict: got {describe(node)}")
        return overlay(copy.deepcopy(target), node)
    return _validate(target, node, strict=strict, where=where)


def _validate(annotation: Any, payload: Any, *, strict: bool, where: str) -> Any:
    if strict:
        reject_unknown_fields(annotation, payload, where=where)
    try:
        if _is_model(annotation):
            return annotation.model_validate(payload)
        return TypeAdapter(annotation).validate_python(payload)
    except PydanticValidationError as exc:
        raise DecodeError(f"can't decode {where} into {_type_name(annotation)}: {exc}") from exc


def reject_unknown_fields(annotation: Any, payload: Any, *, where: str = "<root>") -> None:
    """Raise :class:`DecodeError` when *payload* has keys *annotation* does not declare.

    Walks pydantic models, standard dataclasses, ``Optional``/``Annotated``
    wrappers, and the items of typed sequences and mappings. Models configured
    with ``extra="allow"`` accept anything.

    Examples
    --------
    >>> import dataclasses
    >>> @dataclasses.dataclass
    ... class Pool:
    ...     size: int = 1
    >>> reject_unknown_fields(Pool, {"size": 2})
    >>> reject_unknown_fields(Pool, {"sise": 2})
    Traceback (most recent call last):
    ...
    lib_layered_yaml.domain.errors.DecodeError: unknown field "sise" in <root> for Pool
    """

    _walk(annotation, payload, (), where)


def _walk(annotation: Any, payload: Any, loc: tuple[str, ...], where: str) -> None:
    if payload is None:
        return
    origin = get_origin(annotation)
    if origin is Annotated:
        _walk(get_args(annotation)[0], payload, loc, where)
        return
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            _walk(members[0], payload, loc, where)
        return
    if origin in _SEQUENCE_ORIGINS:
        args = get_args(annotation)
        if args and is_sequence(payload):
            for index, item in enumerate(payload):
                _walk(args[0], item, (*loc, str(index)), where)
        return
    if origin in _MAPPING_ORIGINS:
        args = get_args(annotation)
        if len(args) == 2 and is_mapping(payload):
            for key, item in payload.items():
                _walk(args[1], item, (*loc, str(key)), where)
        return

    fields = _declared_fields(annotation)
    if fields is None or not is_mapping(payload):
        return
    for key, item in payload.items():
        if key not in fields:
            dotted = ".".join((*loc, str(key)))
            raise DecodeError(f'unknown field "{dotted}" in {where} for {_type_name(annotation)}')
        _walk(fields[key], item, (*loc, str(key)), where)


def _declared_fields(annotation: Any) -> dict[Any, Any] | None:
    """Return ``{key: annotation}`` for models and dataclasses, ``None`` for anything open."""

    if _is_model(annotation):
        if annotation.model_config.get("extra") == "allow":
            return None
        fields: dict[Any, Any] = {}
        for name, info in annotation.model_fields.items():
            fields[name] = info.annotation
            if info.alias:
                fields[info.alias] = info.annotation
            if isinstance(info.validation_alias, str):
                fields[info.validation_alias] = info.annotation
        return fields
    if get_origin(annotation) is None and isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        try:
            hints = get_type_hints(annotation, include_extras=True)
        except (NameError, TypeError):
            hints = {}
        return {field.name: hints.get(field.name, Any) for field in dataclasses.fields(annotation)}
    return None


def _is_model(annotation: Any) -> bool:
    return get_origin(annotation) is None and isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _type_name(annotation: Any) -> str:
    return getattr(annotation, "__name__", None) or repr(annotation)
