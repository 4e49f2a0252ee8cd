"""Environment-variable escaping and expansion.

Purpose
-------
Substitute ``${NAME}`` and ``${NAME:default}`` references in the merged YAML
text using an injected lookup function, and protect "raw" sources from
substitution by escaping their ``$`` characters beforehand.

Contents
    - ``escape_variables``: double every ``$`` in a raw source.
    - ``expand_variables``: single left-to-right scan performing substitution.
    - ``_resolve``: lookup/default policy for one reference.

System Role
-----------
Runs exactly once per provider construction, after
:func:`lib_layered_yaml.application.merge.merge_sources`. Expanding per source
would double-expand text repeated across sources and would let expanded values
leak into merge diagnostics.
"""

from __future__ import annotations

from typing import Final

from ..domain.errors import MissingVariableError, SourceParseError
from ..observability import log_debug, log_error
from .ports import LookupFunc

_DEFAULT_SEPARATOR: Final[str] = ":"


def escape_variables(data: bytes) -> bytes:
    """Escape every ``$`` so the expander copies the text through verbatim.

    Examples
    --------
    >>> escape_variables(b"cmd: echo ${HOME}")
    b'cmd: echo $${HOME}'
    """

    return data.replace(b"$", b"$$")


def expand_variables(text: str, lookup: LookupFunc) -> str:
    """Return *text* with variable references substituted via *lookup*.

    Syntax
    ------
    * ``$$`` – a literal ``$`` (produced by :func:`escape_variables`).
    * ``${NAME}`` – the looked-up value; undefined is an error.
    * ``${NAME:default}`` – the looked-up value, else ``default`` verbatim.
    * A ``$`` followed by anything else is copied unchanged.

    Raises
    ------
    MissingVariableError
        When a variable is undefined and the reference has no usable default.
    SourceParseError
        When a reference is unterminated or names no variable.

    Examples
    --------
    >>> env = {"USER": "ada"}
    >>> expand_variables("name: ${USER}\\nshell: ${SHELL:/bin/sh}\\n", env.get)
    'name: ada\\nshell: /bin/sh\\n'
    >>> expand_variables("price: $$5 and $9", env.get)
    'price: $5 and $9'
    """

    out: list[str] = []
    expanded = 0
    idx = 0
    length = len(text)
    while idx < length:
        start = text.find("$", idx)
        if start == -1 or start == length - 1:
            out.append(text[idx:])
            break
        out.append(text[idx:start])
        follower = text[start + 1]
        if follower == "$":
            out.append("$")
            idx = start + 2
        elif follower == "{":
            end = text.find("}", start + 2)
            if end == -1:
                log_error("variable_invalid", reason="unterminated", offset=start)
                raise SourceParseError(f"unterminated variable reference at offset {start}")
            out.append(_resolve(text[start + 2 : end], lookup))
            expanded += 1
            idx = end + 1
        else:
            out.append("$")
            idx = start + 1

    log_debug("variables_expanded", references=expanded)
    return "".join(out)


def _resolve(reference: str, lookup: LookupFunc) -> str:
    """Resolve the body of one ``${...}`` reference.

    Examples
    --------
    >>> _resolve("PORT:8080", {}.get)
    '8080'
    >>> _resolve("PORT:8080", {"PORT": "9090"}.get)
    '9090'
    """

    name, separator, default = reference.partition(_DEFAULT_SEPARATOR)
    if not name:
        raise SourceParseError(f'variable reference "${{{reference}}}" names no variable')
    value = lookup(name)
    if value is not None:
        return value
    if not separator:
        log_error("variable_missing", variable=name)
        raise MissingVariableError(name)
    if default == "":
        log_error("variable_missing", variable=name, reason="empty_default")
        raise MissingVariableError(name, f'default is empty for "{name}" (use "" for empty string)')
    return default
