"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts the composition root and consumers depend on
so alternative providers (test doubles, groups, no-op providers) can stand in
for :class:`lib_layered_yaml.core.YAMLProvider`.

Contents
--------
* :data:`LookupFunc` – variable lookup used during expansion.
* :class:`Provider` – anything that exposes a name and path-addressed values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..value import Value

LookupFunc = Callable[[str], Optional[str]]
"""Map a variable name to its value, or ``None`` when it is undefined.

``os.environ.get`` and ``dict.get`` both satisfy the contract, which keeps tests
independent of the real process environment.
"""


@runtime_checkable
class Provider(Protocol):
    """Read-only source of configuration values.

    Why
    ----
    Consumers should depend on the ability to look values up by dotted key,
    not on how the provider was assembled.
    """

    @property
    def name(self) -> str:
        """Identifier used in diagnostics."""

    def get(self, key: str) -> "Value":
        """Return the value at dotted *key*; ``ROOT`` addresses everything."""
