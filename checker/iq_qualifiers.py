#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional


class Qualifier(Enum):
    """The two qualifiers of the interning hierarchy. `None` on a type means "unset"."""
    INTERNED = "Interned"
    UNQUALIFIED = "Unqualified"


# Spellings that always denote the canonical qualifiers.
CANONICAL_SPELLINGS: Dict[str, Qualifier] = {
    "Interned": Qualifier.INTERNED,
    "checkers.interning.quals.Interned": Qualifier.INTERNED,
    "Unqualified": Qualifier.UNQUALIFIED,
    "checkers.quals.Unqualified": Qualifier.UNQUALIFIED,
}


class AliasConflictError(ValueError):
    """Raised when an annotation spelling is bound to two different qualifiers."""
    pass


def parse_qualifier_name(name: str) -> Qualifier:
    """
    Parse a configuration-level qualifier name ("Interned", "unqualified", "@Interned").

    Raises ValueError for anything else.
    """
    key = name.strip().lstrip("@").lower()
    for q in Qualifier:
        if q.value.lower() == key or q.name.lower() == key:
            return q
    raise ValueError(f"unknown qualifier '{name}' (expected 'Interned' or 'Unqualified')")


class QualifierRegistry:
    """
    Owns the canonical qualifier tokens and the alias table.

    Aliases are given to the constructor as a configuration map and become
    read-only once `freeze()` has been called (the factory freezes the registry
    during its post-init).
    """

    def __init__(self, aliases: Optional[Mapping[str, Qualifier]] = None):
        self._table: Dict[str, Qualifier] = dict(CANONICAL_SPELLINGS)
        self._frozen = False
        self.INTERNED = Qualifier.INTERNED
        self.UNQUALIFIED = Qualifier.UNQUALIFIED
        for spelling, qualifier in (aliases or {}).items():
            self.register(spelling, qualifier)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def aliases(self) -> Mapping[str, Qualifier]:
        return MappingProxyType(self._table)

    def register(self, spelling: str, qualifier: Qualifier) -> None:
        """
        Treat `spelling` (in source or in library signatures) as `qualifier`.

        Registering the same pair twice is a no-op; rebinding a spelling to a
        different qualifier, or registering after `freeze()`, raises AliasConflictError.
        """
        if not isinstance(qualifier, Qualifier):
            raise TypeError(f"alias target must be a Qualifier, got {qualifier!r}")
        key = spelling.strip().lstrip("@")
        if not key:
            raise AliasConflictError("alias spelling must not be empty")
        existing = self._table.get(key)
        if existing is qualifier:
            return
        if existing is not None:
            raise AliasConflictError(
                f"annotation '{key}' is already an alias of @{existing.value}; cannot rebind it to @{qualifier.value}"
            )
        if self._frozen:
            raise AliasConflictError(f"cannot register alias '{key}': alias table is frozen")
        self._table[key] = qualifier

    def freeze(self) -> None:
        self._frozen = True

    def resolve(self, spelling: str) -> Optional[Qualifier]:
        """Return the canonical qualifier for `spelling`, or None if it belongs to no known qualifier."""
        return self._table.get(spelling.strip().lstrip("@"))
