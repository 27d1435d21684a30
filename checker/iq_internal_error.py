#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from iq_ast import Node, Span

_ICE_CODE = re.compile(r"\[(ICE-\d{4})\]")


@dataclass(frozen=True)
class ICELocation:
    """Where in the unit the inference was when an invariant broke."""

    unit_name: Optional[str]
    span: Optional[Span]
    node_kind: Optional[str] = None

    @classmethod
    def of(cls, unit_name: Optional[str], node: Optional[Node]) -> ICELocation:
        if node is None:
            return cls(unit_name, None)
        return cls(unit_name, node.span, type(node).__name__)

    def prefix(self) -> str:
        if not self.unit_name:
            return ""
        if self.span is not None:
            return f"{self.unit_name}:{self.span.start_line}:{self.span.start_column}: "
        return f"{self.unit_name}: "


class InternalCheckerError(RuntimeError):
    """
    A broken host invariant (malformed AST or type structure) or a misused factory.
    User mistakes are Diagnostics, not ICEs. Aborts the current unit.
    """

    def __init__(self, message: str, loc: ICELocation | None = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    @property
    def code(self) -> str:
        m = _ICE_CODE.search(self.message)
        return m.group(1) if m else "ICE-9999"

    def at(self, loc: ICELocation) -> InternalCheckerError:
        """Attach `loc` unless an inner frame already located the error."""
        if self.loc is None:
            self.loc = loc
        return self

    def format(self) -> str:
        message = self.message if _ICE_CODE.search(self.message) else f"[{self.code}] {self.message}"
        if self.loc is None:
            return f"internal checker error: {message}"
        where = f" (at {self.loc.node_kind})" if self.loc.node_kind else ""
        return f"{self.loc.prefix()}internal checker error: {message}{where}"
