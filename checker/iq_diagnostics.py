#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Optional

from iq_ast import Node


DIAGNOSTIC_CODE_FAMILIES = {
    "DRV": [
        "DRV-0010",  # unit file not found / unreadable
        "DRV-0020",  # malformed unit document
    ],
    "RES": [
        "RES-0010",  # unknown variable name
        "RES-0020",  # unknown type name
        "RES-0021",  # wrong number of type arguments
        "RES-0030",  # unknown field
        "RES-0040",  # unknown method
        "RES-0050",  # duplicate declaration in scope
        "RES-0060",  # unknown default qualifier
        "RES-0061",  # conflicting explicit qualifiers
    ],
    "CFG": [
        "CFG-0010",  # invalid alias configuration
    ],
    # ICE codes are internal checker errors raised as exceptions,
    # not user-facing diagnostics; they are excluded from this registry.
    "TYP": [
        "TYP-0010",  # operator not applicable to operand types
        "TYP-0020",  # unknown operator
        "TYP-0030",  # assignment target is not a variable
        "TYP-0040",  # call arity mismatch
    ],
}


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    unit_name: Optional[str] = None

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    def format(self) -> str:
        loc = ""
        if self.unit_name is not None:
            loc += self.unit_name
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"


def diag_from_node(
        kind: str,
        message: str,
        *,
        unit_name: Optional[str],
        node: Optional[Node],
) -> Diagnostic:
    line = column = end_line = end_column = None
    if node is not None and node.span is not None:
        s = node.span
        line = s.start_line
        column = s.start_column
        end_line = s.end_line
        end_column = s.end_column
    return Diagnostic(
        kind=kind,
        message=message,
        unit_name=unit_name,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
    )
