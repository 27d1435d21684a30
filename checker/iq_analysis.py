#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from iq_ast import CompilationUnitNode, Node
from iq_context import CheckerContext
from iq_diagnostics import Diagnostic
from iq_qualifiers import Qualifier
from iq_types import AnnotatedType, Type


@dataclass
class InferenceResult:
    """
    Qualifier inference result for one compilation unit.

    Contains:
      - the unit and the context it was checked with
      - base (unqualified) expression types
      - annotated types of declarations and expressions
      - annotated primitive results of unboxing conversions, keyed by the converted operand
      - diagnostics accumulated from all passes
    """
    unit: Optional[CompilationUnitNode] = None
    context: CheckerContext = field(default_factory=CheckerContext.default)

    # Keyed by id(node)
    base_types: Dict[int, Type] = field(default_factory=dict)
    expr_types: Dict[int, AnnotatedType] = field(default_factory=dict)
    decl_types: Dict[int, AnnotatedType] = field(default_factory=dict)
    unboxed: Dict[int, AnnotatedType] = field(default_factory=dict)

    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)

    def annotated_type_of(self, node: Node) -> Optional[AnnotatedType]:
        """Annotated type of an expression or declaration node, if one was computed."""
        atype = self.expr_types.get(id(node))
        if atype is None:
            atype = self.decl_types.get(id(node))
        return atype

    def qualifier_of(self, node: Node) -> Optional[Qualifier]:
        """Top-level qualifier of an expression or declaration node."""
        atype = self.annotated_type_of(node)
        return atype.qualifier if atype is not None else None
