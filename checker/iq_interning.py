#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Qualifier rules of the interning checker.

The factory adds @Interned to a type if the input:

  1. is a String literal, or a compile-time constant string expression
  2. is a class literal
  3. has an enum type
  4. has a primitive type, or is the result of unboxing
  5. has the type java.lang.Class

Cases 1 (literals), 2 and 4 (primitive types) are implicit-for rules owned by
the host factory and configured here through `implicit_for()`; case 5 comes
from the Class declaration in the library stubs. Everything else below is
specific to interning: compile-time constants, binary and compound-assignment
expressions, enum types and unboxing.
"""

from typing import Dict, Mapping, Optional

from iq_ast import Expr, BinaryOp, CompoundAssign, LITERAL_NODES
from iq_internal_error import InternalCheckerError
from iq_qualifiers import Qualifier, QualifierRegistry
from iq_types import AnnotatedType, DeclaredType, PrimitiveType, format_type, is_enum
from iq_factory import ImplicitFor

# Alternate annotation spellings treated as @Interned.
INTERNING_ALIASES: Dict[str, Qualifier] = {
    "com.sun.istack.Interned": Qualifier.INTERNED,
}

# Binary operators whose result is a primitive (boolean or numeric) with no
# reference identity to distinguish.
INTERNED_OPS = frozenset({
    "==", "!=",
    "&&", "||",
    "+", "-", "*", "/", "%",
    "<", "<=", ">", ">=",
})


class InterningTreeAnnotator:
    """Syntax-directed rules: decides a qualifier from the shape of an expression."""

    def __init__(self, checker: "InterningChecker", host):
        self.checker = checker
        self.host = host
        self.interned_ops = INTERNED_OPS

    def visit(self, node: Expr, atype: AnnotatedType) -> Optional[Qualifier]:
        if isinstance(node, BinaryOp):
            return self.visit_binary(node, atype)
        if isinstance(node, CompoundAssign):
            return self.visit_compound_assignment(node, atype)
        return None

    def visit_binary(self, node: BinaryOp, atype: AnnotatedType) -> Optional[Qualifier]:
        # The constant check must come first: "a" + "b" is also a concatenation.
        if self.host.is_compile_time_string(node):
            return self.checker.INTERNED
        elif self.host.is_string_concatenation(node):
            return self.checker.UNQUALIFIED
        elif node.op in self.interned_ops:
            return self.checker.INTERNED
        else:
            return self.checker.UNQUALIFIED

    def visit_compound_assignment(self, node: CompoundAssign, atype: AnnotatedType) -> Optional[Qualifier]:
        # Compound assignments never result in an interned result.
        return self.checker.UNQUALIFIED


class InterningTypeAnnotator:
    """Type-directed rules, run over the resolved type structure after tree rules."""

    def __init__(self, checker: "InterningChecker", host):
        self.checker = checker
        self.host = host

    def visit_declared(self, atype: AnnotatedType) -> Optional[Qualifier]:
        base = atype.base
        assert isinstance(base, DeclaredType)
        if base.decl is None:
            raise InternalCheckerError(
                f"[ICE-0100] declared type '{format_type(base)}' has no backing declaration"
            )
        # Enum types: exactly one instance per constant.
        if is_enum(base):
            return self.checker.INTERNED
        return None


class InterningChecker:
    """
    Plugin for the AnnotatedTypeFactory.

    Surface used by the factory:
      - registry:               qualifier tokens and alias table
      - create_tree_annotator:  syntax-directed annotator for one unit
      - create_type_annotator:  type-directed annotator for one unit
      - annotate_implicit:      implicit default for a declaration
      - unboxed_qualifier:      qualifier of an unboxing result
      - implicit_for / default_qualifier: host-level defaulting configuration
    """

    name = "interning"

    def __init__(self, extra_aliases: Optional[Mapping[str, Qualifier]] = None):
        self.registry = QualifierRegistry(INTERNING_ALIASES)
        for spelling, qualifier in (extra_aliases or {}).items():
            self.registry.register(spelling, qualifier)
        self.INTERNED = self.registry.INTERNED
        self.UNQUALIFIED = self.registry.UNQUALIFIED

    def aliases(self) -> Mapping[str, Qualifier]:
        return self.registry.aliases

    def create_tree_annotator(self, host) -> InterningTreeAnnotator:
        return InterningTreeAnnotator(self, host)

    def create_type_annotator(self, host) -> InterningTypeAnnotator:
        return InterningTypeAnnotator(self, host)

    def implicit_for(self) -> ImplicitFor:
        return ImplicitFor(
            qualifier=self.INTERNED,
            tree_classes=LITERAL_NODES,
            type_classes=(PrimitiveType,),
        )

    @property
    def default_qualifier(self) -> Qualifier:
        return self.UNQUALIFIED

    def annotate_implicit(self, host, decl: object, atype: AnnotatedType) -> Optional[Qualifier]:
        if not atype.is_annotated() and host.is_compile_time_constant(decl):
            return self.INTERNED
        return None

    def unboxed_qualifier(self, primitive: AnnotatedType) -> Optional[Qualifier]:
        # Primitives have no identity.
        return self.INTERNED
