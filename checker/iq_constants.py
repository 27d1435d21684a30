#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Compile-time constant classification.

Follows the Java notion of a constant expression: literals (other than
`null`), simple uses of constant variables, parenthesized constants,
unary/binary operators and the conditional operator over constants, and
casts to a primitive type or String. A constant variable is a `final` field
or local of primitive or String type whose initializer is a constant
expression.
"""

from typing import Dict, Optional, Set

from iq_ast import (
    Expr, VariableDecl, FieldDecl, LocalVarStmt, NullLiteral, NameRef, FieldAccess, UnaryOp,
    BinaryOp, CastExpr, ConditionalExpr, LITERAL_NODES, ClassLiteral, skip_parens,
)
from iq_resolve import BindingResult
from iq_types import Type, PrimitiveType, is_string

_CONSTANT_UNARY_OPS = {"+", "-", "~", "!"}


class ConstantClassifier:
    """Host predicates over constant-ness, shared by the factory and the interning rules."""

    def __init__(self, binding: BindingResult, expr_types: Dict[int, Type], field_targets: Dict[int, VariableDecl]):
        self.binding = binding
        self.expr_types = expr_types
        self.field_targets = field_targets
        self._constant_decls: Dict[int, bool] = {}
        self._in_progress: Set[int] = set()

    # --- declarations ---

    def is_compile_time_constant(self, decl: object) -> bool:
        """True if `decl` is a final variable of primitive/String type with a constant initializer."""
        if not isinstance(decl, (FieldDecl, LocalVarStmt)):
            return False
        key = id(decl)
        if key in self._constant_decls:
            return self._constant_decls[key]
        if key in self._in_progress:
            # Self-referential initializer: not a constant.
            return False

        self._in_progress.add(key)
        try:
            decl_type = self.binding.decl_types.get(key)
            result = (
                decl.is_final
                and decl.value is not None
                and (isinstance(decl_type, PrimitiveType) or is_string(decl_type))
                and self.is_constant_expression(decl.value)
            )
        finally:
            self._in_progress.discard(key)
        self._constant_decls[key] = result
        return result

    # --- expressions ---

    def is_constant_expression(self, expr: Expr) -> bool:
        expr = skip_parens(expr)
        if isinstance(expr, (NullLiteral, ClassLiteral)):
            return False
        if isinstance(expr, LITERAL_NODES):
            return True
        if isinstance(expr, (NameRef, FieldAccess)):
            return self.is_compile_time_constant(self.referenced_decl(expr))
        if isinstance(expr, UnaryOp):
            return expr.op in _CONSTANT_UNARY_OPS and self.is_constant_expression(expr.operand)
        if isinstance(expr, BinaryOp):
            return self.is_constant_expression(expr.left) and self.is_constant_expression(expr.right)
        if isinstance(expr, CastExpr):
            target = self.binding.ref_types.get(id(expr.target_type))
            return (isinstance(target, PrimitiveType) or is_string(target)) and self.is_constant_expression(expr.expr)
        if isinstance(expr, ConditionalExpr):
            return all(self.is_constant_expression(e) for e in (expr.cond, expr.then_expr, expr.else_expr))
        return False

    def is_compile_time_string(self, expr: Expr) -> bool:
        """
        A literal, a use of a compile-time constant, or a string concatenation
        whose operands are both compile-time strings.
        """
        expr = skip_parens(expr)
        if isinstance(expr, LITERAL_NODES) and not isinstance(expr, ClassLiteral):
            return True
        if isinstance(expr, (NameRef, FieldAccess)):
            return self.is_compile_time_constant(self.referenced_decl(expr))
        if self.is_string_concatenation(expr):
            assert isinstance(expr, BinaryOp)
            return self.is_compile_time_string(expr.left) and self.is_compile_time_string(expr.right)
        return False

    def is_string_concatenation(self, expr: Expr) -> bool:
        """A `+` whose base type is String."""
        expr = skip_parens(expr)
        return isinstance(expr, BinaryOp) and expr.op == "+" and is_string(self.expr_types.get(id(expr)))

    def referenced_decl(self, expr: Expr) -> Optional[VariableDecl]:
        if isinstance(expr, NameRef):
            decl = self.binding.bindings.get(id(expr))
            return decl if isinstance(decl, VariableDecl) else None
        if isinstance(expr, FieldAccess):
            return self.field_targets.get(id(expr))
        return None
