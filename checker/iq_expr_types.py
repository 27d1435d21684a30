#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from iq_ast import (
    Node, CompilationUnitNode, MethodDecl, VariableDecl, Stmt, Block, LocalVarStmt, ExprStmt, ReturnStmt, IfStmt,
    WhileStmt, Expr, IntLiteral, LongLiteral, DoubleLiteral, CharLiteral, BoolLiteral, StringLiteral, NullLiteral,
    ClassLiteral, NameRef, FieldAccess, CallExpr, NewExpr, UnaryOp, BinaryOp, CompoundAssign, Assign, ParenExpr,
    CastExpr, ConditionalExpr, skip_parens,
)
from iq_diagnostics import Diagnostic, diag_from_node
from iq_logger import log_debug
from iq_context import CheckerContext
from iq_resolve import BindingResult, ClassInfo, TypeResolver
from iq_types import (
    Type, PrimitiveType, DeclaredType, ArrayType, TypeDeclaration, NullType, CLASS_DECL, NUMERIC_TYPES,
    get_primitive_type, get_null_type, string_type, declared, is_string, is_primitive, box, unbox, format_type,
)

# Expression base typing (no qualifiers) for the interning checker

_ARITHMETIC_OPS = {"-", "*", "/", "%"}
_SHIFT_OPS = {"<<", ">>", ">>>"}
_RELATIONAL_OPS = {"<", "<=", ">", ">="}
_EQUALITY_OPS = {"==", "!="}
_LOGICAL_OPS = {"&&", "||"}
_BITWISE_OPS = {"&", "|", "^"}


@dataclass
class TypingResult:
    # Base types keyed by id(expr)
    expr_types: Dict[int, Type] = field(default_factory=dict)
    # id(expr) of operands converted from a box to its primitive
    unboxed: Set[int] = field(default_factory=set)
    # id(CallExpr) -> invoked method (source or library stub)
    call_targets: Dict[int, MethodDecl] = field(default_factory=dict)
    # id(FieldAccess) -> accessed field or enum constant
    field_targets: Dict[int, VariableDecl] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class ExpressionTyper:
    """
    Computes the unqualified base type of every expression in a unit.

    Implements the subset of Java typing the qualifier rules depend on:
    literals, names, field access, calls, `new`, casts, the conditional
    operator, unary/binary numeric promotion (with unboxing of boxed operands),
    string concatenation, comparisons, and (compound) assignment.
    """

    def __init__(self, unit: CompilationUnitNode, binding: BindingResult, context: Optional[CheckerContext] = None):
        self.unit = unit
        self.binding = binding
        self.context = context or CheckerContext.default()
        self.result = TypingResult()
        self.types = TypeResolver(binding.classes)
        self._current_class: Optional[ClassInfo] = None
        self._current_method: Optional[MethodDecl] = None

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def check(self) -> TypingResult:
        for info in self.binding.classes.values():
            self._current_class = info
            for fld in info.node.fields:
                if fld.value is not None:
                    self._infer_and_convert(fld.value, self.binding.decl_types.get(id(fld)))
            for method in info.node.methods:
                self._current_method = method
                if method.body is not None:
                    self._check_stmt(method.body)
                self._current_method = None
            self._current_class = None
        return self.result

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _check_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            for s in stmt.stmts:
                self._check_stmt(s)
        elif isinstance(stmt, LocalVarStmt):
            if stmt.value is not None:
                self._infer_and_convert(stmt.value, self.binding.decl_types.get(id(stmt)))
        elif isinstance(stmt, ExprStmt):
            self._infer_expr(stmt.expr)
        elif isinstance(stmt, ReturnStmt):
            if stmt.value is not None:
                target = None
                if self._current_method is not None:
                    target = self.binding.decl_types.get(id(self._current_method))
                self._infer_and_convert(stmt.value, target)
        elif isinstance(stmt, IfStmt):
            self._infer_and_convert(stmt.cond, get_primitive_type("boolean"))
            self._check_stmt(stmt.then_stmt)
            if stmt.else_stmt is not None:
                self._check_stmt(stmt.else_stmt)
        elif isinstance(stmt, WhileStmt):
            self._infer_and_convert(stmt.cond, get_primitive_type("boolean"))
            self._check_stmt(stmt.body)

    def _infer_and_convert(self, expr: Expr, target: Optional[Type]) -> Optional[Type]:
        """Infer `expr` and apply assignment conversion to `target` (unboxing only)."""
        typ = self._infer_expr(expr)
        if isinstance(target, PrimitiveType):
            self._unbox_operand(expr, typ)
        return typ

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _infer_expr(self, expr: Expr) -> Optional[Type]:
        typ = self._infer_expr_uncached(expr)
        if typ is not None:
            self.result.expr_types[id(expr)] = typ
            log_debug(self.context, f"type of {type(expr).__name__}: {format_type(typ)}")
        return typ

    def _infer_expr_uncached(self, expr: Expr) -> Optional[Type]:
        if isinstance(expr, IntLiteral):
            return get_primitive_type("int")
        if isinstance(expr, LongLiteral):
            return get_primitive_type("long")
        if isinstance(expr, DoubleLiteral):
            return get_primitive_type("double")
        if isinstance(expr, CharLiteral):
            return get_primitive_type("char")
        if isinstance(expr, BoolLiteral):
            return get_primitive_type("boolean")
        if isinstance(expr, StringLiteral):
            return string_type()
        if isinstance(expr, NullLiteral):
            return get_null_type()
        if isinstance(expr, ClassLiteral):
            target = self.binding.ref_types.get(id(expr.type_ref))
            if target is None:
                return None
            if isinstance(target, PrimitiveType):
                target = box(target)
            return declared(CLASS_DECL, target)
        if isinstance(expr, NameRef):
            decl = self.binding.bindings.get(id(expr))
            if isinstance(decl, VariableDecl):
                return self.binding.decl_types.get(id(decl))
            # Type names only appear as qualifiers of field accesses and calls.
            return None
        if isinstance(expr, FieldAccess):
            return self._infer_field_access(expr)
        if isinstance(expr, CallExpr):
            return self._infer_call(expr)
        if isinstance(expr, NewExpr):
            for arg in expr.args:
                self._infer_expr(arg)
            return self.binding.ref_types.get(id(expr.type_ref))
        if isinstance(expr, UnaryOp):
            return self._infer_unary(expr)
        if isinstance(expr, BinaryOp):
            return self._infer_binary(expr)
        if isinstance(expr, CompoundAssign):
            return self._infer_compound_assign(expr)
        if isinstance(expr, Assign):
            target = self._infer_lvalue(expr, expr.target)
            self._infer_and_convert(expr.value, target)
            return target
        if isinstance(expr, ParenExpr):
            return self._infer_expr(expr.inner)
        if isinstance(expr, CastExpr):
            target = self.binding.ref_types.get(id(expr.target_type))
            self._infer_and_convert(expr.expr, target)
            return target
        if isinstance(expr, ConditionalExpr):
            return self._infer_conditional(expr)
        return None

    def _type_qualifier(self, expr: Expr) -> Optional[TypeDeclaration]:
        """The declaration named by `expr` when it is a type name (static access)."""
        if isinstance(expr, NameRef):
            decl = self.binding.bindings.get(id(expr))
            if isinstance(decl, TypeDeclaration):
                return decl
        return None

    def _class_info(self, decl: Optional[TypeDeclaration]) -> Optional[ClassInfo]:
        if decl is None:
            return None
        info = self.binding.classes.get(decl.simple_name)
        if info is not None and info.decl.qualified_name == decl.qualified_name:
            return info
        return None

    def _infer_field_access(self, expr: FieldAccess) -> Optional[Type]:
        owner = self._type_qualifier(expr.obj)
        if owner is None:
            obj_ty = self._infer_expr(expr.obj)
            if obj_ty is None:
                return None
            if isinstance(obj_ty, ArrayType) and expr.field == "length":
                return get_primitive_type("int")
            owner = obj_ty.decl if isinstance(obj_ty, DeclaredType) else None

        info = self._class_info(owner)
        fld = info.fields.get(expr.field) if info is not None else None
        if fld is None:
            owner_name = owner.simple_name if owner is not None else "<expression>"
            self._error(expr, f"[RES-0030] unknown field '{expr.field}' in '{owner_name}'")
            return None
        self.result.field_targets[id(expr)] = fld
        return self.binding.decl_types.get(id(fld))

    def _infer_call(self, expr: CallExpr) -> Optional[Type]:
        owner: Optional[TypeDeclaration] = None
        if expr.target is None:
            owner = self._current_class.decl if self._current_class is not None else None
        else:
            owner = self._type_qualifier(expr.target)
            if owner is None:
                target_ty = self._infer_expr(expr.target)
                if isinstance(target_ty, DeclaredType):
                    owner = target_ty.decl
                elif isinstance(target_ty, PrimitiveType):
                    self._error(expr, f"[TYP-0010] cannot call '{expr.name}' on primitive type '{target_ty.name}'")

        for arg in expr.args:
            self._infer_expr(arg)
        if owner is None:
            return None

        method = self._lookup_method(owner, expr.name)
        if method is None:
            self._error(expr, f"[RES-0040] unknown method '{expr.name}' in '{owner.simple_name}'")
            return None
        if len(method.params) != len(expr.args):
            self._error(
                expr,
                f"[TYP-0040] method '{expr.name}' expects {len(method.params)} argument(s), got {len(expr.args)}",
            )
            return None

        self.result.call_targets[id(expr)] = method
        for arg, param in zip(expr.args, method.params):
            if isinstance(self._param_type(param), PrimitiveType):
                self._unbox_operand(arg, self.result.expr_types.get(id(arg)))
        return self._method_result_type(method)

    def _lookup_method(self, owner: TypeDeclaration, name: str) -> Optional[MethodDecl]:
        info = self._class_info(owner)
        if info is not None and name in info.methods:
            return info.methods[name]
        for method in self.types.library_methods(owner):
            if method.name == name:
                return method
        return None

    def _method_result_type(self, method: MethodDecl) -> Optional[Type]:
        if id(method) in self.binding.decl_types:
            return self.binding.decl_types[id(method)]
        # Library stub: resolve lazily and remember it.
        res = self.types.resolve(method.return_type)
        if res.type is not None:
            self.binding.decl_types[id(method)] = res.type
        return res.type

    def _param_type(self, param) -> Optional[Type]:
        if id(param) in self.binding.decl_types:
            return self.binding.decl_types[id(param)]
        return self.types.resolve(param.type).type

    def _infer_unary(self, expr: UnaryOp) -> Optional[Type]:
        if expr.op in ("++", "--"):
            return self._infer_lvalue(expr, expr.operand)

        operand_ty = self._infer_expr(expr.operand)
        if operand_ty is None:
            return None
        prim = self._unbox_operand(expr.operand, operand_ty)

        if expr.op == "!":
            if is_primitive(prim, "boolean"):
                return prim
        elif expr.op in ("-", "+", "~"):
            if is_primitive(prim, *NUMERIC_TYPES) and not (expr.op == "~" and prim.name in ("float", "double")):
                return self._unary_promote(prim)
        else:
            self._error(expr, f"[TYP-0020] unknown unary operator '{expr.op}'")
            return None

        self._error(expr, f"[TYP-0010] operator '{expr.op}' not applicable to '{format_type(operand_ty)}'")
        return None

    def _infer_binary(self, expr: BinaryOp) -> Optional[Type]:
        op = expr.op
        left_ty = self._infer_expr(expr.left)
        right_ty = self._infer_expr(expr.right)
        if left_ty is None or right_ty is None:
            return None

        # String concatenation
        if op == "+" and (is_string(left_ty) or is_string(right_ty)):
            return string_type()

        if op == "+" or op in _ARITHMETIC_OPS:
            return self._numeric_operands(expr, left_ty, right_ty, result=None)

        if op in _SHIFT_OPS:
            left = self._unbox_operand(expr.left, left_ty)
            right = self._unbox_operand(expr.right, right_ty)
            if self._is_integral(left) and self._is_integral(right):
                return self._unary_promote(left)
            return self._operator_error(expr, left_ty, right_ty)

        if op in _RELATIONAL_OPS:
            return self._numeric_operands(expr, left_ty, right_ty, result=get_primitive_type("boolean"))

        if op in _EQUALITY_OPS:
            # Unboxing only when the other side is primitive; two references compare by identity.
            if isinstance(left_ty, PrimitiveType) or isinstance(right_ty, PrimitiveType):
                self._unbox_operand(expr.left, left_ty)
                self._unbox_operand(expr.right, right_ty)
            return get_primitive_type("boolean")

        if op in _LOGICAL_OPS:
            left = self._unbox_operand(expr.left, left_ty)
            right = self._unbox_operand(expr.right, right_ty)
            if is_primitive(left, "boolean") and is_primitive(right, "boolean"):
                return get_primitive_type("boolean")
            return self._operator_error(expr, left_ty, right_ty)

        if op in _BITWISE_OPS:
            left = self._unbox_operand(expr.left, left_ty)
            right = self._unbox_operand(expr.right, right_ty)
            if is_primitive(left, "boolean") and is_primitive(right, "boolean"):
                return get_primitive_type("boolean")
            if self._is_integral(left) and self._is_integral(right):
                return self._binary_promote(left, right)
            return self._operator_error(expr, left_ty, right_ty)

        self._error(expr, f"[TYP-0020] unknown binary operator '{op}'")
        return None

    def _numeric_operands(
            self, expr: BinaryOp, left_ty: Type, right_ty: Type, result: Optional[Type]
    ) -> Optional[Type]:
        left = self._unbox_operand(expr.left, left_ty)
        right = self._unbox_operand(expr.right, right_ty)
        if is_primitive(left, *NUMERIC_TYPES) and is_primitive(right, *NUMERIC_TYPES):
            return result if result is not None else self._binary_promote(left, right)
        return self._operator_error(expr, left_ty, right_ty)

    def _operator_error(self, expr: BinaryOp, left_ty: Type, right_ty: Type) -> None:
        self._error(
            expr,
            f"[TYP-0010] operator '{expr.op}' not applicable to '{format_type(left_ty)}' and '{format_type(right_ty)}'",
        )
        return None

    def _infer_compound_assign(self, expr: CompoundAssign) -> Optional[Type]:
        target_ty = self._infer_lvalue(expr, expr.target)
        value_ty = self._infer_expr(expr.value)
        if target_ty is None or value_ty is None:
            return target_ty
        if expr.op == "+=" and is_string(target_ty):
            return target_ty
        # Arithmetic compound assignment unboxes both sides.
        self._unbox_operand(expr.target, target_ty)
        self._unbox_operand(expr.value, value_ty)
        return target_ty

    def _infer_lvalue(self, expr: Expr, target: Expr) -> Optional[Type]:
        inner = skip_parens(target)
        if not isinstance(inner, (NameRef, FieldAccess)):
            self._error(expr, "[TYP-0030] assignment target is not a variable")
            self._infer_expr(target)
            return None
        return self._infer_expr(target)

    def _infer_conditional(self, expr: ConditionalExpr) -> Optional[Type]:
        self._infer_and_convert(expr.cond, get_primitive_type("boolean"))
        then_ty = self._infer_expr(expr.then_expr)
        else_ty = self._infer_expr(expr.else_expr)
        if then_ty is None or else_ty is None:
            return then_ty or else_ty
        if then_ty == else_ty:
            return then_ty
        if isinstance(then_ty, NullType):
            return else_ty
        if isinstance(else_ty, NullType):
            return then_ty
        then_prim = unbox(then_ty) or then_ty
        else_prim = unbox(else_ty) or else_ty
        if isinstance(then_prim, PrimitiveType) and isinstance(else_prim, PrimitiveType):
            self._unbox_operand(expr.then_expr, then_ty)
            self._unbox_operand(expr.else_expr, else_ty)
            if then_prim == else_prim:
                return then_prim
            return self._binary_promote(then_prim, else_prim)
        return then_ty

    # ------------------------------------------------------------------
    # Promotion helpers
    # ------------------------------------------------------------------

    def _unbox_operand(self, expr: Expr, typ: Optional[Type]) -> Optional[Type]:
        """Apply unboxing conversion to an operand if its type is a box."""
        prim = unbox(typ) if typ is not None else None
        if prim is None:
            return typ
        self.result.unboxed.add(id(expr))
        return prim

    @staticmethod
    def _is_integral(t: Optional[Type]) -> bool:
        return is_primitive(t, "byte", "short", "char", "int", "long")

    @staticmethod
    def _unary_promote(t: PrimitiveType) -> PrimitiveType:
        if t.name in ("byte", "short", "char"):
            return get_primitive_type("int")
        return t

    @staticmethod
    def _binary_promote(a: PrimitiveType, b: PrimitiveType) -> PrimitiveType:
        for name in ("double", "float", "long"):
            if a.name == name or b.name == name:
                return get_primitive_type(name)
        return get_primitive_type("int")

    def _error(self, node: Optional[Node], message: str) -> None:
        self.result.diagnostics.append(diag_from_node("error", message, unit_name=self.unit.name, node=node))
