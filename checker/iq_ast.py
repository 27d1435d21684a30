#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


# ==========================
# AST definitions
# ==========================


@dataclass
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass
class Node:
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)


# --- types ---

@dataclass
class TypeRef(Node):
    name: str  # e.g. "int", "String", "java.lang.Class", "Color"
    args: List["TypeRef"] = field(default_factory=list)  # generic type arguments
    array_depth: int = 0  # number of []
    annotations: List[str] = field(default_factory=list)  # qualifier spellings, e.g. "Interned"


# --- declarations ---

class DeclKind(Enum):
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    ANNOTATION = "annotation"


class Decl(Node):
    pass


class VariableDecl(Decl):
    """Common marker for declarations that introduce a named value."""
    pass


@dataclass
class Param(VariableDecl):
    name: str
    type: TypeRef
    is_final: bool = False


@dataclass
class FieldDecl(VariableDecl):
    name: str
    type: TypeRef
    value: Optional["Expr"] = None
    is_static: bool = False
    is_final: bool = False


@dataclass
class EnumConstant(VariableDecl):
    name: str


@dataclass
class MethodDecl(Decl):
    name: str
    params: List[Param]
    return_type: TypeRef
    body: Optional["Block"] = None
    is_static: bool = False
    default_qualifier: Optional[str] = None  # spelling applied to unannotated locations inside


@dataclass
class ClassDecl(Decl):
    name: str
    kind: DeclKind = DeclKind.CLASS
    fields: List[FieldDecl] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)
    enum_constants: List[EnumConstant] = field(default_factory=list)
    type_params: List[str] = field(default_factory=list)
    default_qualifier: Optional[str] = None


@dataclass
class CompilationUnitNode(Node):
    name: str
    classes: List[ClassDecl]


# --- statements ---

@dataclass
class Stmt(Node):
    pass


@dataclass
class Block(Stmt):
    stmts: List[Stmt]


@dataclass
class LocalVarStmt(Stmt, VariableDecl):
    name: str
    type: TypeRef
    value: Optional["Expr"] = None
    is_final: bool = False


@dataclass
class ExprStmt(Stmt):
    expr: "Expr"


@dataclass
class ReturnStmt(Stmt):
    value: Optional["Expr"] = None


@dataclass
class IfStmt(Stmt):
    cond: "Expr"
    then_stmt: Stmt
    else_stmt: Optional[Stmt] = None


@dataclass
class WhileStmt(Stmt):
    cond: "Expr"
    body: Stmt


# --- expressions ---

class Expr(Node):
    pass


@dataclass
class IntLiteral(Expr):
    value: int


@dataclass
class LongLiteral(Expr):
    value: int


@dataclass
class DoubleLiteral(Expr):
    value: float


@dataclass
class CharLiteral(Expr):
    value: str


@dataclass
class BoolLiteral(Expr):
    value: bool


@dataclass
class StringLiteral(Expr):
    value: str


@dataclass
class NullLiteral(Expr):
    pass


@dataclass
class ClassLiteral(Expr):
    """`T.class`"""
    type_ref: TypeRef


@dataclass
class NameRef(Expr):
    name: str


@dataclass
class FieldAccess(Expr):
    obj: Expr
    field: str


@dataclass
class CallExpr(Expr):
    """Method call; `target` is None for an unqualified call in the enclosing class."""
    target: Optional[Expr]
    name: str
    args: List[Expr]


@dataclass
class NewExpr(Expr):
    type_ref: TypeRef
    args: List[Expr]


@dataclass
class UnaryOp(Expr):
    op: str  # "-", "+", "!", "~", "++", "--"
    operand: Expr


@dataclass
class BinaryOp(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass
class CompoundAssign(Expr):
    op: str  # "+=", "-=", ...
    target: Expr
    value: Expr


@dataclass
class Assign(Expr):
    target: Expr
    value: Expr


@dataclass
class ParenExpr(Expr):
    inner: Expr


@dataclass
class CastExpr(Expr):
    target_type: TypeRef
    expr: Expr


@dataclass
class ConditionalExpr(Expr):
    cond: Expr
    then_expr: Expr
    else_expr: Expr


LITERAL_NODES = (
    IntLiteral, LongLiteral, DoubleLiteral, CharLiteral, BoolLiteral, StringLiteral, NullLiteral, ClassLiteral,
)


def skip_parens(expr: Expr) -> Expr:
    while isinstance(expr, ParenExpr):
        expr = expr.inner
    return expr


def child_exprs(expr: Expr) -> List[Expr]:
    """Direct subexpressions of `expr`, in evaluation order."""
    if isinstance(expr, FieldAccess):
        return [expr.obj]
    if isinstance(expr, CallExpr):
        return ([expr.target] if expr.target is not None else []) + list(expr.args)
    if isinstance(expr, NewExpr):
        return list(expr.args)
    if isinstance(expr, UnaryOp):
        return [expr.operand]
    if isinstance(expr, BinaryOp):
        return [expr.left, expr.right]
    if isinstance(expr, (CompoundAssign, Assign)):
        return [expr.target, expr.value]
    if isinstance(expr, ParenExpr):
        return [expr.inner]
    if isinstance(expr, CastExpr):
        return [expr.expr]
    if isinstance(expr, ConditionalExpr):
        return [expr.cond, expr.then_expr, expr.else_expr]
    return []
