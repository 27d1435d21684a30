#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from iq_ast import (
    Node, TypeRef, DeclKind, VariableDecl, Param, MethodDecl, ClassDecl,
    CompilationUnitNode, Stmt, Block, LocalVarStmt, ExprStmt, ReturnStmt, IfStmt, WhileStmt, Expr, NameRef,
    ClassLiteral, NewExpr, CastExpr, child_exprs,
)
from iq_diagnostics import Diagnostic, diag_from_node
from iq_types import (
    Type, TypeDeclaration, DeclaredType, ArrayType, TypeVariable, PRIMITIVE_TYPES, LIBRARY_DECLS, OBJECT_DECL,
    ENUM_DECL, get_primitive_type, get_void_type,
)


def _m(name: str, ret: TypeRef, *params: Tuple[str, TypeRef]) -> MethodDecl:
    return MethodDecl(name, [Param(p, t) for p, t in params], ret)


# Library method signatures (a tiny stub library); annotations on return types are honoured.
LIBRARY_METHODS: Dict[str, List[MethodDecl]] = {
    "java.lang.Object": [
        _m("equals", TypeRef("boolean"), ("other", TypeRef("Object"))),
        _m("hashCode", TypeRef("int")),
        _m("toString", TypeRef("String")),
        _m("getClass", TypeRef("Class")),
    ],
    "java.lang.String": [
        _m("intern", TypeRef("String", annotations=["Interned"])),
        _m("length", TypeRef("int")),
        _m("isEmpty", TypeRef("boolean")),
        _m("charAt", TypeRef("char"), ("index", TypeRef("int"))),
        _m("concat", TypeRef("String"), ("str", TypeRef("String"))),
        _m("trim", TypeRef("String")),
    ],
    "java.lang.Enum": [
        _m("name", TypeRef("String")),
        _m("ordinal", TypeRef("int")),
    ],
    "java.lang.Integer": [_m("intValue", TypeRef("int"))],
    "java.lang.Long": [_m("longValue", TypeRef("long"))],
    "java.lang.Double": [_m("doubleValue", TypeRef("double"))],
    "java.lang.Boolean": [_m("booleanValue", TypeRef("boolean"))],
    "java.lang.Character": [_m("charValue", TypeRef("char"))],
}


@dataclass
class ClassInfo:
    """Members of a class declared in the compilation unit."""
    decl: TypeDeclaration
    node: ClassDecl
    fields: Dict[str, VariableDecl] = field(default_factory=dict)  # fields and enum constants
    methods: Dict[str, MethodDecl] = field(default_factory=dict)


@dataclass(frozen=True)
class TypeResolution:
    type: Optional[Type]
    error: Optional[str]  # diagnostic message, already carrying its [RES-xxxx] code


@dataclass
class Scope:
    """
    A lexical scope for variables (fields, parameters, locals).

    Scopes form a tree via the 'parent' link.
    """
    parent: Optional[Scope]
    symbols: Dict[str, VariableDecl] = field(default_factory=dict)

    def lookup(self, name: str) -> Optional[VariableDecl]:
        scope: Optional[Scope] = self
        while scope is not None:
            sym = scope.symbols.get(name)
            if sym is not None:
                return sym
            scope = scope.parent
        return None


Binding = Union[VariableDecl, TypeDeclaration]


@dataclass
class BindingResult:
    classes: Dict[str, ClassInfo] = field(default_factory=dict)  # by simple name
    # id(NameRef) -> declaration it refers to
    bindings: Dict[int, Binding] = field(default_factory=dict)
    # id(VariableDecl | MethodDecl) -> declared base type (method: return type)
    decl_types: Dict[int, Type] = field(default_factory=dict)
    # id(TypeRef) -> resolved type, for type references in expression position
    ref_types: Dict[int, Type] = field(default_factory=dict)
    # id(MethodDecl) -> owning class
    method_owners: Dict[int, ClassInfo] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class TypeResolver:
    """Turns TypeRefs into base types against the unit's classes and the java.lang library."""

    def __init__(self, classes: Dict[str, ClassInfo]):
        self.classes = classes

    def lookup_decl(self, name: str) -> Optional[TypeDeclaration]:
        info = self.classes.get(name)
        if info is not None:
            return info.decl
        if name in LIBRARY_DECLS:
            return LIBRARY_DECLS[name]
        return LIBRARY_DECLS.get(f"java.lang.{name}")

    def resolve(self, tref: TypeRef, type_params: Tuple[str, ...] = ()) -> TypeResolution:
        t: Optional[Type]
        if tref.name in PRIMITIVE_TYPES:
            t = get_primitive_type(tref.name)
        elif tref.name == "void":
            t = get_void_type()
        elif tref.name in type_params:
            t = TypeVariable(tref.name)
        else:
            decl = self.lookup_decl(tref.name)
            if decl is None:
                return TypeResolution(None, f"[RES-0020] unknown type '{tref.name}'")
            if tref.args and len(tref.args) != len(decl.type_params):
                return TypeResolution(
                    None,
                    f"[RES-0021] type '{tref.name}' expects {len(decl.type_params)} type argument(s), got {len(tref.args)}",
                )
            args: List[Type] = []
            for arg in tref.args:
                res = self.resolve(arg, type_params)
                if res.type is None:
                    return res
                args.append(res.type)
            t = DeclaredType(decl.qualified_name, decl, tuple(args))

        for _ in range(tref.array_depth):
            t = ArrayType(t)
        return TypeResolution(t, None)

    def library_methods(self, decl: TypeDeclaration) -> List[MethodDecl]:
        methods = list(LIBRARY_METHODS.get(decl.qualified_name, []))
        if decl.kind is DeclKind.ENUM:
            methods.extend(LIBRARY_METHODS[ENUM_DECL.qualified_name])
        methods.extend(LIBRARY_METHODS[OBJECT_DECL.qualified_name])
        return methods


class NameBinder:
    """
    Binds every NameRef in a compilation unit to its declaration and resolves
    declared types (fields, enum constants, parameters, locals, method results).
    """

    def __init__(self, unit: CompilationUnitNode):
        self.unit = unit
        self.result = BindingResult()
        self.types = TypeResolver(self.result.classes)
        self._type_params: Tuple[str, ...] = ()

    def bind(self) -> BindingResult:
        for cls in self.unit.classes:
            decl = TypeDeclaration(
                f"{self.unit.name}.{cls.name}", cls.kind, tuple(cls.type_params), node=cls,
            )
            if cls.name in self.result.classes:
                self._error(cls, f"[RES-0050] duplicate class '{cls.name}'")
                continue
            self.result.classes[cls.name] = ClassInfo(decl, cls)

        for info in self.result.classes.values():
            self._collect_members(info)
        for info in self.result.classes.values():
            self._bind_class(info)
        return self.result

    # --- signatures ---

    def _collect_members(self, info: ClassInfo) -> None:
        cls = info.node
        self._type_params = tuple(cls.type_params)
        enum_type = DeclaredType(info.decl.qualified_name, info.decl)
        for const in cls.enum_constants:
            self._declare_member(info, const.name, const)
            self.result.decl_types[id(const)] = enum_type
        for fld in cls.fields:
            self._declare_member(info, fld.name, fld)
            self._resolve_decl_type(fld, fld.type)
        for method in cls.methods:
            if method.name in info.methods:
                self._error(method, f"[RES-0050] duplicate method '{cls.name}.{method.name}'")
                continue
            info.methods[method.name] = method
            self.result.method_owners[id(method)] = info
            self._resolve_decl_type(method, method.return_type)
            for param in method.params:
                self._resolve_decl_type(param, param.type)
        self._type_params = ()

    def _declare_member(self, info: ClassInfo, name: str, decl: VariableDecl) -> None:
        if name in info.fields:
            self._error(decl, f"[RES-0050] duplicate field '{info.node.name}.{name}'")
            return
        info.fields[name] = decl

    def _resolve_decl_type(self, decl: Node, tref: TypeRef) -> Optional[Type]:
        res = self.types.resolve(tref, self._type_params)
        if res.type is None:
            self._error(tref, res.error or f"[RES-0020] unknown type '{tref.name}'")
            return None
        self.result.decl_types[id(decl)] = res.type
        return res.type

    # --- bodies ---

    def _bind_class(self, info: ClassInfo) -> None:
        self._type_params = tuple(info.node.type_params)
        class_scope = Scope(None, dict(info.fields))
        for fld in info.node.fields:
            if fld.value is not None:
                self._bind_expr(fld.value, class_scope)
        for method in info.node.methods:
            method_scope = Scope(class_scope)
            for param in method.params:
                self._declare_local(method_scope, param.name, param)
            if method.body is not None:
                self._bind_stmt(method.body, method_scope)
        self._type_params = ()

    def _declare_local(self, scope: Scope, name: str, decl: VariableDecl) -> None:
        if name in scope.symbols:
            self._error(decl, f"[RES-0050] variable '{name}' already declared in this scope")
            return
        scope.symbols[name] = decl

    def _bind_stmt(self, stmt: Stmt, scope: Scope) -> None:
        if isinstance(stmt, Block):
            inner = Scope(scope)
            for s in stmt.stmts:
                self._bind_stmt(s, inner)
        elif isinstance(stmt, LocalVarStmt):
            if stmt.value is not None:
                self._bind_expr(stmt.value, scope)
            self._resolve_decl_type(stmt, stmt.type)
            self._declare_local(scope, stmt.name, stmt)
        elif isinstance(stmt, ExprStmt):
            self._bind_expr(stmt.expr, scope)
        elif isinstance(stmt, ReturnStmt):
            if stmt.value is not None:
                self._bind_expr(stmt.value, scope)
        elif isinstance(stmt, IfStmt):
            self._bind_expr(stmt.cond, scope)
            self._bind_stmt(stmt.then_stmt, Scope(scope))
            if stmt.else_stmt is not None:
                self._bind_stmt(stmt.else_stmt, Scope(scope))
        elif isinstance(stmt, WhileStmt):
            self._bind_expr(stmt.cond, scope)
            self._bind_stmt(stmt.body, Scope(scope))

    def _bind_expr(self, expr: Expr, scope: Scope) -> None:
        if isinstance(expr, NameRef):
            var = scope.lookup(expr.name)
            if var is not None:
                self.result.bindings[id(expr)] = var
                return
            type_decl = self.types.lookup_decl(expr.name)
            if type_decl is not None:
                self.result.bindings[id(expr)] = type_decl
                return
            self._error(expr, f"[RES-0010] unknown name '{expr.name}'")
            return

        if isinstance(expr, ClassLiteral):
            self._resolve_ref(expr.type_ref)
        elif isinstance(expr, NewExpr):
            self._resolve_ref(expr.type_ref)
        elif isinstance(expr, CastExpr):
            self._resolve_ref(expr.target_type)

        for child in child_exprs(expr):
            self._bind_expr(child, scope)

    def _resolve_ref(self, tref: TypeRef) -> None:
        res = self.types.resolve(tref, self._type_params)
        if res.type is None:
            self._error(tref, res.error or f"[RES-0020] unknown type '{tref.name}'")
            return
        self.result.ref_types[id(tref)] = res.type

    def _error(self, node: Optional[Node], message: str) -> None:
        self.result.diagnostics.append(diag_from_node("error", message, unit_name=self.unit.name, node=node))
