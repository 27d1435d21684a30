#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from iq_ast import (
    Node, TypeRef, CompilationUnitNode, ClassDecl, MethodDecl, Stmt, Block, LocalVarStmt, ExprStmt,
    ReturnStmt, IfStmt, WhileStmt, Expr, NameRef, FieldAccess, CallExpr, NewExpr, CastExpr, ParenExpr, child_exprs,
)
from iq_constants import ConstantClassifier
from iq_context import CheckerContext
from iq_diagnostics import Diagnostic, diag_from_node
from iq_expr_types import TypingResult
from iq_internal_error import ICELocation, InternalCheckerError
from iq_logger import log_debug
from iq_qualifiers import Qualifier
from iq_resolve import BindingResult, TypeResolver
from iq_types import AnnotatedType, DeclaredType, unbox, format_type


@dataclass(frozen=True)
class ImplicitFor:
    """Host-level implicit qualifier: applies to the given tree node classes and base type classes."""
    qualifier: Qualifier
    tree_classes: Tuple[type, ...] = ()
    type_classes: Tuple[type, ...] = ()


class AnnotatedTypeFactory:
    """
    Computes annotated types for the declarations and expressions of one
    compilation unit, delegating qualifier decisions to a checker plugin.

    Rules never write qualifiers themselves: they return a decision (or None)
    and `_apply` merges it into the AnnotatedType. The merge is
    first-writer-wins, so the order below is the precedence order.

    Declarations:
      1. explicit annotations on the declared TypeRef, stub annotations of library types
      2. plugin.annotate_implicit (e.g. compile-time constants)
      3. implicit-for type classes, type annotator post-pass
      4. default qualifier of the innermost enclosing method/class, else the plugin default

    Expressions:
      1. uses of a variable, method or parenthesized expression start from the
         referenced annotated type; casts and `new` from their explicit annotations
      2. tree annotator
      3. implicit-for tree classes
      4. implicit-for type classes, type annotator post-pass
      5. defaults

    The factory is usable only after `post_init()`.
    """

    def __init__(
            self,
            plugin,
            unit: CompilationUnitNode,
            binding: BindingResult,
            typing: TypingResult,
            context: Optional[CheckerContext] = None,
    ):
        self.plugin = plugin
        self.unit = unit
        self.binding = binding
        self.typing = typing
        self.context = context or CheckerContext.default()

        registry = plugin.registry
        self.registry = registry
        self.INTERNED = registry.INTERNED
        self.UNQUALIFIED = registry.UNQUALIFIED

        self.constants = ConstantClassifier(binding, typing.expr_types, typing.field_targets)
        self.types = TypeResolver(binding.classes)
        self.diagnostics: List[Diagnostic] = []

        # Annotated types keyed by id(node)
        self.decl_types: Dict[int, AnnotatedType] = {}
        self.expr_types: Dict[int, AnnotatedType] = {}
        self.unboxed: Dict[int, AnnotatedType] = {}

        self.tree_annotator = None
        self.type_annotator = None
        self.implicit_for: Optional[ImplicitFor] = None
        self._defaults: List[Qualifier] = []
        self._bad_defaults: Set[int] = set()
        self._initialized = False

    def post_init(self) -> None:
        """Second initialization phase; freezes the alias table and builds the annotators."""
        if self._initialized:
            return
        self.registry.freeze()
        self.tree_annotator = self.plugin.create_tree_annotator(self)
        self.type_annotator = self.plugin.create_type_annotator(self)
        self.implicit_for = self.plugin.implicit_for()
        self._initialized = True

    # ------------------------------------------------------------------
    # Host predicates used by plugins
    # ------------------------------------------------------------------

    def is_compile_time_string(self, node: Expr) -> bool:
        return self.constants.is_compile_time_string(node)

    def is_string_concatenation(self, node: Expr) -> bool:
        return self.constants.is_string_concatenation(node)

    def is_compile_time_constant(self, decl: object) -> bool:
        return self.constants.is_compile_time_constant(decl)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def annotate_unit(self) -> None:
        """Annotate every declaration first, then every expression."""
        self._require_init()
        for info in self.binding.classes.values():
            self._with_default(info.node, lambda cls=info.node: self._annotate_class_decls(cls))
        for info in self.binding.classes.values():
            self._with_default(info.node, lambda cls=info.node: self._annotate_class_bodies(cls))

    def get_declaration_type(self, decl: Node, tref: Optional[TypeRef] = None) -> Optional[AnnotatedType]:
        self._require_init()
        key = id(decl)
        if key in self.decl_types:
            return self.decl_types[key]
        base = self.binding.decl_types.get(key)
        # Library stubs are resolved on first use and never inherit a source default.
        is_library = isinstance(decl, MethodDecl) and key not in self.binding.method_owners
        if base is None and is_library:
            base = self.types.resolve(decl.return_type).type
        if base is None:
            return None

        atype = AnnotatedType.from_type(base)
        try:
            if tref is not None:
                self._apply_explicit(atype, tref, decl)
            self._apply_stub_annotations(atype)
            self._apply(atype, self.plugin.annotate_implicit(self, decl, atype), "implicit default", decl)
            self._annotate_implicit_types(atype)
            self._apply_defaults(atype, self.plugin.default_qualifier if is_library else None)
        except InternalCheckerError as e:
            raise self._locate(e, decl)

        self.decl_types[key] = atype
        log_debug(self.context, f"declaration {_describe(decl)}: {atype.format()}")
        return atype

    def get_annotated_type(self, expr: Expr) -> Optional[AnnotatedType]:
        self._require_init()
        key = id(expr)
        if key in self.expr_types:
            return self.expr_types[key]
        base = self.typing.expr_types.get(key)
        if base is None:
            return None

        try:
            atype = self._initial_expr_type(expr)
            if atype is None:
                atype = AnnotatedType.from_type(base)
                self._apply_stub_annotations(atype)
            self._apply(atype, self.tree_annotator.visit(expr, atype), "tree annotator", expr)
            if self.implicit_for is not None and isinstance(expr, self.implicit_for.tree_classes):
                self._apply(atype, self.implicit_for.qualifier, "implicit for tree", expr)
            self._annotate_implicit_types(atype)
            self._apply_defaults(atype)
        except InternalCheckerError as e:
            raise self._locate(e, expr)

        self.expr_types[key] = atype
        log_debug(self.context, f"expression {type(expr).__name__}: {atype.format()}")
        return atype

    def get_unboxed_type(self, boxed: AnnotatedType) -> AnnotatedType:
        """The primitive counterpart of a boxed type, with the plugin's unboxing qualifier layered on."""
        self._require_init()
        prim = unbox(boxed.base)
        if prim is None:
            raise InternalCheckerError(f"[ICE-0200] cannot unbox non-box type '{format_type(boxed.base)}'")
        primitive = AnnotatedType.from_type(prim)
        self._apply(primitive, self.plugin.unboxed_qualifier(primitive), "unboxing", None)
        return primitive

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _annotate_class_decls(self, cls: ClassDecl) -> None:
        for const in cls.enum_constants:
            self.get_declaration_type(const)
        for fld in cls.fields:
            self.get_declaration_type(fld, fld.type)
        for method in cls.methods:
            self._with_default(method, lambda m=method: self._annotate_method_decls(m))

    def _annotate_method_decls(self, method: MethodDecl) -> None:
        self.get_declaration_type(method, method.return_type)
        for param in method.params:
            self.get_declaration_type(param, param.type)
        if method.body is not None:
            self._annotate_local_decls(method.body)

    def _annotate_local_decls(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            for s in stmt.stmts:
                self._annotate_local_decls(s)
        elif isinstance(stmt, LocalVarStmt):
            self.get_declaration_type(stmt, stmt.type)
        elif isinstance(stmt, IfStmt):
            self._annotate_local_decls(stmt.then_stmt)
            if stmt.else_stmt is not None:
                self._annotate_local_decls(stmt.else_stmt)
        elif isinstance(stmt, WhileStmt):
            self._annotate_local_decls(stmt.body)

    def _annotate_class_bodies(self, cls: ClassDecl) -> None:
        for fld in cls.fields:
            if fld.value is not None:
                self._annotate_expr_tree(fld.value)
        for method in cls.methods:
            if method.body is not None:
                self._with_default(method, lambda m=method: self._annotate_stmt(m.body))

    def _annotate_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            for s in stmt.stmts:
                self._annotate_stmt(s)
        elif isinstance(stmt, LocalVarStmt):
            if stmt.value is not None:
                self._annotate_expr_tree(stmt.value)
        elif isinstance(stmt, ExprStmt):
            self._annotate_expr_tree(stmt.expr)
        elif isinstance(stmt, ReturnStmt):
            if stmt.value is not None:
                self._annotate_expr_tree(stmt.value)
        elif isinstance(stmt, IfStmt):
            self._annotate_expr_tree(stmt.cond)
            self._annotate_stmt(stmt.then_stmt)
            if stmt.else_stmt is not None:
                self._annotate_stmt(stmt.else_stmt)
        elif isinstance(stmt, WhileStmt):
            self._annotate_expr_tree(stmt.cond)
            self._annotate_stmt(stmt.body)

    def _annotate_expr_tree(self, expr: Expr) -> None:
        # The node's own result first; operands are visited independently afterwards.
        atype = self.get_annotated_type(expr)
        for child in child_exprs(expr):
            self._annotate_expr_tree(child)
        if atype is not None and id(expr) in self.typing.unboxed:
            self.unboxed[id(expr)] = self.get_unboxed_type(atype)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _initial_expr_type(self, expr: Expr) -> Optional[AnnotatedType]:
        """Annotated type an expression inherits from what it refers to, if anything."""
        if isinstance(expr, ParenExpr):
            inner = self.get_annotated_type(expr.inner)
            return inner.deep_copy() if inner is not None else None
        if isinstance(expr, (NameRef, FieldAccess)):
            decl = self.constants.referenced_decl(expr)
            decl_type = self.decl_types.get(id(decl)) if decl is not None else None
            if decl_type is None and decl is not None:
                decl_type = self.get_declaration_type(decl, getattr(decl, "type", None))
            return decl_type.deep_copy() if decl_type is not None else None
        if isinstance(expr, CallExpr):
            method = self.typing.call_targets.get(id(expr))
            ret = self.get_declaration_type(method, method.return_type) if method is not None else None
            return ret.deep_copy() if ret is not None else None
        if isinstance(expr, (CastExpr, NewExpr)):
            tref = expr.target_type if isinstance(expr, CastExpr) else expr.type_ref
            base = self.typing.expr_types[id(expr)]
            atype = AnnotatedType.from_type(base)
            self._apply_explicit(atype, tref, expr)
            self._apply_stub_annotations(atype)
            return atype
        return None

    def _apply_explicit(self, atype: AnnotatedType, tref: TypeRef, node: Node) -> None:
        """Explicit annotations written on `tref`; on arrays they annotate the element type."""
        target = atype
        for _ in range(tref.array_depth):
            if target.component is None:
                break
            target = target.component
        for spelling in tref.annotations:
            qualifier = self.registry.resolve(spelling)
            if qualifier is None:
                log_debug(self.context, f"ignoring annotation '@{spelling}' (not an interning qualifier)")
                continue
            if not target.add_qualifier(qualifier):
                self.diagnostics.append(diag_from_node(
                    "warning",
                    f"[RES-0061] conflicting qualifier '@{spelling}' ignored; type is already @{target.qualifier.value}",
                    unit_name=self.unit.name,
                    node=node,
                ))
        for arg_type, arg_ref in zip(target.type_args, tref.args):
            self._apply_explicit(arg_type, arg_ref, node)

    def _apply_stub_annotations(self, atype: AnnotatedType) -> None:
        base = atype.base
        if isinstance(base, DeclaredType) and base.decl is not None:
            for spelling in base.decl.annotations:
                qualifier = self.registry.resolve(spelling)
                if qualifier is not None:
                    atype.add_qualifier(qualifier)
        for child in atype.children():
            self._apply_stub_annotations(child)

    def _annotate_implicit_types(self, atype: AnnotatedType) -> None:
        """Implicit-for type classes and the type annotator, at every position of the type."""
        if self.implicit_for is not None and isinstance(atype.base, self.implicit_for.type_classes):
            atype.add_qualifier(self.implicit_for.qualifier)
        if isinstance(atype.base, DeclaredType):
            decision = self.type_annotator.visit_declared(atype)
            if decision is not None:
                atype.add_qualifier(decision)
        for child in atype.children():
            self._annotate_implicit_types(child)

    def _apply_defaults(self, atype: AnnotatedType, default: Optional[Qualifier] = None) -> None:
        if default is None:
            default = self._defaults[-1] if self._defaults else self.plugin.default_qualifier
        atype.add_qualifier(default)
        for child in atype.children():
            self._apply_defaults(child, default)

    def _apply(self, atype: AnnotatedType, decision: Optional[Qualifier], source: str, node: Optional[Node]) -> None:
        if decision is None:
            return
        if atype.add_qualifier(decision):
            log_debug(self.context, f"{source}: @{decision.value} on {format_type(atype.base)}")
        else:
            log_debug(
                self.context,
                f"{source}: @{decision.value} not applied to {format_type(atype.base)}; already @{atype.qualifier.value}",
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _with_default(self, owner: Node, action) -> None:
        """Run `action` with the `default_qualifier` of `owner` (class or method) in effect."""
        spelling = getattr(owner, "default_qualifier", None)
        qualifier = None
        if spelling is not None:
            qualifier = self.registry.resolve(spelling)
            if qualifier is None and id(owner) not in self._bad_defaults:
                self._bad_defaults.add(id(owner))
                self.diagnostics.append(diag_from_node(
                    "error",
                    f"[RES-0060] unknown default qualifier '@{spelling.lstrip('@')}'",
                    unit_name=self.unit.name,
                    node=owner,
                ))
        if qualifier is None:
            action()
            return
        self._defaults.append(qualifier)
        try:
            action()
        finally:
            self._defaults.pop()

    def _require_init(self) -> None:
        if not self._initialized:
            raise InternalCheckerError("[ICE-0001] AnnotatedTypeFactory used before post_init()")

    def _locate(self, error: InternalCheckerError, node: Optional[Node]) -> InternalCheckerError:
        if node is None:
            return error
        return error.at(ICELocation.of(self.unit.name, node))


def _describe(decl: Node) -> str:
    name = getattr(decl, "name", None)
    return f"{type(decl).__name__} '{name}'" if name else type(decl).__name__
