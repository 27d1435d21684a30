#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import is_dataclass, fields
from typing import List, Any, Optional

from iq_analysis import InferenceResult
from iq_ast import (
    Span, Node, TypeRef, CompilationUnitNode, ClassDecl, MethodDecl, Stmt, Block, LocalVarStmt, ExprStmt,
    ReturnStmt, IfStmt, WhileStmt, Expr, child_exprs,
)


def _format_span(span: Span | None) -> str:
    if span is None:
        return ""
    return f" @{span.start_line}:{span.start_column}-{span.end_line}:{span.end_column}"


def _header(node: Node) -> str:
    """ClassName(field1=..., field2=...) with scalar fields only."""
    simple_parts = []
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, (Node, list)) or value is None:
            continue
        simple_parts.append(f"{f.name}={value!r}")
    header = node.__class__.__name__
    if simple_parts:
        header = f"{header}({', '.join(simple_parts)})"
    return header


def format_node(node: Any, indent: int = 0) -> List[str]:
    """
    Generic, reflection-based AST pretty-printer.

    - Shows the node class name.
    - Prints simple scalar fields inline (excluding `span`).
    - Recursively prints child Node / list-of-Node fields on new indented lines.
    - Appends a concise span annotation like `@1:1-7:1` when available.
    """
    ind = "  " * indent

    if isinstance(node, list):
        lines: List[str] = []
        for elem in node:
            lines.extend(format_node(elem, indent))
        return lines

    if isinstance(node, Node) and is_dataclass(node):
        lines = [ind + _header(node) + _format_span(node.span)]
        for f in fields(node):
            if f.name == "span":
                continue
            value = getattr(node, f.name)
            if isinstance(value, Node):
                lines.append(ind + "  " + f"{f.name}:")
                lines.extend(format_node(value, indent + 2))
            elif isinstance(value, list) and value and any(isinstance(v, Node) for v in value):
                lines.append(ind + "  " + f"{f.name}:")
                lines.extend(format_node(value, indent + 2))
        return lines

    return [ind + repr(node)]


def format_unit(unit: CompilationUnitNode) -> str:
    return "\n".join(format_node(unit, indent=0))


# --- qualified listing ---

def _format_type_ref(tref: TypeRef) -> str:
    name = tref.name
    if tref.args:
        name += "<" + ", ".join(_format_type_ref(a) for a in tref.args) + ">"
    return name + "[]" * tref.array_depth


class QualifiedUnitPrinter:
    """Lists every declaration and expression of a unit with its inferred annotated type."""

    def __init__(self, result: InferenceResult):
        self.result = result
        self.lines: List[str] = []

    def format(self) -> str:
        unit = self.result.unit
        if unit is None:
            return ""
        self.lines.append(f"unit {unit.name}")
        for cls in unit.classes:
            self._format_class(cls)
        return "\n".join(self.lines)

    def _typed(self, node: Node) -> str:
        atype = self.result.annotated_type_of(node)
        return atype.format() if atype is not None else "<untyped>"

    def _format_class(self, cls: ClassDecl) -> None:
        self.lines.append(f"  {cls.kind.value} {cls.name}")
        for const in cls.enum_constants:
            self.lines.append(f"    constant {const.name}: {self._typed(const)}")
        for fld in cls.fields:
            self.lines.append(f"    field {fld.name}: {self._typed(fld)}")
            if fld.value is not None:
                self._format_expr(fld.value, 3)
        for method in cls.methods:
            self._format_method(method)

    def _format_method(self, method: MethodDecl) -> None:
        self.lines.append(f"    method {method.name}: {self._typed(method)}")
        for param in method.params:
            self.lines.append(f"      param {param.name}: {self._typed(param)}")
        if method.body is not None:
            self._format_stmt(method.body, 3)

    def _format_stmt(self, stmt: Stmt, indent: int) -> None:
        ind = "  " * indent
        if isinstance(stmt, Block):
            for s in stmt.stmts:
                self._format_stmt(s, indent)
        elif isinstance(stmt, LocalVarStmt):
            self.lines.append(f"{ind}local {stmt.name} ({_format_type_ref(stmt.type)}): {self._typed(stmt)}")
            if stmt.value is not None:
                self._format_expr(stmt.value, indent + 1)
        elif isinstance(stmt, ExprStmt):
            self._format_expr(stmt.expr, indent)
        elif isinstance(stmt, ReturnStmt):
            self.lines.append(f"{ind}return")
            if stmt.value is not None:
                self._format_expr(stmt.value, indent + 1)
        elif isinstance(stmt, IfStmt):
            self.lines.append(f"{ind}if")
            self._format_expr(stmt.cond, indent + 1)
            self._format_stmt(stmt.then_stmt, indent + 1)
            if stmt.else_stmt is not None:
                self.lines.append(f"{ind}else")
                self._format_stmt(stmt.else_stmt, indent + 1)
        elif isinstance(stmt, WhileStmt):
            self.lines.append(f"{ind}while")
            self._format_expr(stmt.cond, indent + 1)
            self._format_stmt(stmt.body, indent + 1)

    def _format_expr(self, expr: Expr, indent: int) -> None:
        line = f"{'  ' * indent}{_header(expr)}: {self._typed(expr)}"
        unboxed: Optional[Any] = self.result.unboxed.get(id(expr))
        if unboxed is not None:
            line += f" (unboxed: {unboxed.format()})"
        self.lines.append(line + _format_span(expr.span))
        for child in child_exprs(expr):
            self._format_expr(child, indent + 1)


def format_qualified_unit(result: InferenceResult) -> str:
    return QualifiedUnitPrinter(result).format()
