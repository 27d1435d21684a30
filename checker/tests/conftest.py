#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from iq_ast import (
    TypeRef, DeclKind, Param, FieldDecl, EnumConstant, MethodDecl, ClassDecl, CompilationUnitNode, Block,
    LocalVarStmt, ExprStmt, ReturnStmt,
)
from iq_context import CheckerContext
from iq_driver import QualifierDriver


# ---------------------------------------------------------------------------
# AST builders
# ---------------------------------------------------------------------------


def t(name: str, *args: TypeRef, dims: int = 0, ann=()) -> TypeRef:
    return TypeRef(name, list(args), dims, list(ann))


def color_enum() -> ClassDecl:
    return ClassDecl(
        "Color",
        kind=DeclKind.ENUM,
        enum_constants=[EnumConstant("RED"), EnumConstant("GREEN")],
    )


def method(name: str, params, ret: TypeRef, *stmts, **kwargs) -> MethodDecl:
    return MethodDecl(name, [Param(p, ty) for p, ty in params], ret, Block(list(stmts)), **kwargs)


def local(name: str, ty: TypeRef, value=None, is_final: bool = False) -> LocalVarStmt:
    return LocalVarStmt(name, ty, value, is_final)


def ret(expr) -> ReturnStmt:
    return ReturnStmt(expr)


def stmt(expr) -> ExprStmt:
    return ExprStmt(expr)


def unit_of(*classes: ClassDecl, name: str = "demo") -> CompilationUnitNode:
    return CompilationUnitNode(name, list(classes))


def main_class(*methods: MethodDecl, fields=(), **kwargs) -> ClassDecl:
    return ClassDecl("Main", fields=list(fields), methods=list(methods), **kwargs)


def final_field(name: str, ty: TypeRef, value) -> FieldDecl:
    return FieldDecl(name, ty, value, is_static=True, is_final=True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def infer():
    """Run qualifier inference over an in-memory unit.

    Usage:
        def test_something(infer):
            result = infer(unit_of(main_class(method("f", [], t("int"), ret(IntLiteral(1))))))
            assert not result.has_errors()
    """

    def _infer(unit: CompilationUnitNode, context: CheckerContext | None = None):
        return QualifierDriver(context).analyze(unit)

    return _infer


@pytest.fixture
def write_unit(tmp_path: Path):
    """Write a unit document (a dict) as JSON and return its path."""

    def _write(data, name: str = "unit.json") -> Path:
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data))
        return path

    return _write


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "RES-0060" or "[RES-0060]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)
