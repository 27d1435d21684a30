#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import t, color_enum, method, local, ret, stmt, unit_of, main_class, final_field
from iq_analysis import InferenceResult
from iq_ast import (
    Span, IfStmt, WhileStmt, Block, IntLiteral, StringLiteral, NameRef, FieldAccess, BinaryOp, CompoundAssign,
)
from iq_printer import format_qualified_unit, format_unit


def test_format_unit_is_reflection_based():
    lit = IntLiteral(7, span=Span(1, 1, 1, 2))
    unit = unit_of(main_class(method("f", [], t("int"), ret(lit))))

    text = format_unit(unit)
    lines = text.splitlines()

    assert lines[0] == "CompilationUnitNode(name='demo')"
    assert any(line.strip() == "IntLiteral(value=7) @1:1-1:2" for line in lines)
    assert any(line.strip() == "MethodDecl(name='f', is_static=False)" for line in lines)


def test_qualified_listing_covers_declarations_statements_and_expressions(infer):
    cond = BinaryOp("<", NameRef("i"), NameRef("LIMIT"))
    bump = CompoundAssign("+=", NameRef("i"), IntLiteral(1))
    unit = unit_of(
        color_enum(),
        main_class(
            method(
                "loop", [("c", t("Color"))], t("void"),
                local("i", t("int"), IntLiteral(0)),
                WhileStmt(cond, Block([stmt(bump)])),
                IfStmt(
                    BinaryOp("==", NameRef("c"), FieldAccess(NameRef("Color"), "RED")),
                    ret(None),
                    stmt(StringLiteral("other")),
                ),
            ),
            fields=[final_field("LIMIT", t("int"), IntLiteral(10))],
        ),
    )

    result = infer(unit)
    text = format_qualified_unit(result)

    expected = [
        "unit demo",
        "  enum Color",
        "    constant RED: @Interned Color",
        "    constant GREEN: @Interned Color",
        "  class Main",
        "    field LIMIT: @Interned int",
        "      IntLiteral(value=10): @Interned int",
        "    method loop: @Unqualified void",
        "      param c: @Interned Color",
        "      local i (int): @Interned int",
        "        IntLiteral(value=0): @Interned int",
        "      while",
        "        BinaryOp(op='<'): @Interned boolean",
        "          NameRef(name='i'): @Interned int",
        "          NameRef(name='LIMIT'): @Interned int",
        "        CompoundAssign(op='+='): @Unqualified int",
        "          NameRef(name='i'): @Interned int",
        "          IntLiteral(value=1): @Interned int",
        "      if",
        "        BinaryOp(op='=='): @Interned boolean",
        "          NameRef(name='c'): @Interned Color",
        "          FieldAccess(field='RED'): @Interned Color",
        "            NameRef(name='Color'): <untyped>",
        "        return",
        "      else",
        "        StringLiteral(value='other'): @Interned String",
    ]
    assert text.splitlines() == expected


def test_empty_result_prints_nothing():
    assert format_qualified_unit(InferenceResult()) == ""
