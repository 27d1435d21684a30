"""
Base typing and constant classification feeding the qualifier rules.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import t, color_enum, method, local, ret, stmt, unit_of, main_class, final_field, has_error_code
from iq_ast import (
    FieldDecl, IntLiteral, CharLiteral, StringLiteral, NullLiteral, ClassLiteral, NameRef, FieldAccess, CallExpr,
    BinaryOp, CompoundAssign, Assign, ParenExpr, CastExpr, ConditionalExpr, UnaryOp,
)
from iq_constants import ConstantClassifier
from iq_expr_types import ExpressionTyper
from iq_resolve import NameBinder
from iq_types import DeclaredType, PrimitiveType, format_type, is_enum, is_string


def _typed(unit):
    binding = NameBinder(unit).bind()
    typing = ExpressionTyper(unit, binding).check()
    return binding, typing


def _classifier(unit) -> ConstantClassifier:
    binding, typing = _typed(unit)
    return ConstantClassifier(binding, typing.expr_types, typing.field_targets)


# ---------------------------------------------------------------------------
# Base types
# ---------------------------------------------------------------------------


def test_numeric_promotion():
    e1 = BinaryOp("+", NameRef("b"), CharLiteral("x"))
    e2 = BinaryOp("*", NameRef("i"), NameRef("l"))
    e3 = BinaryOp("/", NameRef("l"), NameRef("d"))
    unit = unit_of(main_class(method(
        "f", [("b", t("byte")), ("i", t("int")), ("l", t("long")), ("d", t("double"))], t("void"),
        stmt(e1), stmt(e2), stmt(e3),
    )))

    _, typing = _typed(unit)

    assert not typing.diagnostics
    assert format_type(typing.expr_types[id(e1)]) == "int"
    assert format_type(typing.expr_types[id(e2)]) == "long"
    assert format_type(typing.expr_types[id(e3)]) == "double"


def test_string_concatenation_and_comparisons():
    concat = BinaryOp("+", IntLiteral(1), StringLiteral("x"))
    cmp = BinaryOp("<", IntLiteral(1), IntLiteral(2))
    unit = unit_of(main_class(method("f", [], t("void"), stmt(concat), stmt(cmp))))

    _, typing = _typed(unit)

    assert is_string(typing.expr_types[id(concat)])
    assert typing.expr_types[id(cmp)] == PrimitiveType("boolean")


def test_conditional_expression_unboxes_mixed_operands():
    cond = ConditionalExpr(NameRef("flag"), NameRef("boxed"), IntLiteral(0))
    unit = unit_of(main_class(method("f", [("flag", t("Boolean")), ("boxed", t("Integer"))], t("int"), ret(cond))))

    _, typing = _typed(unit)

    assert format_type(typing.expr_types[id(cond)]) == "int"
    assert id(cond.cond) in typing.unboxed
    assert id(cond.then_expr) in typing.unboxed


def test_null_conditional_takes_the_other_branch_type():
    cond = ConditionalExpr(NameRef("flag"), NullLiteral(), StringLiteral("x"))
    unit = unit_of(main_class(method("f", [("flag", t("boolean"))], t("String"), ret(cond))))

    _, typing = _typed(unit)

    assert is_string(typing.expr_types[id(cond)])


def test_static_field_access_and_call_targets():
    access = FieldAccess(NameRef("Color"), "RED")
    call = CallExpr(access, "ordinal", [])
    unit = unit_of(color_enum(), main_class(method("f", [], t("int"), ret(call))))

    binding, typing = _typed(unit)

    assert not typing.diagnostics
    assert typing.field_targets[id(access)] is binding.classes["Color"].node.enum_constants[0]
    assert typing.call_targets[id(call)].name == "ordinal"
    assert format_type(typing.expr_types[id(access)]) == "Color"
    assert is_enum(typing.expr_types[id(access)])
    assert not is_enum(typing.expr_types[id(call)])
    assert not is_enum(DeclaredType("Ghost", None))


def test_array_length():
    access = FieldAccess(NameRef("xs"), "length")
    unit = unit_of(main_class(method("f", [("xs", t("int", dims=1))], t("int"), ret(access))))

    _, typing = _typed(unit)

    assert typing.expr_types[id(access)] == PrimitiveType("int")


def test_boxed_argument_to_primitive_parameter_is_unboxed():
    arg = NameRef("boxed")
    call = CallExpr(NameRef("s"), "charAt", [arg])
    unit = unit_of(main_class(method("f", [("s", t("String")), ("boxed", t("Integer"))], t("char"), ret(call))))

    _, typing = _typed(unit)

    assert id(arg) in typing.unboxed


def test_string_compound_assignment_does_not_unbox():
    expr = CompoundAssign("+=", NameRef("s"), NameRef("boxed"))
    unit = unit_of(main_class(method("f", [("s", t("String")), ("boxed", t("Integer"))], t("void"), stmt(expr))))

    _, typing = _typed(unit)

    assert is_string(typing.expr_types[id(expr)])
    assert not typing.unboxed


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


def test_unknown_names_and_types_are_reported():
    unit = unit_of(main_class(method(
        "f", [("x", t("Widget"))], t("void"),
        stmt(NameRef("missing")),
    )))

    binding, typing = _typed(unit)

    assert has_error_code(binding.diagnostics, "RES-0010")
    assert has_error_code(binding.diagnostics, "RES-0020")


def test_wrong_type_argument_count_is_reported():
    unit = unit_of(main_class(fields=[FieldDecl("k", t("Class", t("String"), t("String")))]))

    binding, _ = _typed(unit)

    assert has_error_code(binding.diagnostics, "RES-0021")


def test_unknown_field_and_method_are_reported():
    unit = unit_of(color_enum(), main_class(method(
        "f", [("s", t("String"))], t("void"),
        stmt(FieldAccess(NameRef("Color"), "BLUE")),
        stmt(CallExpr(NameRef("s"), "reverse", [])),
    )))

    _, typing = _typed(unit)

    assert has_error_code(typing.diagnostics, "RES-0030")
    assert has_error_code(typing.diagnostics, "RES-0040")


def test_duplicate_declarations_are_reported():
    unit = unit_of(main_class(method(
        "f", [("x", t("int"))], t("void"),
        local("y", t("int")),
        local("y", t("int")),
    )), main_class())

    binding, _ = _typed(unit)

    assert sum(1 for d in binding.diagnostics if "[RES-0050]" in d.message) == 2


def test_operator_and_assignment_errors():
    unit = unit_of(main_class(method(
        "f", [("s", t("String")), ("b", t("boolean"))], t("void"),
        stmt(BinaryOp("-", NameRef("s"), IntLiteral(1))),
        stmt(UnaryOp("?", NameRef("b"))),
        stmt(Assign(IntLiteral(1), IntLiteral(2))),
        stmt(CallExpr(NameRef("s"), "charAt", [])),
        stmt(CallExpr(NameRef("b"), "toString", [])),
    )))

    _, typing = _typed(unit)

    for code in ("TYP-0010", "TYP-0020", "TYP-0030", "TYP-0040"):
        assert has_error_code(typing.diagnostics, code), code


# ---------------------------------------------------------------------------
# Constant classification
# ---------------------------------------------------------------------------


def test_final_primitive_and_string_fields_with_constant_initializers_are_constants():
    n = final_field("N", t("int"), BinaryOp("*", IntLiteral(2), IntLiteral(3)))
    s = final_field("S", t("String"), BinaryOp("+", StringLiteral("a"), NameRef("N")))
    obj = final_field("O", t("Object"), StringLiteral("a"))
    mutable = FieldDecl("M", t("int"), IntLiteral(1))
    no_init = FieldDecl("E", t("int"), None, is_final=True)
    unit = unit_of(main_class(fields=[n, s, obj, mutable, no_init]))

    classifier = _classifier(unit)

    assert classifier.is_compile_time_constant(n)
    assert classifier.is_compile_time_constant(s)
    assert not classifier.is_compile_time_constant(obj)
    assert not classifier.is_compile_time_constant(mutable)
    assert not classifier.is_compile_time_constant(no_init)


def test_self_referential_constant_is_not_a_constant():
    a = final_field("A", t("int"), BinaryOp("+", NameRef("B"), IntLiteral(1)))
    b = final_field("B", t("int"), BinaryOp("+", NameRef("A"), IntLiteral(1)))
    unit = unit_of(main_class(fields=[a, b]))

    classifier = _classifier(unit)

    assert not classifier.is_compile_time_constant(a)
    assert not classifier.is_compile_time_constant(b)


def test_constant_expressions_through_casts_and_conditionals():
    cast = CastExpr(t("long"), IntLiteral(1))
    cond = ConditionalExpr(BinaryOp("<", IntLiteral(1), IntLiteral(2)), IntLiteral(3), IntLiteral(4))
    null_init = final_field("NIL", t("String"), NullLiteral())
    unit = unit_of(main_class(
        method("f", [], t("void"), stmt(cast), stmt(cond)),
        fields=[null_init],
    ))

    classifier = _classifier(unit)

    assert classifier.is_constant_expression(cast)
    assert classifier.is_constant_expression(cond)
    assert not classifier.is_compile_time_constant(null_init)


def test_compile_time_string_predicate():
    lit = StringLiteral("a")
    paren_concat = ParenExpr(BinaryOp("+", StringLiteral("a"), StringLiteral("b")))
    mixed = BinaryOp("+", StringLiteral("a"), NameRef("s"))
    class_lit = ClassLiteral(t("String"))
    unit = unit_of(main_class(method(
        "f", [("s", t("String"))], t("void"),
        stmt(lit), stmt(paren_concat), stmt(mixed), stmt(class_lit),
    )))

    classifier = _classifier(unit)

    assert classifier.is_compile_time_string(lit)
    assert classifier.is_compile_time_string(paren_concat)
    assert classifier.is_string_concatenation(paren_concat)
    assert classifier.is_string_concatenation(mixed)
    assert not classifier.is_compile_time_string(mixed)
    assert not classifier.is_compile_time_string(class_lit)
