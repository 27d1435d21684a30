"""
Type-directed qualifiers: enums at every position, primitives, unboxing,
java.lang.Class and library stub signatures.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import t, color_enum, method, local, ret, stmt, unit_of, main_class
from iq_ast import (
    ClassDecl, FieldDecl, IntLiteral, NullLiteral, ClassLiteral, NameRef, CallExpr, NewExpr, BinaryOp, CastExpr,
)
from iq_qualifiers import Qualifier

INTERNED = Qualifier.INTERNED
UNQUALIFIED = Qualifier.UNQUALIFIED


def _box_class() -> ClassDecl:
    return ClassDecl("Box", fields=[FieldDecl("value", t("T"))], type_params=["T"])


def test_enum_type_argument_is_interned_but_outer_type_is_not(infer):
    b = local("b", t("Box", t("Color")), NewExpr(t("Box", t("Color")), []))
    unit = unit_of(color_enum(), _box_class(), main_class(method("f", [], t("void"), b)))

    result = infer(unit)

    assert not result.has_errors()
    atype = result.annotated_type_of(b)
    assert atype.qualifier is UNQUALIFIED
    assert atype.type_args[0].qualifier is INTERNED
    assert atype.format() == "@Unqualified Box<@Interned Color>"
    assert result.annotated_type_of(b.value).format() == "@Unqualified Box<@Interned Color>"


def test_type_variable_field_takes_the_default(infer):
    box = _box_class()
    unit = unit_of(box)

    result = infer(unit)

    assert not result.has_errors()
    assert result.annotated_type_of(box.fields[0]).format() == "@Unqualified T"


def test_enum_array_interns_the_element_type_only(infer):
    p_method = method("f", [("colors", t("Color", dims=1))], t("void"))
    unit = unit_of(color_enum(), main_class(p_method))

    result = infer(unit)

    atype = result.annotated_type_of(p_method.params[0])
    assert atype.qualifier is UNQUALIFIED
    assert atype.component.qualifier is INTERNED
    assert atype.format() == "@Interned Color @Unqualified []"


def test_primitive_declarations_are_interned(infer):
    f = method("f", [("x", t("int")), ("flag", t("boolean"))], t("double"))
    unit = unit_of(main_class(f))

    result = infer(unit)

    assert result.qualifier_of(f) is INTERNED
    assert all(result.qualifier_of(p) is INTERNED for p in f.params)


def test_unboxing_result_is_interned(infer):
    x = local("x", t("int"), NameRef("boxed"))
    unit = unit_of(main_class(method("f", [("boxed", t("Integer"))], t("void"), x)))

    result = infer(unit)

    assert not result.has_errors()
    use = x.value
    assert result.qualifier_of(use) is UNQUALIFIED
    assert result.unboxed[id(use)].format() == "@Interned int"


def test_unboxed_arithmetic_operands_are_recorded(infer):
    expr = BinaryOp("*", NameRef("a"), NameRef("b"))
    unit = unit_of(main_class(method("f", [("a", t("Integer")), ("b", t("Long"))], t("long"), ret(expr))))

    result = infer(unit)

    assert not result.has_errors()
    assert result.annotated_type_of(expr).format() == "@Interned long"
    assert result.unboxed[id(expr.left)].format() == "@Interned int"
    assert result.unboxed[id(expr.right)].format() == "@Interned long"


def test_reference_comparison_of_boxes_does_not_unbox(infer):
    expr = BinaryOp("==", NameRef("a"), NameRef("b"))
    unit = unit_of(main_class(method("f", [("a", t("Integer")), ("b", t("Integer"))], t("boolean"), ret(expr))))

    result = infer(unit)

    assert id(expr.left) not in result.unboxed
    assert id(expr.right) not in result.unboxed


def test_class_literal_is_interned_with_interned_enum_argument(infer):
    lit = ClassLiteral(t("Color"))
    unit = unit_of(color_enum(), main_class(method("f", [], t("Class", t("Color")), ret(lit))))

    result = infer(unit)

    assert not result.has_errors()
    assert result.annotated_type_of(lit).format() == "@Interned Class<@Interned Color>"


def test_primitive_class_literal_boxes_its_argument(infer):
    lit = ClassLiteral(t("int"))
    unit = unit_of(main_class(method("f", [], t("void"), stmt(lit))))

    result = infer(unit)

    assert result.annotated_type_of(lit).format() == "@Interned Class<@Unqualified Integer>"


def test_class_typed_declaration_is_interned(infer):
    f = method("f", [("k", t("Class", t("String")))], t("void"))
    unit = unit_of(main_class(f))

    result = infer(unit)

    assert result.annotated_type_of(f.params[0]).format() == "@Interned Class<@Unqualified String>"


def test_null_literal_is_interned(infer):
    lit = NullLiteral()
    unit = unit_of(main_class(method("f", [], t("Object"), ret(lit))))

    result = infer(unit)

    assert result.qualifier_of(lit) is INTERNED


def test_intern_call_is_interned(infer):
    call = CallExpr(NameRef("s"), "intern", [])
    trim = CallExpr(NameRef("s"), "trim", [])
    unit = unit_of(main_class(method(
        "f", [("s", t("String"))], t("void"),
        stmt(call), stmt(trim),
    )))

    result = infer(unit)

    assert not result.has_errors()
    assert result.annotated_type_of(call).format() == "@Interned String"
    assert result.annotated_type_of(trim).format() == "@Unqualified String"


def test_library_calls_returning_primitives_and_class(infer):
    ordinal = CallExpr(NameRef("c"), "ordinal", [])
    name = CallExpr(NameRef("c"), "name", [])
    get_class = CallExpr(NameRef("c"), "getClass", [])
    int_value = CallExpr(NameRef("i"), "intValue", [])
    unit = unit_of(color_enum(), main_class(method(
        "f", [("c", t("Color")), ("i", t("Integer"))], t("void"),
        stmt(ordinal), stmt(name), stmt(get_class), stmt(int_value),
    )))

    result = infer(unit)

    assert not result.has_errors()
    assert result.annotated_type_of(ordinal).format() == "@Interned int"
    assert result.annotated_type_of(name).format() == "@Unqualified String"
    assert result.annotated_type_of(get_class).format() == "@Interned Class"
    assert result.annotated_type_of(int_value).format() == "@Interned int"


def test_source_method_call_copies_the_declared_return_type(infer):
    helper = method("helper", [], t("String", ann=["Interned"]), ret(NameRef("s")))
    call = CallExpr(None, "helper", [])
    unit = unit_of(main_class(
        helper,
        method("f", [], t("String"), ret(call)),
        fields=[FieldDecl("s", t("String"))],
    ))

    result = infer(unit)

    assert not result.has_errors()
    assert result.qualifier_of(helper) is INTERNED
    assert result.qualifier_of(call) is INTERNED


def test_cast_to_primitive_is_interned_and_cast_to_string_is_not(infer):
    to_int = CastExpr(t("int"), NameRef("d"))
    to_string = CastExpr(t("String"), NameRef("o"))
    unit = unit_of(main_class(method(
        "f", [("d", t("double")), ("o", t("Object"))], t("void"),
        stmt(to_int), stmt(to_string),
    )))

    result = infer(unit)

    assert not result.has_errors()
    assert result.qualifier_of(to_int) is INTERNED
    assert result.qualifier_of(to_string) is UNQUALIFIED


def test_new_object_is_unqualified(infer):
    obj = NewExpr(t("Object"), [])
    unit = unit_of(main_class(method("f", [], t("Object"), ret(obj))))

    result = infer(unit)

    assert result.annotated_type_of(obj).format() == "@Unqualified Object"


def test_int_literal_is_interned(infer):
    lit = IntLiteral(42)
    unit = unit_of(main_class(method("f", [], t("int"), ret(lit))))

    result = infer(unit)

    assert result.annotated_type_of(lit).format() == "@Interned int"
