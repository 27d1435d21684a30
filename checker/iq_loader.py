#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
JSON interchange for compilation units.

A unit document is a tree of objects tagged with "node" (the AST class name);
every other key is a field of that class, and "span" is an optional
[start_line, start_column, end_line, end_column] list:

    {"node": "CompilationUnitNode", "name": "demo", "classes": [
        {"node": "ClassDecl", "name": "Color", "kind": "enum",
         "enum_constants": [{"node": "EnumConstant", "name": "RED"}]}]}
"""

import json
from pathlib import Path
from typing import Any, Dict, Union, get_args, get_origin, get_type_hints

import iq_ast
from iq_ast import Node, Span, ClassDecl, CompilationUnitNode, DeclKind


class UnitFormatError(ValueError):
    """Raised when a unit document does not describe a well-formed AST."""
    pass


_NODE_CLASSES: Dict[str, type] = {
    name: cls
    for name, cls in vars(iq_ast).items()
    # Only concrete dataclass nodes (marker classes like Expr inherit the fields but are not decorated).
    if isinstance(cls, type) and issubclass(cls, Node) and "__dataclass_fields__" in cls.__dict__ and cls is not Node
}

_FIELD_TYPES: Dict[str, Dict[str, Any]] = {name: get_type_hints(cls) for name, cls in _NODE_CLASSES.items()}


def load_unit(path: Path) -> CompilationUnitNode:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise UnitFormatError(f"{path}: not UTF-8 text: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise UnitFormatError(f"{path}: invalid JSON: {e}") from e
    return unit_from_dict(data)


def unit_from_dict(data: Any) -> CompilationUnitNode:
    unit = _convert(data, "$")
    if not isinstance(unit, CompilationUnitNode):
        raise UnitFormatError("$: top-level object must be a CompilationUnitNode")
    return unit


def _convert(value: Any, path: str) -> Any:
    if isinstance(value, list):
        return [_convert(v, f"{path}[{i}]") for i, v in enumerate(value)]
    if not isinstance(value, dict):
        return value

    name = value.get("node")
    if name is None:
        raise UnitFormatError(f"{path}: object without a 'node' tag")
    cls = _NODE_CLASSES.get(name)
    if cls is None:
        raise UnitFormatError(f"{path}: unknown node kind '{name}'")

    kwargs: Dict[str, Any] = {}
    for key, v in value.items():
        if key == "node":
            continue
        if key == "span":
            kwargs["span"] = _span(v, path)
            continue
        kwargs[key] = _convert(v, f"{path}.{key}")

    if cls is ClassDecl and "kind" in kwargs:
        try:
            kwargs["kind"] = DeclKind(kwargs["kind"])
        except (ValueError, TypeError) as e:
            raise UnitFormatError(f"{path}.kind: {e}") from e

    hints = _FIELD_TYPES[name]
    for key, v in kwargs.items():
        # Unknown keys are left for the constructor to reject.
        if key == "span" or key not in hints:
            continue
        if not _conforms(v, hints[key]):
            raise UnitFormatError(f"{path}.{key}: expected {_describe(hints[key])}, got {_describe_value(v)}")

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise UnitFormatError(f"{path}: {name}: {e}") from e


def _conforms(value: Any, hint: Any) -> bool:
    origin = get_origin(hint)
    if origin is Union:
        return any(_conforms(value, h) for h in get_args(hint))
    if origin is list:
        (item,) = get_args(hint)
        return isinstance(value, list) and all(_conforms(v, item) for v in value)
    if hint is type(None):
        return value is None
    # JSON has no separate bool/int/float types.
    if isinstance(value, bool):
        return hint is bool
    if hint is float:
        return isinstance(value, (int, float))
    return isinstance(value, hint)


def _describe(hint: Any) -> str:
    origin = get_origin(hint)
    if origin is Union:
        return " or ".join(_describe(h) for h in get_args(hint))
    if origin is list:
        return f"list of {_describe(get_args(hint)[0])}"
    if hint is type(None):
        return "null"
    return hint.__name__


def _describe_value(value: Any) -> str:
    if isinstance(value, list):
        kinds = sorted({_describe_value(v) for v in value})
        return f"list of {' and '.join(kinds)}" if kinds else "list"
    if isinstance(value, Node):
        return type(value).__name__
    return "null" if value is None else type(value).__name__


def _span(value: Any, path: str) -> Span:
    if not (isinstance(value, list) and len(value) == 4 and all(isinstance(x, int) for x in value)):
        raise UnitFormatError(f"{path}.span: expected [start_line, start_column, end_line, end_column]")
    return Span(*value)
