#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Dict, Optional, List

from iq_ast import DeclKind
from iq_qualifiers import Qualifier

# ===========================================
# Base (unqualified) types seen by the checker
# ===========================================

PRIMITIVE_TYPES = ("boolean", "byte", "short", "char", "int", "long", "float", "double")
NUMERIC_TYPES = ("byte", "short", "char", "int", "long", "float", "double")


class Type:
    """
    Base class for all base types.
    Used only as a common marker; concrete types are dataclasses below.
    """
    pass


@dataclass(frozen=True)
class PrimitiveType(Type):
    name: str  # "int", "boolean", etc.


@dataclass(frozen=True)
class TypeDeclaration:
    """The defining declaration of a nominal type."""
    qualified_name: str
    kind: DeclKind
    type_params: Tuple[str, ...] = ()
    # Qualifier spellings declared on the type itself (library stubs), applied to every use.
    annotations: Tuple[str, ...] = ()
    node: Optional[object] = field(default=None, compare=False, repr=False)  # ClassDecl for source types

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class DeclaredType(Type):
    name: str
    decl: Optional[TypeDeclaration]
    args: Tuple[Type, ...] = ()


@dataclass(frozen=True)
class ArrayType(Type):
    component: Type


@dataclass(frozen=True)
class TypeVariable(Type):
    name: str


@dataclass(frozen=True)
class NullType(Type):
    pass


@dataclass(frozen=True)
class VoidType(Type):
    pass


# --- library declarations (java.lang) ---

def _lib(name: str, kind: DeclKind = DeclKind.CLASS, *type_params: str, annotations: Tuple[str, ...] = ()) -> TypeDeclaration:
    return TypeDeclaration(f"java.lang.{name}", kind, tuple(type_params), annotations)


OBJECT_DECL = _lib("Object")
STRING_DECL = _lib("String")
# There is exactly one Class object per loaded type.
CLASS_DECL = _lib("Class", DeclKind.CLASS, "T", annotations=("Interned",))
ENUM_DECL = _lib("Enum", DeclKind.CLASS, "E")

BOX_DECLS: Dict[str, TypeDeclaration] = {
    "boolean": _lib("Boolean"),
    "byte": _lib("Byte"),
    "short": _lib("Short"),
    "char": _lib("Character"),
    "int": _lib("Integer"),
    "long": _lib("Long"),
    "float": _lib("Float"),
    "double": _lib("Double"),
}

LIBRARY_DECLS: Dict[str, TypeDeclaration] = {
    d.qualified_name: d for d in (OBJECT_DECL, STRING_DECL, CLASS_DECL, ENUM_DECL, *BOX_DECLS.values())
}

_UNBOX: Dict[str, str] = {d.qualified_name: prim for prim, d in BOX_DECLS.items()}

_PRIMITIVE_CACHE: Dict[str, PrimitiveType] = {}
_NULL_TYPE = NullType()
_VOID_TYPE = VoidType()


def get_primitive_type(name: str) -> PrimitiveType:
    """
    Get (or create) a canonical PrimitiveType for a given name.
    """
    if name not in _PRIMITIVE_CACHE:
        _PRIMITIVE_CACHE[name] = PrimitiveType(name)
    return _PRIMITIVE_CACHE[name]


def get_null_type() -> NullType:
    return _NULL_TYPE


def get_void_type() -> VoidType:
    return _VOID_TYPE


def declared(decl: TypeDeclaration, *args: Type) -> DeclaredType:
    return DeclaredType(decl.qualified_name, decl, tuple(args))


def string_type() -> DeclaredType:
    return declared(STRING_DECL)


def is_string(t: Optional[Type]) -> bool:
    return isinstance(t, DeclaredType) and t.name == STRING_DECL.qualified_name


def is_primitive(t: Optional[Type], *names: str) -> bool:
    if not isinstance(t, PrimitiveType):
        return False
    return not names or t.name in names


def box(t: PrimitiveType) -> DeclaredType:
    return declared(BOX_DECLS[t.name])


def unbox(t: Type) -> Optional[PrimitiveType]:
    """Base unboxing conversion: boxed declared type -> primitive, None if `t` is not a box."""
    if isinstance(t, DeclaredType) and t.name in _UNBOX:
        return get_primitive_type(_UNBOX[t.name])
    return None


def is_enum(t: Optional[Type]) -> bool:
    return isinstance(t, DeclaredType) and t.decl is not None and t.decl.kind is DeclKind.ENUM


def _display_name(t: DeclaredType) -> str:
    if t.decl is not None:
        return t.decl.simple_name
    return t.name.removeprefix("java.lang.")


# --- type stringification for debugging ---

def format_type(t: Optional[Type]) -> str:
    if t is None:
        return "<none>"
    elif isinstance(t, PrimitiveType):
        return t.name
    elif isinstance(t, DeclaredType):
        name = _display_name(t)
        if t.args:
            return f"{name}<{', '.join(format_type(a) for a in t.args)}>"
        return name
    elif isinstance(t, ArrayType):
        return f"{format_type(t.component)}[]"
    elif isinstance(t, TypeVariable):
        return t.name
    elif isinstance(t, NullType):
        return "null"
    elif isinstance(t, VoidType):
        return "void"
    else:
        # Fallback (should not happen)
        return repr(t)


# ==========================
# Annotated types
# ==========================


@dataclass(eq=False)
class AnnotatedType:
    """
    A base type plus an optional qualifier, mirrored over the type structure.

    Created by the factory (one per expression / declaration); rules only ever
    touch the qualifier slot, through `add_qualifier`.
    """
    base: Type
    qualifier: Optional[Qualifier] = None
    type_args: List[AnnotatedType] = field(default_factory=list)
    component: Optional[AnnotatedType] = None

    @staticmethod
    def from_type(t: Type) -> AnnotatedType:
        if isinstance(t, DeclaredType):
            return AnnotatedType(t, type_args=[AnnotatedType.from_type(a) for a in t.args])
        if isinstance(t, ArrayType):
            return AnnotatedType(t, component=AnnotatedType.from_type(t.component))
        return AnnotatedType(t)

    def is_annotated(self) -> bool:
        return self.qualifier is not None

    def add_qualifier(self, qualifier: Qualifier) -> bool:
        """
        First-writer-wins merge: set the qualifier only if none is set yet.

        Returns True if the type now carries `qualifier`.
        """
        if self.qualifier is None:
            self.qualifier = qualifier
        return self.qualifier is qualifier

    def deep_copy(self) -> AnnotatedType:
        return AnnotatedType(
            self.base,
            self.qualifier,
            [a.deep_copy() for a in self.type_args],
            self.component.deep_copy() if self.component is not None else None,
        )

    def children(self) -> List[AnnotatedType]:
        if self.component is not None:
            return [self.component]
        return list(self.type_args)

    def format(self) -> str:
        qual = f"@{self.qualifier.value} " if self.qualifier is not None else ""
        if isinstance(self.base, DeclaredType):
            name = _display_name(self.base)
            if self.type_args:
                name += "<" + ", ".join(a.format() for a in self.type_args) + ">"
            return f"{qual}{name}"
        if isinstance(self.base, ArrayType) and self.component is not None:
            return f"{self.component.format()} {qual}[]"
        return f"{qual}{format_type(self.base)}"
