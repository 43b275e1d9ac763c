"""Mapping of schema types to Lua runtime names, shapes and literals."""

from enum import StrEnum, auto
from typing import assert_never

from .context import GenContext
from .types import FLOAT_TYPES, BaseType, FieldDef, StructDef, Type, is_scalar

SELF_DATA = "self.view"
SELF_DATA_POS = "self.view.pos"
SELF_DATA_BYTES = "self.view.bytes"

# Map base types to the number types of the flatbuffers Lua runtime (flatbuffers.N)
RUNTIME_NAMES: dict[BaseType, str] = {
    BaseType.NONE: "Uint8",
    BaseType.UTYPE: "Uint8",
    BaseType.BOOL: "Bool",
    BaseType.BYTE: "Int8",
    BaseType.UBYTE: "Uint8",
    BaseType.SHORT: "Int16",
    BaseType.USHORT: "Uint16",
    BaseType.INT: "Int32",
    BaseType.UINT: "Uint32",
    BaseType.LONG: "Int64",
    BaseType.ULONG: "Uint64",
    BaseType.FLOAT: "Float32",
    BaseType.DOUBLE: "Float64",
    BaseType.STRING: "UOffsetT",
    BaseType.VECTOR: "UOffsetT",
    BaseType.STRUCT: "UOffsetT",
    BaseType.UNION: "UOffsetT",
    BaseType.ARRAY: "UOffsetT",
}

_FLOAT_SPECIALS = {
    "inf": "math.huge",
    "+inf": "math.huge",
    "infinity": "math.huge",
    "+infinity": "math.huge",
    "-inf": "-math.huge",
    "-infinity": "-math.huge",
    "nan": "0/0",
    "+nan": "0/0",
    "-nan": "0/0",
}


class ValueShape(StrEnum):
    """What a field holds."""

    SCALAR = auto()
    STRUCT = auto()
    STRING = auto()
    VECTOR = auto()
    UNION = auto()
    ARRAY = auto()


class ContainerShape(StrEnum):
    """Where a field lives."""

    FIXED = auto()  # inline struct, every field present
    TABLE = auto()  # relocatable table, fields looked up through the vtable


def runtime_name(base_type: BaseType) -> str:
    """Name of the runtime number type, e.g. ``Int16``."""
    return RUNTIME_NAMES[base_type]


def value_shape(t: Type) -> ValueShape:
    match t.base_type:
        case BaseType.STRING:
            return ValueShape.STRING
        case BaseType.VECTOR:
            return ValueShape.VECTOR
        case BaseType.STRUCT:
            return ValueShape.STRUCT
        case BaseType.UNION:
            return ValueShape.UNION
        case BaseType.ARRAY:
            return ValueShape.ARRAY
        case (
            BaseType.NONE
            | BaseType.UTYPE
            | BaseType.BOOL
            | BaseType.BYTE
            | BaseType.UBYTE
            | BaseType.SHORT
            | BaseType.USHORT
            | BaseType.INT
            | BaseType.UINT
            | BaseType.LONG
            | BaseType.ULONG
            | BaseType.FLOAT
            | BaseType.DOUBLE
        ):
            return ValueShape.SCALAR
        case _:
            assert_never(t.base_type)


def container_shape(struct_def: StructDef) -> ContainerShape:
    return ContainerShape.FIXED if struct_def.fixed else ContainerShape.TABLE


def getter(t: Type) -> str:
    """Opening of the runtime call that reads a value of type ``t``."""
    if t.base_type == BaseType.STRING:
        return f"{SELF_DATA}:String("
    if t.base_type == BaseType.UNION:
        return f"{SELF_DATA}:Union("
    if t.base_type in (BaseType.VECTOR, BaseType.ARRAY):
        return getter(t.vector_type())
    return f"{SELF_DATA}:Get(flatbuffers.N.{runtime_name(t.base_type)}, "


def builder_method(t: Type, ctx: GenContext) -> str:
    """Suffix of the builder's Prepend call for a value of type ``t``."""
    if is_scalar(t.base_type):
        return runtime_name(t.base_type)
    if t.base_type == BaseType.STRUCT and ctx.struct_of(t).fixed:
        return "Struct"
    return "UOffsetTRelative"


def zero_literal(t: Type) -> str:
    """Value returned for an element of an absent vector."""
    if t.base_type == BaseType.STRING:
        return "''"
    if t.base_type == BaseType.BOOL:
        return "false"
    return "0"


def default_literal(field: FieldDef, ctx: GenContext, symbolic: bool = True) -> str:
    """Render a field's default value as a Lua expression.

    With ``symbolic`` set, enum defaults that match a declared value are
    rendered as a reference to that enum member.
    """
    t = field.type
    constant = field.default

    if symbolic and t.enum_name is not None and t.base_type != BaseType.UNION:
        enum_def = ctx.enum_of(t)
        enum_val = enum_def.find_by_value(constant)
        if enum_val is not None:
            return f"{ctx.require(enum_def)}.{ctx.enum_val_name(enum_def, enum_val)}"

    if t.base_type == BaseType.BOOL:
        return "false" if constant == "0" else "true"
    if t.base_type in FLOAT_TYPES:
        return _FLOAT_SPECIALS.get(constant.lower(), constant)
    return constant
