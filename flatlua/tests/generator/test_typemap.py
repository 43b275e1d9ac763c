"""Tests for runtime names, shapes and default literals."""

from flatlua.generator import parse
from flatlua.generator.context import GenContext
from flatlua.generator.typemap import (
    RUNTIME_NAMES,
    ContainerShape,
    ValueShape,
    container_shape,
    default_literal,
    runtime_name,
    value_shape,
    zero_literal,
)
from flatlua.generator.types import SCALAR_TYPES, BaseType, Type

SCHEMA = """
namespace Game;
enum Color : ubyte { Red, Green, Blue }
table Settings {
    color: Color = Green;
    odd: Color = 7;
    on: bool = true;
    off: bool;
    speed: float = 1.5;
    top: double = inf;
    bottom: double = -inf;
    unknown: float = nan;
    count: long = -3;
}
"""


def _field(schema, name):
    return next(f for f in schema.structs[0].fields if f.name == name)


def describe_runtime_name():
    def covers_every_scalar(expect):
        for base_type in SCALAR_TYPES:
            expect(base_type in RUNTIME_NAMES) == True

    def maps_to_runtime_number_types(expect):
        expect(runtime_name(BaseType.INT)) == "Int32"
        expect(runtime_name(BaseType.ULONG)) == "Uint64"
        expect(runtime_name(BaseType.BOOL)) == "Bool"
        expect(runtime_name(BaseType.DOUBLE)) == "Float64"
        expect(runtime_name(BaseType.UTYPE)) == "Uint8"

    def maps_references_to_offsets(expect):
        expect(runtime_name(BaseType.STRING)) == "UOffsetT"
        expect(runtime_name(BaseType.VECTOR)) == "UOffsetT"


def describe_default_literal():
    def names_matching_enum_member(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "color"), ctx)) == "require('Game.Color').Green"

    def keeps_raw_constant_without_matching_member(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "odd"), ctx)) == "7"

    def renders_numbers_when_not_symbolic(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "color"), ctx, symbolic=False)) == "1"

    def renders_booleans(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "on"), ctx)) == "true"
        expect(default_literal(_field(schema, "off"), ctx)) == "false"

    def renders_float_specials(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "speed"), ctx)) == "1.5"
        expect(default_literal(_field(schema, "top"), ctx)) == "math.huge"
        expect(default_literal(_field(schema, "bottom"), ctx)) == "-math.huge"
        expect(default_literal(_field(schema, "unknown"), ctx)) == "0/0"

    def keeps_integers(expect):
        schema = parse(SCHEMA)
        ctx = GenContext(schema)
        expect(default_literal(_field(schema, "count"), ctx)) == "-3"


def describe_shapes():
    def classifies_values(expect):
        expect(value_shape(Type(BaseType.SHORT))) == ValueShape.SCALAR
        expect(value_shape(Type(BaseType.UTYPE))) == ValueShape.SCALAR
        expect(value_shape(Type(BaseType.STRING))) == ValueShape.STRING
        expect(value_shape(Type(BaseType.VECTOR, element=BaseType.INT))) == ValueShape.VECTOR
        expect(value_shape(Type(BaseType.STRUCT, struct_name="A"))) == ValueShape.STRUCT
        expect(value_shape(Type(BaseType.UNION, enum_name="U"))) == ValueShape.UNION
        expect(value_shape(Type(BaseType.ARRAY, element=BaseType.INT))) == ValueShape.ARRAY

    def classifies_containers(expect):
        schema = parse("struct S { a: int; } table T { s: S; }")
        expect(container_shape(schema.struct("S"))) == ContainerShape.FIXED
        expect(container_shape(schema.struct("T"))) == ContainerShape.TABLE


def describe_zero_literal():
    def matches_element_type(expect):
        expect(zero_literal(Type(BaseType.STRING))) == "''"
        expect(zero_literal(Type(BaseType.BOOL))) == "false"
        expect(zero_literal(Type(BaseType.FLOAT))) == "0"
