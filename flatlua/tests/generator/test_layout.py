"""Tests for struct layout and table slots."""

from flatlua.generator import parse, resolve_layout
from flatlua.generator.layout import field_voffset, padding_bytes
from flatlua.generator.types import Schema

GEOMETRY = """
struct Vec3 { x: float; y: float; z: float; }
struct Line { start: Vec3; end: Vec3; }
"""


def _offsets(struct_def):
    return [(f.name, f.offset, f.padding) for f in struct_def.fields]


def describe_padding_bytes():
    def is_zero_when_aligned(expect):
        expect(padding_bytes(8, 4)) == 0
        expect(padding_bytes(0, 8)) == 0

    def rounds_up_to_alignment(expect):
        expect(padding_bytes(5, 4)) == 3
        expect(padding_bytes(1, 8)) == 7


def describe_field_voffset():
    def skips_vtable_header(expect):
        expect(field_voffset(0)) == 4
        expect(field_voffset(1)) == 6
        expect(field_voffset(10)) == 24


def describe_struct_layout():
    def lays_out_packed_floats(expect):
        vec3 = parse(GEOMETRY).struct("Vec3")
        expect(vec3.bytesize) == 12
        expect(vec3.minalign) == 4
        expect(_offsets(vec3)) == [("x", 0, 0), ("y", 4, 0), ("z", 8, 0)]

    def places_nested_structs_inline(expect):
        line = parse(GEOMETRY).struct("Line")
        expect(line.bytesize) == 24
        expect(line.minalign) == 4
        expect(_offsets(line)) == [("start", 0, 0), ("end", 12, 0)]

    def records_padding_after_field(expect):
        padded = parse("struct P { a: byte; b: int; }").structs[0]
        expect(_offsets(padded)) == [("a", 0, 3), ("b", 4, 0)]
        expect(padded.bytesize) == 8

    def pads_end_to_alignment(expect):
        tail = parse("struct P { a: int; b: byte; }").structs[0]
        expect(_offsets(tail)) == [("a", 0, 0), ("b", 4, 3)]
        expect(tail.bytesize) == 8

    def aligns_to_largest_member(expect):
        wide = parse("struct W { a: ubyte; b: double; }").structs[0]
        expect(wide.minalign) == 8
        expect(wide.bytesize) == 16
        expect(_offsets(wide)) == [("a", 0, 7), ("b", 8, 0)]

    def honors_force_align(expect):
        forced = parse("struct F (force_align: 16) { a: int; }").structs[0]
        expect(forced.minalign) == 16
        expect(forced.bytesize) == 16
        expect(forced.fields[0].padding) == 12

    def sizes_fixed_arrays(expect):
        schema = parse(
            """
            struct Vec3 { x: float; y: float; z: float; }
            struct Path { count: ubyte; points: [Vec3:2]; }
            """
        )
        path = schema.struct("Path")
        expect(_offsets(path)) == [("count", 0, 3), ("points", 4, 0)]
        expect(path.bytesize) == 28


def describe_table_slots():
    def numbers_fields_by_position(expect):
        table = parse("table T { a: int; b: string; c: [ubyte]; }").structs[0]
        expect([f.offset for f in table.fields]) == [0, 1, 2]

    def keeps_slots_when_field_is_appended(expect):
        before = parse("table T { a: int; b: string; }").structs[0]
        after = parse("table T { a: int; b: string; c: long; }").structs[0]
        expect([f.offset for f in after.fields[:2]]) == [f.offset for f in before.fields]

    def keeps_slots_when_field_is_deprecated(expect):
        before = parse("table T { a: int; b: string; c: long; }").structs[0]
        after = parse("table T { a: int (deprecated); b: string; c: long; }").structs[0]
        expect([f.offset for f in after.fields]) == [f.offset for f in before.fields]


def describe_resolve_layout():
    def is_idempotent(expect):
        schema = parse(GEOMETRY)
        expect(resolve_layout(schema)) == schema

    def survives_json_round_trip(expect):
        schema = parse(GEOMETRY)
        expect(resolve_layout(Schema.from_json(schema.to_json()))) == schema
