"""Tests for generated struct constructors and table builders."""

import os

import pytest

from flatlua.generator import parse
from flatlua.generator.builders import FieldPath, check_slots, gen_builders, struct_builder_args
from flatlua.generator.context import GenContext
from flatlua.generator.errors import SlotLayoutError
from flatlua.generator.types import BaseType, FieldDef, StructDef, Type

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

GEOMETRY = """
struct Vec3 { x: float; y: float; z: float; }
struct Line { start: Vec3; end: Vec3; }
"""


def _monster_schema():
    with open(f"{FILE_DIR}/monster.fbs", encoding="utf-8") as f:
        return parse(f.read())


def _builders(schema, qualified_name):
    return gen_builders(GenContext(schema), schema.struct(qualified_name))


def describe_struct_builder():
    def flattens_nested_struct_parameters(expect):
        schema = parse(GEOMETRY)
        ctx = GenContext(schema)
        args = struct_builder_args(ctx, schema.struct("Line"), FieldPath())
        expect(args) == ["start_x", "start_y", "start_z", "end_x", "end_y", "end_z"]

    def prepends_fields_in_reverse(expect):
        code = _builders(parse(GEOMETRY), "Line")
        expect(code) == (
            "function Line.CreateLine(builder, start_x, start_y, start_z, end_x, end_y, end_z)\n"
            "    builder:Prep(4, 24)\n"
            "    builder:Prep(4, 12)\n"
            "    builder:PrependFloat32(end_z)\n"
            "    builder:PrependFloat32(end_y)\n"
            "    builder:PrependFloat32(end_x)\n"
            "    builder:Prep(4, 12)\n"
            "    builder:PrependFloat32(start_z)\n"
            "    builder:PrependFloat32(start_y)\n"
            "    builder:PrependFloat32(start_x)\n"
            "    return builder:Offset()\n"
            "end\n"
        )

    def pads_between_fields(expect):
        code = _builders(parse("struct P { a: byte; b: int; }"), "P")
        expect(code) == (
            "function P.CreateP(builder, a, b)\n"
            "    builder:Prep(4, 8)\n"
            "    builder:PrependInt32(b)\n"
            "    builder:Pad(3)\n"
            "    builder:PrependInt8(a)\n"
            "    return builder:Offset()\n"
            "end\n"
        )

    def pads_after_last_field(expect):
        code = _builders(parse("struct P { a: int; b: bool; }"), "P")
        expect(code).contains(
            "    builder:Prep(4, 8)\n"
            "    builder:Pad(3)\n"
            "    builder:PrependBool(b)\n"
            "    builder:PrependInt32(a)\n"
        )

    def escapes_reserved_parameter_names(expect):
        code = _builders(parse("struct R { end: int; }"), "R")
        expect(code).contains("function R.CreateR(builder, _end)\n")
        expect(code).contains("    builder:PrependInt32(_end)\n")

    def keeps_escaped_parameters_distinct_from_siblings(expect):
        code = _builders(parse("struct S { end: int; __end: int; }"), "S")
        expect(code) == (
            "function S.CreateS(builder, __end, _end)\n"
            "    builder:Prep(4, 8)\n"
            "    builder:PrependInt32(_end)\n"
            "    builder:PrependInt32(__end)\n"
            "    return builder:Offset()\n"
            "end\n"
        )

    def loops_over_fixed_arrays(expect):
        code = _builders(parse("struct M { v: [short:3]; }"), "M")
        expect(code) == (
            "function M.CreateM(builder, v)\n"
            "    builder:Prep(2, 6)\n"
            "    for _j = 3, 1, -1 do\n"
            "        builder:PrependInt16(v[_j])\n"
            "    end\n"
            "    return builder:Offset()\n"
            "end\n"
        )

    def reads_struct_array_elements_by_mirror_name(expect):
        schema = parse(
            """
            struct Vec2 { x: float; y: float; }
            struct Poly { points: [Vec2:2]; }
            """
        )
        code = _builders(schema, "Poly")
        expect(code).contains(
            "    for _j = 2, 1, -1 do\n"
            "        builder:Prep(4, 8)\n"
            "        builder:PrependFloat32(points[_j].Y)\n"
            "        builder:PrependFloat32(points[_j].X)\n"
            "    end\n"
        )


def describe_table_builder():
    def starts_with_total_field_count(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect(code).contains("function Monster.Start(builder) builder:StartObject(11) end\n")

    def adds_scalars_with_slot_and_default(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect(code).contains(
            "function Monster.AddHp(builder, hp) builder:PrependInt16Slot(2, hp, 100) end\n"
        )
        expect(code).contains(
            "function Monster.AddColor(builder, color) builder:PrependInt8Slot(6, color, 2) end\n"
        )

    def adds_structs_and_offsets(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect(code).contains(
            "function Monster.AddPos(builder, pos) builder:PrependStructSlot(0, pos, 0) end\n"
        )
        expect(code).contains(
            "function Monster.AddName(builder, name) "
            "builder:PrependUOffsetTRelativeSlot(3, name, 0) end\n"
        )

    def adds_union_discriminant(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect(code).contains(
            "function Monster.AddEquippedType(builder, equippedType) "
            "builder:PrependUint8Slot(8, equippedType, 0) end\n"
        )

    def starts_vectors_with_stride_and_alignment(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect(code).contains(
            "function Monster.StartInventoryVector(builder, numElems) "
            "return builder:StartVector(1, numElems, 1) end\n"
        )
        expect(code).contains(
            "function Monster.StartPathVector(builder, numElems) "
            "return builder:StartVector(12, numElems, 4) end\n"
        )
        expect(code).contains(
            "function Monster.StartWeaponsVector(builder, numElems) "
            "return builder:StartVector(4, numElems, 4) end\n"
        )

    def renders_boolean_defaults(expect):
        code = _builders(parse("table Flags { on: bool = true; }"), "Flags")
        expect(code).contains(
            "function Flags.AddOn(builder, on) builder:PrependBoolSlot(0, on, true) end\n"
        )

    def skips_deprecated_fields(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Monster")
        expect("AddFriendly" in code) == False

    def ends_with_table_offset(expect):
        code = _builders(_monster_schema(), "MyGame.Sample.Weapon")
        end = "function Weapon.End(builder) return builder:EndObject() end\n"
        expect(code.endswith(end)) == True


def describe_slot_stability():
    def keeps_add_slots_when_field_is_appended(expect):
        before = _builders(parse("table T { a: int; b: string; }"), "T")
        after = _builders(parse("table T { a: int; b: string; c: long; }"), "T")
        expect(after).contains("builder:PrependInt32Slot(0, a, 0)")
        expect(after).contains("builder:PrependUOffsetTRelativeSlot(1, b, 0)")
        expect(before).contains("builder:StartObject(2)")
        expect(after).contains("builder:StartObject(3)")

    def keeps_add_slots_when_field_is_deprecated(expect):
        code = _builders(parse("table T { a: int (deprecated); b: string; c: long; }"), "T")
        expect(code).contains("builder:StartObject(3)")
        expect(code).contains("builder:PrependUOffsetTRelativeSlot(1, b, 0)")
        expect(code).contains("builder:PrependInt64Slot(2, c, 0)")


def describe_check_slots():
    def accepts_complete_slots(expect):
        table = parse("table T { a: int (deprecated); b: int; }").structs[0]
        check_slots(table, [1])

    def rejects_missing_slots(expect):
        fields = [
            FieldDef("a", Type(BaseType.INT), offset=0),
            FieldDef("b", Type(BaseType.INT), offset=1),
        ]
        table = StructDef("T", fixed=False, fields=fields)
        with pytest.raises(SlotLayoutError, match="StartObject\\(2\\)"):
            check_slots(table, [0])

    def rejects_duplicate_slots(expect):
        fields = [
            FieldDef("a", Type(BaseType.INT), offset=0),
            FieldDef("b", Type(BaseType.INT), offset=0),
        ]
        table = StructDef("T", fixed=False, fields=fields)
        with pytest.raises(SlotLayoutError):
            check_slots(table, [0, 0])
