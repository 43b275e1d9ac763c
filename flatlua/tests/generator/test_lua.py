"""Tests for module generation and output."""

import os

from flatlua.generator import GeneratorOptions, LuaGenerator, parse, render, write_artifacts

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

HEADER = "-- automatically generated by the FlatBuffers compiler, do not modify\n"


def _monster_schema():
    with open(f"{FILE_DIR}/monster.fbs", encoding="utf-8") as f:
        return parse(f.read())


def describe_render():
    def emits_one_module_per_definition_in_order(expect):
        files = render(_monster_schema())
        expect(list(files)) == [
            "MyGame/Sample/Color.lua",
            "MyGame/Sample/Equipment.lua",
            "MyGame/Sample/Vec3.lua",
            "MyGame/Sample/Monster.lua",
            "MyGame/Sample/Weapon.lua",
        ]

    def frames_tables_with_runtime_import(expect):
        text = render(_monster_schema())["MyGame/Sample/Monster.lua"]
        expect(
            text.startswith(
                HEADER + "\n"
                "-- namespace: Sample\n"
                "\n"
                "local flatbuffers = require('flatbuffers')\n"
                "\n"
                "local Monster = {} -- the module\n"
                "local Monster_mt = {} -- the class metatable\n"
                "\n"
                "function Monster.New()\n"
            )
        ) == True
        expect(text.endswith("end\n\nreturn Monster -- return the module\n")) == True

    def frames_enums_without_runtime_import(expect):
        text = render(_monster_schema())["MyGame/Sample/Color.lua"]
        expect(text) == (
            HEADER + "\n"
            "-- namespace: Sample\n"
            "\n"
            "local Color = {\n"
            "    Red = 0,\n"
            "    Green = 1,\n"
            "    Blue = 2,\n"
            "}\n"
            "\n"
            "return Color -- return the module\n"
        )

    def imports_runtime_for_string_union_arms(expect):
        schema = parse("table A {} union U { A, Text: string }")
        plain = render(schema)["U.lua"]
        with_api = render(schema, GeneratorOptions(generate_object_api=True))["U.lua"]
        expect("require('flatbuffers')" in plain) == False
        expect("local flatbuffers = require('flatbuffers')" in with_api) == True

    def omits_namespace_line_at_top_level(expect):
        text = render(parse("table T {}"))["T.lua"]
        expect(text.startswith(HEADER + "\nlocal flatbuffers = require('flatbuffers')\n\n")) == True
        expect("-- namespace:" in text) == False

    def is_deterministic(expect):
        options = GeneratorOptions(generate_object_api=True)
        expect(render(_monster_schema(), options)) == render(_monster_schema(), options)

    def appends_object_api_only_when_enabled(expect):
        plain = render(_monster_schema())["MyGame/Sample/Monster.lua"]
        with_api = render(_monster_schema(), GeneratorOptions(generate_object_api=True))
        expect("--Object Base API" in plain) == False
        expect("function Monster.Pack(builder, o)" in with_api["MyGame/Sample/Monster.lua"]) == True


def describe_lua_generator():
    def names_artifacts_after_escaped_type(expect):
        schema = parse("namespace Game; table end {}")
        artifacts = LuaGenerator(schema).generate()
        expect(artifacts[0].name) == "_end"
        expect(str(artifacts[0].relative_path)) == "Game/_end.lua"
        expect(artifacts[0].text).contains("return _end -- return the module\n")


def describe_write_artifacts():
    def mirrors_namespace_directories(expect, tmp_path):
        artifacts = LuaGenerator(_monster_schema()).generate()
        written = write_artifacts(artifacts, tmp_path)
        expect(len(written)) == 5
        monster = tmp_path / "MyGame" / "Sample" / "Monster.lua"
        expect(monster.exists()) == True
        expect(monster.read_text(encoding="utf-8")) == artifacts[3].text

    def accepts_string_paths(expect, tmp_path):
        artifacts = LuaGenerator(parse("table T {}")).generate()
        written = write_artifacts(artifacts, str(tmp_path / "out"))
        expect(written) == [tmp_path / "out" / "T.lua"]
