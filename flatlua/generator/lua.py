"""Lua code generator for FlatBuffers schemas."""

from dataclasses import dataclass
from pathlib import PurePosixPath

from jinja2 import Environment, PackageLoader

from .._logging import logger
from .accessors import begin_class, gen_accessors
from .builders import gen_builders
from .context import GenContext, GeneratorOptions
from .enums import gen_enum, needs_runtime
from .objectapi import gen_object_api
from .types import EnumDef, Schema, StructDef

env = Environment(
    loader=PackageLoader("flatlua.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
    autoescape=False,
)

template = env.get_template("lua.lua.j2")


@dataclass(frozen=True)
class Artifact:
    """Generated source of one definition."""

    namespace: tuple[str, ...]
    name: str
    text: str

    @property
    def relative_path(self) -> PurePosixPath:
        return PurePosixPath(*self.namespace, f"{self.name}.lua")


class LuaGenerator:
    """Generate one Lua module per enum, union, struct and table."""

    def __init__(self, schema: Schema, options: GeneratorOptions | None = None):
        self.schema = schema
        self.ctx = GenContext(schema, options)

    @property
    def options(self) -> GeneratorOptions:
        return self.ctx.options

    def gen_struct(self, struct_def: StructDef) -> str:
        """Generate struct or table methods."""
        code = begin_class(self.ctx, struct_def)
        code += gen_accessors(self.ctx, struct_def)
        code += gen_builders(self.ctx, struct_def)
        if self.options.generate_object_api:
            code += gen_object_api(self.ctx, struct_def)
        return code

    def gen_enum(self, enum_def: EnumDef) -> str:
        return gen_enum(self.ctx, enum_def)

    def save_type(
        self, definition: StructDef | EnumDef, body: str, needs_imports: bool
    ) -> Artifact | None:
        """Wrap a definition's code in the module frame."""
        if not body:
            return None
        name = self.ctx.name(definition)
        text = template.render(
            namespace=definition.namespace[-1] if definition.namespace else "",
            needs_imports=needs_imports,
            body=body,
            name=name,
        )
        return Artifact(namespace=tuple(definition.namespace), name=name, text=text)

    def generate(self) -> list[Artifact]:
        """Generate every enum, then every struct, in declaration order."""
        artifacts: list[Artifact] = []

        for enum_def in self.schema.enums:
            logger.debug("generating %s %s", _kind(enum_def), enum_def.qualified_name)
            body = self.gen_enum(enum_def)
            artifact = self.save_type(enum_def, body, needs_runtime(self.ctx, enum_def))
            if artifact is not None:
                artifacts.append(artifact)

        for struct_def in self.schema.structs:
            logger.debug("generating %s %s", _kind(struct_def), struct_def.qualified_name)
            body = self.gen_struct(struct_def)
            artifact = self.save_type(struct_def, body, True)
            if artifact is not None:
                artifacts.append(artifact)

        return artifacts


def _kind(definition: StructDef | EnumDef) -> str:
    if isinstance(definition, StructDef):
        return "struct" if definition.fixed else "table"
    return "union" if definition.is_union else "enum"


def render(schema: Schema, options: GeneratorOptions | None = None) -> dict[str, str]:
    """Render a schema to Lua sources, keyed by relative file path."""
    return {
        str(artifact.relative_path): artifact.text
        for artifact in LuaGenerator(schema, options).generate()
    }
