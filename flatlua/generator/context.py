"""Generator options and the naming context shared by all emitters."""

from collections import defaultdict
from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin

from .names import LUA_KEYWORDS, NameResolver, make_camel, qualified_name
from .types import EnumDef, EnumVal, FieldDef, Schema, StructDef, Type

# Hardcode spaces per indentation.
INDENT = "    "


@dataclass(frozen=True)
class GeneratorOptions(DataClassJsonMixin):
    """Recognized code generation options.

    generate_object_api: emit the ``T`` mirror type with Pack/UnPack.
    empty_vectors_as_absent: initialize mirror vectors to ``nil`` instead of ``{}``.
    allow_unsupported: emit a runtime ``error()`` marker for unsupported shapes
        instead of failing generation.
    """

    generate_object_api: bool = False
    empty_vectors_as_absent: bool = False
    allow_unsupported: bool = False


class GenContext:
    """Resolve the generated names of definitions, fields and references."""

    def __init__(
        self,
        schema: Schema,
        options: GeneratorOptions | None = None,
        resolver: NameResolver | None = None,
    ):
        self.schema = schema
        self.options = options or GeneratorOptions()
        self.resolver = resolver or NameResolver(LUA_KEYWORDS)

        self._siblings: dict[tuple[str, ...], set[str]] = defaultdict(set)
        for definition in [*schema.enums, *schema.structs]:
            self._siblings[tuple(definition.namespace)].add(definition.name)

    def name(self, definition: StructDef | EnumDef) -> str:
        return self.resolver.escape(definition.name, self._siblings[tuple(definition.namespace)])

    def meta_name(self, definition: StructDef | EnumDef) -> str:
        return self.name(definition) + "_mt"

    def module(self, definition: StructDef | EnumDef) -> str:
        """Module path of a definition, as passed to ``require``."""
        return qualified_name(definition.namespace, self.name(definition))

    def require(self, definition: StructDef | EnumDef) -> str:
        return f"require('{self.module(definition)}')"

    def field_name(self, struct_def: StructDef, field: FieldDef) -> str:
        return self.resolver.escape(field.name, [f.name for f in struct_def.fields])

    def accessor(self, struct_def: StructDef, field: FieldDef) -> str:
        """Name of the generated accessor method, e.g. ``Hp``."""
        return make_camel(self.field_name(struct_def, field))

    def param(self, struct_def: StructDef, field: FieldDef) -> str:
        """Name of a builder parameter, e.g. ``hitPoints``."""
        return make_camel(self.field_name(struct_def, field), False)

    def enum_val_name(self, enum_def: EnumDef, ev: EnumVal) -> str:
        return self.resolver.escape(ev.name, [v.name for v in enum_def.values])

    def struct_of(self, t: Type) -> StructDef:
        if t.struct_name is None:
            raise KeyError(f"{t.base_type} does not reference a struct")
        return self.schema.struct(t.struct_name)

    def enum_of(self, t: Type) -> EnumDef:
        if t.enum_name is None:
            raise KeyError(f"{t.base_type} does not reference an enum")
        return self.schema.enum(t.enum_name)


def mirror_name(field: FieldDef) -> str:
    """Name of a field in the object API mirror, e.g. ``o.HitPoints``."""
    return make_camel(field.name)
