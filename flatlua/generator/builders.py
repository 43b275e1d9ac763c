"""Write-side code: struct constructors and table builder functions."""

from dataclasses import dataclass

from .context import INDENT, GenContext, mirror_name
from .errors import SlotLayoutError
from .layout import inline_alignment, inline_size
from .names import make_camel
from .typemap import builder_method, default_literal
from .types import BaseType, FieldDef, StructDef

END_FUNC = "end\n"


@dataclass(frozen=True)
class FieldPath:
    """Where the value of a struct field comes from while building.

    Outside of arrays, nested struct fields become flat parameters named by
    the ancestor field names (``start_x``). Inside an array loop values are
    read from the current element table instead (``points[_j].X``).

    ``scope`` holds every flat parameter name of the constructor, so an
    escaped name never lands on a sibling parameter.
    """

    prefix: tuple[str, ...] = ()
    element: str | None = None
    depth: int = 0
    scope: frozenset[str] = frozenset()

    def flat(self, field: FieldDef) -> str:
        return "".join(p + "_" for p in self.prefix) + make_camel(field.name, False)

    def arg(self, ctx: GenContext, field: FieldDef) -> str:
        if self.element is not None:
            return f"{self.element}.{mirror_name(field)}"
        return ctx.resolver.escape(self.flat(field), self.scope)

    def nested(self, field: FieldDef) -> "FieldPath":
        if self.element is not None:
            return FieldPath(element=f"{self.element}.{mirror_name(field)}", depth=self.depth)
        return FieldPath(prefix=(*self.prefix, field.name), depth=self.depth, scope=self.scope)

    def loop_var(self) -> str:
        return "_j" if self.depth == 0 else f"_j{self.depth + 1}"

    def index(self, ctx: GenContext, field: FieldDef) -> "FieldPath":
        return FieldPath(
            element=f"{self.arg(ctx, field)}[{self.loop_var()}]", depth=self.depth + 1
        )


def flat_names(ctx: GenContext, struct_def: StructDef, path: FieldPath) -> list[str]:
    """Unescaped constructor parameter names, nested structs flattened."""
    names: list[str] = []
    for field in struct_def.fields:
        if field.type.base_type == BaseType.STRUCT:
            names.extend(flat_names(ctx, ctx.struct_of(field.type), path.nested(field)))
        else:
            names.append(path.flat(field))
    return names


def struct_builder_args(ctx: GenContext, struct_def: StructDef, path: FieldPath) -> list[str]:
    """Recursively collect constructor parameters, flattening nested structs."""
    args: list[str] = []
    for field in struct_def.fields:
        if field.type.base_type == BaseType.STRUCT:
            # Prefix with the field name so sibling nested structs don't clash.
            nested = ctx.struct_of(field.type)
            args.extend(struct_builder_args(ctx, nested, path.nested(field)))
        else:
            args.append(path.arg(ctx, field))
    return args


def struct_builder_body(
    ctx: GenContext, struct_def: StructDef, path: FieldPath, indent: str = INDENT
) -> str:
    """Recursively emit prepend calls in reverse field order, with padding."""
    code = f"{indent}builder:Prep({struct_def.minalign}, {struct_def.bytesize})\n"
    for field in reversed(struct_def.fields):
        if field.padding:
            code += f"{indent}builder:Pad({field.padding})\n"
        if field.type.base_type == BaseType.STRUCT:
            nested = ctx.struct_of(field.type)
            code += struct_builder_body(ctx, nested, path.nested(field), indent)
        elif field.type.base_type == BaseType.ARRAY:
            code += _array_builder_body(ctx, field, path, indent)
        else:
            method = builder_method(field.type, ctx)
            code += f"{indent}builder:Prepend{method}({path.arg(ctx, field)})\n"
    return code


def _array_builder_body(ctx: GenContext, field: FieldDef, path: FieldPath, indent: str) -> str:
    element = field.type.vector_type()
    var = path.loop_var()
    code = f"{indent}for {var} = {field.type.fixed_length}, 1, -1 do\n"
    if element.base_type == BaseType.STRUCT:
        code += struct_builder_body(
            ctx, ctx.struct_of(element), path.index(ctx, field), indent + INDENT
        )
    else:
        method = builder_method(element, ctx)
        code += f"{indent}{INDENT}builder:Prepend{method}({path.arg(ctx, field)}[{var}])\n"
    code += f"{indent}end\n"
    return code


def gen_struct_builder(ctx: GenContext, struct_def: StructDef) -> str:
    """Create a struct with a builder and the struct's arguments."""
    name = ctx.name(struct_def)
    path = FieldPath(scope=frozenset(flat_names(ctx, struct_def, FieldPath())))
    args = struct_builder_args(ctx, struct_def, path)
    code = f"function {name}.Create{name}(builder{''.join(', ' + a for a in args)})\n"
    code += struct_builder_body(ctx, struct_def, path)
    code += f"{INDENT}return builder:Offset()\n"
    code += END_FUNC
    return code


def get_start_of_table(ctx: GenContext, struct_def: StructDef) -> str:
    return (
        f"function {ctx.name(struct_def)}.Start(builder) "
        f"builder:StartObject({len(struct_def.fields)}) end\n"
    )


def build_field_of_table(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    param = ctx.param(struct_def, field)
    method = builder_method(field.type, ctx)
    default = default_literal(field, ctx, symbolic=False)
    return (
        f"function {ctx.name(struct_def)}.Add{ctx.accessor(struct_def, field)}"
        f"(builder, {param}) "
        f"builder:Prepend{method}Slot({field.offset}, {param}, {default}) end\n"
    )


def build_vector_of_table(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    element = field.type.vector_type()
    elem_size = inline_size(element, ctx.schema)
    alignment = inline_alignment(element, ctx.schema)
    return (
        f"function {ctx.name(struct_def)}.Start{ctx.accessor(struct_def, field)}"
        f"Vector(builder, numElems) "
        f"return builder:StartVector({elem_size}, numElems, {alignment}) end\n"
    )


def get_end_offset_on_table(ctx: GenContext, struct_def: StructDef) -> str:
    return f"function {ctx.name(struct_def)}.End(builder) return builder:EndObject() end\n"


def check_slots(struct_def: StructDef, added: list[int]) -> None:
    """Fail when Add slots and deprecated slots don't cover the Start count."""
    deprecated = [f.offset for f in struct_def.fields if f.deprecated]
    expected = list(range(len(struct_def.fields)))
    if sorted(added + deprecated) != expected:
        raise SlotLayoutError(
            f"{struct_def.qualified_name}: StartObject({len(struct_def.fields)}) "
            f"does not match slots {sorted(added)} (deprecated {deprecated})"
        )


def gen_table_builders(ctx: GenContext, struct_def: StructDef) -> str:
    """Generate Start, Add<Field>, Start<Field>Vector and End."""
    code = get_start_of_table(ctx, struct_def)
    added: list[int] = []

    for field in struct_def.fields:
        if field.deprecated:
            continue
        code += build_field_of_table(ctx, struct_def, field)
        added.append(field.offset)
        if field.type.base_type == BaseType.VECTOR:
            code += build_vector_of_table(ctx, struct_def, field)

    check_slots(struct_def, added)
    code += get_end_offset_on_table(ctx, struct_def)
    return code


def gen_builders(ctx: GenContext, struct_def: StructDef) -> str:
    if struct_def.fixed:
        return gen_struct_builder(ctx, struct_def)
    return gen_table_builders(ctx, struct_def)
