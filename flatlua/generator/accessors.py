"""Read-side code: per-type constructors and per-field accessors."""

from typing import assert_never

from .context import INDENT, GenContext
from .layout import field_voffset, inline_size
from .typemap import (
    SELF_DATA,
    SELF_DATA_BYTES,
    SELF_DATA_POS,
    ContainerShape,
    ValueShape,
    container_shape,
    default_literal,
    getter,
    value_shape,
    zero_literal,
)
from .types import BaseType, FieldDef, StructDef

END = "end\n"


def offset_prefix(field: FieldDef) -> str:
    """Presence test that most table accessors start with."""
    return (
        f"{INDENT}local o = {SELF_DATA}:Offset({field_voffset(field.offset)})\n"
        f"{INDENT}if o ~= 0 then\n"
    )


def receiver(ctx: GenContext, struct_def: StructDef) -> str:
    return f"function {ctx.meta_name(struct_def)}:"


def begin_class(ctx: GenContext, struct_def: StructDef) -> str:
    return (
        f"local {ctx.name(struct_def)} = {{}} -- the module\n"
        f"local {ctx.meta_name(struct_def)} = {{}} -- the class metatable\n"
        "\n"
    )


def new_object_prototype(ctx: GenContext, struct_def: StructDef) -> str:
    return (
        f"function {ctx.name(struct_def)}.New()\n"
        f"{INDENT}local o = {{}}\n"
        f"{INDENT}setmetatable(o, {{__index = {ctx.meta_name(struct_def)}}})\n"
        f"{INDENT}return o\n"
        f"{END}"
    )


def new_root_type_from_buffer(ctx: GenContext, struct_def: StructDef) -> str:
    name = ctx.name(struct_def)
    return (
        f"function {name}.GetRootAs{name}(buf, offset)\n"
        f"{INDENT}local n = flatbuffers.N.UOffsetT:Unpack(buf, offset)\n"
        f"{INDENT}local o = {name}.New()\n"
        f"{INDENT}o:Init(buf, n + offset)\n"
        f"{INDENT}return o\n"
        f"{END}"
    )


def initialize_existing(ctx: GenContext, struct_def: StructDef) -> str:
    """Init repositions an existing accessor so callers can reuse it."""
    return (
        f"{receiver(ctx, struct_def)}Init(buf, pos)\n"
        f"{INDENT}{SELF_DATA} = flatbuffers.view.New(buf, pos)\n"
        f"{END}"
    )


def get_vector_len(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}Length()\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}return {SELF_DATA}:VectorLen(o)\n"
        f"{INDENT}{END}"
        f"{INDENT}return 0\n"
        f"{END}"
    )


def get_array_len(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}Length()\n"
        f"{INDENT}return {field.type.fixed_length}\n"
        f"{END}"
    )


def get_scalar_field_of_struct(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}()\n"
        f"{INDENT}return {getter(field.type)}{SELF_DATA_POS} + {field.offset})\n"
        f"{END}"
    )


def get_scalar_field_of_table(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    value = f"{getter(field.type)}o + {SELF_DATA_POS})"
    if field.type.base_type == BaseType.BOOL:
        value = f"({value} ~= 0)"
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}()\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}return {value}\n"
        f"{INDENT}{END}"
        f"{INDENT}return {default_literal(field, ctx, symbolic=False)}\n"
        f"{END}"
    )


def get_struct_field_of_struct(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}(obj)\n"
        f"{INDENT}obj:Init({SELF_DATA_BYTES}, {SELF_DATA_POS} + {field.offset})\n"
        f"{INDENT}return obj\n"
        f"{END}"
    )


def get_struct_field_of_table(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Tables reach fixed structs inline and tables through an offset."""
    code = f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}(obj)\n"
    code += offset_prefix(field)
    nested = ctx.struct_of(field.type)
    if nested.fixed:
        code += f"{INDENT}{INDENT}local x = o + {SELF_DATA_POS}\n"
    else:
        code += f"{INDENT}{INDENT}local x = {SELF_DATA}:Indirect(o + {SELF_DATA_POS})\n"
    code += f"{INDENT}{INDENT}obj = obj or {ctx.require(nested)}.New()\n"
    code += f"{INDENT}{INDENT}obj:Init({SELF_DATA_BYTES}, x)\n"
    code += f"{INDENT}{INDENT}return obj\n"
    code += f"{INDENT}{END}"
    code += END
    return code


def get_string_field(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}()\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}return {getter(field.type)}o + {SELF_DATA_POS})\n"
        f"{INDENT}{END}"
        f"{INDENT}return ''\n"
        f"{END}"
    )


def get_union_field(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Return a generic view; the union's ClassOf decides how to read it."""
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}()\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}local obj = "
        "flatbuffers.view.New(require('flatbuffers.binaryarray').New(0), 0)\n"
        f"{INDENT}{INDENT}{getter(field.type)}obj, o)\n"
        f"{INDENT}{INDENT}return obj\n"
        f"{INDENT}{END}"
        f"{END}"
    )


def get_member_of_vector_of_struct(
    ctx: GenContext, struct_def: StructDef, field: FieldDef
) -> str:
    element = field.type.vector_type()
    nested = ctx.struct_of(element)
    code = f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}(j, obj)\n"
    code += offset_prefix(field)
    code += f"{INDENT}{INDENT}local x = {SELF_DATA}:Vector(o)\n"
    code += f"{INDENT}{INDENT}x = x + ((j-1) * {inline_size(element, ctx.schema)})\n"
    if not nested.fixed:
        code += f"{INDENT}{INDENT}x = {SELF_DATA}:Indirect(x)\n"
    code += f"{INDENT}{INDENT}obj = obj or {ctx.require(nested)}.New()\n"
    code += f"{INDENT}{INDENT}obj:Init({SELF_DATA_BYTES}, x)\n"
    code += f"{INDENT}{INDENT}return obj\n"
    code += f"{INDENT}{END}"
    code += END
    return code


def get_member_of_vector_of_union(
    ctx: GenContext, struct_def: StructDef, field: FieldDef
) -> str:
    stride = inline_size(field.type.vector_type(), ctx.schema)
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}(j)\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}local x = {SELF_DATA}:Vector(o)\n"
        f"{INDENT}{INDENT}x = {SELF_DATA}:Indirect(x + ((j-1) * {stride}))\n"
        f"{INDENT}{INDENT}return flatbuffers.view.New({SELF_DATA_BYTES}, x)\n"
        f"{INDENT}{END}"
        f"{END}"
    )


def get_member_of_vector_of_non_struct(
    ctx: GenContext, struct_def: StructDef, field: FieldDef
) -> str:
    element = field.type.vector_type()
    return (
        f"{receiver(ctx, struct_def)}{ctx.accessor(struct_def, field)}(j)\n"
        f"{offset_prefix(field)}"
        f"{INDENT}{INDENT}local a = {SELF_DATA}:Vector(o)\n"
        f"{INDENT}{INDENT}return {getter(field.type)}"
        f"a + ((j-1) * {inline_size(element, ctx.schema)}))\n"
        f"{INDENT}{END}"
        f"{INDENT}return {zero_literal(element)}\n"
        f"{END}"
    )


def get_member_of_array(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Fixed-length arrays live inline in structs; ``j`` is 1-based."""
    element = field.type.vector_type()
    stride = inline_size(element, ctx.schema)
    name = ctx.accessor(struct_def, field)
    position = f"{SELF_DATA_POS} + {field.offset} + ((j-1) * {stride})"
    if element.base_type == BaseType.STRUCT:
        return (
            f"{receiver(ctx, struct_def)}{name}(j, obj)\n"
            f"{INDENT}obj:Init({SELF_DATA_BYTES}, {position})\n"
            f"{INDENT}return obj\n"
            f"{END}"
        )
    return (
        f"{receiver(ctx, struct_def)}{name}(j)\n"
        f"{INDENT}return {getter(field.type)}{position})\n"
        f"{END}"
    )


def get_vector_field(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    element = value_shape(field.type.vector_type())
    match element:
        case ValueShape.STRUCT:
            return get_member_of_vector_of_struct(ctx, struct_def, field)
        case ValueShape.UNION:
            return get_member_of_vector_of_union(ctx, struct_def, field)
        case ValueShape.SCALAR | ValueShape.STRING:
            return get_member_of_vector_of_non_struct(ctx, struct_def, field)
        case ValueShape.VECTOR | ValueShape.ARRAY:
            raise AssertionError(f"nested {element} in vector {field.name}")
        case _:
            assert_never(element)


def gen_field_accessor(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Generate the accessor(s) of one field, by container and value shape."""
    container = container_shape(struct_def)
    shape = value_shape(field.type)

    match (container, shape):
        case (ContainerShape.FIXED, ValueShape.SCALAR):
            code = get_scalar_field_of_struct(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.SCALAR):
            code = get_scalar_field_of_table(ctx, struct_def, field)
        case (ContainerShape.FIXED, ValueShape.STRUCT):
            code = get_struct_field_of_struct(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.STRUCT):
            code = get_struct_field_of_table(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.STRING):
            code = get_string_field(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.VECTOR):
            code = get_vector_field(ctx, struct_def, field)
            code += get_vector_len(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.UNION):
            code = get_union_field(ctx, struct_def, field)
        case (ContainerShape.FIXED, ValueShape.ARRAY):
            code = get_member_of_array(ctx, struct_def, field)
            code += get_array_len(ctx, struct_def, field)
        case (ContainerShape.TABLE, ValueShape.ARRAY):
            raise AssertionError(f"array field {field.name} in table {struct_def.name}")
        case (ContainerShape.FIXED, ValueShape.STRING | ValueShape.VECTOR | ValueShape.UNION):
            raise AssertionError(f"{shape} field {field.name} in struct {struct_def.name}")
        case (ContainerShape.FIXED | ContainerShape.TABLE, _):
            assert_never(shape)
        case _:
            assert_never(container)
    return code


def gen_accessors(ctx: GenContext, struct_def: StructDef) -> str:
    """Generate the class prologue and every non-deprecated accessor."""
    code = new_object_prototype(ctx, struct_def)
    if not struct_def.fixed:
        code += new_root_type_from_buffer(ctx, struct_def)
    code += initialize_existing(ctx, struct_def)
    for field in struct_def.fields:
        if field.deprecated:
            continue
        code += gen_field_accessor(ctx, struct_def, field)
    return code
