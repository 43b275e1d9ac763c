"""Object API: a plain-data mirror of each type with Pack/UnPack converters."""

from typing import assert_never

from .._logging import logger
from .builders import FieldPath, struct_builder_args
from .context import INDENT, GenContext, mirror_name
from .errors import GeneratorError, UnsupportedShapeError
from .typemap import ValueShape, default_literal, runtime_name, value_shape
from .types import BaseType, FieldDef, StructDef

END = "end\n"


def union_type_field(struct_def: StructDef, field: FieldDef) -> FieldDef:
    """Find the discriminant field that accompanies a union field."""
    name = f"{field.name}_type"
    for candidate in struct_def.fields:
        if candidate.name == name:
            return candidate
    raise GeneratorError(f"{struct_def.qualified_name}.{field.name}: missing field {name}")


def _is_discriminant(field: FieldDef) -> bool:
    t = field.type
    return t.base_type == BaseType.UTYPE or (
        t.base_type == BaseType.VECTOR and t.element == BaseType.UTYPE
    )


def _mirror_fields(struct_def: StructDef) -> list[FieldDef]:
    """Fields of the mirror; discriminants live inside the union value instead."""
    return [f for f in struct_def.fields if not f.deprecated and not _is_discriminant(f)]


# UnPack


def _unpack_struct(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    accessor = ctx.accessor(struct_def, field)
    member = mirror_name(field)
    nested = ctx.struct_of(field.type)
    if struct_def.fixed:
        return f"{INDENT}o.{member} = self:{accessor}({ctx.require(nested)}.New()):UnPack()\n"
    local = f"_{field.name}"
    return (
        f"{INDENT}local {local} = self:{accessor}()\n"
        f"{INDENT}if {local} ~= nil then\n"
        f"{INDENT}{INDENT}o.{member} = {local}:UnPack()\n"
        f"{INDENT}{END}"
    )


def _unpack_vector(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    accessor = ctx.accessor(struct_def, field)
    member = mirror_name(field)
    element = field.type.vector_type()

    match value_shape(element):
        case ValueShape.SCALAR | ValueShape.STRING:
            item = f"self:{accessor}(_j)"
        case ValueShape.STRUCT:
            item = f"self:{accessor}(_j):UnPack()"
        case ValueShape.UNION:
            union = ctx.enum_of(element)
            type_accessor = ctx.accessor(struct_def, union_type_field(struct_def, field))
            item = (
                f"{ctx.require(union)}.Union.UnPack("
                f"self:{type_accessor}(_j), self:{accessor}(_j))"
            )
        case ValueShape.VECTOR | ValueShape.ARRAY:
            raise AssertionError(f"nested vector {field.name}")
        case _:
            assert_never(value_shape(element))

    body = (
        f"o.{member} = {{}}\n"
        "for _j = 1, length do\n"
        f"{INDENT}o.{member}[_j] = {item}\n"
        f"{END}"
    )
    if ctx.options.empty_vectors_as_absent:
        body = "if length > 0 then\n" + _indent(body) + END
    return f"{INDENT}length = self:{accessor}Length()\n" + _indent(body)


def _unpack_array(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    accessor = ctx.accessor(struct_def, field)
    member = mirror_name(field)
    element = field.type.vector_type()
    if element.base_type == BaseType.STRUCT:
        item = f"self:{accessor}(_j, {ctx.require(ctx.struct_of(element))}.New()):UnPack()"
    else:
        item = f"self:{accessor}(_j)"
    return (
        f"{INDENT}o.{member} = {{}}\n"
        f"{INDENT}for _j = 1, {field.type.fixed_length} do\n"
        f"{INDENT}{INDENT}o.{member}[_j] = {item}\n"
        f"{INDENT}{END}"
    )


def _unpack_field(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    accessor = ctx.accessor(struct_def, field)
    member = mirror_name(field)
    shape = value_shape(field.type)

    match shape:
        case ValueShape.SCALAR | ValueShape.STRING:
            return f"{INDENT}o.{member} = self:{accessor}()\n"
        case ValueShape.STRUCT:
            return _unpack_struct(ctx, struct_def, field)
        case ValueShape.VECTOR:
            return _unpack_vector(ctx, struct_def, field)
        case ValueShape.ARRAY:
            return _unpack_array(ctx, struct_def, field)
        case ValueShape.UNION:
            union = ctx.enum_of(field.type)
            type_accessor = ctx.accessor(struct_def, union_type_field(struct_def, field))
            return (
                f"{INDENT}o.{member} = {ctx.require(union)}.Union.UnPack("
                f"self:{type_accessor}(), self:{accessor}())\n"
            )
        case _:
            assert_never(shape)


def gen_unpack(ctx: GenContext, struct_def: StructDef) -> str:
    name = ctx.name(struct_def)
    meta_name = ctx.meta_name(struct_def)
    fields = _mirror_fields(struct_def)

    code = f"function {meta_name}:UnPack()\n"
    code += f"{INDENT}local o = {name}.T()\n"
    code += f"{INDENT}self:UnPackTo(o)\n"
    code += f"{INDENT}return o\n"
    code += END + "\n"

    code += f"function {meta_name}:UnPackTo(o)\n"
    if any(f.type.base_type == BaseType.VECTOR for f in fields):
        code += f"{INDENT}local length = 0\n"
    for field in fields:
        code += _unpack_field(ctx, struct_def, field)
    code += END + "\n"
    return code


# Pack


def _pack_vector(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Pack a vector child before the table is started.

    Elements are prepended in reverse so they read back in index order.
    """
    class_name = ctx.name(struct_def)
    member = f"o.{mirror_name(field)}"
    accessor = ctx.accessor(struct_def, field)
    local = f"_{field.name}"
    length = f"__{field.name}_length"
    element = field.type.vector_type()
    shape = value_shape(element)

    condition = f"{member} ~= nil"
    if ctx.options.empty_vectors_as_absent:
        condition += f" and #{member} > 0"

    code = f"{INDENT}local {local} = 0\n"
    code += f"{INDENT}if {condition} then\n"

    match shape:
        case ValueShape.SCALAR | ValueShape.STRUCT if shape == ValueShape.SCALAR or (
            ctx.struct_of(element).fixed
        ):
            code += f"{INDENT}{INDENT}local {length} = #{member}\n"
            code += f"{INDENT}{INDENT}{class_name}.Start{accessor}Vector(builder, {length})\n"
            code += f"{INDENT}{INDENT}for _j = {length}, 1, -1 do\n"
            if shape == ValueShape.SCALAR:
                method = runtime_name(element.base_type)
                code += f"{INDENT * 3}builder:Prepend{method}({member}[_j])\n"
            else:
                nested = ctx.require(ctx.struct_of(element))
                code += f"{INDENT * 3}{nested}.Pack(builder, {member}[_j])\n"
            code += f"{INDENT}{INDENT}{END}"
        case ValueShape.STRING | ValueShape.STRUCT:
            array = f"__{field.name}_array"
            if shape == ValueShape.STRING:
                create = "builder:CreateString(v)"
            else:
                create = f"{ctx.require(ctx.struct_of(element))}.Pack(builder, v)"
            code += f"{INDENT}{INDENT}local {length} = #{member}\n"
            code += f"{INDENT}{INDENT}local {array} = {{}}\n"
            code += f"{INDENT}{INDENT}for _j, v in ipairs({member}) do\n"
            code += f"{INDENT * 3}{array}[_j] = {create}\n"
            code += f"{INDENT}{INDENT}{END}"
            code += f"{INDENT}{INDENT}{class_name}.Start{accessor}Vector(builder, {length})\n"
            code += f"{INDENT}{INDENT}for _j = {length}, 1, -1 do\n"
            code += f"{INDENT * 3}builder:PrependUOffsetTRelative({array}[_j])\n"
            code += f"{INDENT}{INDENT}{END}"
        case ValueShape.UNION:
            raise AssertionError("vector of union is handled by the caller")
        case ValueShape.VECTOR | ValueShape.ARRAY:
            raise AssertionError(f"nested vector {field.name}")
        case _:
            assert_never(shape)

    code += f"{INDENT}{INDENT}{local} = builder:EndVector({length})\n"
    code += f"{INDENT}{END}"
    return code


def _unsupported_marker(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Explicit marker for vectors of unions, which Pack cannot serialize."""
    if not ctx.options.allow_unsupported:
        raise UnsupportedShapeError(struct_def.qualified_name, field.name, "vector of union")
    logger.warning(
        "%s.%s: vector of union is not supported by Pack, emitting an error marker",
        struct_def.qualified_name,
        field.name,
    )
    return (
        f"{INDENT}if o.{mirror_name(field)} ~= nil then\n"
        f"{INDENT}{INDENT}error('Pack does not support vector of union field "
        f"{struct_def.qualified_name}.{field.name}')\n"
        f"{INDENT}{END}"
    )


def _is_union_vector(field: FieldDef) -> bool:
    return field.type.base_type == BaseType.VECTOR and field.type.element == BaseType.UNION


def _pack_child(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Children that need their own offset, packed ahead of Start."""
    member = f"o.{mirror_name(field)}"
    local = f"_{field.name}"
    shape = value_shape(field.type)

    match shape:
        case ValueShape.STRUCT:
            nested = ctx.struct_of(field.type)
            if nested.fixed:
                return ""
            return (
                f"{INDENT}local {local} = {member} == nil and 0 or "
                f"{ctx.require(nested)}.Pack(builder, {member})\n"
            )
        case ValueShape.STRING:
            return (
                f"{INDENT}local {local} = {member} == nil and 0 or "
                f"builder:CreateString({member})\n"
            )
        case ValueShape.VECTOR:
            if _is_union_vector(field):
                return _unsupported_marker(ctx, struct_def, field)
            return _pack_vector(ctx, struct_def, field)
        case ValueShape.UNION:
            union = ctx.require(ctx.enum_of(field.type))
            return (
                f"{INDENT}local {local}_type = {member} == nil and {union}.NONE "
                f"or {member}.Type\n"
                f"{INDENT}local {local} = {member} == nil and 0 or "
                f"{union}.Union.Pack(builder, {member})\n"
            )
        case ValueShape.SCALAR | ValueShape.ARRAY:
            return ""
        case _:
            assert_never(shape)


def _pack_add(ctx: GenContext, struct_def: StructDef, field: FieldDef) -> str:
    """Add a field inside the Start/End bracket."""
    class_name = ctx.name(struct_def)
    add = f"{class_name}.Add{ctx.accessor(struct_def, field)}"
    member = f"o.{mirror_name(field)}"
    local = f"_{field.name}"
    shape = value_shape(field.type)

    match shape:
        case ValueShape.SCALAR:
            return f"{INDENT}{add}(builder, {member})\n"
        case ValueShape.STRUCT:
            nested = ctx.struct_of(field.type)
            if not nested.fixed:
                return f"{INDENT}{add}(builder, {local})\n"
            # structs are stored inline, so they are built right before being added
            return (
                f"{INDENT}if {member} ~= nil then\n"
                f"{INDENT}{INDENT}{add}(builder, {ctx.require(nested)}.Pack(builder, {member}))\n"
                f"{INDENT}{END}"
            )
        case ValueShape.STRING:
            return f"{INDENT}{add}(builder, {local})\n"
        case ValueShape.VECTOR:
            if _is_union_vector(field):
                return ""
            return f"{INDENT}{add}(builder, {local})\n"
        case ValueShape.UNION:
            type_field = union_type_field(struct_def, field)
            add_type = f"{class_name}.Add{ctx.accessor(struct_def, type_field)}"
            return f"{INDENT}{add_type}(builder, {local}_type)\n{INDENT}{add}(builder, {local})\n"
        case ValueShape.ARRAY:
            raise AssertionError(f"array field {field.name} in table {struct_def.name}")
        case _:
            assert_never(shape)


def gen_pack(ctx: GenContext, struct_def: StructDef) -> str:
    name = ctx.name(struct_def)
    code = f"function {name}.Pack(builder, o)\n"

    if struct_def.fixed:
        args = struct_builder_args(ctx, struct_def, FieldPath(element="o"))
        code += f"{INDENT}return {name}.Create{name}(builder{''.join(', ' + a for a in args)})\n"
        code += END + "\n"
        return code

    fields = _mirror_fields(struct_def)
    for field in fields:
        code += _pack_child(ctx, struct_def, field)
    code += f"{INDENT}{name}.Start(builder)\n"
    for field in fields:
        code += _pack_add(ctx, struct_def, field)
    code += f"{INDENT}return {name}.End(builder)\n"
    code += END + "\n"
    return code


# Mirror type


def _mirror_default(ctx: GenContext, field: FieldDef) -> str:
    shape = value_shape(field.type)
    match shape:
        case ValueShape.STRUCT | ValueShape.UNION:
            return "nil"
        case ValueShape.STRING:
            return "''"
        case ValueShape.VECTOR:
            return "nil" if ctx.options.empty_vectors_as_absent else "{}"
        case ValueShape.ARRAY:
            return "{}"
        case ValueShape.SCALAR:
            return default_literal(field, ctx)
        case _:
            assert_never(shape)


def gen_object_decl(ctx: GenContext, struct_def: StructDef) -> str:
    """Constructor of the mirror type; nested objects start out absent."""
    name = ctx.name(struct_def)
    code = f"function {name}.T()\n"
    code += f"{INDENT}local o = {{}}\n"
    for field in _mirror_fields(struct_def):
        code += f"{INDENT}o.{mirror_name(field)} = {_mirror_default(ctx, field)}\n"
    code += f"{INDENT}return o\n"
    code += END
    return code


def gen_object_api(ctx: GenContext, struct_def: StructDef) -> str:
    code = "\n--Object Base API\n"
    code += gen_unpack(ctx, struct_def)
    code += gen_pack(ctx, struct_def)
    code += gen_object_decl(ctx, struct_def)
    return code


def _indent(text: str) -> str:
    return "".join(INDENT + line if line.strip() else line for line in text.splitlines(True))
