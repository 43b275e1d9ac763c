"""Enum value tables, union dispatch tables and union value containers."""

from .context import INDENT, GenContext
from .types import BaseType, EnumDef, EnumVal

END = "end\n"


def begin_enum(class_name: str) -> str:
    return f"local {class_name} = {{\n"


def enum_member(ctx: GenContext, enum_def: EnumDef, ev: EnumVal) -> str:
    return f"{INDENT}{ctx.enum_val_name(enum_def, ev)} = {ev.value},\n"


def end_enum() -> str:
    return "}\n"


def has_string_arm(enum_def: EnumDef) -> bool:
    return any(
        ev.union_type is not None and ev.union_type.base_type == BaseType.STRING
        for ev in enum_def.values
    )


def needs_runtime(ctx: GenContext, enum_def: EnumDef) -> bool:
    """Only the union decoder for string arms touches the runtime."""
    return enum_def.is_union and ctx.options.generate_object_api and has_string_arm(enum_def)


def gen_dispatch_table(ctx: GenContext, enum_def: EnumDef) -> str:
    """Map each non-NONE discriminant to the module that decodes it.

    Modules are required on first use, as the arms usually require the union
    module themselves.
    """
    name = ctx.name(enum_def)
    code = "\nlocal dataTypeToClass = {}\n"
    for ev in enum_def.values:
        if ev.is_zero() or ev.union_type is None:
            continue
        if ev.union_type.base_type == BaseType.STRING:
            code += f"dataTypeToClass[{ev.value}] = string\n"
        else:
            module = ctx.module(ctx.struct_of(ev.union_type))
            code += f"dataTypeToClass[{ev.value}] = '{module}'\n"
    code += f"{name}.__dataTypeToClass = dataTypeToClass\n\n"

    code += f"function {name}.ClassOf(t)\n"
    code += f"{INDENT}local c = dataTypeToClass[t]\n"
    code += f"{INDENT}if type(c) == 'string' then\n"
    code += f"{INDENT}{INDENT}return require(c)\n"
    code += f"{INDENT}{END}"
    code += f"{INDENT}return c\n"
    code += END
    return code


def gen_union_value(ctx: GenContext, enum_def: EnumDef) -> str:
    """Holder of a discriminant and one payload.

    ``u:As(t)`` yields the payload only when ``t`` is the stored discriminant.
    """
    name = ctx.name(enum_def)
    meta_name = f"{name}_Union_mt"
    code = f"\nlocal {meta_name} = {{}}\n\n"
    code += f"function {meta_name}:As(t)\n"
    code += f"{INDENT}if self.Type == t then\n"
    code += f"{INDENT}{INDENT}return self.Value\n"
    code += f"{INDENT}{END}"
    code += END + "\n"

    code += f"{name}.Union = {{}}\n\n"
    code += f"function {name}.Union.New(t, value)\n"
    code += f"{INDENT}local o = {{Type = t or 0, Value = value}}\n"
    code += f"{INDENT}setmetatable(o, {{__index = {meta_name}}})\n"
    code += f"{INDENT}return o\n"
    code += END
    return code


def gen_union_object_api(ctx: GenContext, enum_def: EnumDef) -> str:
    name = ctx.name(enum_def)
    code = f"\nfunction {name}.Union.Pack(builder, u)\n"
    code += f"{INDENT}local c = {name}.ClassOf(u.Type)\n"
    code += f"{INDENT}if c == nil or u.Value == nil then\n"
    code += f"{INDENT}{INDENT}return 0\n"
    code += f"{INDENT}{END}"
    if has_string_arm(enum_def):
        code += f"{INDENT}if c == string then\n"
        code += f"{INDENT}{INDENT}return builder:CreateString(u.Value)\n"
        code += f"{INDENT}{END}"
    code += f"{INDENT}return c.Pack(builder, u.Value)\n"
    code += END + "\n"

    code += f"function {name}.Union.UnPack(t, view)\n"
    code += f"{INDENT}local c = {name}.ClassOf(t)\n"
    code += f"{INDENT}if c == nil or view == nil then\n"
    code += f"{INDENT}{INDENT}return nil\n"
    code += f"{INDENT}{END}"
    code += f"{INDENT}local u = {name}.Union.New(t)\n"
    if has_string_arm(enum_def):
        code += f"{INDENT}if c == string then\n"
        code += f"{INDENT}{INDENT}local length = view:Get(flatbuffers.N.UOffsetT, view.pos)\n"
        code += f"{INDENT}{INDENT}u.Value = view.bytes:Slice(view.pos + 4, view.pos + 4 + length)\n"
        code += f"{INDENT}{INDENT}return u\n"
        code += f"{INDENT}{END}"
    code += f"{INDENT}local v = c.New()\n"
    code += f"{INDENT}v:Init(view.bytes, view.pos)\n"
    code += f"{INDENT}u.Value = v:UnPack()\n"
    code += f"{INDENT}return u\n"
    code += END
    return code


def gen_enum(ctx: GenContext, enum_def: EnumDef) -> str:
    """Generate enum declarations."""
    code = begin_enum(ctx.name(enum_def))
    for ev in enum_def.values:
        code += enum_member(ctx, enum_def, ev)
    code += end_enum()

    if enum_def.is_union:
        code += gen_dispatch_table(ctx, enum_def)
        code += gen_union_value(ctx, enum_def)
        if ctx.options.generate_object_api:
            code += gen_union_object_api(ctx, enum_def)
    return code
