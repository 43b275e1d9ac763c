"""Layout calculation for structs and tables."""

from dataclasses import replace

from .errors import ValidationError
from .types import BaseType, FieldDef, Schema, StructDef, Type, is_scalar

# Scalar sizes in bytes
SCALAR_SIZES: dict[BaseType, int] = {
    BaseType.UTYPE: 1,
    BaseType.BOOL: 1,
    BaseType.BYTE: 1,
    BaseType.UBYTE: 1,
    BaseType.SHORT: 2,
    BaseType.USHORT: 2,
    BaseType.INT: 4,
    BaseType.UINT: 4,
    BaseType.LONG: 8,
    BaseType.ULONG: 8,
    BaseType.FLOAT: 4,
    BaseType.DOUBLE: 8,
}

UOFFSET_SIZE = 4
VOFFSET_SIZE = 2

# vtable size and object size precede the field offsets
VTABLE_FIXED_FIELDS = 2


def padding_bytes(size: int, alignment: int) -> int:
    """Bytes needed to bring ``size`` up to a multiple of ``alignment``."""
    return (-size) & (alignment - 1)


def field_voffset(slot: int) -> int:
    """Byte offset of a table slot inside its vtable."""
    return (slot + VTABLE_FIXED_FIELDS) * VOFFSET_SIZE


def inline_size(t: Type, schema: Schema) -> int:
    """Size of a value of type ``t`` where it is stored inline."""
    if is_scalar(t.base_type):
        return SCALAR_SIZES[t.base_type]
    if t.base_type == BaseType.STRUCT and t.struct_name is not None:
        struct_def = schema.struct(t.struct_name)
        if struct_def.fixed:
            return struct_def.bytesize
    if t.base_type == BaseType.ARRAY:
        return inline_size(t.vector_type(), schema) * t.fixed_length
    return UOFFSET_SIZE


def inline_alignment(t: Type, schema: Schema) -> int:
    """Alignment required by a value of type ``t`` stored inline."""
    if is_scalar(t.base_type):
        return SCALAR_SIZES[t.base_type]
    if t.base_type == BaseType.STRUCT and t.struct_name is not None:
        struct_def = schema.struct(t.struct_name)
        if struct_def.fixed:
            return struct_def.minalign
    if t.base_type == BaseType.ARRAY:
        return inline_alignment(t.vector_type(), schema)
    return UOFFSET_SIZE


def assign_slots(fields: list[FieldDef]) -> list[FieldDef]:
    """Number table fields by declaration position.

    Deprecated fields keep their slot so later fields never move.
    """
    return [replace(f, offset=index, padding=0) for index, f in enumerate(fields)]


class LayoutResolver:
    """Resolve struct offsets, padding and sizes, and table slots."""

    def __init__(self, schema: Schema):
        self.schema = schema
        self._cache: dict[str, StructDef] = {}
        self._resolving: set[str] = set()
        # Lookups during resolution must see already resolved structs
        self._view = Schema(enums=schema.enums, structs=list(schema.structs))

    def _struct(self, name: str) -> StructDef:
        if name in self._cache:
            return self._cache[name]
        return self.resolve_struct(self.schema.struct(name))

    def _sync(self, struct_def: StructDef) -> None:
        self._view.structs = [
            struct_def if s.qualified_name == struct_def.qualified_name else s
            for s in self._view.structs
        ]

    def resolve_struct(self, struct_def: StructDef) -> StructDef:
        """Resolve the layout of a single struct or table (with caching)."""
        name = struct_def.qualified_name
        if name in self._cache:
            return self._cache[name]

        if not struct_def.fixed:
            resolved = replace(struct_def, fields=assign_slots(struct_def.fields))
            self._cache[name] = resolved
            self._sync(resolved)
            return resolved

        if name in self._resolving:
            raise ValidationError(f"struct {name} contains itself")
        self._resolving.add(name)

        # Nested structs must know their own size first
        for f in struct_def.fields:
            t = f.type
            if t.base_type in (BaseType.STRUCT, BaseType.ARRAY) and t.struct_name is not None:
                self._struct(t.struct_name)

        bytesize = 0
        minalign = struct_def.minalign
        fields: list[FieldDef] = []

        for f in struct_def.fields:
            size = inline_size(f.type, self._view)
            align = inline_alignment(f.type, self._view)
            minalign = max(minalign, align)

            padding = padding_bytes(bytesize, align)
            bytesize += padding
            if fields:
                fields[-1] = replace(fields[-1], padding=padding)

            fields.append(replace(f, offset=bytesize, padding=0))
            bytesize += size

        padding = padding_bytes(bytesize, minalign)
        bytesize += padding
        if fields:
            fields[-1] = replace(fields[-1], padding=padding)

        resolved = replace(struct_def, fields=fields, bytesize=bytesize, minalign=minalign)
        self._resolving.discard(name)
        self._cache[name] = resolved
        self._sync(resolved)
        return resolved

    def resolve(self) -> Schema:
        """Return a copy of the schema with every layout resolved."""
        structs = [self.resolve_struct(s) for s in self.schema.structs]
        return replace(self.schema, structs=structs)


def resolve_layout(schema: Schema) -> Schema:
    """Resolve offsets, padding, sizes and slots for a schema."""
    return LayoutResolver(schema).resolve()
