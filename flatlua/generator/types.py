"""Schema AST consumed by the Lua generator.

The AST is produced by the parser (or loaded from JSON) with its layout
already resolved, and is treated as read-only by every emitter.
"""

from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class BaseType(StrEnum):
    """Tag of a schema type."""

    NONE = auto()
    UTYPE = auto()  # union discriminant
    BOOL = auto()
    BYTE = auto()
    UBYTE = auto()
    SHORT = auto()
    USHORT = auto()
    INT = auto()
    UINT = auto()
    LONG = auto()
    ULONG = auto()
    FLOAT = auto()
    DOUBLE = auto()
    STRING = auto()
    VECTOR = auto()
    STRUCT = auto()
    UNION = auto()
    ARRAY = auto()


SCALAR_TYPES = frozenset(
    [
        BaseType.UTYPE,
        BaseType.BOOL,
        BaseType.BYTE,
        BaseType.UBYTE,
        BaseType.SHORT,
        BaseType.USHORT,
        BaseType.INT,
        BaseType.UINT,
        BaseType.LONG,
        BaseType.ULONG,
        BaseType.FLOAT,
        BaseType.DOUBLE,
    ]
)

FLOAT_TYPES = frozenset([BaseType.FLOAT, BaseType.DOUBLE])


def is_scalar(base_type: BaseType) -> bool:
    """Check if a base type is stored inline as a number."""
    return base_type in SCALAR_TYPES


@dataclass
class Type(DataClassJsonMixin):
    """A resolved schema type.

    For vectors and arrays ``element`` holds the element's base type and the
    reference fields describe the element. ``struct_name`` and ``enum_name``
    are qualified names (``MyGame.Sample.Monster``).
    """

    base_type: BaseType
    element: BaseType = BaseType.NONE
    struct_name: str | None = None
    enum_name: str | None = None
    fixed_length: int = 0

    def vector_type(self) -> "Type":
        """Return the type of a single vector or array element."""
        return Type(self.element, struct_name=self.struct_name, enum_name=self.enum_name)


@dataclass
class FieldDef(DataClassJsonMixin):
    """A field of a struct or table.

    ``offset`` is the byte offset inside a fixed struct, or the slot index for
    tables. ``padding`` counts the alignment bytes that follow the field in
    forward layout.
    """

    name: str
    type: Type
    default: str = "0"
    deprecated: bool = False
    offset: int = 0
    padding: int = 0


@dataclass
class StructDef(DataClassJsonMixin):
    """A struct (``fixed``) or table definition."""

    name: str
    fixed: bool
    fields: list[FieldDef]
    namespace: list[str] = field(default_factory=list)
    bytesize: int = 0
    minalign: int = 1

    @property
    def qualified_name(self) -> str:
        return ".".join([*self.namespace, self.name])


@dataclass
class EnumVal(DataClassJsonMixin):
    """A single enum value, or a union arm when ``union_type`` is set."""

    name: str
    value: int
    union_type: Type | None = None

    def is_zero(self) -> bool:
        return self.value == 0


@dataclass
class EnumDef(DataClassJsonMixin):
    """An enum or union definition."""

    name: str
    values: list[EnumVal]
    namespace: list[str] = field(default_factory=list)
    is_union: bool = False
    underlying: BaseType = BaseType.INT

    @property
    def qualified_name(self) -> str:
        return ".".join([*self.namespace, self.name])

    def find_by_value(self, constant: str) -> EnumVal | None:
        """Find the value whose number matches a default constant."""
        try:
            number = int(constant)
        except ValueError:
            return None
        for val in self.values:
            if val.value == number:
                return val
        return None


@dataclass
class Schema(DataClassJsonMixin):
    """A complete, layout-resolved schema in declaration order."""

    enums: list[EnumDef]
    structs: list[StructDef]
    root_type: str | None = None

    def struct(self, qualified_name: str) -> StructDef:
        for struct_def in self.structs:
            if struct_def.qualified_name == qualified_name:
                return struct_def
        raise KeyError(qualified_name)

    def enum(self, qualified_name: str) -> EnumDef:
        for enum_def in self.enums:
            if enum_def.qualified_name == qualified_name:
                return enum_def
        raise KeyError(qualified_name)
