"""FlatBuffers schema parser using Lark."""

import os
from dataclasses import dataclass, field
from typing import Any, TypeVar

from lark import Lark, Token
from lark.exceptions import LarkError, VisitError
from lark.visitors import Transformer

from .._logging import logger
from .errors import ValidationError
from .layout import resolve_layout
from .types import BaseType, EnumDef, EnumVal, FieldDef, Schema, StructDef, Type, is_scalar

_g_parser: Lark | None = None

SCALAR_NAMES: dict[str, BaseType] = {
    "bool": BaseType.BOOL,
    "byte": BaseType.BYTE,
    "int8": BaseType.BYTE,
    "ubyte": BaseType.UBYTE,
    "uint8": BaseType.UBYTE,
    "short": BaseType.SHORT,
    "int16": BaseType.SHORT,
    "ushort": BaseType.USHORT,
    "uint16": BaseType.USHORT,
    "int": BaseType.INT,
    "int32": BaseType.INT,
    "uint": BaseType.UINT,
    "uint32": BaseType.UINT,
    "long": BaseType.LONG,
    "int64": BaseType.LONG,
    "ulong": BaseType.ULONG,
    "uint64": BaseType.ULONG,
    "float": BaseType.FLOAT,
    "float32": BaseType.FLOAT,
    "double": BaseType.DOUBLE,
    "float64": BaseType.DOUBLE,
}

INTEGER_TYPES = frozenset(
    [
        BaseType.BYTE,
        BaseType.UBYTE,
        BaseType.SHORT,
        BaseType.USHORT,
        BaseType.INT,
        BaseType.UINT,
        BaseType.LONG,
        BaseType.ULONG,
    ]
)


@dataclass
class _Name:
    value: str


@dataclass
class _Value:
    value: str


@dataclass
class _Meta:
    name: str
    value: str | None


@dataclass
class _Metadata:
    value: dict[str, str | None]


@dataclass
class _TypeRef:
    name: str | None = None
    vector_of: "_TypeRef | None" = None
    array_of: "_TypeRef | None" = None
    length: int = 0


@dataclass
class _RawField:
    name: str
    type: _TypeRef
    default: str | None
    metadata: dict[str, str | None]


@dataclass
class _RawStruct:
    name: str
    fixed: bool
    fields: list[_RawField]
    metadata: dict[str, str | None]
    namespace: list[str] = field(default_factory=list)


@dataclass
class _RawEnumVal:
    name: str
    value: int | None


@dataclass
class _RawUnionVal:
    alias: str | None
    type_name: str


@dataclass
class _RawEnum:
    name: str
    is_union: bool
    underlying: str | None
    values: list[Any]
    namespace: list[str] = field(default_factory=list)


@dataclass
class _Namespace:
    value: list[str]


@dataclass
class _RootType:
    value: str


@dataclass
class _Ignored:
    value: str


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[object]) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")

    if hasattr(filtered[0], "value"):
        return filtered[0].value
    return filtered[0]


TMany = TypeVar("TMany")


def _find_many(args: list[Any], class_type: type[TMany]) -> list[TMany]:
    return _filter(args, class_type)


def _tokens(args: list[Any]) -> list[str]:
    return [str(v) for v in args if isinstance(v, Token)]


def _to_int(text: str) -> int:
    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-")
    if digits[:2].lower() == "0x":
        return sign * int(digits[2:], 16)
    return sign * int(digits)


class TreeTransformer(Transformer):
    """Transform parse tree into raw declarations."""

    def start(self, args: list[Any]) -> list[Any]:
        return args

    def dotted_name(self, args: list[Any]) -> _Name:
        return _Name(value=".".join(_tokens(args)))

    def namespace_decl(self, args: list[Any]) -> _Namespace:
        return _Namespace(value=_find_one(args, _Name).split("."))

    def root_decl(self, args: list[Any]) -> _RootType:
        return _RootType(value=_find_one(args, _Name))

    def ignored_decl(self, args: list[Any]) -> _Ignored:
        return _Ignored(value=str(args[0]))

    def named_type(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(name=_find_one(args, _Name))

    def vector_type(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(vector_of=args[0])

    def array_type(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(array_of=args[0], length=_to_int(str(args[1])))

    def number(self, args: list[Any]) -> _Value:
        return _Value(value=str(args[0]))

    def ident(self, args: list[Any]) -> _Value:
        return _Value(value="".join(_tokens(args)))

    def string_lit(self, args: list[Any]) -> _Value:
        return _Value(value=str(args[0])[1:-1])

    def meta_item(self, args: list[Any]) -> _Meta:
        return _Meta(name=str(args[0]), value=_find_one(args, _Value))

    def metadata(self, args: list[Any]) -> _Metadata:
        return _Metadata(value={m.name: m.value for m in _find_many(args, _Meta)})

    def field(self, args: list[Any]) -> _RawField:
        metadata = _find_one(args, _Metadata)
        return _RawField(
            name=str(args[0]),
            type=_find_one(args, _TypeRef),
            default=_find_one(args, _Value),
            metadata=metadata or {},
        )

    def _struct(self, args: list[Any], fixed: bool) -> _RawStruct:
        metadata = _find_one(args, _Metadata)
        return _RawStruct(
            name=str(args[0]),
            fixed=fixed,
            fields=_find_many(args, _RawField),
            metadata=metadata or {},
        )

    def struct_decl(self, args: list[Any]) -> _RawStruct:
        return self._struct(args, fixed=True)

    def table_decl(self, args: list[Any]) -> _RawStruct:
        return self._struct(args, fixed=False)

    def enum_val(self, args: list[Any]) -> _RawEnumVal:
        return _RawEnumVal(
            name=str(args[0]), value=_to_int(str(args[1])) if len(args) > 1 else None
        )

    def enum_decl(self, args: list[Any]) -> _RawEnum:
        return _RawEnum(
            name=str(args[0]),
            is_union=False,
            underlying=_find_one(args, _Name),
            values=_find_many(args, _RawEnumVal),
        )

    def union_val(self, args: list[Any]) -> _RawUnionVal:
        alias = _tokens(args)
        return _RawUnionVal(alias=alias[0] if alias else None, type_name=_find_one(args, _Name))

    def union_decl(self, args: list[Any]) -> _RawEnum:
        return _RawEnum(
            name=str(args[0]),
            is_union=True,
            underlying=None,
            values=_find_many(args, _RawUnionVal),
        )


class SchemaBuilder:
    """Resolve raw declarations into a schema.

    Names are looked up in the declaring namespace first, then in each
    enclosing namespace out to the global one.
    """

    def __init__(self, items: list[Any]):
        self.decls: list[_RawStruct | _RawEnum] = []
        self.root_type: tuple[list[str], str] | None = None

        namespace: list[str] = []
        for item in items:
            if isinstance(item, _Namespace):
                namespace = item.value
            elif isinstance(item, (_RawStruct, _RawEnum)):
                item.namespace = list(namespace)
                self.decls.append(item)
            elif isinstance(item, _RootType):
                self.root_type = (list(namespace), item.value)
            elif isinstance(item, _Ignored):
                logger.debug("ignoring %s declaration", item.value)

        self.symbols: dict[str, _RawStruct | _RawEnum] = {}
        for decl in self.decls:
            qualified = ".".join([*decl.namespace, decl.name])
            if qualified in self.symbols:
                raise ValidationError(f"{qualified} is declared more than once")
            self.symbols[qualified] = decl

        self.enums: dict[str, EnumDef] = {}

    def lookup(self, name: str, namespace: list[str]) -> str:
        """Return the qualified name a reference resolves to."""
        for depth in range(len(namespace), -1, -1):
            candidate = ".".join([*namespace[:depth], name])
            if candidate in self.symbols:
                return candidate
        raise ValidationError(f"Unknown type {name}")

    def resolve_type(self, ref: _TypeRef, namespace: list[str]) -> Type:
        if ref.vector_of is not None:
            element = self.resolve_type(ref.vector_of, namespace)
            if element.base_type in (BaseType.VECTOR, BaseType.ARRAY):
                raise ValidationError("Nested vectors are not supported")
            return Type(
                BaseType.VECTOR,
                element=element.base_type,
                struct_name=element.struct_name,
                enum_name=element.enum_name,
            )

        if ref.array_of is not None:
            element = self.resolve_type(ref.array_of, namespace)
            if not is_scalar(element.base_type) and element.base_type != BaseType.STRUCT:
                raise ValidationError("Arrays may only hold scalars and structs")
            if ref.length <= 0:
                raise ValidationError("Array length must be positive")
            return Type(
                BaseType.ARRAY,
                element=element.base_type,
                struct_name=element.struct_name,
                enum_name=element.enum_name,
                fixed_length=ref.length,
            )

        assert ref.name is not None
        if ref.name == "string":
            return Type(BaseType.STRING)
        if ref.name in SCALAR_NAMES:
            return Type(SCALAR_NAMES[ref.name])

        qualified = self.lookup(ref.name, namespace)
        decl = self.symbols[qualified]
        if isinstance(decl, _RawStruct):
            return Type(BaseType.STRUCT, struct_name=qualified)
        if decl.is_union:
            return Type(BaseType.UNION, enum_name=qualified)
        return Type(self.enums[qualified].underlying, enum_name=qualified)

    def build_enum(self, raw: _RawEnum) -> EnumDef:
        qualified = ".".join([*raw.namespace, raw.name])
        if raw.is_union:
            values = [EnumVal("NONE", 0)]
            for index, arm in enumerate(raw.values, start=1):
                arm_type = self.resolve_type(_TypeRef(name=arm.type_name), raw.namespace)
                if arm_type.base_type not in (BaseType.STRUCT, BaseType.STRING):
                    raise ValidationError(f"{qualified}: {arm.type_name} cannot be a union arm")
                name = arm.alias or arm.type_name.split(".")[-1]
                values.append(EnumVal(name, index, union_type=arm_type))
            underlying = BaseType.UTYPE
        else:
            if raw.underlying not in SCALAR_NAMES:
                raise ValidationError(f"{qualified}: unknown underlying type {raw.underlying}")
            underlying = SCALAR_NAMES[raw.underlying]
            if underlying not in INTEGER_TYPES:
                raise ValidationError(f"{qualified}: underlying type must be an integer")
            values = []
            next_value = 0
            for raw_val in raw.values:
                if raw_val.value is not None:
                    if raw_val.value < next_value and values:
                        raise ValidationError(
                            f"{qualified}.{raw_val.name}: enum values must be ascending"
                        )
                    next_value = raw_val.value
                values.append(EnumVal(raw_val.name, next_value))
                next_value += 1

        names = [v.name for v in values]
        if len(set(names)) != len(names):
            raise ValidationError(f"{qualified} has duplicate values")
        return EnumDef(
            name=raw.name,
            values=values,
            namespace=list(raw.namespace),
            is_union=raw.is_union,
            underlying=underlying,
        )

    def convert_default(self, owner: str, raw: _RawField, t: Type) -> str:
        if raw.default is None:
            return "0"
        if not is_scalar(t.base_type):
            raise ValidationError(f"{owner}.{raw.name}: only scalars can have a default")
        value = raw.default
        if t.base_type == BaseType.BOOL:
            if value in ("true", "false"):
                return "1" if value == "true" else "0"
        if t.enum_name is not None:
            for ev in self.enums[t.enum_name].values:
                if ev.name == value:
                    return str(ev.value)
        if value.lstrip("+-") in ("inf", "infinity", "nan"):
            if t.base_type not in (BaseType.FLOAT, BaseType.DOUBLE):
                raise ValidationError(f"{owner}.{raw.name}: {value} is not an integer")
            return value
        try:
            if t.base_type in (BaseType.FLOAT, BaseType.DOUBLE):
                float(value)
                return value.removeprefix("+")
            return str(_to_int(value))
        except ValueError:
            raise ValidationError(f"{owner}.{raw.name}: invalid default {value}") from None

    def check_field(self, raw: _RawStruct, raw_field: _RawField, t: Type) -> None:
        where = f"{'.'.join([*raw.namespace, raw.name])}.{raw_field.name}"
        if not raw.fixed:
            if t.base_type == BaseType.ARRAY:
                raise ValidationError(f"{where}: arrays are only allowed in structs")
            return

        if t.base_type in (BaseType.STRUCT, BaseType.ARRAY) and t.struct_name is not None:
            if not self._is_fixed(t):
                raise ValidationError(f"{where}: structs cannot hold tables")
        elif not is_scalar(t.base_type) and t.base_type != BaseType.ARRAY:
            raise ValidationError(f"{where}: structs may only hold scalars and structs")

    def build_fields(self, raw: _RawStruct) -> list[FieldDef]:
        owner = ".".join([*raw.namespace, raw.name])
        fields: list[tuple[int | None, FieldDef]] = []

        for raw_field in raw.fields:
            t = self.resolve_type(raw_field.type, raw.namespace)
            deprecated = "deprecated" in raw_field.metadata
            field_id = raw_field.metadata.get("id")
            slot = _to_int(field_id) if field_id is not None else None

            self.check_field(raw, raw_field, t)

            is_union = t.base_type == BaseType.UNION or (
                t.base_type == BaseType.VECTOR and t.element == BaseType.UNION
            )
            if is_union:
                if t.base_type == BaseType.UNION:
                    type_field_type = Type(BaseType.UTYPE, enum_name=t.enum_name)
                else:
                    type_field_type = Type(
                        BaseType.VECTOR, element=BaseType.UTYPE, enum_name=t.enum_name
                    )
                fields.append(
                    (
                        slot - 1 if slot is not None else None,
                        FieldDef(f"{raw_field.name}_type", type_field_type, deprecated=deprecated),
                    )
                )

            fields.append(
                (
                    slot,
                    FieldDef(
                        raw_field.name,
                        t,
                        default=self.convert_default(owner, raw_field, t),
                        deprecated=deprecated,
                    ),
                )
            )

        names = [f.name for _, f in fields]
        if len(set(names)) != len(names):
            raise ValidationError(f"{owner} has duplicate fields")

        ids = [slot for slot, _ in fields]
        if all(slot is None for slot in ids):
            return [f for _, f in fields]
        if raw.fixed:
            raise ValidationError(f"{owner}: id is only allowed on table fields")
        if any(slot is None for slot in ids):
            raise ValidationError(f"{owner}: either all fields or no fields must have an id")
        slots = [slot for slot in ids if slot is not None]
        if sorted(slots) != list(range(len(slots))):
            raise ValidationError(f"{owner}: field ids must be consecutive from 0")
        return [f for _, f in sorted(fields, key=lambda item: item[0] or 0)]

    def _is_fixed(self, t: Type) -> bool:
        assert t.struct_name is not None
        decl = self.symbols[t.struct_name]
        return isinstance(decl, _RawStruct) and decl.fixed

    def build_struct(self, raw: _RawStruct) -> StructDef:
        minalign = 1
        force_align = raw.metadata.get("force_align")
        if force_align is not None:
            if not raw.fixed:
                raise ValidationError(f"{raw.name}: force_align is only allowed on structs")
            minalign = _to_int(force_align)
            if minalign < 1 or minalign & (minalign - 1):
                raise ValidationError(f"{raw.name}: force_align must be a power of two")
        return StructDef(
            name=raw.name,
            fixed=raw.fixed,
            fields=self.build_fields(raw),
            namespace=list(raw.namespace),
            minalign=minalign,
        )

    def build(self) -> Schema:
        for decl in self.decls:
            if isinstance(decl, _RawEnum) and not decl.is_union:
                enum_def = self.build_enum(decl)
                self.enums[enum_def.qualified_name] = enum_def
        for decl in self.decls:
            if isinstance(decl, _RawEnum) and decl.is_union:
                enum_def = self.build_enum(decl)
                self.enums[enum_def.qualified_name] = enum_def

        enums = [
            self.enums[".".join([*decl.namespace, decl.name])]
            for decl in self.decls
            if isinstance(decl, _RawEnum)
        ]
        structs = [self.build_struct(decl) for decl in self.decls if isinstance(decl, _RawStruct)]

        root_type = None
        if self.root_type is not None:
            namespace, name = self.root_type
            root_type = self.lookup(name, namespace)
            decl = self.symbols[root_type]
            if not isinstance(decl, _RawStruct) or decl.fixed:
                raise ValidationError(f"root_type {name} must be a table")

        return Schema(enums=enums, structs=structs, root_type=root_type)


def parse(text: str) -> Schema:
    """Parse a schema file into a layout-resolved schema."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/schema.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar)

    try:
        tree = _g_parser.parse(text)
    except LarkError as e:
        raise ValidationError(f"Syntax error: {e}") from e

    try:
        items = TreeTransformer().transform(tree)
    except VisitError as e:
        raise ValidationError(f"Invalid {e.rule}: {e.orig_exc}") from e

    schema = SchemaBuilder(items).build()
    return resolve_layout(schema)
