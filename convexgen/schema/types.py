"""Dataclasses for the harvested data model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from convexgen.schema.validators import Validator


class TableKind(str, Enum):
    OWNED = "owned"
    ORG_SCOPED = "orgScoped"
    BASE = "base"
    SINGLETON = "singleton"
    CHILD = "child"

    @property
    def filterable(self) -> bool:
        return self in (TableKind.OWNED, TableKind.ORG_SCOPED)


@dataclass(frozen=True)
class Scalar:
    name: str  # "String", "Double" or "Bool"

    @property
    def swift(self) -> str:
        return self.name


@dataclass(frozen=True)
class EnumRef:
    name: str

    @property
    def swift(self) -> str:
        return self.name


@dataclass(frozen=True)
class RecordRef:
    name: str

    @property
    def swift(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnionRef:
    name: str

    @property
    def swift(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayOf:
    element: "FieldType"
    element_optional: bool = False

    @property
    def swift(self) -> str:
        suffix = "?" if self.element_optional else ""
        return f"[{self.element.swift}{suffix}]"


FieldType = Union[Scalar, EnumRef, RecordRef, UnionRef, ArrayOf]

STRING = Scalar("String")
DOUBLE = Scalar("Double")
BOOL = Scalar("Bool")


@dataclass(frozen=True)
class FieldEntry:
    """A resolved field: its type plus whether it may be absent."""
    type: FieldType
    optional: bool = False

    @property
    def swift_type(self) -> str:
        return f"{self.type.swift}?" if self.optional else self.type.swift

    @property
    def is_enum(self) -> bool:
        return isinstance(self.type, EnumRef)


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    kind: TableKind
    fields: Dict[str, FieldEntry]  # implicit + declared + file URL fields
    user_fields: Dict[str, FieldEntry]  # declared fields only
    shape: Dict[str, Validator]


@dataclass(frozen=True)
class RecordDecl:
    """A synthesized nested or discriminated-union record."""
    name: str
    fields: Dict[str, FieldEntry]
    is_union: bool = False


@dataclass(frozen=True)
class FactoryCall:
    factory: str
    table: str
    source_file: str
    raw_options: str

    @property
    def kind(self) -> TableKind:
        return FACTORY_KINDS[self.factory]

    @property
    def search(self) -> bool:
        return "search" in self.raw_options

    @property
    def soft_delete(self) -> bool:
        return "softDelete" in self.raw_options

    @property
    def acl(self) -> bool:
        return "acl" in self.raw_options

    @property
    def pub(self) -> bool:
        return "pub" in self.raw_options


FACTORY_KINDS = {
    "crud": TableKind.OWNED,
    "orgCrud": TableKind.ORG_SCOPED,
    "childCrud": TableKind.CHILD,
    "cacheCrud": TableKind.BASE,
    "singletonCrud": TableKind.SINGLETON,
}


@dataclass
class ModuleDescriptor:
    name: str
    functions: List[str]
    table_name: str
    factory_calls: List[FactoryCall] = field(default_factory=list)
    kind: Optional[TableKind] = None

    def exports(self, fn: str) -> bool:
        return fn in self.functions

    def exports_all(self, *fns: str) -> bool:
        return all(fn in self.functions for fn in fns)

    @property
    def has_acl(self) -> bool:
        if self.exports_all("addEditor", "removeEditor", "setEditors", "editors"):
            return True
        return any(call.acl for call in self.factory_calls)


@dataclass(frozen=True)
class WhereDescriptor:
    table_name: str
    kind: TableKind
    fields: Dict[str, FieldType]

    @property
    def has_own(self) -> bool:
        return self.kind == TableKind.OWNED
