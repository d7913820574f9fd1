"""Harvest table descriptors from a loaded schema module."""
import logging
from typing import Dict

from convexgen.schema.loader import SchemaModule
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.resolver import resolve_fields
from convexgen.schema.types import (
    BOOL,
    DOUBLE,
    STRING,
    ArrayOf,
    FieldEntry,
    RecordRef,
    TableDescriptor,
    TableKind,
)
from convexgen.schema.validators import Validator

log = logging.getLogger(__name__)

# Fields the backend adds to every row of a table kind
IMPLICIT_FIELDS: Dict[TableKind, Dict[str, FieldEntry]] = {
    TableKind.OWNED: {
        "_id": FieldEntry(STRING),
        "_creationTime": FieldEntry(DOUBLE),
        "author": FieldEntry(RecordRef("Author"), optional=True),
        "updatedAt": FieldEntry(DOUBLE),
        "userId": FieldEntry(STRING),
    },
    TableKind.ORG_SCOPED: {
        "_id": FieldEntry(STRING),
        "_creationTime": FieldEntry(DOUBLE),
        "orgId": FieldEntry(STRING),
        "updatedAt": FieldEntry(DOUBLE),
        "userId": FieldEntry(STRING),
    },
    TableKind.BASE: {
        "_id": FieldEntry(STRING, optional=True),
        "_creationTime": FieldEntry(DOUBLE, optional=True),
        "cacheHit": FieldEntry(BOOL, optional=True),
    },
    TableKind.SINGLETON: {
        "_id": FieldEntry(STRING, optional=True),
    },
    TableKind.CHILD: {
        "_id": FieldEntry(STRING),
        "_creationTime": FieldEntry(DOUBLE),
        "updatedAt": FieldEntry(DOUBLE, optional=True),
        "userId": FieldEntry(STRING, optional=True),
    },
}

HARVEST_ORDER = (
    ("owned", TableKind.OWNED),
    ("org_scoped", TableKind.ORG_SCOPED),
    ("base", TableKind.BASE),
    ("singleton", TableKind.SINGLETON),
    ("children", TableKind.CHILD),
)


def file_url_fields(shape: Dict[str, Validator]) -> Dict[str, FieldEntry]:
    """URL fields the backend fills in for upload placeholders."""
    fields: Dict[str, FieldEntry] = {}
    for name, node in shape.items():
        kind = node.file_kind()
        if kind == "files":
            fields[f"{name}Urls"] = FieldEntry(ArrayOf(STRING), optional=True)
        elif kind == "file":
            fields[f"{name}Url"] = FieldEntry(STRING, optional=True)
    return fields


def harvest_table(name: str, kind: TableKind, node: Validator, registry: TypeRegistry) -> TableDescriptor:
    shape = node.unwrap().shape or {}
    user_fields = resolve_fields(shape, name, registry)

    fields = dict(IMPLICIT_FIELDS[kind])
    fields.update(user_fields)
    fields.update(file_url_fields(shape))
    return TableDescriptor(name=name, kind=kind, fields=fields, user_fields=user_fields, shape=dict(shape))


def harvest_schema(schema: SchemaModule, registry: TypeRegistry) -> Dict[str, TableDescriptor]:
    tables: Dict[str, TableDescriptor] = {}
    for attr, kind in HARVEST_ORDER:
        for name, node in getattr(schema, attr).items():
            if node.unwrap().kind != "object" or node.unwrap().shape is None:
                log.warning(
                    "Skipping table without an object shape",
                    extra={"stage": "HARVEST_SCHEMA", "unit": name},
                )
                continue
            tables[name] = harvest_table(name, kind, node, registry)
            log.debug("Harvested %s table", kind.value, extra={"stage": "HARVEST_SCHEMA", "unit": name})
    return tables
