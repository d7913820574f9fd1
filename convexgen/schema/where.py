"""Derive structured filter (Where) records for list endpoints."""
from typing import Dict

from convexgen.schema.types import FieldType, TableDescriptor, WhereDescriptor
from convexgen.schema.validators import FILTERABLE_KINDS, Validator


def is_filterable(node: Validator) -> bool:
    return node.unwrap().kind in FILTERABLE_KINDS


def derive_where(tables: Dict[str, TableDescriptor]) -> Dict[str, WhereDescriptor]:
    """Filter descriptors for owned and org-scoped tables with at least one scalar or enum field."""
    result: Dict[str, WhereDescriptor] = {}
    for name, table in tables.items():
        if not table.kind.filterable:
            continue
        fields: Dict[str, FieldType] = {}
        for field_name, node in table.shape.items():
            entry = table.user_fields.get(field_name)
            if entry is not None and is_filterable(node):
                fields[field_name] = entry.type
        if fields:
            result[name] = WhereDescriptor(table_name=name, kind=table.kind, fields=fields)
    return result
