"""Resolve validator nodes into field types."""
from typing import Dict, List

from convexgen.core.errors import UnsupportedValidatorError
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.types import (
    BOOL,
    DOUBLE,
    STRING,
    ArrayOf,
    EnumRef,
    FieldEntry,
    RecordDecl,
    RecordRef,
    UnionRef,
)
from convexgen.schema.validators import WRAPPER_KINDS, Validator

SIMPLE_TYPES = {
    "string": STRING,
    "number": DOUBLE,
    "float": DOUBLE,
    "int": DOUBLE,
    "boolean": BOOL,
    # Opaque custom values (upload references) travel as strings
    "custom": STRING,
}


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def synthesized_name(model_name: str, field_name: str) -> str:
    return f"{capitalize(model_name)}{capitalize(field_name)}"


def singularize(field_name: str) -> str:
    return field_name[:-1] if field_name.endswith("s") else field_name


def resolve_type(node: Validator, model_name: str, field_name: str, registry: TypeRegistry) -> FieldEntry:
    """Map one validator node to a FieldEntry, registering any named types it needs."""
    if node.kind in WRAPPER_KINDS and node.inner is not None:
        inner = resolve_type(node.inner, model_name, field_name, registry)
        return FieldEntry(inner.type, optional=True)

    simple = SIMPLE_TYPES.get(node.kind)
    if simple is not None:
        return FieldEntry(simple)

    if node.kind == "enum":
        name = synthesized_name(model_name, field_name)
        registry.register_enum(name, node.values)
        return FieldEntry(EnumRef(name))

    if node.kind == "array" and node.element is not None:
        if node.element.kind == "custom":
            return FieldEntry(ArrayOf(STRING))
        inner = resolve_type(node.element, model_name, singularize(field_name), registry)
        return FieldEntry(ArrayOf(inner.type, inner.optional))

    if node.kind == "union" and node.options:
        name = synthesized_name(model_name, field_name)
        collect_union_record(name, node.options, registry)
        return FieldEntry(UnionRef(name))

    if node.kind == "object" and node.shape is not None:
        name = synthesized_name(model_name, field_name)
        collect_nested_record(name, node.shape, registry)
        return FieldEntry(RecordRef(name))

    raise UnsupportedValidatorError(node.kind, model_name, field_name)


def resolve_fields(shape: Dict[str, Validator], model_name: str, registry: TypeRegistry) -> Dict[str, FieldEntry]:
    return {name: resolve_type(node, model_name, name, registry) for name, node in shape.items()}


def collect_nested_record(name: str, shape: Dict[str, Validator], registry: TypeRegistry) -> None:
    if not registry.reserve_record(name, shape.keys()):
        return
    # inner names use the lowercased record name as model, e.g. UseraddressGeo
    fields = resolve_fields(shape, name.lower(), registry)
    registry.add_record(RecordDecl(name=name, fields=fields))


def discriminant_values(options: List[Validator]) -> List[str]:
    """Every literal value the options declare for their shared ``type`` field."""
    values: List[str] = []
    for option in options:
        shape = option.unwrap().shape or {}
        type_node = shape.get("type")
        if type_node is None:
            continue
        type_node = type_node.unwrap()
        if type_node.kind in ("enum", "literal"):
            values.extend(type_node.values)
    return values


def collect_union_record(name: str, options: List[Validator], registry: TypeRegistry) -> None:
    keys: List[str] = []
    for option in options:
        for key in (option.unwrap().shape or {}):
            if key not in keys:
                keys.append(key)
    if not registry.reserve_record(name, keys):
        return

    values = discriminant_values(options)
    if not values:
        raise UnsupportedValidatorError("union without a 'type' discriminant", name, "type")
    enum_name = f"{name}Type"
    registry.register_enum(enum_name, values, discriminant=True)

    # Only one option is present on the wire, so every non-discriminant field is optional
    fields: Dict[str, FieldEntry] = {"type": FieldEntry(EnumRef(enum_name))}
    for option in options:
        for key, node in (option.unwrap().shape or {}).items():
            if key == "type" or key in fields:
                continue
            resolved = resolve_type(node, name, key, registry)
            fields[key] = FieldEntry(resolved.type, optional=True)
    registry.add_record(RecordDecl(name=name, fields=fields, is_union=True))
