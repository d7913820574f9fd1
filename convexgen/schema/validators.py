"""Composable field validators used to declare data models.

A schema module builds its tables out of these nodes::

    from convexgen.schema import validators as v

    owned = {
        "blog": v.obj({
            "title": v.string(),
            "category": v.enum(["tech", "life", "tutorial"]),
            "coverImage": v.file().optional(),
        }),
    }

The same tree can be written as JSON/YAML, see ``Validator.from_dict``.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

WRAPPER_KINDS = ("optional", "nullable")
SCALAR_KINDS = ("string", "number", "int", "float", "boolean", "custom")
FILTERABLE_KINDS = ("string", "boolean", "number", "float", "int", "enum")


@dataclass
class Validator:
    """A single node of a validator tree."""
    kind: str
    inner: Optional["Validator"] = None
    element: Optional["Validator"] = None
    values: List[str] = field(default_factory=list)
    shape: Optional[Dict[str, "Validator"]] = None
    options: List["Validator"] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def optional(self) -> "Validator":
        return Validator("optional", inner=self)

    def nullable(self) -> "Validator":
        return Validator("nullable", inner=self)

    def unwrap(self) -> "Validator":
        node = self
        while node.kind in WRAPPER_KINDS and node.inner is not None:
            node = node.inner
        return node

    def file_kind(self) -> Optional[str]:
        """Return 'file' for an upload placeholder, 'files' for an array of them."""
        node = self.unwrap()
        if node.kind == "custom":
            return "file"
        if node.kind == "array" and node.element is not None:
            if node.element.file_kind() == "file":
                return "files"
        return None

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> "Validator":
        """Build a validator from its JSON form.

        A bare string is shorthand for ``{"type": <string>}``; any node may carry
        ``"optional": true`` or ``"nullable": true``.
        """
        if isinstance(data, str):
            data = {"type": data}
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError(f"validator node must be a string or an object with 'type': {data!r}")

        kind = data["type"]
        if kind == "file":
            node = file()
        elif kind in WRAPPER_KINDS:
            node = Validator(kind, inner=cls.from_dict(data["inner"]))
        elif kind == "enum":
            node = enum(data.get("values", []))
        elif kind == "literal":
            node = literal(data["value"])
        elif kind == "array":
            node = array(cls.from_dict(data["element"]))
        elif kind == "object":
            node = object_({k: cls.from_dict(v) for k, v in data.get("shape", {}).items()})
        elif kind == "union":
            node = union([cls.from_dict(o) for o in data.get("options", [])])
        else:
            # Unknown kinds are kept so the resolver can report them
            node = Validator(kind, meta=dict(data.get("meta", {})))

        if data.get("nullable"):
            node = node.nullable()
        if data.get("optional"):
            node = node.optional()
        return node


def string() -> Validator:
    return Validator("string")


def number() -> Validator:
    return Validator("number")


def integer() -> Validator:
    return Validator("int")


def float_() -> Validator:
    return Validator("float")


def boolean() -> Validator:
    return Validator("boolean")


def custom(**meta: Any) -> Validator:
    return Validator("custom", meta=meta)


def file() -> Validator:
    """Opaque upload reference; the backend resolves it into a URL."""
    return custom(cv="file")


def files() -> Validator:
    return array(file())


def enum(values: List[str]) -> Validator:
    return Validator("enum", values=list(values))


def literal(value: str) -> Validator:
    return Validator("literal", values=[value])


def array(element: Validator) -> Validator:
    return Validator("array", element=element)


def object_(shape: Dict[str, Validator]) -> Validator:
    return Validator("object", shape=dict(shape))


# Schema modules read better with v.obj(...)
obj = object_


def union(options: List[Validator]) -> Validator:
    return Validator("union", options=list(options))


def optional(node: Validator) -> Validator:
    return node.optional()


def nullable(node: Validator) -> Validator:
    return node.nullable()
