"""Utility functions for Swift client generation."""
import re
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, List, Optional

from convexgen.core.config import settings

SPLIT_RE = re.compile(r"[_-]")
NON_IDENT_RE = re.compile(r"[^0-9A-Za-z]+")

# Table names that clash with Swift/Foundation types
SWIFT_NAME_MAP = {
    "Task": "TaskItem",
}

SWIFT_KEYWORDS = {
    "associatedtype", "break", "case", "catch", "class", "continue", "default", "defer", "deinit",
    "do", "else", "enum", "extension", "fallthrough", "false", "fileprivate", "for", "func", "guard",
    "if", "import", "in", "init", "inout", "internal", "is", "let", "nil", "open", "operator",
    "private", "protocol", "public", "repeat", "rethrows", "return", "self", "Self", "static",
    "struct", "subscript", "super", "switch", "throw", "throws", "true", "try", "typealias", "var",
    "where", "while",
}


# Set while a client is rendered; unset falls back to the global settings
_indent_width: ContextVar[Optional[int]] = ContextVar("indent_width", default=None)


@contextmanager
def indentation(width: int) -> Iterator[None]:
    """Render with ``width`` spaces per indent level inside the block."""
    token = _indent_width.set(width)
    try:
        yield
    finally:
        _indent_width.reset(token)


def indent(level: int) -> str:
    width = _indent_width.get()
    if width is None:
        width = settings.indent_width
    return " " * (width * level)


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def pascal_case(name: str) -> str:
    """Convert snake_case, kebab-case or camelCase to PascalCase."""
    return "".join(capitalize(part) for part in SPLIT_RE.split(name))


def struct_name(table_name: str) -> str:
    name = pascal_case(table_name)
    return SWIFT_NAME_MAP.get(name, name)


def api_name(module_name: str) -> str:
    return f"{pascal_case(module_name)}API"


def where_name(table_name: str) -> str:
    return f"{pascal_case(table_name)}Where"


def swift_identifier(name: str) -> str:
    return f"`{name}`" if name in SWIFT_KEYWORDS else name


def swift_enum_case(value: str) -> str:
    """Case declaration for a raw enum value, e.g. ``case inProgress = "in-progress"``."""
    parts = [p for p in NON_IDENT_RE.split(value) if p]
    if not parts:
        ident = "empty"
    else:
        ident = parts[0][:1].lower() + parts[0][1:] + "".join(capitalize(p) for p in parts[1:])
    if ident[0].isdigit():
        ident = f"_{ident}"
    if ident == value:
        return f"case {swift_identifier(ident)}"
    return f'case {swift_identifier(ident)} = "{value}"'


def swift_dict(parts: List[str]) -> str:
    return f"[{', '.join(parts)}]" if parts else "[:]"


def join_params(params: List[str], level: int) -> str:
    return f",\n{indent(level)}".join(params)


def join_methods(methods: List[List[str]]) -> List[str]:
    """Flatten method blocks, separated by one blank line."""
    lines: List[str] = []
    for method in methods:
        if lines:
            lines.append("")
        lines.extend(method)
    return lines
