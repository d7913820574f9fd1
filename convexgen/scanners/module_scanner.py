"""
Scanner for backend function modules.
Extracts top-level exported names from TypeScript source using a
delimiter-depth scan over masked text (no full AST parsing).
"""
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from convexgen.scanners.factory_scanner import find_factory_calls
from convexgen.scanners.source_text import CLOSERS, OPENERS, lower_first, mask_source, matching_close
from convexgen.schema.types import ModuleDescriptor, TableDescriptor

log = logging.getLogger(__name__)

# Maximum module size to read (1MB)
MAX_FILE_SIZE = 1024 * 1024

EXPORT_DECL_RE = re.compile(r"export\s+(?:const|let)\s")
EXPORT_BLOCK_RE = re.compile(r"export\s+\{([^}]+)\}")
CONTINUATION_RE = re.compile(r"\s*(?:,|\{|//|/\*)")
IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
IDENT_START_RE = re.compile(r"[A-Za-z_$]")
IDENT_CHARS_RE = re.compile(r"[\w$]*")
AS_RE = re.compile(r"\s+as\s+")


def extract_statement(content: str, start: int) -> str:
    """Text of the declaration starting at ``start``.

    A ``;`` at depth zero ends the statement. So does a newline at depth zero,
    unless the next non-blank text continues it (``,``, ``{`` or a comment opener).
    """
    stack: List[str] = []
    i = start
    while i < len(content):
        ch = content[i]
        if ch in OPENERS:
            stack.append(OPENERS[ch])
        elif ch in CLOSERS:
            if not stack:
                break
            stack.pop()
        elif ch == ";" and not stack:
            break
        elif ch == "\n" and not stack:
            if not CONTINUATION_RE.match(content, i + 1):
                break
        i += 1
    return content[start:i]


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _assigns_at(text: str, i: int) -> bool:
    j = _skip_ws(text, i)
    return text.startswith("=", j) and not text.startswith("==", j) and not text.startswith("=>", j)


def _skip_to_next_binding(text: str, i: int) -> int:
    depth = 0
    while i < len(text):
        ch = text[i]
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        elif ch == "," and depth == 0:
            return i + 1
        i += 1
    return i


def _annotation_assign(text: str, i: int) -> Optional[int]:
    """Position of the ``=`` after a type annotation, or None if there is none."""
    depth = 0
    # generic arguments, e.g. Record<string, number>
    angle = 0
    while i < len(text):
        ch = text[i]
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        elif ch == "<":
            angle += 1
        elif ch == ">" and text[i - 1] != "=":
            angle -= 1
        elif depth == 0 and angle <= 0 and ch == ",":
            return None
        elif depth == 0 and angle <= 0 and ch == "=" and text[i + 1:i + 2] not in ("=", ">") and text[i - 1] not in "=!<>":
            return i
        i += 1
    return None


def _binding_name(part: str) -> List[str]:
    part = part.strip()
    if not part:
        return []
    part = part.split("=", 1)[0].strip()
    if part.startswith("..."):
        part = part[3:].strip()
    if ":" in part:
        # { original: renamed }
        part = part.split(":", 1)[1].strip()
    return [part] if IDENT_RE.match(part) else []


def extract_names(block: str) -> List[str]:
    """Bound names of a destructuring pattern body, recursing into nested patterns."""
    names: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in block:
        if ch in "{[":
            if depth == 0:
                # drop the "key:" in front of a nested pattern
                current = []
            else:
                current.append(ch)
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                names.extend(extract_names("".join(current)))
                current = []
            else:
                current.append(ch)
        elif ch == "," and depth == 0:
            names.extend(_binding_name("".join(current)))
            current = []
        else:
            current.append(ch)
    names.extend(_binding_name("".join(current)))
    return names


def extract_bindings(stmt: str) -> List[str]:
    """Names bound by a ``const``/``let`` declaration list."""
    names: List[str] = []
    i = 0
    while i < len(stmt):
        ch = stmt[i]
        if ch in "{[":
            end = matching_close(stmt, i)
            if end is None:
                i += 1
                continue
            if _assigns_at(stmt, end + 1):
                names.extend(extract_names(stmt[i + 1:end]))
            i = end + 1
        elif IDENT_START_RE.match(ch):
            m = IDENT_CHARS_RE.match(stmt, i + 1)
            name = stmt[i:m.end()]
            i = m.end()
            after = _skip_ws(stmt, i)
            if stmt.startswith(":", after):
                eq = _annotation_assign(stmt, after + 1)
                if eq is not None:
                    names.append(name)
                    i = _skip_to_next_binding(stmt, eq + 1)
            elif _assigns_at(stmt, i):
                names.append(name)
                i = _skip_to_next_binding(stmt, i)
        else:
            i += 1
    return names


def parse_export_block(block: str) -> List[str]:
    """Names exported by ``export { a, b as c }``; renamed entries export the new name."""
    names = []
    for entry in block.split(","):
        entry = entry.strip()
        if not entry or entry.startswith("type "):
            continue
        name = AS_RE.split(entry)[-1].strip()
        if IDENT_RE.match(name):
            names.append(name)
    return names


def scan_exports(content: str) -> List[str]:
    """Exported names of a module, in discovery order, without duplicates."""
    masked = mask_source(content)
    found: Dict[str, None] = {}
    for m in EXPORT_DECL_RE.finditer(masked):
        for name in extract_bindings(extract_statement(masked, m.end())):
            found.setdefault(name)
    for m in EXPORT_BLOCK_RE.finditer(masked):
        for name in parse_export_block(m.group(1)):
            found.setdefault(name)
    return list(found)


def should_skip_module(path: Path, skip_modules: Iterable[str]) -> bool:
    if path.suffix != ".ts" or ".test." in path.name or path.name.endswith(".d.ts"):
        return True
    name = path.name[:-3]
    return name in skip_modules or name.startswith("_")


def list_module_files(convex_dir: Path, skip_modules: Iterable[str]) -> List[Path]:
    """Module sources in a stable (sorted) order."""
    skip = set(skip_modules)
    return [
        path for path in sorted(convex_dir.iterdir(), key=lambda p: p.name)
        if path.is_file() and not should_skip_module(path, skip)
    ]


def read_source(path: Path) -> Optional[str]:
    try:
        if path.stat().st_size > MAX_FILE_SIZE:
            log.warning("Skipping oversized module", extra={"stage": "SCAN_MODULES", "unit": path.name})
            return None
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Failed to read module: %s", e, extra={"stage": "SCAN_MODULES", "unit": path.name})
        return None


def collect_modules(
    convex_dir: Path,
    tables: Dict[str, TableDescriptor],
    skip_modules: Iterable[str],
) -> Dict[str, ModuleDescriptor]:
    """Build a descriptor for every function module that exports something."""
    modules: Dict[str, ModuleDescriptor] = {}
    for path in list_module_files(convex_dir, skip_modules):
        content = read_source(path)
        if content is None:
            continue
        functions = scan_exports(content)
        if not functions:
            continue

        name = path.name[:-3]
        calls = find_factory_calls(content, path.name)
        table_name = lower_first(name)
        table = tables.get(table_name)
        modules[name] = ModuleDescriptor(
            name=name,
            functions=functions,
            table_name=table_name,
            factory_calls=calls,
            kind=table.kind if table is not None else None,
        )
        log.debug(
            "Found %d exports (table=%s)", len(functions), table_name,
            extra={"stage": "SCAN_MODULES", "unit": name},
        )
    return modules


def scan_all_factory_calls(convex_dir: Path, skip_modules: Iterable[str]) -> Tuple[List, List[str]]:
    """Factory calls across every module, plus the module file names scanned."""
    calls = []
    files = []
    for path in list_module_files(convex_dir, skip_modules):
        content = read_source(path)
        if content is None:
            continue
        files.append(path.name)
        calls.extend(find_factory_calls(content, path.name))
    return calls, files
