"""
Detect CRUD factory calls in backend function modules.
A factory call wires a table's endpoints into the backend, e.g.
``export const { create, list } = orgCrud('wiki', { acl: true })``.
"""
import re
from typing import Dict, List, Tuple

from convexgen.scanners.source_text import mask_source
from convexgen.schema.types import FactoryCall

FACTORY_CALL_RE = re.compile(r"\b(crud|orgCrud|childCrud|cacheCrud|singletonCrud)\(\s*(['\"])(\w+)\2")

CRUD_BASE = ["create", "update", "rm", "bulkCreate", "bulkRm", "bulkUpdate"]
CRUD_PUB = ["pub.list", "pub.read"]
ORG_CRUD_BASE = ["list", "read", "create", "update", "rm", "bulkCreate", "bulkRm", "bulkUpdate"]
ORG_ACL = ["addEditor", "removeEditor", "setEditors", "editors"]
CHILD_BASE = ["list", "create", "update", "rm", "bulkCreate", "bulkRm", "bulkUpdate"]
CACHE_BASE = ["get", "all", "list", "create", "update", "rm", "invalidate", "purge", "load", "refresh"]
SINGLETON_BASE = ["get", "upsert"]


def _options_end(masked: str, start: int) -> int:
    depth = 1
    pos = start
    while pos < len(masked):
        ch = masked[pos]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    return len(masked)


def find_factory_calls(content: str, source_file: str) -> List[FactoryCall]:
    """All factory calls in one module source, in source order."""
    masked = mask_source(content)
    calls = []
    for m in FACTORY_CALL_RE.finditer(content):
        # A match whose name was blanked sits inside a string or comment
        if masked[m.start()] != content[m.start()]:
            continue
        end = _options_end(masked, m.end())
        calls.append(FactoryCall(
            factory=m.group(1),
            table=m.group(3),
            source_file=source_file,
            raw_options=content[m.end():end],
        ))
    return calls


def endpoints_for_factory(call: FactoryCall) -> List[str]:
    """Endpoint names a factory call generates, given its option flags."""
    if call.factory == "singletonCrud":
        return list(SINGLETON_BASE)
    if call.factory == "cacheCrud":
        return list(CACHE_BASE)
    if call.factory == "childCrud":
        endpoints = list(CHILD_BASE)
        if call.pub:
            endpoints.extend(["pub.list", "pub.get"])
        return endpoints
    if call.factory == "orgCrud":
        endpoints = list(ORG_CRUD_BASE)
        if call.acl:
            endpoints.extend(ORG_ACL)
        if call.soft_delete:
            endpoints.append("restore")
        if call.search:
            endpoints.append("search")
        return endpoints

    endpoints = CRUD_BASE + CRUD_PUB
    if call.search:
        endpoints.append("pub.search")
    if call.soft_delete:
        endpoints.append("restore")
    return endpoints


def group_endpoints(endpoints: List[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    """Split endpoints into top-level names and names grouped by dotted prefix."""
    plain: List[str] = []
    grouped: Dict[str, List[str]] = {}
    for endpoint in endpoints:
        prefix, dot, name = endpoint.partition(".")
        if dot:
            grouped.setdefault(prefix, []).append(name)
        else:
            plain.append(endpoint)
    return plain, grouped
