"""Typed CRUD wrappers for factory-generated endpoints."""
from typing import Dict, List, Optional, Tuple

from convexgen.generators.swift_gen.types import GenContext, Target
from convexgen.generators.swift_gen.utils import indent, join_params, swift_dict, where_name
from convexgen.schema.types import ArrayOf, EnumRef, FieldEntry, ModuleDescriptor, Scalar, TableKind

CLIENT_PARAM = "_ client: ConvexClientProtocol"
MOBILE_SERVICE = "ConvexService.shared"

# A rendered method, keyed by the endpoint it calls
Method = Tuple[str, List[str]]


class CallSite:
    """How wrappers reach the backend for one target.

    The full client receives an explicit client handle; the reduced client calls
    the shared service and can only send mutations from a wrapper.
    """

    def __init__(self, target: Target):
        self.target = target

    @property
    def full(self) -> bool:
        return self.target == Target.FULL

    def params(self, params: List[str]) -> List[str]:
        return [CLIENT_PARAM] + params if self.full else list(params)

    def call(self, kind: str, ref: str, args: str) -> str:
        if self.full:
            return f'try await client.{kind}("{ref}", args: {args})'
        return f'try await {MOBILE_SERVICE}.mutate("{ref}", args: {args})'


def signature(name: str, params: List[str], returns: Optional[str] = None, multiline: bool = True) -> List[str]:
    suffix = f" -> {returns}" if returns else ""
    if not multiline:
        return [f"{indent(1)}public static func {name}({', '.join(params)}) async throws{suffix} {{"]
    return [
        f"{indent(1)}public static func {name}(",
        f"{indent(2)}{join_params(params, 2)}",
        f"{indent(1)}) async throws{suffix} {{",
    ]


def arg_value(name: str, entry: FieldEntry) -> str:
    return f"{name}.rawValue" if entry.is_enum else name


def param_for(name: str, entry: FieldEntry, force_optional: bool = False) -> str:
    if force_optional or entry.optional:
        return f"{name}: {entry.type.swift}? = nil"
    return f"{name}: {entry.type.swift}"


def optional_guard(name: str, entry: FieldEntry, target: str = "args", level: int = 2) -> str:
    return f'{indent(level)}if let {name} {{ {target}["{name}"] = {arg_value(name, entry)} }}'


def is_arg_safe(entry: FieldEntry) -> bool:
    """Whether a field can be sent as-is in an args dictionary."""
    field_type = entry.type
    if isinstance(field_type, (Scalar, EnumRef)):
        return True
    return isinstance(field_type, ArrayOf) and isinstance(field_type.element, Scalar) and not field_type.element_optional


def org_scoped(module: ModuleDescriptor) -> bool:
    return module.kind == TableKind.ORG_SCOPED


def render_create(ref: str, fields: Dict[str, FieldEntry], org: bool, site: CallSite) -> List[str]:
    params: List[str] = ["orgId: String"] if org else []
    required: List[str] = ['"orgId": orgId'] if org else []
    optional: List[str] = []
    for name, entry in fields.items():
        params.append(param_for(name, entry))
        if entry.optional:
            optional.append(optional_guard(name, entry))
        else:
            required.append(f'"{name}": {arg_value(name, entry)}')

    binding = "var" if optional else "let"
    lines = signature("create", site.params(params))
    lines.append(f"{indent(2)}{binding} args: [String: Any] = {swift_dict(required)}")
    lines.extend(optional)
    lines.append(f"{indent(2)}{site.call('mutation', ref, 'args')}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_update(ref: str, fields: Dict[str, FieldEntry], org: bool, site: CallSite) -> List[str]:
    params: List[str] = []
    required = ['"id": id']
    if org:
        params.append("orgId: String")
        required.append('"orgId": orgId')
    params.append("id: String")
    guards: List[str] = []
    for name, entry in fields.items():
        params.append(param_for(name, entry, force_optional=True))
        guards.append(optional_guard(name, entry))
    params.append("expectedUpdatedAt: Double? = nil")
    guards.append(f'{indent(2)}if let expectedUpdatedAt {{ args["expectedUpdatedAt"] = expectedUpdatedAt }}')

    lines = signature("update", site.params(params))
    lines.append(f"{indent(2)}var args: [String: Any] = {swift_dict(required)}")
    lines.extend(guards)
    lines.append(f"{indent(2)}{site.call('mutation', ref, 'args')}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_by_id(name: str, ref: str, org: bool, site: CallSite, id_param: str = "id", id_type: str = "String") -> List[str]:
    """rm, restore and bulkRm: forward the row id(s) and the org scope."""
    params: List[str] = []
    parts = [f'"{id_param}": {id_param}']
    if org:
        params.append("orgId: String")
        parts.append('"orgId": orgId')
    params.append(f"{id_param}: {id_type}")
    lines = signature(name, site.params(params), multiline=False)
    lines.append(f"{indent(2)}{site.call('mutation', ref, swift_dict(parts))}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_read(ref: str, struct: str, org: bool, site: CallSite) -> List[str]:
    params: List[str] = []
    parts = ['"id": id']
    if org:
        params.append("orgId: String")
        parts.append('"orgId": orgId')
    params.append("id: String")
    lines = signature("read", site.params(params), returns=struct, multiline=False)
    lines.append(f"{indent(2)}{site.call('query', ref, swift_dict(parts))}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_list_args(module: ModuleDescriptor, page_size: int) -> List[str]:
    """Argument builder shared by the list wrapper and the list subscription."""
    org = org_scoped(module)
    params: List[str] = ["orgId: String"] if org else []
    params.append(f"numItems: Int = {page_size}")
    params.append("cursor: String? = nil")
    params.append(f"`where`: {where_name(module.table_name)}? = nil")

    args = ['"orgId": orgId'] if org else []
    args.append('"paginationOpts": paginationOpts')
    return [
        f"{indent(1)}public static func listArgs(",
        f"{indent(2)}{join_params(params, 2)}",
        f"{indent(1)}) -> [String: Any] {{",
        f'{indent(2)}var paginationOpts: [String: Any] = ["numItems": numItems]',
        f'{indent(2)}if let cursor {{ paginationOpts["cursor"] = cursor }} else {{ paginationOpts["cursor"] = NSNull() }}',
        f"{indent(2)}var args: [String: Any] = {swift_dict(args)}",
        f'{indent(2)}if let w = `where` {{ args["where"] = w.toDict() }}',
        f"{indent(2)}return args",
        f"{indent(1)}}}",
    ]


def render_list(ref: str, module: ModuleDescriptor, struct: str, page_size: int, site: CallSite) -> List[str]:
    org = org_scoped(module)
    params: List[str] = ["orgId: String"] if org else []
    params.append(f"numItems: Int = {page_size}")
    params.append("cursor: String? = nil")
    params.append(f"`where`: {where_name(module.table_name)}? = nil")
    forwarded = ["orgId: orgId"] if org else []
    forwarded.extend(["numItems: numItems", "cursor: cursor", "where: `where`"])
    args = "listArgs(" + ", ".join(forwarded) + ")"

    lines = signature("list", site.params(params), returns=f"PaginatedResult<{struct}>")
    lines.append(f"{indent(2)}{site.call('query', ref, args)}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_search(ref: str, struct: str, org: bool, page_size: int, site: CallSite) -> List[str]:
    params: List[str] = ["orgId: String"] if org else []
    params.extend(["query searchQuery: String", f"numItems: Int = {page_size}", "cursor: String? = nil"])
    parts = ['"orgId": orgId'] if org else []
    parts.extend(['"paginationOpts": paginationOpts', '"query": searchQuery'])

    lines = signature("search", site.params(params), returns=f"PaginatedResult<{struct}>")
    lines.append(f'{indent(2)}var paginationOpts: [String: Any] = ["numItems": numItems]')
    lines.append(
        f'{indent(2)}if let cursor {{ paginationOpts["cursor"] = cursor }} else {{ paginationOpts["cursor"] = NSNull() }}'
    )
    lines.append(f"{indent(2)}return {site.call('query', ref, swift_dict(parts))}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_upsert(ref: str, fields: Dict[str, FieldEntry], site: CallSite) -> List[str]:
    params = [param_for(name, entry, force_optional=True) for name, entry in fields.items()]
    lines = signature("upsert", site.params(params))
    lines.append(f"{indent(2)}var args: [String: Any] = [:]")
    for name, entry in fields.items():
        lines.append(optional_guard(name, entry))
    lines.append(f"{indent(2)}{site.call('mutation', ref, 'args')}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_get(ref: str, struct: str, site: CallSite) -> List[str]:
    lines = signature("get", site.params([]), returns=f"{struct}?", multiline=False)
    lines.append(f"{indent(2)}{site.call('query', ref, '[:]')}")
    lines.append(f"{indent(1)}}}")
    return lines


def render_crud_wrappers(ctx: GenContext, module: ModuleDescriptor, site: CallSite) -> List[Method]:
    """Wrappers for the factory endpoints a module exports, in a fixed order."""
    table = ctx.table_for(module)
    if table is None:
        return []
    fields = table.user_fields
    struct = ctx.struct_for(module)
    org = org_scoped(module)
    methods: List[Method] = []

    def ref(fn: str) -> str:
        return f"{module.name}:{fn}"

    if module.kind in (TableKind.OWNED, TableKind.ORG_SCOPED):
        if site.full and ctx.is_standard_list(module):
            methods.append(("list", render_list(ref("list"), module, struct, ctx.default_page_size, site)))
        if site.full and module.exports("search"):
            methods.append(("search", render_search(ref("search"), struct, org, ctx.search_page_size, site)))
        if module.exports("create"):
            methods.append(("create", render_create(ref("create"), fields, org, site)))
        if module.exports("update"):
            methods.append(("update", render_update(ref("update"), fields, org, site)))
        if module.exports("rm"):
            methods.append(("rm", render_by_id("rm", ref("rm"), org, site)))
        if site.full and module.exports("read"):
            methods.append(("read", render_read(ref("read"), struct, org, site)))
        if module.exports("restore"):
            methods.append(("restore", render_by_id("restore", ref("restore"), org, site)))
        if module.exports("bulkRm"):
            methods.append(("bulkRm", render_by_id("bulkRm", ref("bulkRm"), org, site, "ids", "[String]")))
    elif module.kind == TableKind.SINGLETON:
        if module.exports("upsert"):
            methods.append(("upsert", render_upsert(ref("upsert"), fields, site)))
        if site.full and module.exports("get"):
            methods.append(("get", render_get(ref("get"), struct, site)))
    elif module.kind == TableKind.CHILD:
        if site.full and module.exports("create") and all(is_arg_safe(e) for e in fields.values()):
            methods.append(("create", render_create(ref("create"), fields, False, site)))
    return methods
