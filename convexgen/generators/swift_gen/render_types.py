"""Type declarations of the generated client: enums, records, table structs and filters."""
from typing import Dict, List, Optional, Sequence, Tuple

from convexgen.generators.swift_gen.utils import indent, join_params, struct_name, swift_enum_case, where_name
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.types import FieldEntry, RecordDecl, TableDescriptor, WhereDescriptor

# (field, swift type) pairs of the records every client ships with
FixedFields = Sequence[Tuple[str, str]]

FIXED_RECORDS_HEAD: List[Tuple[str, FixedFields, Optional[str]]] = [
    ("Author", [("name", "String?"), ("email", "String?"), ("imageUrl", "String?")], None),
]

ORG_RECORDS: List[Tuple[str, FixedFields, Optional[str]]] = [
    ("Org", [
        ("_id", "String"), ("_creationTime", "Double"), ("name", "String"), ("slug", "String"),
        ("userId", "String"), ("updatedAt", "Double"),
    ], "_id"),
    ("OrgMember", [
        ("_id", "String"), ("orgId", "String"), ("userId", "String"), ("isAdmin", "Bool"),
        ("updatedAt", "Double"),
    ], "_id"),
]

MEMBER_RECORDS: List[Tuple[str, FixedFields, Optional[str]]] = [
    ("OrgMemberEntry", [
        ("memberId", "String?"), ("userId", "String"), ("role", "OrgRole"), ("name", "String?"),
        ("email", "String?"), ("imageUrl", "String?"),
    ], "userId"),
    ("OrgWithRole", [("org", "Org"), ("role", "OrgRole")], "org._id"),
    ("OrgMembership", [
        ("_id", "String?"), ("orgId", "String?"), ("userId", "String?"), ("isAdmin", "Bool?"),
        ("role", "OrgRole?"),
    ], None),
    ("OrgInvite", [
        ("_id", "String"), ("_creationTime", "Double?"), ("orgId", "String"), ("email", "String"),
        ("expiresAt", "Double"), ("token", "String?"), ("isAdmin", "Bool?"),
    ], "_id"),
    ("OrgJoinRequest", [
        ("_id", "String"), ("_creationTime", "Double?"), ("orgId", "String"), ("userId", "String"),
        ("status", "JoinRequestStatus"), ("message", "String?"),
    ], "_id"),
    ("JoinRequestUser", [("name", "String?"), ("image", "String?")], None),
    ("JoinRequestEntry", [("request", "OrgJoinRequest"), ("user", "JoinRequestUser?")], "request._id"),
    ("EditorEntry", [("userId", "String"), ("name", "String?"), ("email", "String?")], "userId"),
    ("SlugAvailability", [("available", "Bool")], None),
    ("OrgGetOrCreateResult", [("created", "Bool"), ("orgId", "String")], None),
]

def render_enum(name: str, values: List[str], extra: Sequence[str] = ()) -> List[str]:
    lines = [f"public enum {name}: String, CaseIterable, Codable, Sendable {{"]
    for value in sorted(values):
        lines.append(f"{indent(1)}{swift_enum_case(value)}")
    lines.append("")
    lines.append(f"{indent(1)}public var displayName: String {{ rawValue.capitalized }}")
    for line in extra:
        lines.append(f"{indent(1)}{line}")
    lines.append("}")
    lines.append("")
    return lines


def render_enums(registry: TypeRegistry) -> List[str]:
    lines: List[str] = []
    for name, values in registry.enums.items():
        lines.extend(render_enum(name, values))
    return lines


def render_record(decl: RecordDecl) -> List[str]:
    """A nested record, or a union record with a memberwise init that defaults its optionals."""
    lines = [f"public struct {decl.name}: Codable, Sendable {{"]
    for field_name, entry in decl.fields.items():
        lines.append(f"{indent(1)}public let {field_name}: {entry.swift_type}")
    if decl.is_union:
        params = [
            f"{field_name}: {entry.swift_type}{' = nil' if entry.optional else ''}"
            for field_name, entry in decl.fields.items()
        ]
        lines.append("")
        lines.append(f"{indent(1)}public init(")
        lines.append(f"{indent(2)}{join_params(params, 2)}")
        lines.append(f"{indent(1)}) {{")
        for field_name in decl.fields:
            lines.append(f"{indent(2)}self.{field_name} = {field_name}")
        lines.append(f"{indent(1)}}}")
    lines.append("}")
    lines.append("")
    return lines


def render_records(registry: TypeRegistry) -> List[str]:
    lines: List[str] = []
    for decl in registry.records.values():
        lines.extend(render_record(decl))
    return lines


def render_table_struct(name: str, fields: Dict[str, FieldEntry]) -> List[str]:
    id_field = fields.get("_id")
    protocols = "Codable, Identifiable, Sendable" if id_field is not None else "Codable, Sendable"
    lines = [f"public struct {name}: {protocols} {{"]
    for field_name, entry in fields.items():
        lines.append(f"{indent(1)}public let {field_name}: {entry.swift_type}")
    if id_field is not None:
        lines.append("")
        accessor = '_id ?? ""' if id_field.optional else "_id"
        lines.append(f"{indent(1)}public var id: String {{ {accessor} }}")
    lines.append("}")
    lines.append("")
    return lines


def render_table_structs(tables: Dict[str, TableDescriptor]) -> Tuple[List[str], int]:
    """Structs for every harvested table; a struct name is only emitted once."""
    lines: List[str] = []
    emitted = set()
    for table_name, table in tables.items():
        name = struct_name(table_name)
        if name in emitted:
            continue
        emitted.add(name)
        lines.extend(render_table_struct(name, table.fields))
    return lines, len(emitted)


def _fixed_struct(name: str, fields: FixedFields, id_expr: Optional[str]) -> List[str]:
    protocols = "Codable, Identifiable, Sendable" if id_expr else "Codable, Sendable"
    lines = [f"public struct {name}: {protocols} {{"]
    for field_name, swift_type in fields:
        lines.append(f"{indent(1)}public let {field_name}: {swift_type}")
    if id_expr:
        lines.append("")
        lines.append(f"{indent(1)}public var id: String {{ {id_expr} }}")
    lines.append("}")
    lines.append("")
    return lines


def _paginated_result(codable: bool) -> List[str]:
    protocols = "Codable, Sendable" if codable else "Sendable"
    return [
        f"public struct PaginatedResult<T: Codable & Sendable>: {protocols} {{",
        f"{indent(1)}public let page: [T]",
        f"{indent(1)}public let continueCursor: String",
        f"{indent(1)}public let isDone: Bool",
        "",
        f"{indent(1)}public init(page: [T], continueCursor: String, isDone: Bool) {{",
        f"{indent(2)}self.page = page",
        f"{indent(2)}self.continueCursor = continueCursor",
        f"{indent(2)}self.isDone = isDone",
        f"{indent(1)}}}",
        "}",
    ]


def render_fixed_records() -> List[str]:
    """Records for authorship, pagination and the organization endpoints."""
    lines: List[str] = []
    for name, fields, id_expr in FIXED_RECORDS_HEAD:
        lines.extend(_fixed_struct(name, fields, id_expr))

    # The cross-compiled target cannot decode generic Codable containers
    lines.append("#if !SKIP")
    lines.extend(_paginated_result(codable=True))
    lines.append("#else")
    lines.extend(_paginated_result(codable=False))
    lines.append("#endif")
    lines.append("")

    for name, fields, id_expr in ORG_RECORDS:
        lines.extend(_fixed_struct(name, fields, id_expr))

    lines.extend(render_enum("OrgRole", ["admin", "member", "owner"], extra=[
        "public var isOwner: Bool { self == .owner }",
        "public var isAdmin: Bool { self == .owner || self == .admin }",
    ]))
    lines.extend(render_enum("JoinRequestStatus", ["approved", "pending", "rejected"]))

    for name, fields, id_expr in MEMBER_RECORDS:
        lines.extend(_fixed_struct(name, fields, id_expr))
    return lines


def render_where_struct(where: WhereDescriptor, registry: TypeRegistry) -> List[str]:
    name = where_name(where.table_name)
    fields = [(field_name, field_type.swift) for field_name, field_type in where.fields.items()]

    lines = [f"public struct {name}: Sendable {{"]
    for field_name, swift_type in fields:
        lines.append(f"{indent(1)}public var {field_name}: {swift_type}?")
    if where.has_own:
        lines.append(f"{indent(1)}public var own: Bool?")
    lines.append(f"{indent(1)}public var or: [Self]?")
    lines.append("")

    params = [f"{field_name}: {swift_type}? = nil" for field_name, swift_type in fields]
    if where.has_own:
        params.append("own: Bool? = nil")
    params.append("or: [Self]? = nil")
    lines.append(f"{indent(1)}public init(")
    lines.append(f"{indent(2)}{join_params(params, 2)}")
    lines.append(f"{indent(1)}) {{")
    for field_name, _ in fields:
        lines.append(f"{indent(2)}self.{field_name} = {field_name}")
    if where.has_own:
        lines.append(f"{indent(2)}self.own = own")
    lines.append(f"{indent(2)}self.or = or")
    lines.append(f"{indent(1)}}}")
    lines.append("")

    lines.append(f"{indent(1)}public func toDict() -> [String: Any] {{")
    lines.append(f"{indent(2)}var d = [String: Any]()")
    for field_name, swift_type in fields:
        value = f"{field_name}.rawValue" if registry.is_enum(swift_type) else field_name
        lines.append(f'{indent(2)}if let {field_name} {{ d["{field_name}"] = {value} }}')
    if where.has_own:
        lines.append(f'{indent(2)}if let own {{ d["own"] = own }}')
    lines.append(f"{indent(2)}if let or {{")
    lines.append(f"{indent(3)}var arr = [[String: Any]]()")
    lines.append(f"{indent(3)}for w in or {{ arr.append(w.toDict()) }}")
    lines.append(f'{indent(3)}d["or"] = arr')
    lines.append(f"{indent(2)}}}")
    lines.append(f"{indent(2)}return d")
    lines.append(f"{indent(1)}}}")
    lines.append("}")
    lines.append("")
    return lines


def render_where_structs(wheres: Dict[str, WhereDescriptor], registry: TypeRegistry) -> List[str]:
    lines: List[str] = []
    for where in wheres.values():
        lines.extend(render_where_struct(where, registry))
    return lines
