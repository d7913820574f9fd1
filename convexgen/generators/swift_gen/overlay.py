"""
Declarative descriptors for endpoints the CRUD factories don't cover.
Built-in catalog entries describe the known non-generic modules; an optional
overlay file (JSON or YAML) can add more, but never replaces a built-in entry.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from convexgen.core.errors import CustomConfigError
from convexgen.generators.swift_gen.utils import where_name
from convexgen.schema.types import ModuleDescriptor, TableKind

log = logging.getLogger(__name__)

STRUCT_PLACEHOLDER = "$STRUCT"


class OverlayModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CustomArg(OverlayModel):
    name: str
    swift_type: str = "String"
    is_optional: bool = False
    wire_name: Optional[str] = None  # key sent to the backend, defaults to name
    wire_expr: Optional[str] = None  # Swift expression sent, defaults to name

    @property
    def wire_key(self) -> str:
        return self.wire_name or self.name


class NestedData(OverlayModel):
    """Args travel inside a ``data`` object; ``outer`` args stay top-level."""
    outer: List[str] = []
    all_optional: bool = False


class StructArrayField(OverlayModel):
    name: str
    enum_field: bool = False
    optional: bool = True


class StructArray(OverlayModel):
    """An array-of-records argument re-encoded element by element."""
    arg: str
    element_type: str
    var: str = "partDicts"
    fields: List[StructArrayField]


class CustomFunction(OverlayModel):
    fn: str
    kind: Literal["query", "mutation", "action"]
    args: List[CustomArg] = []
    return_type: Optional[str] = None
    nested_data: Optional[NestedData] = None
    struct_array: Optional[StructArray] = None
    dummy_action_type: Optional[str] = None
    placement: Literal["insideCrud", "ownBlock"] = "ownBlock"

    @model_validator(mode="after")
    def _check_strategy(self):
        chosen = [s for s in (self.nested_data, self.struct_array, self.dummy_action_type) if s is not None]
        if len(chosen) > 1:
            raise ValueError(f"{self.fn}: nestedData, structArray and dummyActionType are exclusive")
        if self.dummy_action_type is not None and self.kind != "action":
            raise ValueError(f"{self.fn}: dummyActionType requires kind 'action'")
        if self.struct_array is not None and self.struct_array.arg not in [a.name for a in self.args]:
            raise ValueError(f"{self.fn}: structArray.arg '{self.struct_array.arg}' is not an argument")
        return self

    @property
    def strategy(self) -> str:
        if self.nested_data is not None:
            return "nested"
        if self.struct_array is not None:
            return "struct_array"
        if self.dummy_action_type is not None:
            return "dummy"
        return "plain"

    def resolved_return(self, struct: str) -> Optional[str]:
        if self.return_type is None:
            return None
        return self.return_type.replace(STRUCT_PLACEHOLDER, struct)


class SubscriptionArg(OverlayModel):
    name: str
    swift_type: str = "String"


class Subscription(OverlayModel):
    method_name: str
    fn: str
    swift_type: str
    skip_method: str
    paginated: bool = False
    is_array: bool = False
    on_null: bool = False
    args: List[SubscriptionArg] = []
    where_type: Optional[str] = None


class OverlayConfig(OverlayModel):
    version: int = 1
    functions: Dict[str, List[CustomFunction]] = {}
    subscriptions: Dict[str, List[Subscription]] = {}


def load_overlay(path: Optional[Path]) -> OverlayConfig:
    if path is None:
        return OverlayConfig()
    path = Path(path)
    if not path.is_file():
        raise CustomConfigError(str(path), "file not found")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        config = OverlayConfig.model_validate(data)
    except (OSError, ValueError, yaml.YAMLError) as e:
        # pydantic's ValidationError is a ValueError
        raise CustomConfigError(str(path), str(e)) from e
    log.info(
        "Loaded overlay with %d module entries", len(config.functions),
        extra={"stage": "LOAD_OVERLAY", "unit": path.name},
    )
    return config


def _fn(fn: str, kind: str, *args: CustomArg, **extra) -> CustomFunction:
    return CustomFunction(fn=fn, kind=kind, args=list(args), **extra)


def _arg(name: str, swift_type: str = "String", optional: bool = False, **extra) -> CustomArg:
    return CustomArg(name=name, swift_type=swift_type, is_optional=optional, **extra)


ORG_FUNCTIONS: List[CustomFunction] = [
    _fn("create", "mutation", _arg("name"), _arg("slug"), _arg("avatarId", optional=True),
        nested_data=NestedData()),
    _fn("update", "mutation", _arg("name", optional=True), _arg("slug", optional=True),
        _arg("avatarId", optional=True),
        nested_data=NestedData(outer=["orgId"], all_optional=True)),
    _fn("get", "query", _arg("orgId"), return_type="Org"),
    _fn("getBySlug", "query", _arg("slug"), return_type="Org?"),
    _fn("getPublic", "query", _arg("slug"), return_type="Org?"),
    _fn("myOrgs", "query", return_type="[OrgWithRole]"),
    _fn("remove", "mutation", _arg("orgId")),
    _fn("isSlugAvailable", "query", _arg("slug"), return_type="SlugAvailability"),
    _fn("getOrCreate", "mutation", return_type="OrgGetOrCreateResult"),
    _fn("membership", "query", _arg("orgId"), return_type="OrgMembership"),
    _fn("members", "query", _arg("orgId"), return_type="[OrgMemberEntry]"),
    _fn("setAdmin", "mutation", _arg("isAdmin", "Bool"), _arg("memberId")),
    _fn("removeMember", "mutation", _arg("memberId")),
    _fn("leave", "mutation", _arg("orgId")),
    _fn("transferOwnership", "mutation", _arg("newOwnerId"), _arg("orgId")),
    _fn("invite", "mutation", _arg("email"), _arg("isAdmin", "Bool"), _arg("orgId")),
    _fn("acceptInvite", "mutation", _arg("token")),
    _fn("revokeInvite", "mutation", _arg("inviteId")),
    _fn("pendingInvites", "query", _arg("orgId"), return_type="[OrgInvite]"),
    _fn("requestJoin", "mutation", _arg("orgId"), _arg("message", optional=True)),
    _fn("approveJoinRequest", "mutation", _arg("requestId"), _arg("isAdmin", "Bool", optional=True)),
    _fn("rejectJoinRequest", "mutation", _arg("requestId")),
    _fn("cancelJoinRequest", "mutation", _arg("requestId")),
    _fn("pendingJoinRequests", "query", _arg("orgId"), return_type="[JoinRequestEntry]"),
    _fn("myJoinRequest", "query", _arg("orgId"), return_type="OrgJoinRequest?"),
]

MODULE_FUNCTIONS: Dict[str, List[CustomFunction]] = {
    "file": [
        _fn("upload", "mutation", return_type="String"),
    ],
    "message": [
        _fn("list", "query", _arg("chatId"), return_type=f"[{STRUCT_PLACEHOLDER}]"),
        _fn("create", "mutation", _arg("chatId"), _arg("parts", "[MessagePart]"), _arg("role", "MessageRole"),
            struct_array=StructArray(
                arg="parts",
                element_type="MessagePart",
                fields=[
                    StructArrayField(name="type", enum_field=True, optional=False),
                    StructArrayField(name="text"),
                    StructArrayField(name="image"),
                    StructArrayField(name="file"),
                    StructArrayField(name="name"),
                ],
            )),
    ],
    "mobileAi": [
        _fn("chat", "action", _arg("chatId"), dummy_action_type="[String: String]"),
    ],
    "movie": [
        _fn("search", "action", _arg("query"), return_type="[SearchResult]"),
        _fn("load", "action", _arg("tmdbId", "Int", wire_name="tmdb_id", wire_expr="Double(tmdbId)"),
            return_type="Movie"),
    ],
    "task": [
        _fn("toggle", "mutation", _arg("orgId"), _arg("id"), placement="insideCrud"),
        _fn("byProject", "query", _arg("orgId"), _arg("projectId"),
            return_type=f"[{STRUCT_PLACEHOLDER}]", placement="insideCrud"),
    ],
}


def acl_functions(table_name: str) -> List[CustomFunction]:
    """Editor-management endpoints of an org-scoped table with an access list."""
    table_id = f"{table_name}Id"
    return [
        _fn("addEditor", "mutation", _arg("orgId"), _arg("editorId"), _arg(table_id), placement="insideCrud"),
        _fn("removeEditor", "mutation", _arg("orgId"), _arg("editorId"), _arg(table_id), placement="insideCrud"),
        _fn("setEditors", "mutation", _arg("orgId"), _arg("editorIds", "[String]"), _arg(table_id),
            placement="insideCrud"),
        _fn("editors", "query", _arg("orgId"), _arg(table_id), return_type="[EditorEntry]",
            placement="insideCrud"),
    ]


def is_org_module(module: ModuleDescriptor) -> bool:
    return module.exports_all("myOrgs", "membership", "members")


def build_descriptors(module: ModuleDescriptor, overlay: OverlayConfig) -> List[CustomFunction]:
    """Custom descriptors for the functions a module exports, sorted by name."""
    builtin: List[CustomFunction] = []
    if is_org_module(module):
        builtin.extend(ORG_FUNCTIONS)
    elif module.has_acl:
        builtin.extend(acl_functions(module.table_name))
    builtin.extend(MODULE_FUNCTIONS.get(module.name, []))

    merged: Dict[str, CustomFunction] = {}
    for fn in builtin:
        merged.setdefault(fn.fn, fn)
    for fn in overlay.functions.get(module.name, []):
        # fill gaps only
        merged.setdefault(fn.fn, fn)
    return [merged[name] for name in sorted(merged) if module.exports(name)]


def derive_subscriptions(
    module: ModuleDescriptor,
    struct: str,
    standard_list: bool,
    overlay: OverlayConfig,
) -> List[Subscription]:
    """Mobile subscriptions: the standard list/read/get ones plus overlay additions."""
    org_args = [SubscriptionArg(name="orgId")] if module.kind == TableKind.ORG_SCOPED else []
    subs: List[Subscription] = []
    if standard_list:
        subs.append(Subscription(
            method_name="subscribeList",
            fn="list",
            swift_type=f"PaginatedResult<{struct}>",
            skip_method=f"subscribePaginated{struct}s",
            paginated=True,
            args=org_args,
            where_type=where_name(module.table_name),
        ))
    if module.kind in (TableKind.OWNED, TableKind.ORG_SCOPED) and module.exports("read"):
        subs.append(Subscription(
            method_name="subscribeRead",
            fn="read",
            swift_type=struct,
            skip_method=f"subscribe{struct}",
            args=org_args + [SubscriptionArg(name="id")],
        ))
    if module.kind == TableKind.SINGLETON and module.exports("get"):
        subs.append(Subscription(
            method_name="subscribeGet",
            fn="get",
            swift_type=struct,
            skip_method=f"subscribe{struct}",
            on_null=True,
        ))

    taken = {sub.method_name for sub in subs}
    for sub in overlay.subscriptions.get(module.name, []):
        if sub.method_name not in taken and module.exports(sub.fn):
            subs.append(sub)
            taken.add(sub.method_name)
    return subs
