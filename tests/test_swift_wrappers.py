"""Tests for the typed CRUD wrappers and module blocks of the generated clients."""
import json
import re
import tempfile
from pathlib import Path
from typing import Dict

from convexgen.core.config import settings
from convexgen.generators.swift_gen.generator import render_module_block, render_reduced_module
from convexgen.generators.swift_gen.overlay import OverlayConfig
from convexgen.generators.swift_gen.render_types import render_enum, render_where_struct
from convexgen.generators.swift_gen.types import GenContext
from convexgen.generators.swift_gen.utils import api_name, struct_name, swift_enum_case, where_name
from convexgen.scanners.module_scanner import collect_modules
from convexgen.schema.harvester import harvest_schema
from convexgen.schema.loader import load_schema_module
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.where import derive_where

TESTS_DIR = Path(__file__).parent
FIXTURE_APP = TESTS_DIR / "fixtures" / "demo_app"

METHOD_RE = re.compile(r"public static func (\w+)\(")


def build_context(schema_path: Path, convex_dir: Path, overlay: OverlayConfig = None) -> GenContext:
    registry = TypeRegistry()
    tables = harvest_schema(load_schema_module(schema_path), registry)
    return GenContext(
        tables=tables,
        modules=collect_modules(convex_dir, tables, settings.skip_modules),
        wheres=derive_where(tables),
        registry=registry,
        overlay=overlay or OverlayConfig(),
    )


def build_app(root: Path, schema: Dict, modules: Dict[str, str]) -> GenContext:
    """Write a schema document and module sources under ``root`` and harvest them."""
    schema_path = root / "schema.json"
    schema_path.write_text(json.dumps(schema), encoding="utf-8")
    convex = root / "convex"
    convex.mkdir()
    for name, source in modules.items():
        (convex / f"{name}.ts").write_text(source, encoding="utf-8")
    return build_context(schema_path, convex)


def method_names(lines) -> list:
    return METHOD_RE.findall("\n".join(lines))


BLOG_SCHEMA = {
    "owned": {
        "blog": {
            "type": "object",
            "shape": {
                "title": "string",
                "content": "string",
                "category": {"type": "enum", "values": ["tech", "life", "tutorial"]},
                "published": "boolean",
                "coverImage": {"type": "optional", "inner": "file"},
            },
        },
    },
}


class TestSwiftUtils:
    """Test naming helpers."""

    def test_names(self):
        assert struct_name("task") == "TaskItem"
        assert struct_name("profile_data") == "ProfileData"
        assert api_name("mobileAi") == "MobileAiAPI"
        assert where_name("blog") == "BlogWhere"

    def test_enum_cases(self):
        assert swift_enum_case("tech") == "case tech"
        assert swift_enum_case("in-progress") == 'case inProgress = "in-progress"'
        assert swift_enum_case("2fa") == 'case _2fa = "2fa"'
        assert swift_enum_case("default") == "case `default`"

    def test_enum_block(self):
        assert render_enum("BlogCategory", ["tutorial", "tech", "life"]) == [
            "public enum BlogCategory: String, CaseIterable, Codable, Sendable {",
            "    case life",
            "    case tech",
            "    case tutorial",
            "",
            "    public var displayName: String { rawValue.capitalized }",
            "}",
            "",
        ]


class TestOwnedTable:
    """A blog table with create, list, read, rm, update and bulkRm exported."""

    SOURCE = "export const { bulkRm, create, list, read, rm, update } = crud('blog', owned.blog)\n"

    def test_exactly_the_exported_wrappers(self):
        """Only exported endpoints get wrappers; search and restore are absent."""
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        lines = render_module_block(ctx, ctx.modules["blog"])

        assert method_names(lines) == ["listArgs", "list", "create", "update", "rm", "read", "bulkRm"]
        text = "\n".join(lines)
        assert 'public static let bulkRm = "blog:bulkRm"' in text
        assert "search" not in text
        assert "restore" not in text

    def test_create_wrapper(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        text = "\n".join(render_module_block(ctx, ctx.modules["blog"]))

        expected = "\n".join([
            "    public static func create(",
            "        _ client: ConvexClientProtocol,",
            "        title: String,",
            "        content: String,",
            "        category: BlogCategory,",
            "        published: Bool,",
            "        coverImage: String? = nil",
            "    ) async throws {",
            '        var args: [String: Any] = ["title": title, "content": content, '
            '"category": category.rawValue, "published": published]',
            '        if let coverImage { args["coverImage"] = coverImage }',
            '        try await client.mutation("blog:create", args: args)',
            "    }",
        ])
        assert expected in text

    def test_update_wrapper_makes_every_field_optional(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        text = "\n".join(render_module_block(ctx, ctx.modules["blog"]))

        assert "        title: String? = nil," in text
        assert "        expectedUpdatedAt: Double? = nil" in text
        assert '        var args: [String: Any] = ["id": id]' in text
        assert '        if let category { args["category"] = category.rawValue }' in text

    def test_list_and_read(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        text = "\n".join(render_module_block(ctx, ctx.modules["blog"]))

        assert "    ) async throws -> PaginatedResult<Blog> {" in text
        assert (
            '        try await client.query("blog:list", '
            "args: listArgs(numItems: numItems, cursor: cursor, where: `where`))"
        ) in text
        assert "        `where`: BlogWhere? = nil" in text
        assert (
            "    public static func read(_ client: ConvexClientProtocol, id: String) async throws -> Blog {"
        ) in text
        assert '        try await client.query("blog:read", args: ["id": id])' in text
        assert (
            "    public static func bulkRm(_ client: ConvexClientProtocol, ids: [String]) async throws {"
        ) in text

    def test_wrappers_are_desktop_only(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        lines = render_module_block(ctx, ctx.modules["blog"])

        assert lines[0] == "public enum BlogAPI {"
        assert lines.count("    #if DESKTOP") == 1
        assert lines.count("    #endif") == 1
        assert lines[-2:] == ["}", ""]

    def test_helper_module_has_constants_only(self):
        """blogAdmin.ts reuses the blog factory but is not the blog table."""
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE, "blogAdmin": self.SOURCE})
        lines = render_module_block(ctx, ctx.modules["blogAdmin"])

        assert method_names(lines) == []
        assert '    public static let create = "blogAdmin:create"' in lines
        assert "    #if DESKTOP" not in lines
        assert method_names(render_module_block(ctx, ctx.modules["blog"]))[0] == "listArgs"

    def test_where_struct(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": self.SOURCE})
        lines = render_where_struct(ctx.wheres["blog"], ctx.registry)

        assert lines[0] == "public struct BlogWhere: Sendable {"
        assert "    public var category: BlogCategory?" in lines
        assert "    public var own: Bool?" in lines
        assert '        if let category { d["category"] = category.rawValue }' in lines
        assert "coverImage" not in "\n".join(lines)


class TestOrgScopedTable:
    """Org-scoped wrappers thread the orgId through every call."""

    SCHEMA = {"orgScoped": {"project": {"type": "object", "shape": {"name": "string"}}}}
    SOURCE = "export const { create, list, read, rm, update } = orgCrud('project', orgScoped.project)\n"

    def test_exported_wrappers_only(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), self.SCHEMA, {"project": self.SOURCE})
        names = method_names(render_module_block(ctx, ctx.modules["project"]))

        assert set(names) == {"listArgs", "list", "create", "update", "rm", "read"}
        assert len(names) == 6

    def test_org_id_is_forwarded(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), self.SCHEMA, {"project": self.SOURCE})
        text = "\n".join(render_module_block(ctx, ctx.modules["project"]))

        assert (
            "    public static func rm(_ client: ConvexClientProtocol, orgId: String, id: String) async throws {"
        ) in text
        assert '        try await client.mutation("project:rm", args: ["id": id, "orgId": orgId])' in text
        assert '        let args: [String: Any] = ["orgId": orgId, "name": name]' in text
        assert "args: listArgs(orgId: orgId, numItems: numItems, cursor: cursor, where: `where`))" in text
        assert '        var args: [String: Any] = ["orgId": orgId, "paginationOpts": paginationOpts]' in text

    def test_no_list_wrapper_without_filters(self):
        """A table with no filterable field has no standard list wrapper."""
        schema = {"orgScoped": {"album": {"type": "object", "shape": {"photos": {"type": "array", "element": "file"}}}}}
        source = "export const { list, rm } = orgCrud('album', orgScoped.album)\n"
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), schema, {"album": source})
        assert method_names(render_module_block(ctx, ctx.modules["album"])) == ["rm"]


class TestReducedClient:
    """The mobile client sends mutations through the shared service."""

    def test_blog_extension(self):
        source = "export const { bulkRm, create, list, read, rm, update } = crud('blog', owned.blog)\n"
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), BLOG_SCHEMA, {"blog": source})
        lines = render_reduced_module(ctx, ctx.modules["blog"])
        text = "\n".join(lines)

        assert lines.count("extension BlogAPI {") == 2
        assert method_names(lines) == ["create", "update", "rm", "bulkRm", "subscribeList", "subscribeRead"]
        assert "ConvexClientProtocol" not in text
        assert '        try await ConvexService.shared.mutate("blog:create", args: args)' in text
        assert "    public static func rm(id: String) async throws {" in text

    def test_list_subscription(self):
        source = "export const { create, list, read } = orgCrud('project', orgScoped.project)\n"
        schema = {"orgScoped": {"project": {"type": "object", "shape": {"name": "string"}}}}
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), schema, {"project": source})
        text = "\n".join(render_reduced_module(ctx, ctx.modules["project"]))

        assert "        where filterWhere: ProjectWhere?," in text
        assert "ProjectWhere? = nil" not in text
        assert "        orgId: String," in text
        assert "        let args = listArgs(orgId: orgId, where: filterWhere)" in text
        assert (
            "        return ConvexService.shared.subscribe(to: list, args: args, "
            "type: PaginatedResult<Project>.self, onUpdate: onUpdate, onError: onError)"
        ) in text
        assert (
            "        return ConvexService.shared.subscribePaginatedProjects(to: list, args: args, "
            "onUpdate: { r in onUpdate(r) }, onError: { e in onError(e) })"
        ) in text
        assert (
            "        return ConvexService.shared.subscribe(to: read, args: [\"orgId\": orgId, \"id\": id], "
            "type: Project.self, onUpdate: onUpdate, onError: onError)"
        ) in text

    def test_singleton_subscription_handles_null(self):
        schema = {"singleton": {"profileData": {"type": "object", "shape": {"bio": "string"}}}}
        source = "export const { get, upsert } = singletonCrud('profileData', singleton.profileData)\n"
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), schema, {"profileData": source})
        lines = render_reduced_module(ctx, ctx.modules["profileData"])
        text = "\n".join(lines)

        assert method_names(lines) == ["upsert", "subscribeGet"]
        assert "        onNull: @escaping @Sendable @MainActor () -> Void = { () }" in text
        assert (
            "        return ConvexService.shared.subscribeProfileData(to: get, args: [:], "
            "onUpdate: { r in onUpdate(r) }, onError: { e in onError(e) }, onNull: { onNull() })"
        ) in text

    def test_child_table_has_no_generic_create(self):
        ctx = build_context(FIXTURE_APP / "schema.py", FIXTURE_APP / "convex")
        full = method_names(render_module_block(ctx, ctx.modules["message"]))
        reduced = method_names(render_reduced_module(ctx, ctx.modules["message"]))

        # list and create both come from descriptors
        assert full == ["create", "list"]
        assert reduced == ["create"]


class TestDemoAppModules:
    """Module blocks across the demo app."""

    def test_cache_table_has_no_crud_wrappers(self):
        ctx = build_context(FIXTURE_APP / "schema.py", FIXTURE_APP / "convex")
        assert method_names(render_module_block(ctx, ctx.modules["movie"])) == ["load", "search"]

    def test_acl_wrappers_join_the_crud_block(self):
        ctx = build_context(FIXTURE_APP / "schema.py", FIXTURE_APP / "convex")
        lines = render_module_block(ctx, ctx.modules["wiki"])

        assert method_names(lines) == [
            "listArgs", "list", "create", "update", "rm", "read", "restore", "bulkRm",
            "addEditor", "editors", "removeEditor", "setEditors",
        ]
        assert lines.count("    #if DESKTOP") == 1
        text = "\n".join(lines)
        assert (
            '        try await client.query("wiki:editors", args: ["orgId": orgId, "wikiId": wikiId])'
        ) in text

    def test_keyword_endpoint_is_escaped(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            ctx = build_app(Path(temp_dir), {}, {"misc": "export const { default: fallback, import: imp } = x\n"
                                                         "export { helper as default }\n"})
        lines = render_module_block(ctx, ctx.modules["misc"])
        assert '    public static let `default` = "misc:default"' in lines
        assert lines[-2:] == ["}", ""]
