"""Integration tests for the generation engine and the client writer."""
import json
import os
import tempfile
from pathlib import Path
from unittest import mock

import pytest

from convexgen.core.config import Settings
from convexgen.core.engine import GenerationEngine, GenerationRequest
from convexgen.core.errors import NameCollisionError, OutputWriteError, UnsupportedValidatorError, UsageError
from convexgen.core.workflow import GenStage
from convexgen.generators.swift_gen.types import GeneratedFile
from convexgen.generators.swift_gen.writer import write_atomic, write_files

TESTS_DIR = Path(__file__).parent
FIXTURE_APP = TESTS_DIR / "fixtures" / "demo_app"

FULL_HEADER = (
    "// Auto-generated by convexgen. DO NOT EDIT.\n"
    "// swiftlint:disable file_types_order file_length\n"
    "import Foundation\n"
    "\n"
)


def run_demo(output_dir: Path, mobile: bool = True, settings: Settings = None):
    request = GenerationRequest(
        schema=FIXTURE_APP / "schema.py",
        convex=FIXTURE_APP / "convex",
        output=output_dir / "Generated" / "ConvexAPI.swift",
        mobile_output=output_dir / "Mobile" / "ConvexAPI.swift" if mobile else None,
    )
    engine = GenerationEngine(request, settings)
    return engine, engine.run()


def write_schema(directory: Path, schema) -> Path:
    path = directory / "schema.json"
    path.write_text(json.dumps(schema), encoding="utf-8")
    return path


class TestGenerationEngine:
    """End-to-end runs over the demo app."""

    def test_writes_both_clients(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            engine, result = run_demo(root)

            full = (root / "Generated" / "ConvexAPI.swift").read_text(encoding="utf-8")
            mobile = (root / "Mobile" / "ConvexAPI.swift").read_text(encoding="utf-8")

        assert engine.stage == GenStage.DONE
        assert [r.stage for r in engine.results] == GenerationEngine.STAGES
        assert all(r.ok for r in engine.results)
        assert full.startswith(FULL_HEADER)
        assert full.endswith("// swiftlint:enable file_types_order file_length\n")
        assert mobile.startswith(
            "// Auto-generated by convexgen. DO NOT EDIT.\n// swiftlint:disable file_length\nimport Foundation\n"
        )
        assert len(result.files) == 2

    def test_summary(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            _, result = run_demo(root)

        summary = result.summary
        assert (summary.structs, summary.enums, summary.modules) == (10, 6, 11)
        assert summary.api_constants == 79
        assert summary.typed_wrappers == 7
        assert summary.where_structs == 5
        assert result.messages[0].splitlines()[1] == (
            "  10 structs, 6 enums, 11 modules, 79 API constants, 7 typed wrappers, 5 Where structs"
        )
        assert result.messages[1].startswith("Generated ")

    def test_declaration_order(self):
        """Records, enums, table structs, fixed records, filters, then module blocks."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            run_demo(root, mobile=False)
            full = (root / "Generated" / "ConvexAPI.swift").read_text(encoding="utf-8")

        positions = [
            full.index("public struct MovieGenre: Codable, Sendable {"),
            full.index("public struct MessagePart: Codable, Sendable {"),
            full.index("public enum BlogCategory: String, CaseIterable, Codable, Sendable {"),
            full.index("public struct Blog: Codable, Identifiable, Sendable {"),
            full.index("public struct Author: Codable, Sendable {"),
            full.index("public struct PaginatedResult<T: Codable & Sendable>: Codable, Sendable {"),
            full.index("public enum OrgRole: String, CaseIterable, Codable, Sendable {"),
            full.index("public struct BlogWhere: Sendable {"),
            full.index("public enum BlogAPI {"),
            full.index("public enum WikiAPI {"),
        ]
        assert positions == sorted(positions)
        assert "public struct TaskItem: Codable, Identifiable, Sendable {" in full
        assert "    public var id: String { _id ?? \"\" }" in full

    def test_output_is_deterministic(self):
        with tempfile.TemporaryDirectory() as first, tempfile.TemporaryDirectory() as second:
            run_demo(Path(first))
            run_demo(Path(second))
            for name in ("Generated", "Mobile"):
                a = (Path(first) / name / "ConvexAPI.swift").read_bytes()
                b = (Path(second) / name / "ConvexAPI.swift").read_bytes()
                assert a == b

    def test_page_size_from_settings(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            run_demo(root, mobile=False, settings=Settings(default_page_size=25, search_page_size=10))
            full = (root / "Generated" / "ConvexAPI.swift").read_text(encoding="utf-8")

        assert "numItems: Int = 25" in full
        assert "numItems: Int = 10" in full
        assert "numItems: Int = 50" not in full

    def test_engine_settings_shape_the_output(self):
        """The header name and indent width come from the settings given to the engine."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            run_demo(root, settings=Settings(generator_name="acme-gen", indent_width=2))
            full = (root / "Generated" / "ConvexAPI.swift").read_text(encoding="utf-8")
            mobile = (root / "Mobile" / "ConvexAPI.swift").read_text(encoding="utf-8")

        assert full.startswith("// Auto-generated by acme-gen. DO NOT EDIT.\n")
        assert mobile.startswith("// Auto-generated by acme-gen. DO NOT EDIT.\n")
        assert '\n  public static let create = "blog:create"\n' in full
        assert "\n    public static let" not in full
        assert "\n  public static func" in mobile
        assert "\n    public static func" not in mobile

    def test_unsupported_validator_writes_nothing(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            schema = write_schema(root, {"owned": {"note": {"type": "object", "shape": {"n": "bigint"}}}})
            output = root / "Client.swift"
            output.write_text("previous", encoding="utf-8")
            engine = GenerationEngine(GenerationRequest(schema=schema, convex=FIXTURE_APP / "convex", output=output))

            with pytest.raises(UnsupportedValidatorError):
                engine.run()

            assert output.read_text(encoding="utf-8") == "previous"
            assert engine.stage == GenStage.FAILED
            assert engine.results[-1].stage == GenStage.HARVEST_SCHEMA
            assert not engine.results[-1].ok

    def test_strict_names_reject_collisions(self):
        """``BlogMetaTag`` is synthesized by two tables with different values."""
        schema_doc = {"owned": {
            "blog": {"type": "object", "shape": {"metaTag": {"type": "enum", "values": ["x"]}}},
            "blogMeta": {"type": "object", "shape": {"tag": {"type": "enum", "values": ["y"]}}},
        }}
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            schema = write_schema(root, schema_doc)
            request = GenerationRequest(schema=schema, convex=FIXTURE_APP / "convex", output=root / "strict.swift")

            with pytest.raises(NameCollisionError):
                GenerationEngine(request, Settings(strict_names=True)).run()
            assert not (root / "strict.swift").exists()

            request.output = root / "lenient.swift"
            GenerationEngine(request, Settings(strict_names=False)).run()
            lenient = (root / "lenient.swift").read_text(encoding="utf-8")

        assert lenient.count("public enum BlogMetaTag:") == 1
        assert "    case x\n" in lenient

    def test_missing_convex_directory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            request = GenerationRequest(
                schema=FIXTURE_APP / "schema.py",
                convex=Path(temp_dir) / "missing",
                output=Path(temp_dir) / "out.swift",
            )
            with pytest.raises(UsageError) as exc:
                GenerationEngine(request).run()
        assert "convex directory not found" in str(exc.value)


class TestWriter:
    """Atomic replacement of generated files."""

    def test_write_creates_parent_directories(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "a" / "b" / "Client.swift"
            write_files([GeneratedFile(path=target, content="struct A {}\n")])
            assert target.read_text(encoding="utf-8") == "struct A {}\n"
            assert os.listdir(target.parent) == ["Client.swift"]

    def test_failed_replace_keeps_old_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "Client.swift"
            target.write_text("old", encoding="utf-8")

            with mock.patch("convexgen.generators.swift_gen.writer.os.replace", side_effect=OSError("disk full")):
                with pytest.raises(OutputWriteError) as exc:
                    write_atomic(GeneratedFile(path=target, content="new"))

            assert target.read_text(encoding="utf-8") == "old"
            assert os.listdir(temp_dir) == ["Client.swift"]
        assert exc.value.path == str(target)
        assert "disk full" in str(exc.value)

    def test_unwritable_second_destination_keeps_first_file(self):
        """All files are staged before any destination is replaced."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            first = root / "Client.swift"
            first.write_text("old", encoding="utf-8")
            # a regular file where the second destination's directory should be
            (root / "blocked").write_text("", encoding="utf-8")
            second = root / "blocked" / "Mobile.swift"

            with pytest.raises(OutputWriteError) as exc:
                write_files([
                    GeneratedFile(path=first, content="new"),
                    GeneratedFile(path=second, content="new"),
                ])

            assert first.read_text(encoding="utf-8") == "old"
            assert sorted(os.listdir(temp_dir)) == ["Client.swift", "blocked"]
        assert exc.value.path == str(second)
