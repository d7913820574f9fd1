from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from convexgen.core.config import Settings, settings as default_settings
from convexgen.core.errors import CodegenError, UsageError
from convexgen.core.workflow import GenStage, StageResult
from convexgen.generators.swift_gen.generator import generate_swift_client
from convexgen.generators.swift_gen.overlay import OverlayConfig, load_overlay
from convexgen.generators.swift_gen.types import GenContext, GenerationResult
from convexgen.generators.swift_gen.writer import write_files
from convexgen.scanners.module_scanner import collect_modules
from convexgen.schema.harvester import harvest_schema
from convexgen.schema.loader import SchemaModule, load_schema_module
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.types import ModuleDescriptor, TableDescriptor, WhereDescriptor
from convexgen.schema.where import derive_where

log = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    schema: Path
    convex: Path
    output: Path
    mobile_output: Optional[Path] = None
    custom: Optional[Path] = None


class GenerationEngine:
    """Runs the generator stages in order and stops at the first failure."""

    STAGES = [
        GenStage.LOAD_SCHEMA,
        GenStage.LOAD_OVERLAY,
        GenStage.HARVEST_SCHEMA,
        GenStage.SCAN_MODULES,
        GenStage.DERIVE_FILTERS,
        GenStage.EMIT_CLIENTS,
        GenStage.WRITE_OUTPUT,
    ]

    def __init__(self, request: GenerationRequest, settings: Optional[Settings] = None):
        self.request = request
        self.settings = settings or default_settings
        self.registry = TypeRegistry(strict=self.settings.strict_names)
        self.stage = GenStage.LOAD_SCHEMA
        self.results: List[StageResult] = []

        self.schema: Optional[SchemaModule] = None
        self.overlay = OverlayConfig()
        self.tables: Dict[str, TableDescriptor] = {}
        self.modules: Dict[str, ModuleDescriptor] = {}
        self.wheres: Dict[str, WhereDescriptor] = {}
        self.result: Optional[GenerationResult] = None

    def _handlers(self) -> Dict[GenStage, Callable[[], StageResult]]:
        return {
            GenStage.LOAD_SCHEMA: self._load_schema,
            GenStage.LOAD_OVERLAY: self._load_overlay,
            GenStage.HARVEST_SCHEMA: self._harvest,
            GenStage.SCAN_MODULES: self._scan,
            GenStage.DERIVE_FILTERS: self._derive_filters,
            GenStage.EMIT_CLIENTS: self._emit,
            GenStage.WRITE_OUTPUT: self._write,
        }

    def _load_schema(self) -> StageResult:
        if not Path(self.request.convex).is_dir():
            raise UsageError(f"convex directory not found: {self.request.convex}")
        self.schema = load_schema_module(self.request.schema)
        return StageResult(self.stage, True, f"{len(self.schema.table_names)} tables declared")

    def _load_overlay(self) -> StageResult:
        self.overlay = load_overlay(self.request.custom)
        return StageResult(self.stage, True, f"{len(self.overlay.functions)} overlay modules")

    def _harvest(self) -> StageResult:
        self.tables = harvest_schema(self.schema, self.registry)
        return StageResult(
            self.stage, True,
            f"{len(self.tables)} tables, {len(self.registry.enums)} enums, {len(self.registry.records)} records",
        )

    def _scan(self) -> StageResult:
        self.modules = collect_modules(Path(self.request.convex), self.tables, self.settings.skip_modules)
        return StageResult(self.stage, True, f"{len(self.modules)} modules")

    def _derive_filters(self) -> StageResult:
        self.wheres = derive_where(self.tables)
        return StageResult(self.stage, True, f"{len(self.wheres)} Where structs")

    def _emit(self) -> StageResult:
        ctx = GenContext(
            tables=self.tables,
            modules=self.modules,
            wheres=self.wheres,
            registry=self.registry,
            overlay=self.overlay,
            settings=self.settings,
        )
        self.result = generate_swift_client(ctx, self.request.output, self.request.mobile_output)
        return StageResult(self.stage, True, "rendered", [str(f.path) for f in self.result.files])

    def _write(self) -> StageResult:
        write_files(self.result.files)
        return StageResult(self.stage, True, "written", [str(f.path) for f in self.result.files])

    def run(self) -> GenerationResult:
        handlers = self._handlers()
        for stage in self.STAGES:
            self.stage = stage
            log.info("Running stage", extra={"stage": stage.value})
            try:
                result = handlers[stage]()
            except CodegenError as e:
                log.error("Stage failed", extra={"stage": stage.value})
                self.results.append(StageResult(stage, False, str(e)))
                self.stage = GenStage.FAILED
                raise
            self.results.append(result)
            log.debug(result.message, extra={"stage": stage.value})

        self.stage = GenStage.DONE
        return self.result
