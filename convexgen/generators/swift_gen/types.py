"""Dataclasses for Swift client generation."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from convexgen.core.config import Settings, settings as default_settings
from convexgen.generators.swift_gen.overlay import OverlayConfig
from convexgen.generators.swift_gen.utils import struct_name
from convexgen.schema.registry import TypeRegistry
from convexgen.schema.types import ModuleDescriptor, TableDescriptor, TableKind, WhereDescriptor


class Target(str, Enum):
    """Which client a wrapper is emitted for."""
    FULL = "full"  # desktop client, takes an explicit client handle
    REDUCED = "reduced"  # cross-compiled mobile client, mutations and subscriptions only


@dataclass
class GeneratedFile:
    """Represents a generated file."""
    path: Path  # Destination path
    content: str  # File contents


@dataclass
class GenerationSummary:
    structs: int = 0
    enums: int = 0
    modules: int = 0
    api_constants: int = 0
    typed_wrappers: int = 0
    where_structs: int = 0

    def describe(self, path: Path) -> str:
        return (
            f"Generated {path}\n"
            f"  {self.structs} structs, {self.enums} enums, {self.modules} modules, "
            f"{self.api_constants} API constants, {self.typed_wrappers} typed wrappers, "
            f"{self.where_structs} Where structs"
        )


@dataclass
class GenContext:
    """Everything the emitters read; built once per run."""
    tables: Dict[str, TableDescriptor]
    modules: Dict[str, ModuleDescriptor]
    wheres: Dict[str, WhereDescriptor]
    registry: TypeRegistry
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    settings: Settings = field(default_factory=lambda: default_settings)

    @property
    def default_page_size(self) -> int:
        return self.settings.default_page_size

    @property
    def search_page_size(self) -> int:
        return self.settings.search_page_size

    def table_for(self, module: ModuleDescriptor) -> Optional[TableDescriptor]:
        if module.kind is None:
            return None
        return self.tables.get(module.table_name)

    def struct_for(self, module: ModuleDescriptor) -> str:
        return struct_name(module.table_name)

    def is_standard_list(self, module: ModuleDescriptor) -> bool:
        return (
            module.kind in (TableKind.OWNED, TableKind.ORG_SCOPED)
            and module.exports("list")
            and module.table_name in self.wheres
        )


@dataclass
class GenerationResult:
    files: List[GeneratedFile]
    summary: GenerationSummary
    messages: List[str] = field(default_factory=list)
