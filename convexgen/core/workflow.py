from dataclasses import dataclass, field
from enum import Enum
from typing import List


class GenStage(str, Enum):
    LOAD_SCHEMA = "LOAD_SCHEMA"
    LOAD_OVERLAY = "LOAD_OVERLAY"
    HARVEST_SCHEMA = "HARVEST_SCHEMA"
    SCAN_MODULES = "SCAN_MODULES"
    DERIVE_FILTERS = "DERIVE_FILTERS"
    EMIT_CLIENTS = "EMIT_CLIENTS"
    WRITE_OUTPUT = "WRITE_OUTPUT"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class StageResult:
    stage: GenStage
    ok: bool
    message: str
    artifacts: List[str] = field(default_factory=list)
