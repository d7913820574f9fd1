"""Named declarations discovered while resolving validator trees."""
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from convexgen.core.errors import NameCollisionError
from convexgen.schema.types import RecordDecl

log = logging.getLogger(__name__)


class TypeRegistry:
    """Enums and records synthesized during one generator run.

    Every name is declared at most once; the first definition wins. A later
    definition with a different shape is reported, and rejected outright when
    ``strict`` is set.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.enums: Dict[str, List[str]] = {}
        self.records: Dict[str, RecordDecl] = {}
        self.union_enums: Set[str] = set()
        # Names reserved before their fields resolve, with the source keys that shaped them
        self._reserved: Dict[str, Tuple[str, ...]] = {}

    def register_enum(self, name: str, values: Iterable[str], discriminant: bool = False) -> bool:
        values = list(dict.fromkeys(values))
        existing = self.enums.get(name)
        if existing is not None:
            if sorted(existing) != sorted(values):
                self._collision(name, f"enum values {sorted(existing)} vs {sorted(values)}")
            return False
        self.enums[name] = values
        if discriminant:
            self.union_enums.add(name)
        return True

    def reserve_record(self, name: str, source_keys: Iterable[str]) -> bool:
        """Claim a record name; False means it is already declared."""
        keys = tuple(source_keys)
        existing = self._reserved.get(name)
        if existing is not None:
            if existing != keys:
                self._collision(name, f"fields {list(existing)} vs {list(keys)}")
            return False
        self._reserved[name] = keys
        return True

    def add_record(self, decl: RecordDecl) -> None:
        self.records[decl.name] = decl

    def is_enum(self, name: str) -> bool:
        return name in self.enums

    def sorted_enum(self, name: str) -> List[str]:
        return sorted(self.enums[name])

    def record(self, name: str) -> Optional[RecordDecl]:
        return self.records.get(name)

    def _collision(self, name: str, detail: str) -> None:
        if self.strict:
            raise NameCollisionError(name, detail)
        log.warning(
            "Synthesized name %s reused with a different shape (%s); keeping the first definition",
            name, detail, extra={"stage": "HARVEST_SCHEMA", "unit": name},
        )
