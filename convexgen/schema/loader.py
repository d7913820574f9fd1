"""Load the validator-definition module that declares the data model."""
import importlib.util
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from convexgen.core.errors import SchemaLoadError
from convexgen.schema.validators import Validator

log = logging.getLogger(__name__)

# Exported map name -> accepted spellings
SCHEMA_EXPORTS = {
    "owned": ("owned",),
    "org_scoped": ("orgScoped", "org_scoped"),
    "base": ("base",),
    "singleton": ("singleton",),
    "children": ("children",),
}


@dataclass
class SchemaModule:
    """The five categorized table maps of a schema module."""
    path: Path
    owned: Dict[str, Validator] = field(default_factory=dict)
    org_scoped: Dict[str, Validator] = field(default_factory=dict)
    base: Dict[str, Validator] = field(default_factory=dict)
    singleton: Dict[str, Validator] = field(default_factory=dict)
    # Child tables are declared as {"schema": validator}; only the validator is kept
    children: Dict[str, Validator] = field(default_factory=dict)

    @property
    def table_names(self):
        names = []
        for attr in SCHEMA_EXPORTS:
            names.extend(getattr(self, attr).keys())
        return names


def load_schema_module(path: Path) -> SchemaModule:
    """Load a schema from a Python module or a JSON/YAML document."""
    path = Path(path)
    if not path.is_file():
        raise SchemaLoadError(str(path), "file not found")

    suffix = path.suffix.lower()
    if suffix == ".py":
        raw = _exec_python(path)
        parse = None
    elif suffix == ".json":
        raw = _read_document(path, json.loads)
        parse = Validator.from_dict
    elif suffix in (".yaml", ".yml"):
        raw = _read_document(path, yaml.safe_load)
        parse = Validator.from_dict
    else:
        raise SchemaLoadError(str(path), f"unsupported schema file type '{suffix}'")

    module = SchemaModule(path=path)
    for attr, spellings in SCHEMA_EXPORTS.items():
        tables = _lookup(raw, spellings)
        if tables is None:
            continue
        if not isinstance(tables, dict):
            raise SchemaLoadError(str(path), f"'{spellings[0]}' must be a mapping of table name to validator")
        converted = {}
        for table_name, node in tables.items():
            if attr == "children":
                node = _child_schema(path, table_name, node)
            converted[table_name] = _as_validator(path, table_name, node, parse)
        setattr(module, attr, converted)

    log.info(
        "Loaded schema module with %d tables", len(module.table_names),
        extra={"stage": "LOAD_SCHEMA", "unit": path.name},
    )
    return module


def _exec_python(path: Path) -> Dict[str, Any]:
    spec = importlib.util.spec_from_file_location(f"convexgen_schema_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise SchemaLoadError(str(path), "not an importable Python module")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise SchemaLoadError(str(path), f"{type(e).__name__}: {e}") from e
    return vars(module)


def _read_document(path: Path, loads) -> Dict[str, Any]:
    try:
        data = loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise SchemaLoadError(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise SchemaLoadError(str(path), "top level must be a mapping")
    return data


def _lookup(raw: Dict[str, Any], spellings) -> Optional[Any]:
    for name in spellings:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _child_schema(path: Path, table_name: str, node: Any) -> Any:
    if isinstance(node, dict) and "schema" in node:
        return node["schema"]
    raise SchemaLoadError(str(path), f"child table '{table_name}' must be declared as {{'schema': validator}}")


def _as_validator(path: Path, table_name: str, node: Any, parse) -> Validator:
    if parse is not None:
        try:
            return parse(node)
        except (KeyError, ValueError) as e:
            raise SchemaLoadError(str(path), f"table '{table_name}': {e}") from e
    if not isinstance(node, Validator):
        raise SchemaLoadError(str(path), f"table '{table_name}' is not a validator")
    return node
