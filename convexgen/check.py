"""
Consistency check between the schema module and the CRUD factory calls.
Usage: convexgen-check --schema schema.py --convex convex/ [--endpoints]
"""
import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from convexgen.core.config import settings
from convexgen.core.errors import UsageError
from convexgen.core.logging import configure_logging
from convexgen.scanners.factory_scanner import endpoints_for_factory, group_endpoints
from convexgen.scanners.module_scanner import scan_all_factory_calls
from convexgen.schema.loader import load_schema_module
from convexgen.schema.types import FactoryCall

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Issue:
    level: str  # "error" or "warn"
    message: str
    file: Optional[str] = None

    def __str__(self) -> str:
        marker = "error" if self.level == "error" else "warning"
        location = f"{self.file}: " if self.file else ""
        return f"{marker}: {location}{self.message}"


def check_consistency(
    schema_tables: List[str],
    calls: List[FactoryCall],
    files: List[str],
    schema_file: str,
) -> List[Issue]:
    """Errors for duplicate or dangling factories, warnings for loose ends."""
    issues: List[Issue] = []
    tables = set(schema_tables)

    seen: Dict[str, str] = {}
    for call in calls:
        if call.table in seen:
            issues.append(Issue(
                "error",
                f'Duplicate factory for table "{call.table}" (also in {seen[call.table]})',
                call.source_file,
            ))
        else:
            seen[call.table] = call.source_file
        if call.table not in tables:
            issues.append(Issue(
                "error",
                f"{call.factory}('{call.table}') but no \"{call.table}\" table found in schema",
                call.source_file,
            ))

    for table in schema_tables:
        if table not in seen:
            issues.append(Issue("warn", f'Table "{table}" defined in schema but no factory call found', schema_file))

    module_names = {Path(f).stem for f in files}
    for call in calls:
        if call.table != Path(call.source_file).stem and call.table not in module_names:
            issues.append(Issue(
                "warn",
                f"{call.factory}('{call.table}') in {call.source_file}: table name doesn't match filename",
                call.source_file,
            ))
    return issues


def format_endpoints(calls: List[FactoryCall]) -> List[str]:
    lines = ["Generated Endpoints", ""]
    total = 0
    for call in calls:
        endpoints = endpoints_for_factory(call)
        total += len(endpoints)
        lines.append(f"  {call.table} ({call.factory}) in {call.source_file}")
        plain, grouped = group_endpoints(endpoints)
        if plain:
            lines.append(f"    {', '.join(plain)}")
        for prefix, names in grouped.items():
            lines.append("    " + ", ".join(f"{prefix}.{name}" for name in names))
        lines.append("")
    lines.append(f"{total} endpoints from {len(calls)} factory calls")
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="convexgen-check",
        description="Check CRUD factory calls against the schema module",
    )
    parser.add_argument("--schema", required=True, type=Path, help="Schema module (.py, .json or .yaml)")
    parser.add_argument("--convex", required=True, type=Path, help="Directory of backend function modules")
    parser.add_argument("--endpoints", action="store_true", help="List the endpoints each factory call generates")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)

    try:
        if not args.convex.is_dir():
            raise UsageError(f"convex directory not found: {args.convex}")
        schema = load_schema_module(args.schema)
    except UsageError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    calls, files = scan_all_factory_calls(args.convex, settings.skip_modules)
    if args.endpoints:
        for line in format_endpoints(calls):
            print(line)
        return 0

    print(f"tables in schema: {', '.join(schema.table_names) or 'none'}")
    print(f"factory calls:    {len(calls)}")
    print()

    issues = check_consistency(schema.table_names, calls, files, args.schema.name)
    if not issues:
        print("All checks passed")
        return 0

    errors = [i for i in issues if i.level == "error"]
    warnings = [i for i in issues if i.level == "warn"]
    for issue in errors + warnings:
        print(issue)
    print()
    print(f"{len(errors)} error(s), {len(warnings)} warning(s)")
    log.debug("Check finished", extra={"stage": "CHECK", "unit": args.convex.name})
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
