"""
Generate typed Swift clients from a validator schema and backend function modules.
Usage: convexgen-swift --schema schema.py --convex convex/ --output Client.swift [--mobile-output Mobile.swift] [--custom overlay.json]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from convexgen.core.config import settings
from convexgen.core.engine import GenerationEngine, GenerationRequest
from convexgen.core.errors import CodegenError, OutputWriteError, UsageError
from convexgen.core.logging import configure_logging

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="convexgen-swift",
        description="Generate Swift API clients from a validator schema and backend function modules",
    )
    parser.add_argument("--schema", required=True, type=Path, help="Schema module (.py, .json or .yaml)")
    parser.add_argument("--convex", required=True, type=Path, help="Directory of backend function modules")
    parser.add_argument("--output", required=True, type=Path, help="Destination of the desktop client")
    parser.add_argument("--mobile-output", type=Path, help="Destination of the mobile client")
    parser.add_argument("--custom", type=Path, help="Overlay of extra function descriptors (JSON or YAML)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)

    request = GenerationRequest(
        schema=args.schema,
        convex=args.convex,
        output=args.output,
        mobile_output=args.mobile_output,
        custom=args.custom,
    )
    try:
        result = GenerationEngine(request).run()
    except (UsageError, OutputWriteError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except CodegenError as e:
        log.error("Generation failed, nothing was written: %s", e)
        return 1

    for message in result.messages:
        print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
