"""Orchestrator for Swift client generation."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from convexgen.generators.swift_gen.overlay import CustomFunction, build_descriptors, derive_subscriptions
from convexgen.generators.swift_gen.render_custom import render_custom_function, render_subscription
from convexgen.generators.swift_gen.render_types import (
    render_enums,
    render_fixed_records,
    render_records,
    render_table_structs,
    render_where_structs,
)
from convexgen.generators.swift_gen.render_wrappers import CallSite, render_crud_wrappers, render_list_args
from convexgen.generators.swift_gen.types import (
    GenContext,
    GeneratedFile,
    GenerationResult,
    GenerationSummary,
    Target,
)
from convexgen.generators.swift_gen.utils import api_name, indent, indentation, join_methods, swift_identifier
from convexgen.schema.types import ModuleDescriptor

log = logging.getLogger(__name__)


def _header(generator_name: str, lint_rules: str) -> List[str]:
    return [
        f"// Auto-generated by {generator_name}. DO NOT EDIT.",
        f"// swiftlint:disable {lint_rules}",
        "import Foundation",
        "",
    ]


def render_module_wrappers(ctx: GenContext, module: ModuleDescriptor, target: Target) -> Tuple[List[List[str]], List[List[str]]]:
    """Rendered methods of one module, split into (CRUD block, own block).

    A descriptor replaces the CRUD wrapper of the same name. Descriptors placed
    ``insideCrud`` join the CRUD block when the module has a table.
    """
    site = CallSite(target)
    descriptors: List[CustomFunction] = build_descriptors(module, ctx.overlay)
    overridden = {fn.fn for fn in descriptors}
    has_table = ctx.table_for(module) is not None

    crud = [lines for name, lines in render_crud_wrappers(ctx, module, site) if name not in overridden]
    own: List[List[str]] = []
    struct = ctx.struct_for(module)
    for fn in descriptors:
        lines = render_custom_function(module.name, fn, struct, ctx.registry, site)
        if lines is None:
            continue
        if has_table and fn.placement == "insideCrud":
            crud.append(lines)
        else:
            own.append(lines)
    return crud, own


def render_module_block(ctx: GenContext, module: ModuleDescriptor) -> List[str]:
    """``public enum XAPI`` with endpoint constants, the list builder and desktop wrappers."""
    lines = [f"public enum {api_name(module.name)} {{"]
    for fn in module.functions:
        lines.append(f'{indent(1)}public static let {swift_identifier(fn)} = "{module.name}:{fn}"')

    if ctx.is_standard_list(module):
        lines.append("")
        lines.extend(render_list_args(module, ctx.default_page_size))

    for block in render_module_wrappers(ctx, module, Target.FULL):
        if not block:
            continue
        lines.append("")
        lines.append(f"{indent(1)}#if DESKTOP")
        lines.extend(join_methods(block))
        lines.append(f"{indent(1)}#endif")
    lines.append("}")
    lines.append("")
    return lines


def _extension(module: ModuleDescriptor, methods: List[List[str]]) -> List[str]:
    return ["", f"extension {api_name(module.name)} {{"] + join_methods(methods) + ["}"]


def render_reduced_module(ctx: GenContext, module: ModuleDescriptor) -> List[str]:
    lines: List[str] = []
    for block in render_module_wrappers(ctx, module, Target.REDUCED):
        if block:
            lines.extend(_extension(module, block))

    subs = derive_subscriptions(module, ctx.struct_for(module), ctx.is_standard_list(module), ctx.overlay)
    if subs:
        lines.extend(_extension(module, [render_subscription(sub) for sub in subs]))
    return lines


def render_full_client(ctx: GenContext) -> Tuple[str, GenerationSummary]:
    lines = _header(ctx.settings.generator_name, "file_types_order file_length")
    lines.extend(render_records(ctx.registry))
    lines.extend(render_enums(ctx.registry))
    struct_lines, table_structs = render_table_structs(ctx.tables)
    lines.extend(struct_lines)
    lines.extend(render_fixed_records())
    lines.extend(render_where_structs(ctx.wheres, ctx.registry))
    for module in ctx.modules.values():
        lines.extend(render_module_block(ctx, module))
    lines.append("// swiftlint:enable file_types_order file_length")

    summary = GenerationSummary(
        structs=table_structs + len(ctx.registry.records),
        enums=len(ctx.registry.enums),
        modules=len(ctx.modules),
        api_constants=sum(len(m.functions) for m in ctx.modules.values()),
        typed_wrappers=sum(1 for m in ctx.modules.values() if ctx.table_for(m) is not None),
        where_structs=len(ctx.wheres),
    )
    return "\n".join(lines) + "\n", summary


def render_reduced_client(ctx: GenContext) -> str:
    lines = _header(ctx.settings.generator_name, "file_length")
    for module in ctx.modules.values():
        lines.extend(render_reduced_module(ctx, module))
    return "\n".join(lines) + "\n"


def generate_swift_client(ctx: GenContext, output: Path, mobile_output: Optional[Path] = None) -> GenerationResult:
    """
    Build the client sources in memory.

    Nothing touches the filesystem here; callers write the returned files once
    every buffer has been rendered.

    Args:
        ctx: Harvested tables, scanned modules, filters and registry
        output: Destination of the full client
        mobile_output: Destination of the reduced client, if one is wanted

    Returns:
        GenerationResult with the files, summary counts and stdout messages
    """
    with indentation(ctx.settings.indent_width):
        content, summary = render_full_client(ctx)
        reduced = render_reduced_client(ctx) if mobile_output is not None else None

    files = [GeneratedFile(path=Path(output), content=content)]
    messages = [summary.describe(Path(output))]
    log.info(
        "Rendered full client (%d modules)", summary.modules,
        extra={"stage": "EMIT_CLIENTS", "unit": Path(output).name},
    )

    if reduced is not None:
        files.append(GeneratedFile(path=Path(mobile_output), content=reduced))
        messages.append(f"Generated {mobile_output}")
        log.info("Rendered reduced client", extra={"stage": "EMIT_CLIENTS", "unit": Path(mobile_output).name})

    return GenerationResult(files=files, summary=summary, messages=messages)
