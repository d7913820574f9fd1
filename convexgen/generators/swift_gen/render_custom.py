"""Render descriptor-driven (non-CRUD) functions and mobile subscriptions."""
import re
from typing import List, Optional, Tuple

from convexgen.generators.swift_gen.overlay import CustomArg, CustomFunction, Subscription
from convexgen.generators.swift_gen.render_wrappers import MOBILE_SERVICE, CallSite, signature
from convexgen.generators.swift_gen.utils import indent, join_params, swift_dict
from convexgen.schema.registry import TypeRegistry

NON_IDENT_RE = re.compile(r"[^0-9A-Za-z_]")
DUMMY_RESULT = "[String: String]"


def _base_type(swift_type: str) -> str:
    return swift_type[:-1] if swift_type.endswith("?") else swift_type


def _param(arg: CustomArg, force_optional: bool = False) -> str:
    if force_optional or arg.is_optional:
        return f"{arg.name}: {_base_type(arg.swift_type)}? = nil"
    return f"{arg.name}: {arg.swift_type}"


def _value(arg: CustomArg, registry: TypeRegistry) -> str:
    if arg.wire_expr:
        return arg.wire_expr
    if registry.is_enum(_base_type(arg.swift_type)):
        return f"{arg.name}.rawValue"
    return arg.name


def _dict_prelude(
    var: str,
    args: List[CustomArg],
    registry: TypeRegistry,
    force_optional: bool = False,
) -> Tuple[List[str], Optional[str]]:
    """Lines building a dictionary of ``args``; returns (prelude, inline literal).

    With no optional argument the dictionary is small enough to pass inline and
    the prelude is empty.
    """
    required = [f'"{a.wire_key}": {_value(a, registry)}' for a in args if not (force_optional or a.is_optional)]
    optional = [a for a in args if force_optional or a.is_optional]
    if not optional:
        return [], swift_dict(required)
    lines = [f"{indent(2)}var {var}: [String: Any] = {swift_dict(required)}"]
    for a in optional:
        lines.append(f'{indent(2)}if let {a.name} {{ {var}["{a.wire_key}"] = {_value(a, registry)} }}')
    return lines, None


def _struct_array_lines(fn: CustomFunction, registry: TypeRegistry) -> Tuple[List[str], str]:
    spec = fn.struct_array
    element = registry.record(spec.element_type)

    def is_enum(field_name: str, declared: bool) -> bool:
        if declared:
            return True
        entry = element.fields.get(field_name) if element is not None else None
        return entry is not None and entry.is_enum

    required = []
    optional = []
    for f in spec.fields:
        value = f"{f.name}.rawValue" if is_enum(f.name, f.enum_field) else f.name
        if f.optional:
            optional.append(f'{indent(3)}if let {f.name} = p.{f.name} {{ d["{f.name}"] = {value} }}')
        else:
            required.append(f'"{f.name}": p.{value}')

    binding = "var" if optional else "let"
    lines = [
        f"{indent(2)}var {spec.var} = [[String: Any]]()",
        f"{indent(2)}for p in {spec.arg} {{",
        f"{indent(3)}{binding} d: [String: Any] = {swift_dict(required)}",
    ]
    lines.extend(optional)
    lines.append(f"{indent(3)}{spec.var}.append(d)")
    lines.append(f"{indent(2)}}}")

    others = [f'"{a.wire_key}": {_value(a, registry)}' for a in fn.args if a.name != spec.arg]
    others.append(f'"{spec.arg}": {spec.var}')
    return lines, swift_dict(others)


def _nested_lines(fn: CustomFunction, registry: TypeRegistry) -> Tuple[List[str], List[str], str]:
    spec = fn.nested_data
    data_args = [a for a in fn.args if a.name not in spec.outer]
    required = [f'"{a.wire_key}": {_value(a, registry)}' for a in data_args if not (spec.all_optional or a.is_optional)]
    optional = [a for a in data_args if spec.all_optional or a.is_optional]

    binding = "var" if optional else "let"
    lines = [f"{indent(2)}{binding} data: [String: Any] = {swift_dict(required)}"]
    for a in optional:
        lines.append(f'{indent(2)}if let {a.name} {{ data["{a.wire_key}"] = {_value(a, registry)} }}')

    params = [f"{name}: String" for name in spec.outer]
    params.extend(_param(a, spec.all_optional) for a in data_args)
    outer = [f'"{name}": {name}' for name in spec.outer]
    return params, lines, swift_dict(outer + ['"data": data'])


def _request(fn: CustomFunction, registry: TypeRegistry) -> Tuple[List[str], List[str], str]:
    """(params, prelude lines, args expression) for a descriptor."""
    if fn.strategy == "nested":
        return _nested_lines(fn, registry)
    params = [_param(a) for a in fn.args]
    if fn.strategy == "struct_array":
        lines, args = _struct_array_lines(fn, registry)
        return params, lines, args
    lines, inline = _dict_prelude("args", fn.args, registry)
    return params, lines, inline if inline is not None else "args"


def action_skip_call(ref: str, args: str, return_type: str) -> str:
    """Typed action call for the cross-compiled branch, e.g. ``actionMovie(name:args:)``."""
    base = _base_type(return_type)
    if base.startswith("[") and base.endswith("]") and ":" not in base:
        element = NON_IDENT_RE.sub("", base[1:-1])
        return f'return Array(try await {MOBILE_SERVICE}.action{element}s(name: "{ref}", args: {args}))'
    return f'return try await {MOBILE_SERVICE}.action{NON_IDENT_RE.sub("", base)}(name: "{ref}", args: {args})'


def render_custom_function(
    module_name: str,
    fn: CustomFunction,
    struct: str,
    registry: TypeRegistry,
    site: CallSite,
) -> Optional[List[str]]:
    """One descriptor as a static wrapper; None when the target cannot call it."""
    if not site.full and fn.kind == "query":
        return None

    ref = f"{module_name}:{fn.fn}"
    params, prelude, args = _request(fn, registry)
    return_type = None if fn.strategy == "dummy" else fn.resolved_return(struct)
    if not site.full and fn.kind == "mutation":
        return_type = None

    lines = signature(fn.fn, site.params(params), returns=return_type, multiline=False)
    lines.extend(prelude)

    if site.full:
        call = f'try await client.{fn.kind}("{ref}", args: {args})'
        if fn.strategy == "dummy":
            lines.append(f"{indent(2)}let _: {fn.dummy_action_type} = {call}")
        elif return_type and prelude:
            lines.append(f"{indent(2)}return {call}")
        else:
            lines.append(f"{indent(2)}{call}")
    elif fn.kind == "mutation":
        lines.append(f"{indent(2)}{site.call('mutation', ref, args)}")
    else:
        lines.append(f"{indent(2)}#if !SKIP")
        if return_type:
            lines.append(
                f'{indent(2)}return try await {MOBILE_SERVICE}.action("{ref}", args: {args}, returning: {return_type}.self)'
            )
            lines.append(f"{indent(2)}#else")
            lines.append(f"{indent(2)}{action_skip_call(ref, args, return_type)}")
        else:
            dummy = fn.dummy_action_type or DUMMY_RESULT
            lines.append(
                f'{indent(2)}let _: {dummy} = try await {MOBILE_SERVICE}.action("{ref}", args: {args}, returning: {dummy}.self)'
            )
            lines.append(f"{indent(2)}#else")
            lines.append(f'{indent(2)}try await {MOBILE_SERVICE}.action(name: "{ref}", args: {args})')
        lines.append(f"{indent(2)}#endif")

    lines.append(f"{indent(1)}}}")
    return lines


def render_subscription(sub: Subscription) -> List[str]:
    params: List[str] = []
    if sub.where_type:
        params.append(f"where filterWhere: {sub.where_type}?")
    params.extend(f"{a.name}: {a.swift_type}" for a in sub.args)
    params.append(f"onUpdate: @escaping @Sendable @MainActor ({sub.swift_type}) -> Void")
    params.append("onError: @escaping @Sendable @MainActor (Error) -> Void = { _ in _ = () }")
    if sub.on_null:
        params.append("onNull: @escaping @Sendable @MainActor () -> Void = { () }")

    lines = [
        f"{indent(1)}@preconcurrency",
        f"{indent(1)}public static func {sub.method_name}(",
        f"{indent(2)}{join_params(params, 2)}",
        f"{indent(1)}) -> String {{",
    ]

    if sub.paginated:
        forwarded = [f"{a.name}: {a.name}" for a in sub.args]
        if sub.where_type:
            forwarded.append("where: filterWhere")
        lines.append(f"{indent(2)}let args = listArgs({', '.join(forwarded)})")
        args_part = ", args: args"
    elif sub.args:
        args_part = ", args: " + swift_dict([f'"{a.name}": {a.name}' for a in sub.args])
    elif sub.is_array:
        args_part = ""
    else:
        args_part = ", args: [:]"

    on_update = "{ r in onUpdate(Array(r)) }" if sub.is_array else "{ r in onUpdate(r) }"
    on_null = ", onNull: { onNull() }" if sub.on_null else ""
    lines.append(f"{indent(2)}#if !SKIP")
    lines.append(
        f"{indent(2)}return {MOBILE_SERVICE}.subscribe(to: {sub.fn}{args_part}, type: {sub.swift_type}.self, "
        f"onUpdate: onUpdate, onError: onError)"
    )
    lines.append(f"{indent(2)}#else")
    lines.append(
        f"{indent(2)}return {MOBILE_SERVICE}.{sub.skip_method}(to: {sub.fn}{args_part}, "
        f"onUpdate: {on_update}, onError: {{ e in onError(e) }}{on_null})"
    )
    lines.append(f"{indent(2)}#endif")
    lines.append(f"{indent(1)}}}")
    return lines
