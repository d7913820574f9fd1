"""Error types raised by the generator pipeline."""


class CodegenError(Exception):
    """Base error for code generation."""

    pass


class UsageError(CodegenError):
    """Invalid invocation: bad flags or unreadable input files."""

    pass


class SchemaLoadError(UsageError):
    """The validator-definition module could not be loaded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load schema module {path}: {reason}")
        self.path = path
        self.reason = reason


class CustomConfigError(UsageError):
    """The overlay configuration file is missing or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to load custom config from {path}: {reason}")
        self.path = path
        self.reason = reason


class UnsupportedValidatorError(CodegenError):
    """A validator kind the resolver has no mapping for."""

    def __init__(self, kind: str, model: str, field: str) -> None:
        super().__init__(f"unsupported validator kind '{kind}' for {model}.{field}")
        self.kind = kind
        self.model = model
        self.field = field


class NameCollisionError(CodegenError):
    """Two different shapes synthesized the same declaration name."""

    def __init__(self, name: str, detail: str) -> None:
        super().__init__(f"Synthesized name {name} reused with a different shape: {detail}")
        self.name = name
        self.detail = detail


class OutputWriteError(CodegenError):
    """A generated file could not be written to its destination."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
        self.reason = reason
