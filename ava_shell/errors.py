"""Structured error types for the command shell."""


class ShellError(Exception):
    """Base error for all shell operations."""
    pass


class UnknownContextError(ShellError):
    """Raised when a command names a context nobody registered."""

    def __init__(self, context: str):
        self.context = context
        super().__init__(f"Unknown context: {context}")


class UnknownMethodError(ShellError):
    """Raised when a context has no command with the requested name."""

    def __init__(self, context: str, method: str):
        self.context = context
        self.method = method
        super().__init__(f"Unknown method {method} in context {context}")


class ValidationError(ShellError):
    """Raw arguments could not be turned into typed values."""
    pass


class InsufficientArgumentsError(ValidationError):

    def __init__(self, required: int, supplied: int):
        self.required = required
        self.supplied = supplied
        super().__init__(f"Requires at least {required} parameters, got {supplied}")


class InvalidFieldValueError(ValidationError):

    def __init__(self, field: str, raw_text: str, reason: str = ""):
        self.field = field
        self.raw_text = raw_text
        message = f"Invalid input {raw_text!r} for field {field}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NoActiveCredentialError(ValidationError):

    def __init__(self):
        super().__init__("Set active user first with setUser")


class DuplicateCommandError(ShellError):
    """Raised at startup when one source defines the same command twice."""

    def __init__(self, context: str, name: str):
        self.context = context
        self.name = name
        super().__init__(f"Duplicate command definition: {context} {name}")


class DefinitionError(ShellError):
    """Raised at startup for a malformed command definition record."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class HandlerInvocationError(ShellError):
    """Wraps any failure raised by an invoked command handler."""

    def __init__(self, context: str, method: str, cause: BaseException):
        self.context = context
        self.method = method
        self.cause = cause
        super().__init__(f"{context} {method} failed: {cause}")


class NodeRequestError(ShellError):
    """Raised by the node client when a JSON-RPC call fails."""

    def __init__(self, method: str, message: str, code=None):
        self.method = method
        self.code = code
        super().__init__(f"{method}: {message}")
