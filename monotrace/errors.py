"""Exception types raised by the trace analysis engine."""


class MonotraceError(Exception):
    """Base class for fatal analysis errors."""


class InputValidationError(MonotraceError):
    """Raised for invalid user input (filters, limits, sort keys, output paths)."""


class SnapshotMismatchError(InputValidationError):
    """Raised when two trace files disagree on the descriptor of a shared identity."""


class TraceFormatError(MonotraceError):
    """Raised when the decoded event stream cannot be read."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
