"""Errors raised by the relay and the HTTP status each maps to."""


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidReferenceError(RelayError):
    """The PR URL does not match owner/repo/pull/number."""

    status_code = 400


class ValidationError(RelayError):
    """Missing or invalid action, comment or URL."""

    status_code = 400


class InvalidStrategyError(RelayError):
    status_code = 400


class AuthenticationError(RelayError):
    """The GitHub CLI holds no active session."""

    status_code = 401


class ToolUnavailableError(RelayError):
    """The GitHub CLI binary is missing or not executable."""

    status_code = 500


class ToolExecutionError(RelayError):
    """A gh invocation exited non-zero or printed something we could not parse."""

    status_code = 500

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
