"""Error taxonomy for the scoring core."""

from __future__ import annotations


class ScoringError(RuntimeError):
    """Base class for failures raised by the scoring core."""


class MalformedScaffold(ScoringError, ValueError):
    """Raised when a scaffold does not contain exactly one placeholder."""

    def __init__(self, placeholder: str, count: int) -> None:
        super().__init__(f"Scaffold must contain exactly one '{placeholder}' placeholder, found {count}")
        self.placeholder = placeholder
        self.count = count


class ExecutionUnavailable(ScoringError):
    """The execution service cannot be used at all for this action."""


class ConfigurationError(ExecutionUnavailable):
    """Raised when credentials or endpoints for the execution service are missing."""


class TransportError(ExecutionUnavailable):
    """Raised when the execution service cannot be reached."""


class ExecutionTimeout(ScoringError):
    """Raised when polling exhausts its attempts without a terminal status."""

    def __init__(self, token: str, attempts: int) -> None:
        super().__init__(f"Execution timed out after {attempts} poll attempt(s) for submission {token}")
        self.token = token
        self.attempts = attempts


class RemoteServiceError(ScoringError):
    """Raised when the execution service answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str, *, operation: str = "request") -> None:
        super().__init__(f"Execution service {operation} failed with HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.operation = operation


__all__ = [
    "ConfigurationError",
    "ExecutionTimeout",
    "ExecutionUnavailable",
    "MalformedScaffold",
    "RemoteServiceError",
    "ScoringError",
    "TransportError",
]
