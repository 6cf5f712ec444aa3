"""Error taxonomy for the vibium client.

Every error raised by the SDK derives from ``VibiumError`` so callers can catch
the whole family at an application boundary. Structured errors are dataclasses
(fields first, message rendered in ``__str__``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class VibiumError(Exception):
    """Base class for all vibium errors."""


class ClickerNotFoundError(VibiumError):
    """The clicker binary could not be located."""

    def __init__(self, message: str = "clicker binary not found") -> None:
        super().__init__(message)


class ClickerStartTimeoutError(VibiumError):
    """The clicker did not print its listening banner in time."""

    def __init__(self, message: str = "timeout waiting for clicker to start") -> None:
        super().__init__(message)


class ConnectionClosedError(VibiumError):
    """The session or transport has already been shut down."""

    def __init__(self, message: str = "connection closed") -> None:
        super().__init__(message)


class ContextCancelledError(VibiumError):
    """The governing Context was cancelled."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(ContextCancelledError):
    """The governing Context's deadline passed."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


@dataclass(eq=False)
class BrowserCrashedError(VibiumError):
    exit_code: int
    output: str = ""

    def __str__(self) -> str:
        return f"browser crashed with exit code {self.exit_code}"


@dataclass(eq=False)
class ConnectionFailedError(VibiumError):
    """WebSocket dial failure."""

    url: str
    cause: BaseException | None = None

    def __str__(self) -> str:
        return f"failed to connect to {self.url}: {self.cause}"


@dataclass(eq=False)
class BiDiError(VibiumError):
    """Typed error frame returned by the daemon."""

    error_type: str
    message: str

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"


@dataclass(eq=False)
class ElementNotFoundError(VibiumError):
    selector: str

    def __str__(self) -> str:
        return f"element not found: {self.selector}"


@dataclass(eq=False)
class WaitTimeoutError(VibiumError):
    """A wait exceeded its deadline.

    ``selector`` is the awaited selector, or a synthetic one such as
    ``"navigation"`` for page-level waits. ``timeout`` is in seconds.
    """

    selector: str
    timeout: float
    reason: str = ""

    def __str__(self) -> str:
        return f"timeout after {int(self.timeout * 1000)}ms waiting for '{self.selector}': {self.reason}"


@dataclass(eq=False)
class ActivityError(VibiumError):
    """Wraps a failure raised inside an activity."""

    activity: str
    cause: BaseException

    def __str__(self) -> str:
        return f"activity {self.activity} failed: {self.cause}"


@dataclass
class ValidationIssue:
    """One malformed field in a workflow or script."""

    path: str = ""
    field: str = ""
    message: str = ""

    def __str__(self) -> str:
        if self.path and self.field:
            return f"{self.path}.{self.field}: {self.message}"
        if self.path or self.field:
            return f"{self.path or self.field}: {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "field": self.field, "message": self.message}


@dataclass(eq=False)
class WorkflowValidationError(VibiumError):
    """Aggregate of every validation issue found in one pass."""

    issues: list[ValidationIssue] = field(default_factory=list)

    def __str__(self) -> str:
        if len(self.issues) == 1:
            return f"validation failed: {self.issues[0]}"
        joined = "; ".join(str(issue) for issue in self.issues)
        return f"validation failed ({len(self.issues)} errors): {joined}"


@dataclass(eq=False)
class AssertionFailedError(VibiumError):
    """A script assertion did not hold."""

    message: str
    expected: Any = None
    actual: Any = None

    def __str__(self) -> str:
        return self.message


class ExpressionError(VibiumError):
    """An expression uses syntax outside the supported grammar."""
