"""
Browser automation through the clicker WebDriver BiDi daemon.

Layers:
- bidi / clicker: WebSocket transport and daemon supervisor
- session / element: page and element control
- input, clock, tracing, events, browser_context: peripherals
- script: deterministic JSON/YAML test scripts
- rpa: activity-based workflows with variables, conditions, loops and retry
"""

from .browser_context import BrowserContext
from .context import Context
from .element import Element
from .errors import (
    ActivityError,
    AssertionFailedError,
    BiDiError,
    BrowserCrashedError,
    ClickerNotFoundError,
    ClickerStartTimeoutError,
    ConnectionClosedError,
    ConnectionFailedError,
    ContextCancelledError,
    DeadlineExceededError,
    ElementNotFoundError,
    ExpressionError,
    ValidationIssue,
    VibiumError,
    WaitTimeoutError,
    WorkflowValidationError,
)
from .events import ConsoleMessage, Dialog, Download, Request, Response, Route
from .session import Session, launch
from .types import (
    ActionOptions,
    BoundingBox,
    ClickOptions,
    ContinueOptions,
    Cookie,
    ElementInfo,
    EmulateMediaOptions,
    FindOptions,
    FulfillOptions,
    Geolocation,
    LaunchOptions,
    PDFOptions,
    SelectOptionValues,
    SetCookieParam,
    SetWindowOptions,
    StorageState,
    TracingStartOptions,
    Viewport,
    WindowState,
)

__version__ = "0.1.0"

__all__ = [
    "ActionOptions",
    "ActivityError",
    "AssertionFailedError",
    "BiDiError",
    "BoundingBox",
    "BrowserContext",
    "BrowserCrashedError",
    "ClickOptions",
    "ClickerNotFoundError",
    "ClickerStartTimeoutError",
    "ConnectionClosedError",
    "ConnectionFailedError",
    "ConsoleMessage",
    "Context",
    "ContextCancelledError",
    "ContinueOptions",
    "Cookie",
    "DeadlineExceededError",
    "Dialog",
    "Download",
    "Element",
    "ElementInfo",
    "ElementNotFoundError",
    "EmulateMediaOptions",
    "ExpressionError",
    "FindOptions",
    "FulfillOptions",
    "Geolocation",
    "LaunchOptions",
    "PDFOptions",
    "Request",
    "Response",
    "Route",
    "SelectOptionValues",
    "Session",
    "SetCookieParam",
    "SetWindowOptions",
    "StorageState",
    "TracingStartOptions",
    "ValidationIssue",
    "VibiumError",
    "Viewport",
    "WaitTimeoutError",
    "WindowState",
    "WorkflowValidationError",
    "launch",
]
