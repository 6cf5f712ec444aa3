"""Cancellation handle shared by every long-running operation.

A ``Context`` carries an optional deadline and a cancel flag. Children created
with ``with_timeout``/``with_cancel`` observe their parent: cancelling a
parent cancels every child, and a child's deadline never extends past the
parent's.
"""

from __future__ import annotations

import threading
import time

from .errors import ContextCancelledError, DeadlineExceededError

# Granularity used when a child has to watch a parent it cannot share an event with.
_POLL_SLICE = 0.05


class Context:
    def __init__(self, parent: Context | None = None, deadline: float | None = None) -> None:
        self._parent = parent
        self._event = threading.Event()
        self._cause: BaseException | None = None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

    @classmethod
    def background(cls) -> Context:
        return cls()

    def with_timeout(self, timeout: float | None) -> Context:
        """Child context expiring ``timeout`` seconds from now (None: inherit)."""
        if timeout is None:
            return Context(self)
        return Context(self, time.monotonic() + max(0.0, float(timeout)))

    def with_cancel(self) -> Context:
        return Context(self)

    @property
    def deadline(self) -> float | None:
        """Absolute ``time.monotonic()`` deadline, if any."""
        return self._deadline

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, cause: BaseException | None = None) -> None:
        if self._cause is None:
            self._cause = cause or ContextCancelledError()
        self._event.set()

    def error(self) -> BaseException | None:
        """The cancellation cause, or None while the context is live."""
        if self._event.is_set():
            return self._cause
        if self._parent is not None:
            parent_err = self._parent.error()
            if parent_err is not None:
                return parent_err
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def done(self) -> bool:
        return self.error() is not None

    def raise_if_done(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def sleep(self, seconds: float) -> None:
        """Sleep, waking early and raising if the context ends first."""
        end = time.monotonic() + max(0.0, float(seconds))
        while True:
            self.raise_if_done()
            now = time.monotonic()
            if now >= end:
                return
            wait = end - now
            if self._parent is not None:
                wait = min(wait, _POLL_SLICE)
            remaining = self.remaining()
            if remaining is not None:
                wait = min(wait, remaining)
            self._event.wait(wait)


def ensure(ctx: Context | None) -> Context:
    return ctx if ctx is not None else Context.background()
