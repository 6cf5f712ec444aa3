"""Isolated browser contexts (BiDi user contexts)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .tracing import Tracing
from .types import Cookie, SetCookieParam, StorageState

if TYPE_CHECKING:
    from .bidi import BiDiClient
    from .context import Context
    from .session import Session


class BrowserContext:
    """Cookies, storage and permissions scoped to one user context.

    Closing the context removes every page opened in it together with its
    cookies, storage and granted permissions.
    """

    def __init__(self, client: BiDiClient, user_context: str) -> None:
        self._client = client
        self.user_context = user_context
        self._tracing: Tracing | None = None

    def __repr__(self) -> str:
        return f"BrowserContext(user_context={self.user_context!r})"

    def new_page(self, *, ctx: Context | None = None) -> Session:
        from .session import Session

        result = self._client.send("browsingContext.create", {"type": "tab", "userContext": self.user_context}, ctx=ctx)
        return Session(self._client, browsing_context=str(result.get("context") or ""))

    def close(self, *, ctx: Context | None = None) -> None:
        self._client.send("browser.removeUserContext", {"userContext": self.user_context}, ctx=ctx)

    def cookies(self, urls: list[str] | None = None, *, ctx: Context | None = None) -> list[Cookie]:
        params: dict[str, Any] = {}
        if urls:
            params["urls"] = list(urls)
        result = self._client.send("storage.getCookies", params, ctx=ctx)
        return [Cookie.from_dict(c) for c in result.get("cookies") or [] if isinstance(c, dict)]

    def set_cookies(self, cookies: list[SetCookieParam], *, ctx: Context | None = None) -> None:
        self._client.send("storage.setCookie", {"cookies": [c.to_dict() for c in cookies]}, ctx=ctx)

    def clear_cookies(self, *, ctx: Context | None = None) -> None:
        self._client.send("storage.deleteCookies", {}, ctx=ctx)

    def storage_state(self, *, ctx: Context | None = None) -> StorageState:
        result = self._client.send("vibium:context.storageState", {"userContext": self.user_context}, ctx=ctx)
        return StorageState.from_dict(result)

    def add_init_script(self, script: str, *, ctx: Context | None = None) -> None:
        """Run ``script`` in every new document of this context before page scripts."""
        params = {"userContext": self.user_context, "script": script}
        self._client.send("vibium:context.addInitScript", params, ctx=ctx)

    @property
    def tracing(self) -> Tracing:
        if self._tracing is None:
            self._tracing = Tracing(self._client, self.user_context)
        return self._tracing

    def grant_permissions(self, permissions: list[str], origin: str = "", *, ctx: Context | None = None) -> None:
        params: dict[str, Any] = {"userContext": self.user_context, "permissions": list(permissions)}
        if origin:
            params["origin"] = origin
        self._client.send("vibium:context.grantPermissions", params, ctx=ctx)

    def clear_permissions(self, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:context.clearPermissions", {"userContext": self.user_context}, ctx=ctx)
