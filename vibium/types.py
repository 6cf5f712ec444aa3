"""Option and result records exchanged with the clicker daemon."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .config import default_timeout


def _ms(seconds: float) -> int:
    return int(round(float(seconds) * 1000))


def _timeout_or_default(timeout: float | None) -> float:
    if timeout is None or timeout <= 0:
        return default_timeout()
    return float(timeout)


@dataclass(slots=True)
class BoundingBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BoundingBox:
        data = data or {}
        return cls(
            x=float(data.get("x") or 0),
            y=float(data.get("y") or 0),
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(slots=True)
class ElementInfo:
    tag: str = ""
    text: str = ""
    box: BoundingBox = field(default_factory=BoundingBox)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ElementInfo:
        data = data or {}
        return cls(
            tag=str(data.get("tag") or ""),
            text=str(data.get("text") or ""),
            box=BoundingBox.from_dict(data.get("box")),
        )


@dataclass(slots=True)
class LaunchOptions:
    headless: bool = False
    port: int = 0
    executable_path: str | None = None
    startup_timeout: float | None = None


@dataclass(slots=True)
class FindOptions:
    """Semantic selector options; unset fields are not sent."""

    timeout: float | None = None
    role: str = ""
    text: str = ""
    label: str = ""
    placeholder: str = ""
    test_id: str = ""
    alt: str = ""
    title: str = ""
    xpath: str = ""
    near: str = ""

    def semantic_params(self) -> dict[str, str]:
        pairs = {
            "role": self.role,
            "text": self.text,
            "label": self.label,
            "placeholder": self.placeholder,
            "testid": self.test_id,
            "alt": self.alt,
            "title": self.title,
            "xpath": self.xpath,
            "near": self.near,
        }
        return {key: value for key, value in pairs.items() if value}


@dataclass(slots=True)
class ActionOptions:
    timeout: float | None = None

    @property
    def effective_timeout(self) -> float:
        return _timeout_or_default(self.timeout)


@dataclass(slots=True)
class SelectOptionValues:
    values: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    indexes: list[int] = field(default_factory=list)

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.values:
            params["values"] = list(self.values)
        if self.labels:
            params["labels"] = list(self.labels)
        if self.indexes:
            params["indexes"] = list(self.indexes)
        return params


@dataclass(slots=True)
class Viewport:
    width: int = 0
    height: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Viewport:
        data = data or {}
        return cls(width=int(data.get("width") or 0), height=int(data.get("height") or 0))


@dataclass(slots=True)
class WindowState:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    state: str = ""  # normal | minimized | maximized | fullscreen
    is_visible: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WindowState:
        data = data or {}
        return cls(
            x=int(data.get("x") or 0),
            y=int(data.get("y") or 0),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            state=str(data.get("state") or ""),
            is_visible=bool(data.get("isVisible")),
        )


@dataclass(slots=True)
class SetWindowOptions:
    x: int | None = None
    y: int | None = None
    width: int | None = None
    height: int | None = None
    state: str = ""

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for key in ("x", "y", "width", "height"):
            value = getattr(self, key)
            if value is not None:
                params[key] = value
        if self.state:
            params["state"] = self.state
        return params


@dataclass(slots=True)
class PDFMargin:
    top: str = ""
    right: str = ""
    bottom: str = ""
    left: str = ""


@dataclass(slots=True)
class PDFOptions:
    path: str = ""
    scale: float = 0.0
    display_header: bool = False
    display_footer: bool = False
    print_background: bool = False
    landscape: bool = False
    page_ranges: str = ""
    format: str = ""  # Letter, Legal, Tabloid, A0-A6
    width: str = ""
    height: str = ""
    margin: PDFMargin | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.scale:
            params["scale"] = self.scale
        if self.display_header:
            params["displayHeader"] = True
        if self.display_footer:
            params["displayFooter"] = True
        if self.print_background:
            params["printBackground"] = True
        if self.landscape:
            params["landscape"] = True
        if self.page_ranges:
            params["pageRanges"] = self.page_ranges
        if self.format:
            params["format"] = self.format
        if self.width:
            params["width"] = self.width
        if self.height:
            params["height"] = self.height
        if self.margin is not None:
            params["margin"] = {
                "top": self.margin.top,
                "right": self.margin.right,
                "bottom": self.margin.bottom,
                "left": self.margin.left,
            }
        return params


@dataclass(slots=True)
class FrameInfo:
    url: str = ""
    name: str = ""


@dataclass(slots=True)
class EmulateMediaOptions:
    media: str = ""  # screen | print
    color_scheme: str = ""  # light | dark | no-preference
    reduced_motion: str = ""  # reduce | no-preference
    forced_colors: str = ""  # active | none

    def to_params(self) -> dict[str, str]:
        pairs = {
            "media": self.media,
            "colorScheme": self.color_scheme,
            "reducedMotion": self.reduced_motion,
            "forcedColors": self.forced_colors,
        }
        return {key: value for key, value in pairs.items() if value}


@dataclass(slots=True)
class Geolocation:
    latitude: float
    longitude: float
    accuracy: float = 0.0


@dataclass(slots=True)
class Cookie:
    name: str
    value: str
    domain: str = ""
    path: str = ""
    expires: float = 0.0
    http_only: bool = False
    secure: bool = False
    same_site: str = ""
    partition_key: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cookie:
        value = data.get("value")
        # BiDi wraps cookie values as {"type": "string", "value": ...}.
        if isinstance(value, dict):
            value = value.get("value")
        return cls(
            name=str(data.get("name") or ""),
            value=str(value or ""),
            domain=str(data.get("domain") or ""),
            path=str(data.get("path") or ""),
            expires=float(data.get("expires") or data.get("expiry") or 0),
            http_only=bool(data.get("httpOnly")),
            secure=bool(data.get("secure")),
            same_site=str(data.get("sameSite") or ""),
            partition_key=str(data.get("partitionKey") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
            "sameSite": self.same_site,
        }
        if self.partition_key:
            data["partitionKey"] = self.partition_key
        return data


@dataclass(slots=True)
class SetCookieParam:
    name: str
    value: str
    url: str = ""
    domain: str = ""
    path: str = ""
    expires: float = 0.0
    http_only: bool = False
    secure: bool = False
    same_site: str = ""
    partition_key: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "value": self.value}
        optional = {
            "url": self.url,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
            "sameSite": self.same_site,
            "partitionKey": self.partition_key,
        }
        data.update({key: value for key, value in optional.items() if value})
        return data


@dataclass(slots=True)
class StorageStateOrigin:
    origin: str
    local_storage: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class StorageState:
    cookies: list[Cookie] = field(default_factory=list)
    origins: list[StorageStateOrigin] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StorageState:
        data = data or {}
        cookies = [Cookie.from_dict(c) for c in data.get("cookies") or [] if isinstance(c, dict)]
        origins = [
            StorageStateOrigin(origin=str(o.get("origin") or ""), local_storage=dict(o.get("localStorage") or {}))
            for o in data.get("origins") or []
            if isinstance(o, dict)
        ]
        return cls(cookies=cookies, origins=origins)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cookies": [c.to_dict() for c in self.cookies],
            "origins": [{"origin": o.origin, "localStorage": dict(o.local_storage)} for o in self.origins],
        }


@dataclass(slots=True)
class ClickOptions:
    button: str = ""  # left | right | middle
    click_count: int = 0
    delay: int = 0  # ms between mousedown and mouseup

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.button:
            params["button"] = self.button
        if self.click_count > 0:
            params["clickCount"] = self.click_count
        if self.delay > 0:
            params["delay"] = self.delay
        return params


@dataclass(slots=True)
class TracingStartOptions:
    name: str = ""
    screenshots: bool = False
    snapshots: bool = False
    sources: bool = False
    title: str = ""
    categories: list[str] = field(default_factory=list)

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.name:
            params["name"] = self.name
        if self.screenshots:
            params["screenshots"] = True
        if self.snapshots:
            params["snapshots"] = True
        if self.sources:
            params["sources"] = True
        if self.title:
            params["title"] = self.title
        if self.categories:
            params["categories"] = list(self.categories)
        return params


@dataclass(slots=True)
class FulfillOptions:
    status: int = 0
    headers: dict[str, str] | None = None
    content_type: str = ""
    body: bytes | str | None = None
    path: str = ""


@dataclass(slots=True)
class ContinueOptions:
    url: str = ""
    method: str = ""
    headers: dict[str, str] | None = None
    post_data: str = ""
