"""Built-in workflow activities.

``default_registry`` holds every activity shipped with vibium, grouped by the
prefix of its name (``browser``, ``element``, ``data``, ``file``, ``http``,
``util``).
"""

from . import browser, data, element, file, http, util
from .base import (
    DEFAULT_TIMEOUT_MS,
    Activity,
    Environment,
    get_bool,
    get_float,
    get_int,
    get_int_default,
    get_map,
    get_string,
    get_string_default,
    get_string_list,
    get_timeout,
    require_string,
)
from .registry import Registry, category_of


def new_default_registry() -> Registry:
    return Registry(
        [
            *browser.ACTIVITIES,
            *element.ACTIVITIES,
            *data.ACTIVITIES,
            *file.ACTIVITIES,
            *http.ACTIVITIES,
            *util.ACTIVITIES,
        ]
    )


default_registry = new_default_registry()

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "Activity",
    "Environment",
    "Registry",
    "category_of",
    "default_registry",
    "get_bool",
    "get_float",
    "get_int",
    "get_int_default",
    "get_map",
    "get_string",
    "get_string_default",
    "get_string_list",
    "get_timeout",
    "new_default_registry",
    "require_string",
]
