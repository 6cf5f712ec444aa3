"""Name-keyed activity lookup with category grouping."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from .base import Activity


def category_of(name: str) -> str:
    """Prefix before the first dot, or ``"other"``."""
    idx = name.find(".")
    return name[:idx] if idx > 0 else "other"


class Registry:
    """Registry of activities; read-mostly and safe to share between runs."""

    def __init__(self, activities: Iterable[Activity] = ()) -> None:
        self._lock = threading.RLock()
        self._activities: dict[str, Activity] = {}
        for activity in activities:
            self.register(activity)

    def register(self, activity: Activity) -> None:
        """Add ``activity``, replacing any existing one with the same name."""
        if not activity.name:
            raise ValueError(f"activity {activity!r} has no name")
        with self._lock:
            self._activities[activity.name] = activity

    def get(self, name: str) -> Activity | None:
        with self._lock:
            return self._activities.get(name)

    def must_get(self, name: str) -> Activity:
        activity = self.get(name)
        if activity is None:
            raise KeyError(f"activity not found: {name}")
        return activity

    def list(self) -> list[str]:
        with self._lock:
            return sorted(self._activities)

    def list_by_category(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for name in self.list():
            grouped.setdefault(category_of(name), []).append(name)
        return grouped

    def categories(self) -> list[str]:
        return sorted(self.list_by_category())

    def list_category(self, category: str) -> list[str]:
        return self.list_by_category().get(category, [])

    def count(self) -> int:
        with self._lock:
            return len(self._activities)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._activities
