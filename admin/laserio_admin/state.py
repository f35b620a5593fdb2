"""Observable state container shared by controllers and views."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UIState:
    """Manages UI state with change notifications."""

    def __init__(self):
        self._state: Dict[str, Any] = {}
        self._observers: Dict[str, List[Callable[[Any], None]]] = {}

    def update(self, key: str, value: Any) -> None:
        """Update state and notify observers."""
        self._state[key] = value
        for callback in list(self._observers.get(key, [])):
            callback(value)

    def get(self, key: str, default: T = None) -> T:
        """Get state value with default."""
        return self._state.get(key, default)

    def subscribe(self, key: str, callback: Callable[[Any], None]) -> None:
        """Subscribe to state changes."""
        if key not in self._observers:
            self._observers[key] = []
        self._observers[key].append(callback)

    def unsubscribe(self, key: str, callback: Callable[[Any], None]) -> None:
        """Unsubscribe from state changes."""
        if key in self._observers and callback in self._observers[key]:
            self._observers[key].remove(callback)
