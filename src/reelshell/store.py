"""Reactive store primitives shared by the list, history and progress stores."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Generic, TypeVar

from .storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]


class ReactiveStore(Generic[T]):
    """Holds a value and publishes every committed replacement.

    ``subscribe`` calls the listener right away with the current value, then
    on every commit, in registration order. A failing listener is logged and
    does not stop delivery to the rest.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._value)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, value: T) -> None:
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("%s listener failed", type(self).__name__)


class LocalCollection:
    """Whole-collection persistence under a single key-value key.

    Owns the key: reads tolerate missing or malformed data, writes raise
    nothing and report failures as a message.
    """

    def __init__(self, storage: KeyValueStore, key: str) -> None:
        self.storage = storage
        self.key = key

    def load(self, default: Any) -> Any:
        try:
            raw = self.storage.get_item(self.key)
        except StorageError as exc:
            logger.warning("Failed to read %s: %s", self.key, exc)
            return default
        if raw is None:
            return default
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed %s data", self.key)
            return default
        if not isinstance(data, type(default)):
            logger.warning("Discarding %s data of type %s", self.key, type(data).__name__)
            return default
        return data

    def save(self, data: Any) -> str | None:
        try:
            self.storage.set_item(self.key, json.dumps(data, ensure_ascii=True))
        except StorageError as exc:
            logger.error("Failed to persist %s: %s", self.key, exc)
            return str(exc)
        return None

    def delete(self) -> str | None:
        try:
            self.storage.remove_item(self.key)
        except StorageError as exc:
            logger.error("Failed to delete %s: %s", self.key, exc)
            return str(exc)
        return None

    def watch(self, on_change: Callable[[], None]) -> Callable[[], None]:
        def listener(key: str) -> None:
            if key == self.key:
                on_change()

        return self.storage.subscribe(listener)
