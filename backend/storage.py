"""
Storage - Persistence collaborators

The core never decides how things are stored. It talks to:
- a Repository (insert / delete / save / all) for routes and finished trips
- a PreferenceStore for small settings such as the last anchor radius

In-memory versions are used by the dev server and tests; JsonPreferenceStore
keeps preferences in a JSON file between runs.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, Generic, List, Optional, Protocol, TypeVar

# Set up logging
logger = logging.getLogger(__name__)

T = TypeVar('T')


class Repository(Protocol[T]):
    def insert(self, item: T) -> None:
        ...

    def delete(self, item: T) -> None:
        ...

    def save(self) -> None:
        ...

    def all(self) -> List[T]:
        ...


class InMemoryRepository(Generic[T]):
    """Keeps items by their `id` attribute"""

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._lock = threading.Lock()
        self.save_count = 0

    def insert(self, item: T) -> None:
        with self._lock:
            self._items[item.id] = item

    def delete(self, item: T) -> None:
        with self._lock:
            self._items.pop(item.id, None)

    def save(self) -> None:
        self.save_count += 1

    def get(self, item_id: str) -> Optional[T]:
        with self._lock:
            return self._items.get(item_id)

    def all(self) -> List[T]:
        with self._lock:
            return list(self._items.values())


class PreferenceStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryPreferenceStore:
    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonPreferenceStore:
    """Preferences kept in a small JSON file, rewritten on every change"""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = {}
        if os.path.exists(path):
            with open(path, encoding='utf-8') as f:
                try:
                    self._values = json.load(f)
                except ValueError:
                    logger.warning(f"  Warning: Ignoring unreadable preferences file {path}")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._values, f, indent=2)
