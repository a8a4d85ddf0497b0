"""
Data adapters answer dotted-path lookups for a registered prefix.

``{{ .Site.Name }}`` is resolved by the adapter registered for ``Site`` when
the local context has no ``Site`` key. Adapters receive the full path,
prefix included, and return a ``(value, found)`` pair.
"""

import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, Tuple, runtime_checkable

from .errors import AdapterConflictError
from .values import walk_path


@runtime_checkable
class DataAdapter(Protocol):
    """Read-only provider of values for one path prefix"""

    def get(self, *path_keys: str) -> Tuple[Any, bool]:
        ...


class MappingAdapter:
    """Adapter over a plain mapping; the prefix key itself is skipped"""

    def __init__(self, data: Mapping):
        self.data = data

    def get(self, *path_keys: str) -> Tuple[Any, bool]:
        return walk_path(self.data, path_keys[1:])


class CallableAdapter:
    """Adapter delegating to ``func(*path_keys) -> (value, found)``"""

    def __init__(self, func: Callable[..., Tuple[Any, bool]]):
        self.func = func

    def get(self, *path_keys: str) -> Tuple[Any, bool]:
        return self.func(*path_keys)


class AdapterRegistry:
    """Prefix to adapter map.

    A registry may sit on top of a parent (request-scoped adapters over the
    engine-wide ones); a prefix may be claimed only once across both.
    """

    def __init__(self, parent: Optional["AdapterRegistry"] = None):
        self._adapters: Dict[str, DataAdapter] = {}
        self._parent = parent
        self._lock = threading.RLock()

    def register(self, prefix: str, adapter: DataAdapter) -> None:
        if not prefix:
            raise ValueError("Data adapter prefix must be non-empty")
        if isinstance(adapter, Mapping):
            adapter = MappingAdapter(adapter)
        elif not isinstance(adapter, DataAdapter) and callable(adapter):
            adapter = CallableAdapter(adapter)
        if not isinstance(adapter, DataAdapter):
            raise TypeError(f"Data adapter for '{prefix}' must provide get(*path_keys)")
        with self._lock:
            if prefix in self:
                raise AdapterConflictError(prefix)
            self._adapters[prefix] = adapter

    def unregister(self, prefix: str) -> None:
        with self._lock:
            self._adapters.pop(prefix, None)

    def get(self, prefix: str) -> Optional[DataAdapter]:
        adapter = self._adapters.get(prefix)
        if adapter is None and self._parent is not None:
            return self._parent.get(prefix)
        return adapter

    def __contains__(self, prefix: str) -> bool:
        return self.get(prefix) is not None

    def __iter__(self) -> Iterator[str]:
        seen = set(self._adapters)
        yield from self._adapters
        if self._parent is not None:
            for prefix in self._parent:
                if prefix not in seen:
                    yield prefix

    def __len__(self) -> int:
        return sum(1 for _ in self)
