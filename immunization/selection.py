from __future__ import annotations

from typing import Callable, List, Tuple


Listener = Callable[[Tuple[str, ...]], None]


class SelectionStore:
    """Ordered, duplicate-free list of country names picked for comparison.

    Listeners are called with the new selection after every change so that
    dependent views (comparison chart and table) can be rebuilt.
    """

    def __init__(self) -> None:
        self._names: List[str] = []
        self._listeners: List[Listener] = []

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.names
        for listener in list(self._listeners):
            listener(snapshot)

    def add(self, name: str) -> bool:
        name = (name or "").strip()
        if not name or name in self._names:
            return False
        self._names.append(name)
        self._notify()
        return True

    def remove_at(self, index: int) -> bool:
        if index < 0 or index >= len(self._names):
            return False
        del self._names[index]
        self._notify()
        return True

    def clear(self) -> None:
        self._names = []
        self._notify()
