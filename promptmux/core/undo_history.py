"""Bounded snapshot undo/redo stacks."""

from typing import Generic, TypeVar

T = TypeVar("T")


class UndoHistory(Generic[T]):
    """Two-stack snapshot history.

    ``push`` records the state as it was before a change and clears the redo
    stack. Consecutive identical snapshots are stored once. The oldest
    snapshot is dropped once ``max_history`` is exceeded.
    """

    def __init__(self, max_history: int = 50):
        self.max_history = max_history
        self._past: list[T] = []
        self._future: list[T] = []

    def push(self, state: T) -> None:
        if self._past and self._past[-1] == state:
            return

        self._past.append(state)
        if len(self._past) > self.max_history:
            self._past.pop(0)
        self._future.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self, current: T) -> T | None:
        """Return the previous snapshot, parking ``current`` for redo."""
        if not self._past:
            return None

        previous = self._past.pop()
        self._future.append(current)
        return previous

    def redo(self, current: T) -> T | None:
        """Return the next snapshot, parking ``current`` for undo."""
        if not self._future:
            return None

        following = self._future.pop()
        self._past.append(current)
        return following

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
