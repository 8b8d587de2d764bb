"""Undo/redo history for generator settings.

The API keeps one history per user in the draft store (see
``DraftStore.load_settings_history``); each settings action pushes a
snapshot.
"""

from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class SettingsHistory(Generic[T]):
    """Stack of immutable snapshots with a movable cursor.

    Pushing a new snapshot after an undo discards the redo branch. With
    ``max_size`` set, the oldest snapshots are dropped first.
    """

    def __init__(self, initial: T, max_size: Optional[int] = None):
        self._snapshots: List[T] = [initial]
        self._index = 0
        self.max_size = max_size

    @classmethod
    def restore(
        cls,
        snapshots: List[T],
        index: int,
        max_size: Optional[int] = None,
    ) -> "SettingsHistory[T]":
        """Rebuild a history from stored snapshots, clamping the cursor."""
        if not snapshots:
            raise ValueError("A settings history needs at least one snapshot")
        history = cls(snapshots[0], max_size=max_size)
        history._snapshots = list(snapshots)
        history._index = min(max(index, 0), len(snapshots) - 1)
        return history

    @property
    def snapshots(self) -> List[T]:
        return list(self._snapshots)

    @property
    def index(self) -> int:
        return self._index

    @property
    def state(self) -> T:
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def push(self, snapshot: T) -> T:
        if snapshot == self.state:
            return self.state
        del self._snapshots[self._index + 1:]
        self._snapshots.append(snapshot)
        self._index += 1
        if self.max_size is not None and len(self._snapshots) > self.max_size:
            overflow = len(self._snapshots) - self.max_size
            del self._snapshots[:overflow]
            self._index -= overflow
        return snapshot

    def undo(self) -> T:
        if self.can_undo:
            self._index -= 1
        return self.state

    def redo(self) -> T:
        if self.can_redo:
            self._index += 1
        return self.state
