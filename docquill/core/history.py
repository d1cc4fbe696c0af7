import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


class HistoryStack:
    """
    Bounded LIFO of content snapshots.
    Pushing beyond capacity evicts the oldest entry, which is returned to the caller.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: List[str] = []

    def push(self, content: str) -> Optional[str]:
        self._entries.append(content)
        if len(self._entries) > self.limit:
            return self._entries.pop(0)
        return None

    def pop(self) -> Optional[str]:
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> Optional[str]:
        if not self._entries:
            return None
        return self._entries[-1]

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[str]:
        """Oldest first."""
        return list(self._entries)

    def restore(self, entries: List[str]) -> None:
        self._entries = list(entries[-self.limit:])

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)


class HistoryManager:
    """
    Undo/redo state machine over two bounded snapshot stacks.

    snapshot() must receive the content as it was immediately before the
    pending mutation, and must be called before the mutation is applied.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.undo_stack = HistoryStack(limit)
        self.redo_stack = HistoryStack(limit)
        # State needed to take back the most recent snapshot
        self._last_evicted: Optional[str] = None
        self._cleared_redo: Optional[List[str]] = None

    def snapshot(self, content: str) -> None:
        """Record pre-mutation content and invalidate redo history."""
        self._last_evicted = self.undo_stack.push(content)
        self._cleared_redo = self.redo_stack.entries()
        self.redo_stack.clear()
        if self._last_evicted is not None:
            logger.debug(f"History: undo stack full, evicted oldest snapshot ({len(self._last_evicted)} chars)")

    def rollback(self) -> bool:
        """
        Take back the most recent snapshot (the mutation it guarded was not committed).
        Restores the entry it evicted and the redo history it cleared.
        """
        if self._cleared_redo is None:
            return False
        self.undo_stack.pop()
        if self._last_evicted is not None:
            self.undo_stack.restore([self._last_evicted] + self.undo_stack.entries())
        self.redo_stack.restore(self._cleared_redo)
        self._last_evicted = None
        self._cleared_redo = None
        logger.debug("History: rolled back last snapshot")
        return True

    def undo(self, current: str) -> Optional[str]:
        """Pop the latest snapshot and move `current` onto redo. None when empty."""
        previous = self.undo_stack.pop()
        if previous is None:
            return None
        self.redo_stack.push(current)
        self._forget_pending()
        return previous

    def redo(self, current: str) -> Optional[str]:
        """Mirror of undo()."""
        following = self.redo_stack.pop()
        if following is None:
            return None
        self.undo_stack.push(current)
        self._forget_pending()
        return following

    def clear_redo(self) -> None:
        self.redo_stack.clear()

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()
        self._forget_pending()

    def _forget_pending(self) -> None:
        self._last_evicted = None
        self._cleared_redo = None

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self.undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self.redo_stack)
