import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from docquill.core.history import HistoryManager, HistoryStack, HISTORY_LIMIT

class TestHistoryStack(unittest.TestCase):
    def test_push_evicts_oldest_beyond_limit(self):
        stack = HistoryStack(limit=3)
        self.assertIsNone(stack.push("a"))
        stack.push("b")
        stack.push("c")
        evicted = stack.push("d")
        self.assertEqual(evicted, "a")
        self.assertEqual(stack.entries(), ["b", "c", "d"])

    def test_pop_empty_returns_none(self):
        stack = HistoryStack()
        self.assertIsNone(stack.pop())
        self.assertIsNone(stack.peek())
        self.assertFalse(stack)

    def test_invalid_limit(self):
        with self.assertRaises(ValueError):
            HistoryStack(limit=0)

class TestHistoryManager(unittest.TestCase):
    def setUp(self):
        self.history = HistoryManager()

    def test_default_limit_is_twenty(self):
        self.assertEqual(HISTORY_LIMIT, 20)
        self.assertEqual(self.history.undo_stack.limit, 20)
        self.assertEqual(self.history.redo_stack.limit, 20)

    def test_undo_returns_snapshot_and_moves_current_to_redo(self):
        self.history.snapshot("v0")
        restored = self.history.undo("v1")
        self.assertEqual(restored, "v0")
        self.assertEqual(self.history.redo_stack.entries(), ["v1"])
        self.assertFalse(self.history.can_undo)

    def test_redo_mirrors_undo(self):
        self.history.snapshot("v0")
        self.history.undo("v1")
        restored = self.history.redo("v0")
        self.assertEqual(restored, "v1")
        self.assertEqual(self.history.undo_stack.entries(), ["v0"])
        self.assertFalse(self.history.can_redo)

    def test_empty_stacks_are_silent(self):
        self.assertIsNone(self.history.undo("current"))
        self.assertIsNone(self.history.redo("current"))
        self.assertEqual(self.history.undo_depth, 0)
        self.assertEqual(self.history.redo_depth, 0)

    def test_snapshot_clears_redo(self):
        self.history.snapshot("v0")
        self.history.undo("v1")
        self.assertTrue(self.history.can_redo)
        self.history.snapshot("v0")
        self.assertFalse(self.history.can_redo)

    def test_twenty_five_snapshots_keep_latest_twenty(self):
        for i in range(25):
            self.history.snapshot(f"v{i}")
        self.assertEqual(self.history.undo_depth, 20)
        self.assertEqual(self.history.undo_stack.entries(), [f"v{i}" for i in range(5, 25)])

    def test_redo_push_respects_cap(self):
        history = HistoryManager(limit=2)
        for i in range(2):
            history.snapshot(f"v{i}")
        history.redo_stack.push("r0")
        history.redo_stack.push("r1")
        history.undo("current")
        self.assertEqual(history.redo_depth, 2)
        self.assertEqual(history.redo_stack.entries(), ["r1", "current"])

    def test_rollback_restores_previous_state(self):
        self.history.snapshot("v0")
        self.history.undo("v1")
        self.history.snapshot("v0")
        self.assertTrue(self.history.rollback())
        self.assertEqual(self.history.undo_depth, 0)
        self.assertEqual(self.history.redo_stack.entries(), ["v1"])

    def test_rollback_restores_evicted_entry(self):
        for i in range(20):
            self.history.snapshot(f"v{i}")
        self.history.snapshot("v20")
        self.assertEqual(self.history.undo_stack.entries()[0], "v1")
        self.history.rollback()
        self.assertEqual(self.history.undo_stack.entries(), [f"v{i}" for i in range(20)])

    def test_rollback_without_snapshot(self):
        self.assertFalse(self.history.rollback())
        self.history.snapshot("v0")
        self.history.undo("v1")
        # undo consumed the pending snapshot; nothing left to take back
        self.assertFalse(self.history.rollback())

if __name__ == '__main__':
    unittest.main()
