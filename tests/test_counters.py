"""
Tests for side-effect counters, note rendering and pending-set primitives.
"""

from taskmirror.core.models import User
from taskmirror.core.sync import SyncCounters, add_pending, remove_pending, with_note


class TestSummarize:
    """Test SyncCounters.summarize()."""

    def test_all_zero_is_empty(self):
        """Test that untouched counters produce no parts."""
        assert SyncCounters().summarize() == []

    def test_singular_and_plural(self):
        """Test noun agreement for one vs. many."""
        assert SyncCounters(reassigned=1).summarize() == ["1 task reassigned"]
        assert SyncCounters(reassigned=2).summarize() == ["2 tasks reassigned"]
        assert SyncCounters(invalid=1).summarize() == ["1 invalid task ID ignored"]
        assert SyncCounters(invalid=3).summarize() == ["3 invalid task IDs ignored"]

    def test_fixed_order(self):
        """Test that parts follow the fixed counter order regardless of values."""
        counters = SyncCounters(
            invalid=1,
            completed_not_reassigned=1,
            completed_assigned=2,
            removed_pending=1,
            added_pending=1,
            unassigned=1,
            reassigned=1,
        )
        assert counters.summarize() == [
            "1 task reassigned",
            "1 task unassigned",
            "1 task added to pending",
            "1 task removed from pending",
            "2 completed tasks assigned",
            "1 completed task not reassigned",
            "1 invalid task ID ignored",
        ]

    def test_to_dict(self):
        counters = SyncCounters(unassigned=2)
        data = counters.to_dict()
        assert data["unassigned"] == 2
        assert data["reassigned"] == 0


class TestWithNote:
    """Test note assembly."""

    def test_base_only(self):
        assert with_note("User created.", []) == "User created."

    def test_parts_joined(self):
        note = with_note("Task updated.", ["1 task reassigned", "1 task unassigned"])
        assert note == "Task updated. 1 task reassigned, 1 task unassigned."

    def test_empty_parts_dropped(self):
        assert with_note("Task deleted.", ["", ""]) == "Task deleted."


class TestPendingPrimitives:
    """Test add_pending/remove_pending."""

    def _user(self, pending=None):
        return User(_id="u1", name="Ada", email="ada@example.com", pendingTasks=pending or [])

    def test_add_appends_once(self):
        """Test that adding twice leaves one entry (idempotent)."""
        user = self._user()
        assert add_pending(user, "t1") is True
        assert add_pending(user, "t1") is False
        assert user.pending_tasks == ["t1"]

    def test_add_keeps_insertion_order(self):
        user = self._user(["t1"])
        add_pending(user, "t2")
        add_pending(user, "t0")
        assert user.pending_tasks == ["t1", "t2", "t0"]

    def test_remove_is_idempotent(self):
        """Test that removing an absent id changes nothing."""
        user = self._user(["t1", "t2"])
        assert remove_pending(user, "t1") is True
        assert remove_pending(user, "t1") is False
        assert user.pending_tasks == ["t2"]

    def test_remove_drops_duplicates(self):
        """Test that removal clears every occurrence."""
        user = self._user(["t1", "t2", "t1"])
        remove_pending(user, "t1")
        assert user.pending_tasks == ["t2"]
