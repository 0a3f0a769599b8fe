"""
Side-effect counters and the human-readable note built from them.

Every sync operation tallies what it did to the other side of the mirror
and reports it as a single line, e.g.::

    Task updated. 1 task reassigned, 1 task unassigned.
"""

from dataclasses import asdict, dataclass

# (attribute, singular noun phrase, plural noun phrase, verb phrase)
_PHRASES: list[tuple[str, str, str, str]] = [
    ("reassigned", "task", "tasks", "reassigned"),
    ("unassigned", "task", "tasks", "unassigned"),
    ("added_pending", "task", "tasks", "added to pending"),
    ("removed_pending", "task", "tasks", "removed from pending"),
    ("completed_assigned", "completed task", "completed tasks", "assigned"),
    ("completed_not_reassigned", "completed task", "completed tasks", "not reassigned"),
    ("invalid", "invalid task ID", "invalid task IDs", "ignored"),
]


@dataclass
class SyncCounters:
    """Tallies of mirror side effects performed by one operation."""

    reassigned: int = 0
    unassigned: int = 0
    added_pending: int = 0
    removed_pending: int = 0
    completed_assigned: int = 0
    completed_not_reassigned: int = 0
    invalid: int = 0

    def summarize(self) -> list[str]:
        """
        Render non-zero counters as note parts, in a fixed order.

        Order: reassigned, unassigned, added to pending, removed from
        pending, completed assigned, completed not reassigned, invalid.
        """
        parts: list[str] = []
        for attr, singular, plural, verb in _PHRASES:
            n = getattr(self, attr)
            if n:
                parts.append(f"{n} {singular if n == 1 else plural} {verb}")
        return parts

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def with_note(base: str, parts: list[str]) -> str:
    """
    Append note parts to a base message.

    Example:
        >>> with_note("Task updated.", ["1 task reassigned", "1 task unassigned"])
        'Task updated. 1 task reassigned, 1 task unassigned.'
        >>> with_note("Task updated.", [])
        'Task updated.'
    """
    parts = [p for p in parts if p]
    if not parts:
        return base
    return f"{base} {', '.join(parts)}."
