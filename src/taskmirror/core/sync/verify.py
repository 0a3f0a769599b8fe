"""
Mirror audit for users and tasks.

Checks the stored data against the rules the sync engine maintains:
- every pending id names an existing, incomplete task assigned to that user
- every assigned, incomplete task appears in its user's pending list
- pending lists hold no duplicates
- emails are unique ignoring case
- assignments that point at deleted users (orphans) are reported

With ``fix=True`` pending lists are rebuilt from the task side, which is
authoritative. Orphaned assignments on completed tasks are left alone.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum

from taskmirror.core.models import Task, User
from taskmirror.core.store.backend import DocumentStore

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for mirror issues."""

    ERROR = "error"  # The mirror disagrees with the task side
    WARNING = "warning"  # Dangling data the engine tolerates
    INFO = "info"  # Informational, e.g. a stale cached name


@dataclass
class Issue:
    """A single finding from the mirror audit."""

    severity: IssueSeverity
    category: str  # "pending", "assignment", "email", "name"
    message: str
    location: str | None = None  # "users/<id>" or "tasks/<id>"
    auto_fixable: bool = False

    def __str__(self) -> str:
        """Format issue as a human-readable string."""
        parts = [f"[{self.severity.value.upper()}]", f"({self.category})", self.message]
        if self.location:
            parts.append(f"at {self.location}")
        return " ".join(parts)


@dataclass
class VerifyResult:
    """Issues found plus statistics about what was checked."""

    issues: list[Issue] = field(default_factory=list)
    users_checked: int = 0
    tasks_checked: int = 0
    auto_fixed: int = 0

    @property
    def has_errors(self) -> bool:
        return any(i.severity == IssueSeverity.ERROR for i in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.ERROR)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == IssueSeverity.WARNING for i in self.issues)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.INFO)


def _expected_pending(user: User, tasks: list[Task]) -> list[str]:
    """Pending list derived from the task side, keeping the user's existing order."""
    owned = [t.id for t in tasks if t.assigned_user == user.id and not t.completed and t.id]
    ordered = [tid for tid in dict.fromkeys(user.pending_tasks) if tid in owned]
    return ordered + [tid for tid in owned if tid not in ordered]


def verify_mirror(store: DocumentStore, *, fix: bool = False) -> VerifyResult:
    """
    Audit (and optionally repair) the user/task mirror.

    Args:
        store: Document store to inspect
        fix: Rebuild inconsistent pending lists from the task side

    Returns:
        VerifyResult with every issue found
    """
    users = store.find(User)
    tasks = store.find(Task)
    result = VerifyResult(users_checked=len(users), tasks_checked=len(tasks))

    users_by_id = {u.id: u for u in users}
    tasks_by_id = {t.id: t for t in tasks}

    by_email: dict[str, list[User]] = defaultdict(list)
    for user in users:
        by_email[user.email.casefold()].append(user)
    for email, dupes in by_email.items():
        if len(dupes) > 1:
            result.issues.append(
                Issue(
                    IssueSeverity.ERROR,
                    "email",
                    f"Email '{email}' is shared by {len(dupes)} users",
                    location=", ".join(f"users/{u.id}" for u in dupes),
                )
            )

    for task in tasks:
        if not task.assigned_user:
            continue
        owner = users_by_id.get(task.assigned_user)
        location = f"tasks/{task.id}"
        if owner is None:
            severity = IssueSeverity.WARNING if task.completed else IssueSeverity.ERROR
            result.issues.append(
                Issue(
                    severity,
                    "assignment",
                    f"Assigned to missing user {task.assigned_user}",
                    location=location,
                )
            )
            continue
        if not task.completed and task.id not in owner.pending_tasks:
            result.issues.append(
                Issue(
                    IssueSeverity.ERROR,
                    "pending",
                    f"Missing from pending list of user {owner.id}",
                    location=location,
                    auto_fixable=True,
                )
            )
        if task.assigned_user_name != owner.name:
            result.issues.append(
                Issue(
                    IssueSeverity.INFO,
                    "name",
                    f"Cached assignee name '{task.assigned_user_name}' "
                    f"differs from current name '{owner.name}'",
                    location=location,
                )
            )

    for user in users:
        location = f"users/{user.id}"
        if len(set(user.pending_tasks)) != len(user.pending_tasks):
            result.issues.append(
                Issue(
                    IssueSeverity.ERROR,
                    "pending",
                    "Pending list contains duplicate ids",
                    location=location,
                    auto_fixable=True,
                )
            )
        for task_id in dict.fromkeys(user.pending_tasks):
            task = tasks_by_id.get(task_id)
            if task is None:
                reason = f"Pending task {task_id} does not exist"
            elif task.assigned_user != user.id:
                reason = f"Pending task {task_id} is assigned elsewhere"
            elif task.completed:
                reason = f"Pending task {task_id} is completed"
            else:
                continue
            result.issues.append(
                Issue(IssueSeverity.ERROR, "pending", reason, location=location, auto_fixable=True)
            )

    if fix:
        for user in users:
            expected = _expected_pending(user, tasks)
            if expected != user.pending_tasks:
                user.pending_tasks = expected
                store.save(user)
                result.auto_fixed += 1
                logger.info("Rebuilt pending list for user %s", user.id)

    return result
