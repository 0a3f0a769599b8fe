"""
Sync engine: the six mirror-maintaining operations.

``Task.assigned_user`` is the authoritative side of an assignment and
``User.pending_tasks`` mirrors it: a user's pending list holds exactly the
ids of the tasks assigned to it that are not completed. Each operation
reads and writes through the DocumentStore in a fixed order (old-state
cleanup before new-state application) and returns a SyncResult whose note
summarizes the side effects on the other entity.

There is no transaction. If a store call fails partway through an
operation, earlier writes stay committed and the error propagates.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from taskmirror.core.exceptions import ConflictError, NotFoundError, ValidationError
from taskmirror.core.models import Assignment, Document, Task, User
from taskmirror.core.store.backend import DocumentStore
from taskmirror.core.store.query import Filter, Projection, SortSpec

from .counters import SyncCounters, with_note
from .pending import add_pending, remove_pending

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a sync operation: the primary entity and what happened around it."""

    entity: Document
    note: str
    counters: SyncCounters = field(default_factory=SyncCounters)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        # 0 and NaN count as missing
        return value == 0 or value != value
    return False


def normalize_task_ids(task_ids: Any) -> list[str]:
    """Stringify and deduplicate requested task ids, keeping first-seen order."""
    if not isinstance(task_ids, list):
        return []
    seen: dict[str, None] = {}
    for task_id in task_ids:
        seen.setdefault(str(task_id), None)
    return list(seen)


def _email_filter(email: str) -> Filter:
    return {"email": {"$regex": f"^{re.escape(email)}$", "$options": "i"}}


def _build_task(name: Any, deadline: Any, description: Any, completed: Any) -> Task:
    """Validate incoming task fields, coercing loose types the way the API accepts them."""
    try:
        return Task(
            name=str(name),
            deadline=deadline,
            description=description if isinstance(description, str) else "",
            completed=completed if isinstance(completed, bool) else False,
        )
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(part) for part in first.get("loc", []))
        raise ValidationError(f"Invalid {loc or 'task'}: {first.get('msg', 'invalid value')}") from e


class SyncEngine:
    """
    Users/tasks operations that keep assignment and pending lists in agreement.

    Example:
        >>> from taskmirror.core.store import MemoryStore
        >>> engine = SyncEngine(MemoryStore())
        >>> ada = engine.create_user("Ada", "ada@example.com").entity
        >>> result = engine.create_task("Write docs", "2025-03-01", assigned_user=ada.id)
        >>> engine.get_user(ada.id).pending_tasks == [result.entity.id]
        True
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # ---- lookups ----

    def get_user(self, user_id: str) -> User:
        """
        Raises:
            NotFoundError: If no user has this id
        """
        user = self.store.find_by_id(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_task(self, task_id: str) -> Task:
        """
        Raises:
            NotFoundError: If no task has this id
        """
        task = self.store.find_by_id(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def list_users(
        self,
        where: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        select: Projection | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        return self.store.find_documents(
            User, where, sort=sort, select=select, skip=skip, limit=limit
        )

    def list_tasks(
        self,
        where: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        select: Projection | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        return self.store.find_documents(
            Task, where, sort=sort, select=select, skip=skip, limit=limit
        )

    def count_users(self, where: Filter | None = None) -> int:
        return self.store.count(User, where)

    def count_tasks(self, where: Filter | None = None) -> int:
        return self.store.count(Task, where)

    def assignment_of(self, task: Task) -> Assignment:
        """Resolve a task's assignment, flagging references to deleted users."""
        if not task.assigned_user:
            return Assignment.unassigned()
        if self.store.find_by_id(User, task.assigned_user) is None:
            return Assignment.orphaned(task.assigned_user)
        return Assignment.active(task.assigned_user)

    # ---- shared helpers ----

    def _check_email_free(self, email: str, exclude_id: str | None = None) -> None:
        filter_ = _email_filter(email)
        if exclude_id is not None:
            filter_["_id"] = {"$ne": exclude_id}
        if self.store.find_one(User, filter_) is not None:
            raise ConflictError("Email already exists")

    def _resolve_assignee(self, user_id: str) -> User | None:
        """Load the requested assignee; an unknown non-empty id is a bad reference."""
        if not user_id:
            return None
        user = self.store.find_by_id(User, user_id)
        if user is None:
            raise ValidationError("Invalid assigned user ID")
        return user

    def _reassign(self, task: Task, to_user: User) -> None:
        """
        Move a task to ``to_user``, stripping it from the previous owner first.

        Both the User-side and Task-side operations reassign through here, so
        the previous owner's pending list never keeps a stolen task.
        """
        assert task.id is not None
        previous_id = task.assigned_user
        if previous_id and previous_id != to_user.id:
            previous = self.store.find_by_id(User, previous_id)
            if previous is not None and remove_pending(previous, task.id):
                self.store.save(previous)
                logger.debug("Removed task %s from pending of user %s", task.id, previous_id)

        task.assign(to_user)
        self.store.save(task)
        add_pending(to_user, task.id)

    def _claim_task(self, user: User, task_id: str, counters: SyncCounters) -> None:
        """Apply one requested pending task to ``user`` (CreateUser/UpdateUser)."""
        task = self.store.find_by_id(Task, task_id)
        if task is None:
            counters.invalid += 1
            logger.warning("Ignoring unknown task id %s for user %s", task_id, user.id)
            return

        owner = task.assigned_user
        if task.completed:
            if not owner:
                task.assign(user)
                self.store.save(task)
                counters.completed_assigned += 1
            elif owner != user.id:
                counters.completed_not_reassigned += 1
            return

        if not owner:
            task.assign(user)
            self.store.save(task)
            add_pending(user, task_id)
        elif owner != user.id:
            self._reassign(task, user)
            counters.reassigned += 1
        else:
            if task.assigned_user_name != user.name:
                task.assign(user)
                self.store.save(task)
            add_pending(user, task_id)

    # ---- user operations ----

    def create_user(self, name: Any, email: Any, pending_tasks: Any = None) -> SyncResult:
        """
        Create a user and claim the requested pending tasks.

        Unknown task ids are skipped and counted. Completed tasks are assigned
        only when unassigned and never enter the pending list.

        Raises:
            ValidationError: If name or email is missing
            ConflictError: If the email is already taken
        """
        if _is_blank(name) or _is_blank(email):
            raise ValidationError("Name and Email are required")
        name, email = str(name), str(email)
        self._check_email_free(email)

        user = self.store.save(User(name=name, email=email, pending_tasks=[]))
        counters = SyncCounters()
        for task_id in normalize_task_ids(pending_tasks):
            self._claim_task(user, task_id, counters)
        self.store.save(user)

        note = with_note("User created.", counters.summarize())
        logger.info("create_user id=%s note=%s", user.id, note)
        return SyncResult(user, note, counters)

    def update_user(
        self, user_id: str, name: Any, email: Any, pending_tasks: Any = None
    ) -> SyncResult:
        """
        Replace a user's name, email and pending tasks.

        Tasks dropped from the pending list are unassigned (completed ones
        included) before the new list is applied task by task.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If name or email is missing
            ConflictError: If another user already has the email
        """
        user = self.get_user(user_id)
        if _is_blank(name) or _is_blank(email):
            raise ValidationError("Name and Email are required")
        name, email = str(name), str(email)
        assert user.id is not None
        self._check_email_free(email, exclude_id=user.id)

        counters = SyncCounters()
        old_pending = list(user.pending_tasks)
        incoming = normalize_task_ids(pending_tasks)

        for task_id in old_pending:
            if task_id in incoming:
                continue
            task = self.store.find_by_id(Task, task_id)
            if task is not None and task.assigned_user == user.id:
                task.assign(None)
                self.store.save(task)
                counters.unassigned += 1

        user.name = name
        user.email = email
        user.pending_tasks = []

        for task_id in incoming:
            self._claim_task(user, task_id, counters)
        self.store.save(user)

        note = with_note("User updated.", counters.summarize())
        logger.info("update_user id=%s note=%s", user.id, note)
        return SyncResult(user, note, counters)

    def delete_user(self, user_id: str) -> SyncResult:
        """
        Delete a user, unassigning its incomplete tasks.

        Completed tasks keep pointing at the deleted user; see
        ``assignment_of`` for detecting those orphaned references.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.get_user(user_id)
        counters = SyncCounters()

        for task in self.store.find(Task, {"assignedUser": user.id, "completed": False}):
            task.assign(None)
            self.store.save(task)
            counters.unassigned += 1

        self.store.delete(user)

        note = with_note("User deleted.", counters.summarize())
        logger.info("delete_user id=%s note=%s", user.id, note)
        return SyncResult(user, note, counters)

    # ---- task operations ----

    def create_task(
        self,
        name: Any,
        deadline: Any,
        description: Any = "",
        completed: Any = False,
        assigned_user: Any = "",
    ) -> SyncResult:
        """
        Create a task, adding it to the assignee's pending list unless completed.

        Raises:
            ValidationError: If name or deadline is missing, or the assignee
                does not exist
        """
        if _is_blank(name) or _is_blank(deadline):
            raise ValidationError("Name and Deadline are required")

        task = _build_task(name, deadline, description, completed)
        user = self._resolve_assignee(assigned_user if isinstance(assigned_user, str) else "")
        task.assign(user)
        self.store.save(task)
        assert task.id is not None

        counters = SyncCounters()
        if user is not None:
            if task.completed:
                counters.completed_assigned += 1
            else:
                add_pending(user, task.id)
                self.store.save(user)
                counters.added_pending += 1

        note = with_note("Task created.", counters.summarize())
        logger.info("create_task id=%s note=%s", task.id, note)
        return SyncResult(task, note, counters)

    def update_task(
        self,
        task_id: str,
        name: Any,
        deadline: Any,
        description: Any = "",
        completed: Any = False,
        assigned_user: Any = "",
    ) -> SyncResult:
        """
        Replace a task's fields and resynchronize the affected pending lists.

        A completed task that already belongs to someone is never moved to
        a different user: the other fields are saved and the assignment is
        left alone. A completed, unassigned task may be assigned, but it does
        not enter the pending list.

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If name or deadline is missing, or the assignee
                does not exist
        """
        task = self.get_task(task_id)
        assert task.id is not None
        if _is_blank(name) or _is_blank(deadline):
            raise ValidationError("Name and Deadline are required")

        fields = _build_task(name, deadline, description, completed)
        new_completed = fields.completed
        new_user = self._resolve_assignee(
            assigned_user if isinstance(assigned_user, str) else ""
        )

        old_user_id = task.assigned_user or ""
        old_completed = task.completed
        new_user_id = new_user.id if new_user is not None else ""
        counters = SyncCounters()

        task.name = fields.name
        task.description = fields.description
        task.deadline = fields.deadline
        task.completed = new_completed

        if new_completed:
            if old_user_id and new_user_id and new_user_id != old_user_id:
                if not old_completed:
                    # Completing the task still takes it off its owner's pending list.
                    owner = self.store.find_by_id(User, old_user_id)
                    if owner is not None and remove_pending(owner, task.id):
                        self.store.save(owner)
                        counters.removed_pending += 1
                self.store.save(task)
                counters.completed_not_reassigned += 1
                return self._task_updated(task, counters)
            if not old_user_id and new_user is not None:
                task.assign(new_user)
                self.store.save(task)
                counters.completed_assigned += 1
                return self._task_updated(task, counters)

        task.assign(new_user)

        if old_user_id != new_user_id:
            if old_user_id:
                old_user = self.store.find_by_id(User, old_user_id)
                if old_user is not None:
                    remove_pending(old_user, task.id)
                    self.store.save(old_user)
                    counters.unassigned += 1
            if new_user is not None and not new_completed:
                add_pending(new_user, task.id)
                self.store.save(new_user)
                counters.reassigned += 1
                counters.added_pending += 1
        elif new_user is not None:
            if not old_completed and new_completed:
                remove_pending(new_user, task.id)
                self.store.save(new_user)
                counters.removed_pending += 1
            elif old_completed and not new_completed:
                add_pending(new_user, task.id)
                self.store.save(new_user)
                counters.added_pending += 1

        self.store.save(task)
        return self._task_updated(task, counters)

    def _task_updated(self, task: Task, counters: SyncCounters) -> SyncResult:
        note = with_note("Task updated.", counters.summarize())
        logger.info("update_task id=%s note=%s", task.id, note)
        return SyncResult(task, note, counters)

    def delete_task(self, task_id: str) -> SyncResult:
        """
        Delete a task, removing it from its assignee's pending list.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = self.get_task(task_id)
        assert task.id is not None
        counters = SyncCounters()

        if task.assigned_user:
            user = self.store.find_by_id(User, task.assigned_user)
            if user is not None:
                if remove_pending(user, task.id):
                    counters.removed_pending += 1
                self.store.save(user)

        self.store.delete(task)

        note = with_note("Task deleted.", counters.summarize())
        logger.info("delete_task id=%s note=%s", task.id, note)
        return SyncResult(task, note, counters)
