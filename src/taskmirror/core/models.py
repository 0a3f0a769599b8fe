"""
Pydantic models for users and tasks.

Documents are stored and served with Mongo-style camelCase field
names (``_id``, ``pendingTasks``, ``assignedUser``, ...), while
Python code uses snake_case attributes:

    >>> task = Task(name="Write report", deadline="2025-01-31")
    >>> task.assigned_user_name
    'unassigned'
    >>> task.to_document()["assignedUserName"]
    'unassigned'

The ``Task.assigned_user`` field is the authoritative side of the
assignment; ``User.pending_tasks`` is a projection maintained by the sync
engine, never by the store.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNASSIGNED_NAME = "unassigned"


class Document(BaseModel):
    """Base model for anything kept in the document store."""

    collection: ClassVar[str] = ""

    id: str | None = Field(default=None, alias="_id", description="Store-assigned id")
    created_at: datetime | None = Field(
        default=None, alias="dateCreated", description="Creation timestamp"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document shape used on the wire and in storage."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Document":
        return cls.model_validate(data)


class User(Document):
    """A user and the cached list of its pending (not completed) tasks."""

    collection: ClassVar[str] = "users"

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Unique (case-insensitive) email")
    pending_tasks: list[str] = Field(
        default_factory=list,
        alias="pendingTasks",
        description="Ids of assigned, not completed tasks in insertion order",
    )


class Task(Document):
    """A task, optionally assigned to one user."""

    collection: ClassVar[str] = "tasks"

    name: str = Field(..., description="Task name")
    description: str = Field(default="", description="Free-form description")
    deadline: str = Field(..., description="Caller-supplied deadline")
    completed: bool = Field(default=False)
    assigned_user: str = Field(
        default="", alias="assignedUser", description="Assigned user id or empty"
    )
    assigned_user_name: str = Field(
        default=UNASSIGNED_NAME,
        alias="assignedUserName",
        description="Name of the assigned user at assignment time",
    )

    @field_validator("deadline", mode="before")
    @classmethod
    def normalize_deadline(cls, v: Any) -> Any:
        """
        Store deadlines as strings.

        String input is kept verbatim and reads back unchanged. Dates and
        datetimes become ISO strings and numbers their ``str()`` form, so a
        numeric deadline of ``20250101`` reads back as ``"20250101"``.
        """
        if isinstance(v, (datetime, date)):
            return v.isoformat()
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def assign(self, user: User | None) -> None:
        """Point the task at ``user`` (or clear it) and refresh the name cache."""
        if user is None:
            self.assigned_user = ""
            self.assigned_user_name = UNASSIGNED_NAME
        else:
            self.assigned_user = user.id or ""
            self.assigned_user_name = user.name


class AssignmentState(str, Enum):
    """How a task's ``assignedUser`` reference resolves against the user store."""

    UNASSIGNED = "unassigned"
    ACTIVE = "active"  # points at an existing user
    ORPHANED = "orphaned"  # points at a user that no longer exists


@dataclass(frozen=True)
class Assignment:
    """Resolved view of a task's assignment."""

    state: AssignmentState
    user_id: str = ""

    @classmethod
    def unassigned(cls) -> "Assignment":
        return cls(AssignmentState.UNASSIGNED)

    @classmethod
    def active(cls, user_id: str) -> "Assignment":
        return cls(AssignmentState.ACTIVE, user_id)

    @classmethod
    def orphaned(cls, user_id: str) -> "Assignment":
        return cls(AssignmentState.ORPHANED, user_id)
