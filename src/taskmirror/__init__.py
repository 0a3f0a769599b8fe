"""
taskmirror - users and tasks with a consistent assignment mirror.

Keeps each task's assigned user and each user's list of pending tasks in
agreement on top of a document store without transactions.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from taskmirror.core.models import Task, User
from taskmirror.core.sync import SyncEngine, SyncResult

__all__ = ["SyncEngine", "SyncResult", "Task", "User", "__version__"]
