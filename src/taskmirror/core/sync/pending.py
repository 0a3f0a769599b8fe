"""
Pending-set primitives.

These are the only functions that mutate ``User.pending_tasks``. Both
are idempotent: applying either twice leaves the same list as once.
"""

from taskmirror.core.models import User


def add_pending(user: User, task_id: str) -> bool:
    """
    Append ``task_id`` to the user's pending list if it is not there yet.

    Returns:
        True if the list changed
    """
    if task_id in user.pending_tasks:
        return False
    user.pending_tasks.append(task_id)
    return True


def remove_pending(user: User, task_id: str) -> bool:
    """
    Remove ``task_id`` from the user's pending list if present.

    Returns:
        True if the list changed
    """
    if task_id not in user.pending_tasks:
        return False
    user.pending_tasks = [t for t in user.pending_tasks if t != task_id]
    return True
