"""
HTTP API for taskmirror.

Exports the app factory and the default module-level app.
"""

from taskmirror.api.app import ErrorCode, app, create_app

__all__ = ["ErrorCode", "app", "create_app"]
