"""
Configuration data models for taskmirror.

These models define the structure of .taskmirror.json and
~/.config/taskmirror/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreConfig(BaseModel):
    """
    Document store selection.

    Chooses the backend and, for SQLite, where the database file lives.
    """
    backend: str = Field(
        default="sqlite",
        pattern="^(sqlite|memory)$",
        description="Storage backend: 'sqlite' or 'memory'"
    )
    path: Path = Field(
        default=Path(".taskmirror") / "taskmirror.db",
        description="SQLite database file (ignored by the memory backend)"
    )


class ApiConfig(BaseModel):
    """
    HTTP server settings.
    """
    host: str = Field(
        default="127.0.0.1",
        description="Interface to bind"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port to listen on"
    )
    default_task_limit: int = Field(
        default=100,
        ge=0,
        description="Page size for GET /api/tasks when no limit is given (0 = unlimited)"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed by the CORS middleware"
    )


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


class TaskMirrorConfig(BaseModel):
    """
    Top-level taskmirror configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = TaskMirrorConfig(
        ...     store=StoreConfig(backend="memory"),
        ...     api=ApiConfig(port=9000),
        ... )
        >>> config.api.port
        9000
    """
    store: StoreConfig = Field(
        default_factory=StoreConfig,
        description="Document store settings"
    )
    api: ApiConfig = Field(
        default_factory=ApiConfig,
        description="HTTP server settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,  # Validate on field assignment
    )
