"""Pydantic configuration models for the nudge engine."""

import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """File paths configuration."""

    state_file: Path = Path("~/nudge/state.json")
    sessions_file: Path = Path("~/nudge/sessions.json")
    outbox_file: Path = Path("~/nudge/outbox.jsonl")
    log_file: Path = Path("~/nudge/nudge.log")
    messages_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.state_file = self.state_file.expanduser()
        self.sessions_file = self.sessions_file.expanduser()
        self.outbox_file = self.outbox_file.expanduser()
        self.log_file = self.log_file.expanduser()
        if self.messages_file is not None:
            self.messages_file = self.messages_file.expanduser()
        return self


def validate_cron(expr: str) -> str:
    """Validate cron expression format (5 fields)."""
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Cron must have 5 fields, got {len(parts)}: {expr}")
    patterns = [
        r"^(\*|[0-9]|[1-5][0-9])(/[0-9]+)?$",  # minute
        r"^(\*|[0-9]|1[0-9]|2[0-3])(/[0-9]+)?$",  # hour
        r"^(\*|[1-9]|[12][0-9]|3[01])(/[0-9]+)?$",  # day
        r"^(\*|[1-9]|1[0-2])(/[0-9]+)?$",  # month
        r"^(\*|[0-6])(/[0-9]+)?$",  # weekday
    ]
    for i, (part, pattern) in enumerate(zip(parts, patterns)):
        if not re.match(pattern, part) and not re.match(r"^[\d\-,\*/]+$", part):
            raise ValueError(f"Invalid cron field {i}: {part}")
    return expr


class NotificationsConfig(BaseModel):
    """User-level switches and background evaluation schedule."""

    enabled: bool = True
    permission_granted: bool = True
    strict_state: bool = False
    daemon_schedule: str = "0 */2 * * *"

    @field_validator("daemon_schedule")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        return validate_cron(v)


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file_level: str = "DEBUG"
    json_mode: bool = False

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class NudgeConfig(BaseModel):
    """Main configuration model."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "NudgeConfig":
        return cls.model_validate(data)

