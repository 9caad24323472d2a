"""Persisted notification history plus the guardrail and suppression checks.

All instants are naive local datetimes. "Same day" and "quiet hours" are judged
on the wall clock of the device that owns the state.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shared_types import NotificationCategory

logger = structlog.get_logger()

DISTANT_PAST = datetime(1, 1, 1)

DAILY_CAP = 1
WEEKLY_CAP = 4
HISTORY_WINDOW = timedelta(days=7)
MIN_INTERVAL = timedelta(hours=20)
QUIET_HOURS_START = 22
QUIET_HOURS_END = 8
RECENT_COMPLETION_WINDOW = timedelta(hours=3)
RECENT_APP_OPEN_WINDOW = timedelta(hours=2)
FATIGUE_THRESHOLD = 2
FATIGUE_PROBABILITY = 0.5


def is_in_quiet_hours(instant: datetime) -> bool:
    """True between 22:00 and 08:00 local time."""
    return instant.hour >= QUIET_HOURS_START or instant.hour < QUIET_HOURS_END


def to_local_naive(instant: datetime) -> datetime:
    """Convert an offset-aware instant to naive local time; naive values pass through."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone().replace(tzinfo=None)


class TimeWindow(BaseModel):
    """A learned 30-minute slot of the day and how many completions fell in it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    start_hour: int = Field(ge=0, le=23)
    start_minute: int
    count: int = Field(default=0, ge=0)

    @field_validator("start_minute")
    @classmethod
    def _on_bucket_boundary(cls, v: int) -> int:
        if v not in (0, 30):
            raise ValueError(f"start_minute must be 0 or 30, got {v}")
        return v

    @property
    def time_string(self) -> str:
        return f"{self.start_hour:02d}:{self.start_minute:02d}"

    def next_occurrence(self, after: datetime) -> datetime:
        """First start of this window strictly after `after`."""
        candidate = after.replace(
            hour=self.start_hour, minute=self.start_minute, second=0, microsecond=0
        )
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate


class EngineState(BaseModel):
    """Notification history and learned preferences for a single user.

    Serialised with camelCase keys (``lastSentTimestamps``, ``learnedTimeWindows``,
    ...) so the stored record keeps the field names of the mobile app.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    last_sent_timestamps: dict[NotificationCategory, datetime] = Field(default_factory=dict)
    learned_time_windows: list[TimeWindow] = Field(default_factory=list)
    last_app_open_timestamp: datetime = Field(default_factory=datetime.now)
    unopened_notification_count: int = Field(default=0, ge=0)
    sent_notification_history: list[datetime] = Field(default_factory=list)
    last_pattern_update_date: datetime = DISTANT_PAST

    @field_validator("sent_notification_history")
    @classmethod
    def _as_sorted_set(cls, v: list[datetime]) -> list[datetime]:
        return sorted(set(v))

    @field_validator("learned_time_windows")
    @classmethod
    def _cap_windows(cls, v: list[TimeWindow]) -> list[TimeWindow]:
        return v[:3]

    # --- Guardrail checks ---

    def rejection_reason(self, category: NotificationCategory, now: datetime) -> Optional[str]:
        """Name of the first guardrail that blocks a send, or None when sending is allowed."""
        if self.sent_notification_today(now):
            return "daily_cap"
        if self.sent_notifications_in_last_week(now) >= WEEKLY_CAP:
            return "weekly_cap"
        last = self.most_recent_sent_timestamp()
        if last is not None and now - last < MIN_INTERVAL:
            return "min_interval"
        if is_in_quiet_hours(now):
            return "quiet_hours"
        last_for_category = self.last_sent_timestamps.get(category)
        if last_for_category is not None:
            if now - last_for_category < timedelta(days=category.cooldown_days):
                return "category_cooldown"
        return None

    def can_send_notification(self, category: NotificationCategory, now: datetime) -> bool:
        reason = self.rejection_reason(category, now)
        if reason:
            logger.info("guardrail.rejected", category=str(category), reason=reason)
            return False
        return True

    def should_suppress_notifications(
        self, last_completion_date: Optional[datetime], now: datetime
    ) -> bool:
        """Hold back while the user is already engaged (recent routine or app open)."""
        if last_completion_date is not None and now - last_completion_date < RECENT_COMPLETION_WINDOW:
            logger.info("guardrail.suppressed", reason="recent_completion")
            return True
        if now - self.last_app_open_timestamp < RECENT_APP_OPEN_WINDOW:
            logger.info("guardrail.suppressed", reason="recent_app_open")
            return True
        return False

    def apply_fatigue_probability(self) -> float:
        return FATIGUE_PROBABILITY if self.unopened_notification_count >= FATIGUE_THRESHOLD else 1.0

    # --- Helpers ---

    def sent_notification_today(self, now: datetime) -> bool:
        today = now.date()
        return any(sent.date() == today for sent in self.sent_notification_history)

    def sent_notifications_in_last_week(self, now: datetime) -> int:
        week_ago = now - HISTORY_WINDOW
        return sum(1 for sent in self.sent_notification_history if sent > week_ago)

    def most_recent_sent_timestamp(self) -> Optional[datetime]:
        return max(self.sent_notification_history, default=None)

    # --- Mutations ---

    def record_sent_notification(self, category: NotificationCategory, now: datetime) -> None:
        self.last_sent_timestamps[category] = now
        week_ago = now - HISTORY_WINDOW
        history = set(self.sent_notification_history)
        history.add(now)
        self.sent_notification_history = sorted(t for t in history if t > week_ago)
        self.unopened_notification_count += 1

    def record_app_open(self, now: datetime) -> None:
        self.last_app_open_timestamp = now
        self.unopened_notification_count = 0

    def to_record(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, data: dict) -> "EngineState":
        return cls.model_validate(data)
