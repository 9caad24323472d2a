"""Dispatch boundary where scheduled notifications leave the engine."""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

import structlog

from shared_types import NotificationCategory

logger = structlog.get_logger()


@dataclass(frozen=True)
class NotificationStatus:
    authorized: bool
    enabled: bool

    @property
    def allowed(self) -> bool:
        return self.authorized and self.enabled


class Dispatcher(Protocol):
    async def get_status(self) -> NotificationStatus: ...

    async def schedule_notification(
        self,
        category: NotificationCategory,
        title: str,
        body: str,
        delivery: datetime,
    ) -> bool: ...


class OutboxDispatcher:
    """Appends scheduled notifications to a JSON-lines outbox file.

    Stands in for the platform notification center: whatever reads the outbox
    is responsible for actually showing the notification at ``deliver_at``.
    """

    def __init__(self, path: str | Path, authorized: bool = True, enabled: bool = True):
        self.path = Path(path).expanduser()
        self.authorized = authorized
        self.enabled = enabled

    async def get_status(self) -> NotificationStatus:
        return NotificationStatus(authorized=self.authorized, enabled=self.enabled)

    async def schedule_notification(
        self,
        category: NotificationCategory,
        title: str,
        body: str,
        delivery: datetime,
    ) -> bool:
        entry = {
            "category": str(category),
            "title": title,
            "body": body,
            "deliver_at": delivery.isoformat(),
            "queued_at": datetime.now().isoformat(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.error("outbox.write_failed", path=str(self.path), error=str(e))
            return False
        logger.info("outbox.queued", category=str(category), deliver_at=entry["deliver_at"])
        return True

    def read(self, limit: int = 20) -> list[dict]:
        """Most recent outbox entries, newest last."""
        if not self.path.exists():
            return []
        with open(self.path) as f:
            lines = [line for line in f if line.strip()]
        entries = []
        for line in lines[-limit:]:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("outbox.bad_line", line=line[:80])
        return entries
