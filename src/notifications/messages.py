"""Title and body templates keyed by category and sub-case."""

from pathlib import Path
from typing import Optional

import structlog
import yaml

from shared_types import Concern, CyclePhase, NotificationCategory, WeatherCondition

logger = structlog.get_logger()

DEFAULT_MESSAGES: dict[str, dict[str, str]] = {
    NotificationCategory.STREAK: {
        "title": "Keep the streak going",
        "3": "Three days in a row! Your skin is starting to notice.",
        "7": "A full week of care. That's a real habit forming.",
        "14": "Two weeks strong. Consistency is where results come from.",
        "general": "Your streak is growing. Don't break it today!",
    },
    NotificationCategory.REMINDER: {
        "missed_title": "We missed you yesterday",
        "missed": "No worries, a quick routine today gets you right back on track.",
        "routine_title": "Time for your routine",
        "morning": "Start your day fresh. Your morning routine takes just a few minutes.",
        "afternoon": "A quick afternoon refresh keeps your skin happy.",
        "evening": "Wind down with your evening routine before bed.",
        "general": "Your routine is waiting whenever you're ready.",
    },
    NotificationCategory.WEATHER: {
        "title": "Weather check for your skin",
        WeatherCondition.DRY_AIR: "The air is dry today. Add an extra layer of moisturizer.",
        WeatherCondition.HUMID: "It's humid out. Go lighter on moisturizer and keep oil in check.",
        WeatherCondition.COLD: "Cold weather ahead. Protect your skin barrier with a richer cream.",
        WeatherCondition.SUNNY: "Strong UV today. Don't skip the sunscreen.",
        WeatherCondition.RAINY: "Rainy day? UV still gets through, so keep up your SPF.",
        WeatherCondition.SEASONAL_CHANGE: "Seasons are changing. Time to adjust your routine.",
    },
    NotificationCategory.CYCLE: {
        "title": "Cycle-aware skincare tip",
    },
    NotificationCategory.SKIN_GOAL: {
        "title": "A step toward your skin goal",
        Concern.ACNE: "Stay consistent with your cleanser. Clear skin comes from steady care.",
        Concern.DRYNESS: "Hydration is key. Apply moisturizer to slightly damp skin.",
        "sensitivity": "Keep it gentle today. Fewer products can mean calmer skin.",
        "radiance": "Glowing skin is built daily. Keep your routine going.",
    },
    NotificationCategory.MOTIVATION: {
        "title": "A little self-care",
        "general": "Taking a few minutes for yourself is always worth it.",
    },
}

_SKIN_GOAL_KEYS = {
    Concern.ACNE: Concern.ACNE.value,
    Concern.DRYNESS: Concern.DRYNESS.value,
    Concern.SENSITIVE: "sensitivity",
}


def _merge(base: dict, override: dict) -> dict:
    result = {str(k): dict(v) for k, v in base.items()}
    for category, entries in override.items():
        if not isinstance(entries, dict):
            raise ValueError(f"Message overrides for '{category}' must be a mapping")
        result.setdefault(str(category), {}).update({str(k): str(v) for k, v in entries.items()})
    return result


def routine_time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "general"


class MessageCatalog:
    """Lookup of (title, body) pairs; unknown keys raise KeyError."""

    def __init__(self, overrides: Optional[dict] = None):
        self._messages = _merge(DEFAULT_MESSAGES, overrides or {})

    @classmethod
    def from_file(cls, path: Optional[str | Path]) -> "MessageCatalog":
        """Load overrides from YAML. A missing path means built-in messages only."""
        if not path:
            return cls()
        path = Path(path).expanduser()
        if not path.exists():
            logger.warning("messages.override_missing", path=str(path))
            return cls()
        try:
            with open(path) as f:
                overrides = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in messages file: {e}")
        return cls(overrides)

    def text(self, category: NotificationCategory, key: str) -> str:
        return self._messages[str(category)][str(key)]

    def streak(self, milestone: int) -> tuple[str, str, str]:
        key = str(milestone) if milestone in (3, 7, 14) else "general"
        cat = NotificationCategory.STREAK
        return self.text(cat, "title"), self.text(cat, key), key

    def weather(self, condition: WeatherCondition) -> tuple[str, str, str]:
        cat = NotificationCategory.WEATHER
        return self.text(cat, "title"), self.text(cat, condition), str(condition)

    def cycle(self, phase: CyclePhase) -> tuple[str, str, str]:
        return self.text(NotificationCategory.CYCLE, "title"), phase.skincare_tip, str(phase)

    def missed_reminder(self) -> tuple[str, str, str]:
        cat = NotificationCategory.REMINDER
        return self.text(cat, "missed_title"), self.text(cat, "missed"), "missed"

    def routine_reminder(self, hour: int) -> tuple[str, str, str]:
        cat = NotificationCategory.REMINDER
        key = routine_time_of_day(hour)
        return self.text(cat, "routine_title"), self.text(cat, key), key

    def skin_goal(self, concern: Concern) -> tuple[str, str, str]:
        cat = NotificationCategory.SKIN_GOAL
        key = _SKIN_GOAL_KEYS.get(concern, "radiance")
        return self.text(cat, "title"), self.text(cat, key), key

    def motivation(self) -> tuple[str, str, str]:
        cat = NotificationCategory.MOTIVATION
        return self.text(cat, "title"), self.text(cat, "general"), "general"
