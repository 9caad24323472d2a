"""Shared enums and types for the notification engine."""

from enum import StrEnum


class NotificationCategory(StrEnum):
    STREAK = "streak"
    REMINDER = "reminder"
    WEATHER = "weather"
    CYCLE = "cycle"
    SKIN_GOAL = "skinGoal"
    MOTIVATION = "motivation"

    @property
    def cooldown_days(self) -> int:
        return COOLDOWN_DAYS[self]


COOLDOWN_DAYS: dict[NotificationCategory, int] = {
    NotificationCategory.STREAK: 3,
    NotificationCategory.REMINDER: 1,
    NotificationCategory.WEATHER: 2,
    NotificationCategory.CYCLE: 3,
    NotificationCategory.SKIN_GOAL: 3,
    NotificationCategory.MOTIVATION: 4,
}

_missing = set(NotificationCategory) - set(COOLDOWN_DAYS)
if _missing:
    raise RuntimeError(f"No cooldown defined for categories: {sorted(_missing)}")


class WeatherCondition(StrEnum):
    DRY_AIR = "dryAir"
    HUMID = "humid"
    COLD = "cold"
    SUNNY = "sunny"
    RAINY = "rainy"
    SEASONAL_CHANGE = "seasonalChange"


class Concern(StrEnum):
    ACNE = "acne"
    DRYNESS = "dryness"
    SENSITIVE = "sensitive"
    REDNESS = "redness"
    BLACKHEADS = "blackheads"
    LARGE_PORES = "largePores"
    POST_SHAVE_IRRITATION = "postShaveIrritation"


class CyclePhase(StrEnum):
    MENSTRUAL = "menstrual"
    FOLLICULAR = "follicular"
    OVULATION = "ovulation"
    LUTEAL = "luteal"

    @property
    def skincare_tip(self) -> str:
        return _CYCLE_TIPS[self]


_CYCLE_TIPS: dict[CyclePhase, str] = {
    CyclePhase.MENSTRUAL: (
        "Your skin may be more sensitive. Focus on gentle, hydrating products "
        "and avoid harsh treatments."
    ),
    CyclePhase.FOLLICULAR: (
        "Your skin is glowing! This is a great time to try new products or treatments."
    ),
    CyclePhase.OVULATION: "Skin looks its best! Maintain your routine and enjoy your natural glow.",
    CyclePhase.LUTEAL: (
        "Oil production increases. Use lighter moisturizers and add clay masks to control shine."
    ),
}


class ScheduleStatus(StrEnum):
    SCHEDULED = "scheduled"
    DISABLED = "disabled"
    FATIGUED = "fatigued"
    SUPPRESSED = "suppressed"
    GUARDRAIL_REJECTED = "guardrail_rejected"
    DISPATCH_FAILED = "dispatch_failed"
