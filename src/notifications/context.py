"""Signals one evaluation cycle is based on, gathered into a ContextSnapshot.

Collaborators (weather lookup, cycle tracker, skin profile) hand over already
computed values; this module only turns them into a ContextSnapshot.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from shared_types import Concern, CyclePhase, WeatherCondition

STREAK_MILESTONES = (3, 7, 14)
SEASON_START_MONTHS = (3, 6, 9, 12)
SEASON_CHANGE_DAYS = 7


@dataclass(frozen=True)
class WeatherReading:
    """Current conditions as reported by the weather collaborator."""

    humidity: float
    temperature: float
    uv_index: float = 0.0
    has_snow: bool = False
    condition: Optional[str] = None


@dataclass(frozen=True)
class ContextSnapshot:
    missed_yesterday: bool = False
    has_streak_milestone: bool = False
    streak_milestone: Optional[int] = None
    weather_condition: Optional[WeatherCondition] = None
    cycle_phase: Optional[CyclePhase] = None
    skin_concerns: frozenset[Concern] = field(default_factory=frozenset)
    current_streak: int = 0
    last_completion_date: Optional[datetime] = None


def classify_weather(reading: Optional[WeatherReading], today: date) -> Optional[WeatherCondition]:
    """Map a reading to the single most relevant condition.

    Precedence: dry air, humid, cold (temperature or snow), sunny, rainy,
    then the first week of a season-start month.
    """
    if reading is None:
        return None
    if reading.humidity < 30:
        return WeatherCondition.DRY_AIR
    if reading.humidity > 70:
        return WeatherCondition.HUMID
    if reading.temperature < 10 or reading.has_snow:
        return WeatherCondition.COLD
    if reading.uv_index >= 7:
        return WeatherCondition.SUNNY
    if reading.condition and "rain" in reading.condition.lower():
        return WeatherCondition.RAINY
    if today.month in SEASON_START_MONTHS and today.day <= SEASON_CHANGE_DAYS:
        return WeatherCondition.SEASONAL_CHANGE
    return None


def compute_streak(sessions: Iterable[datetime], now: datetime) -> int:
    """Consecutive days with a completion, counting back from today."""
    days = {s.date() for s in sessions}
    streak = 0
    current = now.date()
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def streak_milestone(streak: int) -> Optional[int]:
    return streak if streak in STREAK_MILESTONES else None


def missed_yesterday(sessions: Iterable[datetime], now: datetime) -> bool:
    """No completion yesterday and none so far today."""
    days = {s.date() for s in sessions}
    today = now.date()
    return today not in days and (today - timedelta(days=1)) not in days


def build_context(
    sessions: list[datetime],
    now: datetime,
    weather: Optional[WeatherReading] = None,
    cycle_phase: Optional[CyclePhase] = None,
    concerns: Iterable[Concern] = (),
) -> ContextSnapshot:
    streak = compute_streak(sessions, now)
    milestone = streak_milestone(streak)
    return ContextSnapshot(
        missed_yesterday=missed_yesterday(sessions, now),
        has_streak_milestone=milestone is not None,
        streak_milestone=milestone,
        weather_condition=classify_weather(weather, now.date()),
        cycle_phase=cycle_phase,
        skin_concerns=frozenset(concerns),
        current_streak=streak,
        last_completion_date=max(sessions, default=None),
    )
