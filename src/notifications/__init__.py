from .context import ContextSnapshot, WeatherReading, build_context
from .dispatch import NotificationStatus, OutboxDispatcher
from .patterns import PatternLearner
from .scheduler import NotificationCandidate, NotificationScheduler, ScheduleResult
from .state import EngineState, TimeWindow
from .storage import EngineStateStore, SessionHistory, StateCorruptedError

__all__ = [
    "ContextSnapshot",
    "EngineState",
    "EngineStateStore",
    "NotificationCandidate",
    "NotificationScheduler",
    "NotificationStatus",
    "OutboxDispatcher",
    "PatternLearner",
    "ScheduleResult",
    "SessionHistory",
    "StateCorruptedError",
    "TimeWindow",
    "WeatherReading",
    "build_context",
]
