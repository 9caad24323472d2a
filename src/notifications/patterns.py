"""Learns preferred delivery windows from routine completion times."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

import structlog

from .state import EngineState, TimeWindow

logger = structlog.get_logger()

UPDATE_INTERVAL = timedelta(days=7)
MIN_SESSIONS = 5
MAX_WINDOWS = 3
BUCKET_MINUTES = 30


class PatternLearner:
    """Histogram of completion times bucketed into 30-minute slots.

    Stateless: reads and writes the learned windows on the EngineState it is
    given, so the caller decides when to persist.
    """

    def __init__(self, min_sessions: int = MIN_SESSIONS, max_windows: int = MAX_WINDOWS):
        self.min_sessions = min_sessions
        self.max_windows = max_windows

    @staticmethod
    def should_update(state: EngineState, now: datetime) -> bool:
        return now - state.last_pattern_update_date >= UPDATE_INTERVAL or not state.learned_time_windows

    def build_histogram(self, session_history: Iterable[datetime]) -> list[TimeWindow]:
        """All non-empty buckets, highest count first; ties go to the earlier slot."""
        buckets = Counter(
            (completed.hour, completed.minute // BUCKET_MINUTES * BUCKET_MINUTES)
            for completed in session_history
        )
        ordered = sorted(buckets.items(), key=lambda kv: (-kv[1], kv[0]))
        return [
            TimeWindow(start_hour=hour, start_minute=minute, count=count)
            for (hour, minute), count in ordered
        ]

    def update(self, session_history: list[datetime], state: EngineState, now: datetime) -> bool:
        """Relearn windows when stale. Returns True if the state was changed."""
        if not self.should_update(state, now):
            logger.debug("patterns.update_not_needed")
            return False

        if len(session_history) < self.min_sessions:
            logger.info(
                "patterns.insufficient_data",
                sessions=len(session_history),
                required=self.min_sessions,
            )
            return False

        windows = self.build_histogram(session_history)[: self.max_windows]
        state.learned_time_windows = windows
        state.last_pattern_update_date = now
        logger.info(
            "patterns.learned",
            windows=[f"{w.time_string} ({w.count})" for w in windows],
        )
        return True

    @staticmethod
    def next_occurrence(window: TimeWindow, after: datetime) -> datetime:
        return window.next_occurrence(after)

    def next_preferred_window(self, state: EngineState, after: datetime) -> Optional[datetime]:
        """Soonest upcoming learned slot (not necessarily the busiest one)."""
        if not state.learned_time_windows:
            return None
        return min(self.next_occurrence(w, after) for w in state.learned_time_windows)
