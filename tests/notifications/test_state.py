"""Tests for guardrail state: caps, interval, quiet hours, cooldowns, suppression."""

from datetime import datetime, timedelta, timezone

import pytest

from notifications.state import (
    DISTANT_PAST,
    EngineState,
    TimeWindow,
    is_in_quiet_hours,
    to_local_naive,
)
from shared_types import NotificationCategory

MONDAY_NOON = datetime(2024, 1, 15, 12, 0)


def _state(**kwargs):
    kwargs.setdefault("last_app_open_timestamp", MONDAY_NOON - timedelta(days=2))
    return EngineState(**kwargs)


# --- Defaults ---


class TestDefaults:
    def test_fresh_state_is_empty(self):
        s = EngineState()
        assert s.last_sent_timestamps == {}
        assert s.learned_time_windows == []
        assert s.unopened_notification_count == 0
        assert s.sent_notification_history == []
        assert s.last_pattern_update_date == DISTANT_PAST

    def test_last_app_open_defaults_to_creation_time(self):
        before = datetime.now()
        s = EngineState()
        assert before <= s.last_app_open_timestamp <= datetime.now()

    def test_fresh_state_permits_send(self):
        s = _state()
        assert s.can_send_notification(NotificationCategory.WEATHER, MONDAY_NOON)


# --- Daily cap ---


class TestDailyCap:
    @pytest.mark.parametrize("category", list(NotificationCategory))
    def test_same_day_entry_blocks_every_category(self, category):
        s = _state(sent_notification_history=[datetime(2024, 1, 15, 8, 30)])
        now = datetime(2024, 1, 15, 20, 0)
        assert s.can_send_notification(category, now) is False
        assert s.rejection_reason(category, now) == "daily_cap"

    def test_previous_day_entry_does_not_trigger_daily_cap(self):
        s = _state(sent_notification_history=[datetime(2024, 1, 14, 8, 0)])
        assert s.rejection_reason(NotificationCategory.MOTIVATION, MONDAY_NOON) is None


# --- Weekly cap ---


class TestWeeklyCap:
    def _four_sends(self):
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, datetime(2024, 1, 8, 10, 0))
        s.record_sent_notification(NotificationCategory.WEATHER, datetime(2024, 1, 9, 12, 0))
        s.record_sent_notification(NotificationCategory.CYCLE, datetime(2024, 1, 10, 12, 0))
        s.record_sent_notification(NotificationCategory.SKIN_GOAL, datetime(2024, 1, 11, 12, 0))
        return s

    def test_fifth_send_within_week_rejected(self):
        s = self._four_sends()
        now = datetime(2024, 1, 13, 12, 0)
        assert s.sent_notifications_in_last_week(now) == 4
        assert s.can_send_notification(NotificationCategory.MOTIVATION, now) is False
        assert s.rejection_reason(NotificationCategory.MOTIVATION, now) == "weekly_cap"

    def test_allowed_again_once_oldest_ages_out(self):
        s = self._four_sends()
        now = datetime(2024, 1, 15, 11, 0)
        assert s.sent_notifications_in_last_week(now) == 3
        assert s.can_send_notification(NotificationCategory.MOTIVATION, now) is True


# --- Minimum interval ---


class TestMinimumInterval:
    def test_19_hours_later_rejected(self):
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, MONDAY_NOON)
        later = MONDAY_NOON + timedelta(hours=19)
        assert s.can_send_notification(NotificationCategory.WEATHER, later) is False
        assert s.rejection_reason(NotificationCategory.WEATHER, later) == "min_interval"

    def test_21_hours_later_allowed(self):
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, MONDAY_NOON)
        later = MONDAY_NOON + timedelta(hours=21)
        assert s.can_send_notification(NotificationCategory.WEATHER, later) is True

    def test_future_entry_blocks(self):
        """A send recorded at its (future) delivery time blocks until it is 20h past."""
        s = _state(sent_notification_history=[datetime(2024, 1, 16, 9, 0)])
        assert s.rejection_reason(NotificationCategory.WEATHER, MONDAY_NOON) == "min_interval"


# --- Quiet hours ---


class TestQuietHours:
    @pytest.mark.parametrize("hour,expected", [(22, True), (7, True), (8, False), (21, False), (0, True), (23, True), (12, False)])
    def test_boundaries(self, hour, expected):
        assert is_in_quiet_hours(datetime(2024, 1, 15, hour, 30)) is expected

    def test_rejects_in_quiet_hours(self):
        s = _state()
        assert s.rejection_reason(NotificationCategory.STREAK, datetime(2024, 1, 15, 23, 0)) == "quiet_hours"


# --- Category cooldown ---


class TestCategoryCooldown:
    def test_within_cooldown_rejected(self):
        t = datetime(2024, 1, 15, 10, 0)
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, t)
        later = t + timedelta(days=2, hours=23)
        assert s.can_send_notification(NotificationCategory.STREAK, later) is False
        assert s.rejection_reason(NotificationCategory.STREAK, later) == "category_cooldown"

    def test_after_cooldown_allowed(self):
        t = datetime(2024, 1, 15, 10, 0)
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, t)
        assert s.can_send_notification(NotificationCategory.STREAK, t + timedelta(days=3, hours=1))

    def test_other_category_not_in_cooldown(self):
        t = datetime(2024, 1, 15, 10, 0)
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, t)
        assert s.can_send_notification(NotificationCategory.WEATHER, t + timedelta(days=2, hours=23))

    def test_reminder_cooldown_is_one_day(self):
        t = datetime(2024, 1, 15, 10, 0)
        s = _state(last_sent_timestamps={NotificationCategory.REMINDER: t})
        assert s.rejection_reason(NotificationCategory.REMINDER, t + timedelta(hours=23)) == "category_cooldown"
        assert s.rejection_reason(NotificationCategory.REMINDER, t + timedelta(hours=25)) is None


# --- Suppression ---


class TestSuppression:
    def test_recent_completion_suppresses(self):
        s = _state()
        assert s.should_suppress_notifications(MONDAY_NOON - timedelta(hours=2), MONDAY_NOON)

    def test_old_completion_and_old_open_not_suppressed(self):
        s = _state(last_app_open_timestamp=MONDAY_NOON - timedelta(hours=3))
        assert not s.should_suppress_notifications(MONDAY_NOON - timedelta(hours=4), MONDAY_NOON)

    def test_recent_app_open_suppresses(self):
        s = _state(last_app_open_timestamp=MONDAY_NOON - timedelta(hours=1))
        assert s.should_suppress_notifications(None, MONDAY_NOON)

    def test_no_completion_not_suppressed(self):
        s = _state()
        assert not s.should_suppress_notifications(None, MONDAY_NOON)


# --- Fatigue ---


class TestFatigue:
    @pytest.mark.parametrize("unopened,expected", [(0, 1.0), (1, 1.0), (2, 0.5), (5, 0.5)])
    def test_probability(self, unopened, expected):
        assert _state(unopened_notification_count=unopened).apply_fatigue_probability() == expected


# --- Mutations ---


class TestRecording:
    def test_record_sets_last_sent_and_increments_unopened(self):
        s = _state()
        s.record_sent_notification(NotificationCategory.CYCLE, MONDAY_NOON)
        assert s.last_sent_timestamps[NotificationCategory.CYCLE] == MONDAY_NOON
        assert s.sent_notification_history == [MONDAY_NOON]
        assert s.unopened_notification_count == 1

    def test_history_pruned_to_trailing_week(self):
        s = _state()
        start = datetime(2024, 1, 1, 10, 0)
        for i in range(12):
            now = start + timedelta(days=i * 2)
            s.record_sent_notification(NotificationCategory.MOTIVATION, now)
            assert all(now - t < timedelta(days=7) for t in s.sent_notification_history)
        assert len(s.sent_notification_history) == 4

    def test_duplicate_instant_kept_once(self):
        s = _state()
        s.record_sent_notification(NotificationCategory.STREAK, MONDAY_NOON)
        s.record_sent_notification(NotificationCategory.WEATHER, MONDAY_NOON)
        assert s.sent_notification_history == [MONDAY_NOON]

    def test_app_open_resets_unopened(self):
        s = _state(unopened_notification_count=3)
        s.record_app_open(MONDAY_NOON)
        assert s.unopened_notification_count == 0
        assert s.last_app_open_timestamp == MONDAY_NOON


# --- Serialisation ---


class TestRecord:
    def test_camel_case_keys(self):
        record = _state().to_record()
        assert set(record) == {
            "lastSentTimestamps",
            "learnedTimeWindows",
            "lastAppOpenTimestamp",
            "unopenedNotificationCount",
            "sentNotificationHistory",
            "lastPatternUpdateDate",
        }

    def test_round_trip(self):
        s = _state(learned_time_windows=[TimeWindow(start_hour=9, start_minute=0, count=4)])
        s.record_sent_notification(NotificationCategory.SKIN_GOAL, MONDAY_NOON)
        record = s.to_record()
        assert record["lastSentTimestamps"] == {"skinGoal": "2024-01-15T12:00:00"}
        assert record["learnedTimeWindows"] == [{"startHour": 9, "startMinute": 0, "count": 4}]
        restored = EngineState.from_record(record)
        assert restored == s


class TestTimeWindow:
    def test_time_string(self):
        assert TimeWindow(start_hour=7, start_minute=30, count=1).time_string == "07:30"

    @pytest.mark.parametrize("minute", [15, 45, 59])
    def test_rejects_off_bucket_minute(self, minute):
        with pytest.raises(ValueError):
            TimeWindow(start_hour=9, start_minute=minute, count=1)

    def test_hand_edited_record_with_off_bucket_window_rejected(self):
        record = EngineState().to_record()
        record["learnedTimeWindows"] = [{"startHour": 9, "startMinute": 45, "count": 3}]
        with pytest.raises(ValueError):
            EngineState.from_record(record)

    def test_rejects_bad_hour(self):
        with pytest.raises(ValueError):
            TimeWindow(start_hour=24, start_minute=0, count=1)


class TestLocalNaive:
    def test_naive_passes_through(self):
        assert to_local_naive(MONDAY_NOON) is MONDAY_NOON

    def test_aware_converted_to_local_wall_clock(self):
        aware = datetime(2024, 1, 16, 10, 0, tzinfo=timezone.utc)
        converted = to_local_naive(aware)
        assert converted.tzinfo is None
        assert converted == aware.astimezone().replace(tzinfo=None)
