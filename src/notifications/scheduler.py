"""Picks at most one notification per evaluation and queues it.

Cycle: status check -> pattern update -> candidates -> select -> fatigue ->
suppression -> guardrails -> delivery time -> dispatch -> record.
"""

import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

import structlog

from shared_types import NotificationCategory, ScheduleStatus

from .context import ContextSnapshot
from .dispatch import Dispatcher
from .messages import MessageCatalog
from .patterns import PatternLearner
from .state import is_in_quiet_hours
from .storage import EngineStateStore

logger = structlog.get_logger()

FALLBACK_DELIVERY_HOUR = 9


@dataclass(frozen=True)
class NotificationCandidate:
    category: NotificationCategory
    title: str
    body: str
    priority: int
    variant: str = ""


@dataclass
class ScheduleResult:
    """Outcome of one evaluation cycle."""

    status: ScheduleStatus
    candidate: Optional[NotificationCandidate] = None
    delivery: Optional[datetime] = None
    reason: Optional[str] = None

    @property
    def scheduled(self) -> bool:
        return self.status == ScheduleStatus.SCHEDULED


MessageBuilder = Callable[[ContextSnapshot, datetime], Optional[tuple[str, str, str]]]


class CandidateRule(NamedTuple):
    priority: int
    category: NotificationCategory
    build: MessageBuilder


class NotificationScheduler:
    """Evaluates the context and queues the single best notification.

    Owns an asyncio.Lock so overlapping evaluations run one after another;
    guardrail checks and the final record must not interleave or the caps
    could be exceeded.
    """

    def __init__(
        self,
        store: EngineStateStore,
        dispatcher: Dispatcher,
        learner: Optional[PatternLearner] = None,
        catalog: Optional[MessageCatalog] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.learner = learner or PatternLearner()
        self.catalog = catalog or MessageCatalog()
        self.rng = rng or random.Random()
        self._lock = asyncio.Lock()
        # Evaluated top to bottom; the sort below is stable so equal
        # priorities keep this order.
        self.rules: list[CandidateRule] = [
            CandidateRule(100, NotificationCategory.REMINDER, self._missed_reminder),
            CandidateRule(90, NotificationCategory.STREAK, self._streak),
            CandidateRule(80, NotificationCategory.WEATHER, self._weather),
            CandidateRule(70, NotificationCategory.CYCLE, self._cycle),
            CandidateRule(60, NotificationCategory.REMINDER, self._routine_reminder),
            CandidateRule(50, NotificationCategory.SKIN_GOAL, self._skin_goal),
            CandidateRule(40, NotificationCategory.MOTIVATION, self._motivation),
        ]

    @property
    def state(self):
        return self.store.state

    # --- Candidate building ---

    def _missed_reminder(self, context: ContextSnapshot, now: datetime):
        return self.catalog.missed_reminder() if context.missed_yesterday else None

    def _streak(self, context: ContextSnapshot, now: datetime):
        if context.has_streak_milestone and context.streak_milestone is not None:
            return self.catalog.streak(context.streak_milestone)
        return None

    def _weather(self, context: ContextSnapshot, now: datetime):
        if context.weather_condition is None:
            return None
        return self.catalog.weather(context.weather_condition)

    def _cycle(self, context: ContextSnapshot, now: datetime):
        return self.catalog.cycle(context.cycle_phase) if context.cycle_phase else None

    def _routine_reminder(self, context: ContextSnapshot, now: datetime):
        return self.catalog.routine_reminder(now.hour)

    def _skin_goal(self, context: ContextSnapshot, now: datetime):
        if not context.skin_concerns:
            return None
        # sorted() so a seeded rng picks the same concern on every run
        concern = self.rng.choice(sorted(context.skin_concerns))
        return self.catalog.skin_goal(concern)

    def _motivation(self, context: ContextSnapshot, now: datetime):
        return self.catalog.motivation()

    def build_candidates(self, context: ContextSnapshot, now: datetime) -> list[NotificationCandidate]:
        """Eligible candidates, highest priority first. Never empty."""
        candidates = []
        for rule in self.rules:
            message = rule.build(context, now)
            if message is None:
                continue
            title, body, variant = message
            candidates.append(
                NotificationCandidate(
                    category=rule.category,
                    title=title,
                    body=body,
                    priority=rule.priority,
                    variant=variant,
                )
            )
        return sorted(candidates, key=lambda c: c.priority, reverse=True)

    # --- Delivery window ---

    def resolve_delivery_time(self, now: datetime) -> datetime:
        """Next learned window outside quiet hours, else the next 09:00 after now."""
        preferred = self.learner.next_preferred_window(self.state, now)
        if preferred is not None and not is_in_quiet_hours(preferred):
            return preferred

        delivery = now.replace(hour=FALLBACK_DELIVERY_HOUR, minute=0, second=0, microsecond=0)
        if delivery <= now:
            delivery += timedelta(days=1)
        return delivery

    # --- Evaluation ---

    async def evaluate_and_schedule_next(
        self,
        context: ContextSnapshot,
        session_history: list[datetime],
        now: Optional[datetime] = None,
    ) -> ScheduleResult:
        now = now or datetime.now()
        async with self._lock:
            return await self._evaluate(context, session_history, now)

    async def _evaluate(
        self, context: ContextSnapshot, session_history: list[datetime], now: datetime
    ) -> ScheduleResult:
        log = logger.bind(evaluated_at=now.isoformat())

        status = await self.dispatcher.get_status()
        if not status.allowed:
            log.info("scheduler.disabled", authorized=status.authorized, enabled=status.enabled)
            return ScheduleResult(ScheduleStatus.DISABLED)

        if self.learner.update(session_history, self.state, now):
            self.store.save()

        candidates = self.build_candidates(context, now)
        selected = candidates[0]
        log = log.bind(category=str(selected.category), priority=selected.priority)
        log.info("scheduler.selected", variant=selected.variant, candidates=len(candidates))

        probability = self.state.apply_fatigue_probability()
        if self.rng.random() >= probability:
            log.info("scheduler.fatigued", probability=probability)
            return ScheduleResult(ScheduleStatus.FATIGUED, candidate=selected, reason="fatigue")

        if self.state.should_suppress_notifications(context.last_completion_date, now):
            return ScheduleResult(ScheduleStatus.SUPPRESSED, candidate=selected, reason="engaged")

        reason = self.state.rejection_reason(selected.category, now)
        if reason:
            log.info("guardrail.rejected", reason=reason)
            return ScheduleResult(
                ScheduleStatus.GUARDRAIL_REJECTED, candidate=selected, reason=reason
            )

        delivery = self.resolve_delivery_time(now)
        try:
            sent = await self.dispatcher.schedule_notification(
                selected.category, selected.title, selected.body, delivery
            )
        except Exception as e:
            log.error("scheduler.dispatch_error", error=str(e))
            sent = False

        if not sent:
            log.warning("scheduler.dispatch_failed", deliver_at=delivery.isoformat())
            return ScheduleResult(
                ScheduleStatus.DISPATCH_FAILED, candidate=selected, delivery=delivery
            )

        self.state.record_sent_notification(selected.category, delivery)
        self.store.save()
        log.info("scheduler.scheduled", deliver_at=delivery.isoformat())
        return ScheduleResult(ScheduleStatus.SCHEDULED, candidate=selected, delivery=delivery)
