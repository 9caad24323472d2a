"""Daemon command for periodic background evaluation."""

import asyncio
import time
from datetime import datetime
from typing import Optional

import click
import structlog
from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from rich.console import Console

from cli.config_models import validate_cron
from cli.utils import get_components
from notifications.context import build_context
from notifications.scheduler import ScheduleResult

console = Console()
logger = structlog.get_logger().bind(source="daemon")


def run_cycle(components: dict, now: Optional[datetime] = None) -> ScheduleResult:
    """One background-refresh evaluation using stored state and session history.

    State is reloaded first: other ``nudge`` processes (app-open, reset) write
    the same file between cycles.
    """
    now = now or datetime.now()
    components["store"].reload()
    sessions = components["sessions"].load()
    context = build_context(sessions, now)
    return asyncio.run(
        components["scheduler"].evaluate_and_schedule_next(context, sessions, now)
    )


def _parse_cron(expr: str) -> CronTrigger:
    minute, hour, day, month, day_of_week = validate_cron(expr).split()
    return CronTrigger(
        minute=minute, hour=hour, day=day, month=month, day_of_week=day_of_week
    )


def _on_job_error(event):
    logger.error("job_error", job_id=event.job_id, exception=str(event.exception))


@click.command()
@click.option("--cron", help="Cron expression (default: notifications.daemon_schedule)")
def daemon(cron: Optional[str]):
    """Evaluate on a schedule until interrupted."""
    c = get_components()
    cron = cron or c["config"].notifications.daemon_schedule
    try:
        trigger = _parse_cron(cron)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--cron")

    def job():
        result = run_cycle(c)
        logger.info("daemon.cycle", status=str(result.status), reason=result.reason)

    scheduler = BackgroundScheduler()
    scheduler.add_job(job, trigger=trigger, id="nudge_evaluate", replace_existing=True)
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.start()

    console.print(f"[green]Started[/] evaluation scheduler with cron: {cron}")
    console.print("Press Ctrl+C to stop")

    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        scheduler.shutdown()
        console.print("\n[yellow]Stopped[/]")
