"""Engine commands: evaluate, status, app-open, complete, learn and reset."""

import asyncio
import random
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, parse_now
from shared_types import Concern, CyclePhase, NotificationCategory

console = Console()

_STATUS_STYLE = {
    "scheduled": "green",
    "disabled": "dim",
    "fatigued": "yellow",
    "suppressed": "yellow",
    "guardrail_rejected": "yellow",
    "dispatch_failed": "red",
}


@click.command()
@click.option("--now", "now_str", help="Evaluate as of this ISO datetime (default: now)")
@click.option("--humidity", type=float, help="Current relative humidity (%)")
@click.option("--temperature", type=float, help="Current temperature (°C)")
@click.option("--uv-index", type=float, help="Current UV index (needs --humidity and --temperature)")
@click.option("--snow", is_flag=True, help="Snow is present")
@click.option("--condition", help="Weather condition text, e.g. 'Light rain'")
@click.option("--cycle-phase", type=click.Choice([p.value for p in CyclePhase]))
@click.option(
    "--concern",
    "concerns",
    multiple=True,
    type=click.Choice([c.value for c in Concern]),
    help="Skin concern (repeatable)",
)
@click.option("--seed", type=int, help="Seed the random source for reproducible runs")
def evaluate(
    now_str: Optional[str],
    humidity: Optional[float],
    temperature: Optional[float],
    uv_index: Optional[float],
    snow: bool,
    condition: Optional[str],
    cycle_phase: Optional[str],
    concerns: tuple[str, ...],
    seed: Optional[int],
):
    """Run one evaluation cycle and queue at most one notification."""
    from notifications.context import WeatherReading, build_context

    weather_given = (
        humidity is not None or temperature is not None or uv_index is not None or snow or condition
    )
    if weather_given and (humidity is None or temperature is None):
        raise click.UsageError(
            "Weather options (--uv-index, --snow, --condition) need both --humidity and --temperature"
        )

    now = parse_now(now_str)
    c = get_components()
    scheduler = c["scheduler"]
    if seed is not None:
        scheduler.rng = random.Random(seed)

    weather = None
    if weather_given:
        weather = WeatherReading(
            humidity=humidity,
            temperature=temperature,
            uv_index=uv_index or 0.0,
            has_snow=snow,
            condition=condition,
        )

    sessions = c["sessions"].load()
    context = build_context(
        sessions,
        now,
        weather=weather,
        cycle_phase=CyclePhase(cycle_phase) if cycle_phase else None,
        concerns=[Concern(x) for x in concerns],
    )
    result = asyncio.run(scheduler.evaluate_and_schedule_next(context, sessions, now))

    style = _STATUS_STYLE.get(str(result.status), "white")
    console.print(f"[{style}]{result.status}[/]" + (f" ({result.reason})" if result.reason else ""))
    if result.candidate:
        cand = result.candidate
        console.print(f"[bold]{cand.title}[/] [dim]{cand.category} p={cand.priority}[/]")
        console.print(cand.body)
    if result.scheduled:
        console.print(f"Deliver at: [cyan]{result.delivery:%Y-%m-%d %H:%M}[/]")


@click.command()
@click.option("--now", "now_str", help="Judge guardrails as of this ISO datetime")
def status(now_str: Optional[str]):
    """Show guardrail state, learned windows and send eligibility."""
    now = parse_now(now_str)
    c = get_components()
    state = c["store"].state

    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Cooldown", justify="right")
    table.add_column("Last sent")
    table.add_column("Can send")
    for category in NotificationCategory:
        last = state.last_sent_timestamps.get(category)
        reason = state.rejection_reason(category, now)
        table.add_row(
            str(category),
            f"{category.cooldown_days}d",
            f"{last:%Y-%m-%d %H:%M}" if last else "never",
            "[green]yes[/]" if reason is None else f"[yellow]no[/] [dim]{reason}[/]",
        )
    console.print(table)

    if state.learned_time_windows:
        windows = ", ".join(f"{w.time_string} ({w.count})" for w in state.learned_time_windows)
    else:
        windows = "none yet"
    console.print(f"Learned windows: {windows}")
    console.print(f"Sent in last 7 days: {state.sent_notifications_in_last_week(now)}")
    console.print(f"Unopened notifications: {state.unopened_notification_count}")
    console.print(f"Last app open: {state.last_app_open_timestamp:%Y-%m-%d %H:%M}")

    queued = c["dispatcher"].read(limit=5)
    if queued:
        console.print("\n[bold]Recently queued[/]")
        for entry in queued:
            console.print(
                f"  {entry.get('deliver_at', '?')}  [dim]{entry.get('category', '?')}[/]  "
                f"{entry.get('title', '')}"
            )


@click.command("app-open")
@click.option("--now", "now_str", help="ISO datetime of the app open (default: now)")
def app_open(now_str: Optional[str]):
    """Record that the app was opened (resets the unopened counter)."""
    now = parse_now(now_str)
    c = get_components()
    c["store"].update(lambda s: s.record_app_open(now))
    console.print(f"[green]Recorded[/] app open at {now:%Y-%m-%d %H:%M}")


@click.command()
@click.option("--now", "now_str", help="ISO datetime of the completion (default: now)")
def complete(now_str: Optional[str]):
    """Record a completed routine session."""
    now = parse_now(now_str)
    c = get_components()
    sessions = c["sessions"].add(now)
    console.print(f"[green]Recorded[/] routine completion ({len(sessions)} total)")


@click.command()
@click.option("--now", "now_str", help="Learn as of this ISO datetime (default: now)")
@click.option("--force", is_flag=True, help="Relearn even if windows are fresh")
def learn(now_str: Optional[str], force: bool):
    """Relearn preferred delivery windows from session history."""
    from notifications.state import DISTANT_PAST

    now = parse_now(now_str)
    c = get_components()
    store = c["store"]
    learner = c["scheduler"].learner
    if force:
        store.state.last_pattern_update_date = DISTANT_PAST

    sessions = c["sessions"].load()
    if learner.update(sessions, store.state, now):
        store.save()
        for w in store.state.learned_time_windows:
            console.print(f"  {w.time_string}  [dim]{w.count} completions[/]")
    elif len(sessions) < learner.min_sessions:
        console.print(
            f"[yellow]Not enough data[/] ({len(sessions)} sessions, need {learner.min_sessions})"
        )
    else:
        console.print("Windows are up to date. Use --force to relearn.")


@click.command()
@click.confirmation_option(prompt="Discard all notification history and learned windows?")
def reset():
    """Replace engine state with a fresh default.

    Opens the store leniently so a corrupt file can be reset even in strict mode.
    """
    from cli.config import load_config
    from notifications.storage import EngineStateStore

    config = load_config()
    EngineStateStore(config.paths.state_file, strict=False).reset()
    console.print("[green]State reset[/]")
