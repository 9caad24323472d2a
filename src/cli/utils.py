"""Shared CLI utilities."""

import sys
from datetime import datetime
from typing import Optional

import click
import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(config=None) -> dict:
    """Wire up the engine from config: store, session history, dispatcher, scheduler."""
    from cli.config import load_config
    from notifications.dispatch import OutboxDispatcher
    from notifications.messages import MessageCatalog
    from notifications.scheduler import NotificationScheduler
    from notifications.storage import EngineStateStore, SessionHistory, StateCorruptedError

    config = config or load_config()
    paths = config.paths

    try:
        store = EngineStateStore(paths.state_file, strict=config.notifications.strict_state)
    except StateCorruptedError as e:
        console.print(f"[red]State file is corrupted:[/] {e}")
        console.print("Run [bold]nudge reset[/] to start over.")
        sys.exit(1)

    try:
        catalog = MessageCatalog.from_file(paths.messages_file)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    sessions = SessionHistory(paths.sessions_file)
    dispatcher = OutboxDispatcher(
        paths.outbox_file,
        authorized=config.notifications.permission_granted,
        enabled=config.notifications.enabled,
    )
    scheduler = NotificationScheduler(store, dispatcher, catalog=catalog)

    return {
        "config": config,
        "store": store,
        "sessions": sessions,
        "dispatcher": dispatcher,
        "catalog": catalog,
        "scheduler": scheduler,
    }


def parse_now(value: Optional[str]) -> datetime:
    """--now option value as a naive local datetime (defaults to the current time)."""
    from notifications.state import to_local_naive

    if not value:
        return datetime.now()
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Not an ISO datetime: {value}", param_hint="--now")
    return to_local_naive(parsed)
