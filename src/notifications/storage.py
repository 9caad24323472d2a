"""JSON-file persistence for engine state and routine session history."""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from .state import EngineState, to_local_naive

logger = structlog.get_logger()

STATE_KEY = "notification_state_v1"


class StateCorruptedError(Exception):
    """Stored engine state exists but cannot be decoded."""


def _atomic_write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class EngineStateStore:
    """Single-record store for EngineState under a versioned key.

    Load at startup, save after every mutation. A record that fails to decode
    is replaced by default state (and a warning logged) unless ``strict`` is
    set, in which case StateCorruptedError is raised instead.
    """

    def __init__(self, path: str | Path = "~/nudge/state.json", strict: bool = False):
        self.path = Path(path).expanduser()
        self.strict = strict
        self.state = self.load()

    def reload(self) -> EngineState:
        """Replace the in-memory state with what is on disk now.

        Long-running processes call this before each cycle so writes made by
        other processes (app opens, resets) are not overwritten on save.
        """
        self.state = self.load()
        return self.state

    def load(self) -> EngineState:
        if not self.path.exists():
            logger.debug("notification_state.missing", path=str(self.path))
            return EngineState()
        try:
            with open(self.path) as f:
                data = json.load(f)
            record = data.get(STATE_KEY) if isinstance(data, dict) else None
            if record is None:
                logger.debug("notification_state.key_missing", key=STATE_KEY)
                return EngineState()
            state = EngineState.from_record(record)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            if self.strict:
                raise StateCorruptedError(f"Cannot decode {self.path}: {e}") from e
            logger.warning("notification_state.decode_failed", path=str(self.path), error=str(e))
            return EngineState()
        logger.debug("notification_state.loaded", path=str(self.path))
        return state

    def save(self, state: Optional[EngineState] = None) -> bool:
        """Persist state. Returns False (after logging) if the write fails."""
        if state is not None:
            self.state = state
        try:
            _atomic_write_json(self.path, {STATE_KEY: self.state.to_record()})
        except (OSError, TypeError, ValueError) as e:
            logger.error("notification_state.save_failed", path=str(self.path), error=str(e))
            return False
        logger.debug("notification_state.saved", path=str(self.path))
        return True

    def update(self, updater: Callable[[EngineState], None]) -> EngineState:
        """Apply a mutation to the in-memory state, then save it."""
        updater(self.state)
        self.save()
        return self.state

    def reset(self) -> EngineState:
        self.state = EngineState()
        self.save()
        return self.state


class SessionHistory:
    """Routine completion instants stored as a JSON list of ISO strings."""

    def __init__(self, path: str | Path = "~/nudge/sessions.json"):
        self.path = Path(path).expanduser()

    def load(self) -> list[datetime]:
        if not self.path.exists():
            return []
        try:
            with open(self.path) as f:
                raw = json.load(f) or []
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("session_history.decode_failed", path=str(self.path), error=str(e))
            return []
        if not isinstance(raw, list):
            logger.warning(
                "session_history.decode_failed",
                path=str(self.path),
                error=f"expected a list, got {type(raw).__name__}",
            )
            return []
        sessions = []
        for value in raw:
            try:
                sessions.append(to_local_naive(datetime.fromisoformat(value)))
            except (TypeError, ValueError):
                logger.warning("session_history.bad_entry", value=value)
        return sorted(sessions)

    def add(self, completed_at: datetime) -> list[datetime]:
        sessions = self.load()
        sessions.append(to_local_naive(completed_at))
        sessions.sort()
        _atomic_write_json(self.path, [s.isoformat() for s in sessions])
        return sessions

    def last_completion(self) -> Optional[datetime]:
        sessions = self.load()
        return sessions[-1] if sessions else None
