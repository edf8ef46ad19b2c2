"""Persisted cross-run state: idempotency ledger and PR counters."""

from __future__ import annotations

import copy
import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import StateError, StateLockedError
from ..logging import get_logger

_LOGGER = get_logger("stores.state")


@dataclass
class IdempotencyRecord:
    created_at: str
    action: str
    outcome: str
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "createdAt": self.created_at,
            "action": self.action,
            "outcome": self.outcome,
        }
        if self.link:
            data["link"] = self.link
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "IdempotencyRecord":
        link = payload.get("link")
        return cls(
            created_at=str(payload.get("createdAt", "")),
            action=str(payload.get("action", "")),
            outcome=str(payload.get("outcome", "")),
            link=str(link) if link else None,
        )


@dataclass
class StateStore:
    """Single-writer record loaded at start, mutated once and saved at the end."""

    idempotency: Dict[str, IdempotencyRecord] = field(default_factory=dict)
    daily_pr_count: Dict[str, int] = field(default_factory=dict)
    area_daily_pr_opened: Dict[str, str] = field(default_factory=dict)
    area_latest_pr: Dict[str, str] = field(default_factory=dict)
    # Pass-through fields owned by other writers of the state file; docdrift
    # only carries them through load and save.
    last_doc_drift_pr_url: Optional[str] = None
    last_doc_drift_pr_opened_at: Optional[str] = None
    last_sla_issue_opened_at: Optional[str] = None

    def copy(self) -> "StateStore":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "idempotency": {key: record.to_dict() for key, record in self.idempotency.items()},
            "dailyPrCount": dict(self.daily_pr_count),
            "areaDailyPrOpened": dict(self.area_daily_pr_opened),
            "areaLatestPr": dict(self.area_latest_pr),
        }
        for key, value in (
            ("lastDocDriftPrUrl", self.last_doc_drift_pr_url),
            ("lastDocDriftPrOpenedAt", self.last_doc_drift_pr_opened_at),
            ("lastSlaIssueOpenedAt", self.last_sla_issue_opened_at),
        ):
            if value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "StateStore":
        if not isinstance(payload, dict):
            raise StateError("State file root must be an object")
        idempotency = _mapping(payload, "idempotency")
        return cls(
            idempotency={
                str(key): IdempotencyRecord.from_dict(value)
                for key, value in idempotency.items()
                if isinstance(value, dict)
            },
            daily_pr_count={
                str(key): int(value)
                for key, value in _mapping(payload, "dailyPrCount").items()
                if isinstance(value, int) and not isinstance(value, bool)
            },
            area_daily_pr_opened={
                str(key): str(value) for key, value in _mapping(payload, "areaDailyPrOpened").items()
            },
            area_latest_pr={str(key): str(value) for key, value in _mapping(payload, "areaLatestPr").items()},
            last_doc_drift_pr_url=payload.get("lastDocDriftPrUrl"),
            last_doc_drift_pr_opened_at=payload.get("lastDocDriftPrOpenedAt"),
            last_sla_issue_opened_at=payload.get("lastSlaIssueOpenedAt"),
        )


class JsonStateRepository:
    """Loads and atomically saves ``StateStore`` as JSON.

    Callers must serialise access per state file, for example with
    ``StateLock``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> StateStore:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return StateStore()
        except OSError as exc:
            raise StateError(f"Failed to read state file {self.path}: {exc}") from exc
        if not text.strip():
            return StateStore()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StateError(f"State file {self.path} is not valid JSON: {exc}") from exc
        return StateStore.from_dict(payload)

    def save(self, state: StateStore) -> None:
        serialised = json.dumps(state.to_dict(), indent=2, sort_keys=True) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(serialised)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StateError(f"Failed to write state file {self.path}: {exc}") from exc
        _LOGGER.debug("Saved state to %s", self.path)


class StateLock:
    """Advisory lock file held around load-mutate-save of the state file."""

    def __init__(self, state_path: Path) -> None:
        self.path = state_path.with_name(state_path.name + ".lock")
        self._held = False

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise StateLockedError(
                f"State is locked by another run ({self.path}); remove the file if that run is gone"
            ) from exc
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(str(os.getpid()))
        self._held = True

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "StateLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def _mapping(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise StateError(f"State field '{key}' must be an object")
    return value


__all__ = ["IdempotencyRecord", "JsonStateRepository", "StateLock", "StateStore"]
