"""
Assignment status updates: status mapping, snapshot/rollback and the
single-flight guard that refuses a second update on the same assignment.
"""

import re
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Hashable, Iterable, Optional

from .models import ASSIGNMENT_STATUSES

LEFT_EARLY_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")

# Fields touched by a status update; snapshotted before applying
STATUS_FIELDS = (
    "assignment_status",
    "status",
    "status_note",
    "left_early_time",
    "status_updated_at",
    "status_updated_by",
)


def lifecycle_status_for(assignment_status: str) -> str:
    """Map the manager-facing assignment status onto the coverage lifecycle status."""
    if assignment_status == "on_call":
        return "on_call"
    if assignment_status == "cancelled":
        return "called_off"
    return "scheduled"


def normalize_left_early_time(value: Optional[str]) -> Optional[str]:
    """'HH:MM' or 'HH:MM:SS' -> 'HH:MM:SS'. Raises ValueError on anything else."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    m = LEFT_EARLY_TIME_RE.match(value)
    if not m:
        raise ValueError(f"left early time must be HH:MM or HH:MM:SS, got {value!r}")
    return f"{m.group(1)}:{m.group(2)}:{m.group(3) or '00'}"


def build_status_changes(assignment_status: str, note: Optional[str] = None,
                         left_early_time: Optional[str] = None,
                         updated_by: Optional[str] = None,
                         now: Optional[datetime] = None) -> Dict[str, Any]:
    if assignment_status not in ASSIGNMENT_STATUSES:
        raise ValueError(f"unknown assignment status {assignment_status!r}")
    note = (note or "").strip() or None
    return {
        "assignment_status": assignment_status,
        "status": lifecycle_status_for(assignment_status),
        "status_note": note,
        "left_early_time": (
            normalize_left_early_time(left_early_time) if assignment_status == "left_early" else None
        ),
        "status_updated_at": now or datetime.utcnow(),
        "status_updated_by": updated_by,
    }


class OptimisticUpdate:
    """
    Apply attribute changes to an object immediately, keeping the previous
    values so a failed write can put them back.
    """

    def __init__(self, target, fields: Iterable[str] = STATUS_FIELDS):
        self.target = target
        self.snapshot = {f: getattr(target, f, None) for f in fields}
        self.applied = False

    def apply(self, changes: Dict[str, Any]) -> None:
        for key, value in changes.items():
            if key not in self.snapshot:
                self.snapshot[key] = getattr(self.target, key, None)
            setattr(self.target, key, value)
        self.applied = True

    def rollback(self) -> None:
        if not self.applied:
            return
        for key, value in self.snapshot.items():
            setattr(self.target, key, value)
        self.applied = False


class UpdateInFlight(Exception):
    def __init__(self, key):
        super().__init__(f"status update already in flight for {key!r}")
        self.key = key


class InFlightGuard:
    """Single-flight guard keyed by assignment id. Thread-safe."""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight = set()

    def try_claim(self, key: Hashable) -> bool:
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, key: Hashable) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def is_in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def claim(self, key: Hashable):
        if not self.try_claim(key):
            raise UpdateInFlight(key)
        try:
            yield
        finally:
            self.release(key)
