"""
Processing status registry.

Tracks progress of extraction requests in process memory so a client can
poll /api/youtube/processing-status while a large playlist runs. Entries
expire after an hour.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from cachetools import TTLCache


PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

_lock = threading.Lock()
_statuses: TTLCache = TTLCache(maxsize=2000, ttl=3600)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def start(total: int = 1) -> str:
    """Register a new request and return its process ID."""
    process_id = uuid.uuid4().hex
    with _lock:
        _statuses[process_id] = {
            "id": process_id,
            "status": PROCESSING,
            "progress": 0,
            "total": max(total, 0),
            "done": 0,
            "message": "Processing started",
            "updated_at": _now(),
        }
    return process_id


def set_total(process_id: str, total: int) -> None:
    with _lock:
        entry = _statuses.get(process_id)
        if entry:
            entry["total"] = max(total, 0)
            entry["updated_at"] = _now()


def advance(process_id: str, count: int = 1) -> None:
    """Mark `count` more videos as finished."""
    with _lock:
        entry = _statuses.get(process_id)
        if not entry or entry["status"] != PROCESSING:
            return
        entry["done"] += count
        if entry["total"]:
            # Stays below 100 until complete() is called
            entry["progress"] = min(99, int(entry["done"] * 100 / entry["total"]))
        entry["message"] = f"Processed {entry['done']} of {entry['total']} videos"
        entry["updated_at"] = _now()


def complete(process_id: str, message: str = "Processing completed successfully") -> None:
    with _lock:
        entry = _statuses.get(process_id)
        if entry:
            entry.update(status=COMPLETED, progress=100, message=message, updated_at=_now())


def fail(process_id: str, error: str) -> None:
    with _lock:
        entry = _statuses.get(process_id)
        if entry:
            entry.update(status=FAILED, message=error, updated_at=_now())


def get(process_id: str) -> Optional[Dict[str, Any]]:
    with _lock:
        entry = _statuses.get(process_id)
        return dict(entry) if entry else None
