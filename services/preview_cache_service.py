"""
Temporary storage for reconciliation runs under review.
Stores runs in memory with TTL expiration.
Single-server only: runs are lost on restart and never shared between workers.
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from models.reconciliation import ReconciliationRun

_cache: dict[str, tuple[datetime, ReconciliationRun]] = {}


def new_run_id() -> str:
    return str(uuid.uuid4())


def store_run(run: ReconciliationRun, ttl_minutes: Optional[int] = None) -> str:
    """Store (or replace) a run and restart its TTL. Returns the run_id."""
    ttl = ttl_minutes if ttl_minutes is not None else settings.reconciliation_run_ttl_minutes
    expires_at = datetime.now() + timedelta(minutes=ttl)
    _cache[run.run_id] = (expires_at, run)
    _cleanup_expired()
    return run.run_id


def retrieve_run(run_id: str) -> Optional[ReconciliationRun]:
    """Retrieve a run by run_id. Returns None if expired/not found."""
    entry = _cache.get(run_id)
    if entry is None:
        return None
    expires_at, run = entry
    if datetime.now() > expires_at:
        del _cache[run_id]
        return None
    return run


def delete_run(run_id: str) -> bool:
    """Remove a run after it is committed or discarded."""
    return _cache.pop(run_id, None) is not None


def clear_runs() -> None:
    """Drop every stored run."""
    _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
