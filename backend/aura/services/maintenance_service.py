# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from aura.time_utils import utcnow
from . import session_service


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def run_cleanup(*, session_retention_days: int = 30, event_retention_days: int = 90) -> dict:
    """Run every retention job and report how many rows each removed."""
    return {
        "sessions": session_service.cleanup_expired_sessions(retention_days=session_retention_days),
        "security_events": cleanup_security_events(retention_days=event_retention_days),
    }
