# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Cookie Session Management Service

WHY: Secure session management with expiry, idle timeout, rotation and
revocation. Tokens are cryptographically secure, hashed in database, and
time-limited.

REFRESH: validate_session rotates the token once SESSION_REFRESH_INTERVAL
has passed since the last rotation. The caller (the access gate) must write
the new token onto the response cookie, otherwise the client keeps a token
that no longer validates.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Sliding expiry (SESSION_TTL) capped by SESSION_ABSOLUTE_TIMEOUT
- Idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout or security events
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from ..extensions import db
from ..models import SessionToken, Profile
from aura.time_utils import as_utc_naive, utcnow


# Configuration constants
SESSION_TTL = timedelta(days=7)                 # Expiry granted at creation and on each refresh
SESSION_ABSOLUTE_TIMEOUT = timedelta(days=30)   # Maximum session length, refresh cannot extend past it
SESSION_IDLE_TIMEOUT = timedelta(days=3)        # Activity timeout
SESSION_REFRESH_INTERVAL = timedelta(hours=1)   # Token rotation period


@dataclass(frozen=True)
class CustomerIdentity:
    """Read-only view of the authenticated account, as checkout sees it."""
    user_id: str
    email: str
    full_name: str | None = None


@dataclass
class SessionContext:
    """
    Result of a successful validate_session.

    refreshed_token is set only when this validation rotated the token.
    """
    profile: Profile
    session: SessionToken
    refreshed_token: str | None = None

    @property
    def identity(self) -> CustomerIdentity:
        return CustomerIdentity(
            user_id=self.profile.id,
            email=self.profile.email,
            full_name=self.profile.display_name,
        )


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    profile_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for a profile.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the profile does not exist.
    """
    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise ValueError("Profile not found")

    plaintext_token = generate_token()

    now = utcnow()
    session = SessionToken(
        profile_id=profile_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        refreshed_at=now,
        expires_at=now + SESSION_TTL,
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is unknown, expired, or revoked
    - Session has been idle longer than SESSION_IDLE_TIMEOUT
    - The profile behind it no longer exists

    On success updates last_used_at and, when the refresh interval has
    elapsed, rotates the token (SessionContext.refreshed_token).

    No result is cached: every request runs this against the database.
    """
    if not token:
        return None

    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    # Check expiry
    if as_utc_naive(session.expires_at) <= now:
        return None

    # Check idle timeout
    if now - as_utc_naive(session.last_used_at) > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    profile = session.profile
    if not profile:
        _revoke(session, "Profile removed")
        db.session.commit()
        return None

    refreshed_token = None
    if now - as_utc_naive(session.refreshed_at) >= SESSION_REFRESH_INTERVAL:
        refreshed_token = generate_token()
        session.token_hash = hash_token(refreshed_token)
        session.refreshed_at = now
        session.expires_at = min(now + SESSION_TTL, as_utc_naive(session.created_at) + SESSION_ABSOLUTE_TIMEOUT)

    session.last_used_at = now
    db.session.commit()

    return SessionContext(profile=profile, session=session, refreshed_token=refreshed_token)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def end_session(session: SessionToken, reason: str = "User logout") -> bool:
    """
    Revoke a session record already loaded by validate_session.

    Used when the cookie token may have been rotated earlier in the same
    request, so it can no longer be looked up by hash.
    """
    if session.is_revoked:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_profile_sessions(profile_id: str, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all active sessions for a profile.

    Returns count of sessions revoked. Forces re-authentication on all
    devices (compromised account, identity-provider account removal).
    """
    sessions = db.session.query(SessionToken).filter_by(
        profile_id=profile_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(*, retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than retention_days.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
