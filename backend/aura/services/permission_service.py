# Overview: Service-layer operations for role checks and security event logging.

"""
Role Checks and Security Event Logging

WHY: The access gate only guarantees that a request carries an identity.
Whether that identity may use an admin handler is decided here, by the
handler, through an explicit capability check.

DESIGN PRINCIPLES:
- Fail closed: unknown roles grant nothing
- Log denials only: grants are not logged
- No caching: the role is read from the profile loaded for this request
"""

from ..extensions import db
from ..models import Profile, SecurityEvent
from ..models.auth import ROLE_ADMIN, ROLE_DEALER, ROLE_CUSTOMER
from aura.time_utils import utcnow


# Roles a given role satisfies. admin satisfies every check.
ROLE_GRANTS = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_DEALER, ROLE_CUSTOMER},
    ROLE_DEALER: {ROLE_DEALER, ROLE_CUSTOMER},
    ROLE_CUSTOMER: {ROLE_CUSTOMER},
}


class PermissionDeniedError(Exception):
    """Raised when a profile lacks the role a handler requires."""
    pass


def log_security_event(
    profile_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_SUCCEEDED
    - LOGIN_FAILED
    - ROLE_DENIED
    - ROLE_CHANGED
    - SESSION_REVOKED
    """
    event = SecurityEvent(
        profile_id=profile_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def has_role(profile: Profile | None, role: str) -> bool:
    """True if the profile's role satisfies `role`."""
    if profile is None:
        return False
    return role in ROLE_GRANTS.get(profile.role, set())


def require_role(
    profile: Profile,
    role: str,
    resource: str | None = None,
    action: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require a role, raising PermissionDeniedError if the profile lacks it.

    Denials are written to security_events.
    """
    if has_role(profile, role):
        return

    log_security_event(
        profile_id=profile.id if profile else None,
        event_type="ROLE_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=f"Requires role: {role}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Requires role: {role}")
