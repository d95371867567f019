# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Profile Provisioning and Role Management

WHY: The identity provider owns credentials. The first time an identity
completes the authorization-code exchange, the application provisions a
minimal profile for it. Later logins reuse that profile untouched.

EXACTLY-ONCE: Profiles are keyed by the provider's subject id (primary
key). Two concurrent first logins for the same identity race on the insert;
the loser's IntegrityError is caught and the winner's row is returned.
"""

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Profile
from ..models.auth import ROLE_CUSTOMER, VALID_ROLES
from .identity_service import ProviderIdentity


def provision_profile(identity: ProviderIdentity) -> tuple[Profile, bool]:
    """
    Return the profile for an identity, creating it on first login.

    Returns (profile, created). Existing profiles are never updated here,
    even if the provider now reports a different name or avatar.
    """
    existing = db.session.get(Profile, identity.id)
    if existing:
        return existing, False

    profile = Profile(
        id=identity.id,
        email=identity.email,
        display_name=identity.full_name,
        avatar_url=identity.avatar_url,
        role=ROLE_CUSTOMER,
    )
    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent first login already provisioned this identity
        db.session.rollback()
        winner = db.session.get(Profile, identity.id)
        if winner is None:
            raise
        return winner, False

    return profile, True


def set_role(profile_id: str, role: str) -> Profile:
    """
    Change a profile's role.

    Raises ValueError for unknown profiles or roles.
    """
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role: {role}. Must be one of {list(VALID_ROLES)}")

    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise ValueError("Profile not found")

    profile.role = role
    db.session.commit()
    return profile


def find_profile_by_email(email: str) -> Profile | None:
    return db.session.query(Profile).filter(
        db.func.lower(Profile.email) == email.strip().lower()
    ).order_by(Profile.created_at).first()
