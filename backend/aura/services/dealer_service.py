# Overview: Service-layer operations for dealers and organizations; admin and CLI writes.

"""
Dealer Administration

Writes only. Checkout reads dealers through referral_service.

New codes are checked against every existing dealer, active or not, so a
retired code cannot be handed to someone else and silently pick up the old
dealer's links. Rows created outside this service (imports, SQL) can still
collide; referral_service breaks such ties by lowest id.
"""

from __future__ import annotations

import re

from ..extensions import db
from ..models import Dealer, Organization, Profile
from ..validation import ConflictError, ValidationError


REFERRAL_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,64}$")


def create_organization(name: str, logo_url: str | None = None, contact_email: str | None = None) -> Organization:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name is required")

    org = Organization(name=name, logo_url=logo_url, contact_email=contact_email, is_active=True)
    db.session.add(org)
    db.session.commit()
    return org


def list_organizations() -> list[Organization]:
    return db.session.query(Organization).order_by(Organization.id).all()


def list_dealers(active: bool | None = None) -> list[Dealer]:
    query = db.session.query(Dealer)
    if active is not None:
        query = query.filter(Dealer.is_active.is_(active))
    return query.order_by(Dealer.id).all()


def create_dealer(
    organization_id: int,
    referral_code: str,
    profile_id: str | None = None,
    is_active: bool = True,
) -> Dealer:
    """
    Create a dealer under an organization.

    Raises:
        ValidationError: malformed code, unknown organization or profile
        ConflictError: code already used by another dealer
    """
    if not isinstance(referral_code, str) or not REFERRAL_CODE_PATTERN.match(referral_code):
        raise ValidationError("referral_code must be 3-64 letters, digits, '-' or '_'")

    if db.session.get(Organization, organization_id) is None:
        raise ValidationError("Organization not found")

    if profile_id is not None and db.session.get(Profile, profile_id) is None:
        raise ValidationError("Profile not found")

    existing = db.session.query(Dealer).filter_by(referral_code=referral_code).first()
    if existing:
        raise ConflictError(f"Referral code {referral_code} is already in use")

    dealer = Dealer(
        organization_id=organization_id,
        profile_id=profile_id,
        referral_code=referral_code,
        is_active=is_active,
    )
    db.session.add(dealer)
    db.session.commit()
    return dealer


def set_dealer_active(dealer_id: int, is_active: bool) -> Dealer:
    """Activate or deactivate a dealer. Raises ValueError if not found."""
    dealer = db.session.get(Dealer, dealer_id)
    if not dealer:
        raise ValueError(f"Dealer {dealer_id} not found")

    dealer.is_active = is_active
    db.session.commit()
    return dealer


def find_dealer_by_code(referral_code: str) -> Dealer | None:
    """Any dealer holding the code, active or not (admin lookups)."""
    return db.session.query(Dealer).filter_by(referral_code=referral_code).order_by(Dealer.id).first()
