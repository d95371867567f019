# Overview: Service-layer operations for referral codes; resolves codes to active dealers.

"""
Referral Resolution

A referral code attributes a checkout to a dealer only while that dealer is
active. Unknown codes and codes of inactive dealers resolve to no
attribution; that is an ordinary outcome, not an error.

Matching is exact and case-preserving. If the data holds the same code on
several active dealers, the lowest id wins so repeated lookups agree.

Storage failures are different from "no match": they raise
ReferralLookupError so the caller can fail the request and retry later
instead of silently dropping attribution.
"""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import ProviderError
from ..models import Dealer


class ReferralLookupError(ProviderError):
    """Dealer lookup failed at the storage layer (retryable)."""


def get_active_dealer(code: str | None) -> Dealer | None:
    """
    Return the active dealer holding `code`, with its organization loaded.

    Returns None without querying when code is None or empty.
    Raises ReferralLookupError if the database call fails.
    """
    if not code:
        return None

    try:
        return (
            db.session.query(Dealer)
            .options(joinedload(Dealer.organization))
            .filter(Dealer.referral_code == code, Dealer.is_active.is_(True))
            .order_by(Dealer.id)
            .first()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise ReferralLookupError(f"Dealer lookup failed for referral code {code!r}") from exc


def resolve_dealer_id(code: str | None) -> str | None:
    """
    Resolve a referral code to the attributed dealer's id.

    Returns the id as a string (the form it takes in checkout metadata),
    or None when attribution is skipped.
    """
    if not code:
        return None

    dealer = get_active_dealer(code)
    if dealer is None:
        current_app.logger.info("Referral attribution skipped: no active dealer for code %r", code)
        return None

    return str(dealer.id)
