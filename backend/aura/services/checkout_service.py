# Overview: Service-layer operations for checkout; turns a box submission into a Stripe checkout session.

"""
Checkout Orchestration

Steps run strictly in order, each gating the next:

1. identity must be present                  -> UnauthenticatedError
2. box submission must pass validation       -> ValidationError (unchanged)
3. referral code resolves to a dealer or not -> never blocks checkout
4. billing customer is found or created      -> BillingError
5. one subscription checkout is built and submitted -> BillingError

METADATA: the session metadata is the only thing that carries the box
contents and the attribution forward to later billing events. Its shape is
fixed: userId, boxSize, productIds (compact JSON array, submitted order),
dealerId ("" when no dealer is attributed, never omitted).

Nothing is rolled back on failure. A customer created in step 4 stays in
Stripe when step 5 fails, and a resubmitted checkout creates a new session.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from flask import current_app

from .. import catalog
from ..errors import UnauthenticatedError
from ..validation import BoxSubmission, validate_box_submission
from . import referral_service
from .billing_service import billing_gateway
from .session_service import CustomerIdentity


@dataclass(frozen=True)
class CheckoutResult:
    session_id: str
    url: str

    def to_dict(self) -> dict:
        return {"sessionId": self.session_id, "url": self.url}


def serialize_product_ids(product_ids) -> str:
    return json.dumps(list(product_ids), separators=(",", ":"))


def build_checkout_metadata(identity: CustomerIdentity, submission: BoxSubmission, dealer_id: str | None) -> dict[str, str]:
    return {
        "userId": identity.user_id,
        "boxSize": submission.box_size,
        "productIds": serialize_product_ids(submission.product_ids),
        "dealerId": dealer_id or "",
    }


def create_checkout(identity: CustomerIdentity | None, submission: BoxSubmission) -> CheckoutResult:
    """
    Create a subscription checkout session for a validated box.

    Raises:
        UnauthenticatedError: no identity
        ValidationError: unknown size or wrong product count
        ProviderError: dealer lookup, customer resolution or session
            creation failed (details are for the logs only)
    """
    if identity is None:
        raise UnauthenticatedError("Authentication required")

    config = validate_box_submission(submission)

    dealer_id = referral_service.resolve_dealer_id(submission.dealer_code)

    customer = billing_gateway.get_or_create_customer(identity)

    app_url = current_app.config["APP_URL"]
    session = billing_gateway.create_subscription_checkout(
        customer_id=customer.id,
        price_id=catalog.price_id_for(config.size, current_app.config["BOX_PRICE_IDS"]),
        metadata=build_checkout_metadata(identity, submission, dealer_id),
        subscription_metadata={"userId": identity.user_id, "boxSize": submission.box_size},
        success_url=f"{app_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{app_url}/build-box?cancelled=true",
    )

    current_app.logger.info(
        "Checkout session %s created for user %s (box=%s, dealer=%s)",
        session.id, identity.user_id, submission.box_size, dealer_id or "-",
    )

    return CheckoutResult(session_id=session.id, url=session.url)
