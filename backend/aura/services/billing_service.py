# Overview: Stripe gateway; billing customer resolution and subscription checkout sessions.

"""
Billing Provider Gateway (Stripe)

WHY: Stripe is the source of truth for customers and checkout sessions.
The application keeps references (ids), never copies.

CUSTOMER RESOLUTION: lookup-or-create by exact email. Creation carries an
idempotency key derived from the user id, so two concurrent first-time
checkouts for one user collapse into a single Stripe customer instead of
racing. No application-level lock is taken.

FAILURES: every Stripe error (including connection errors and timeouts)
is wrapped in BillingError. No retries here: max_network_retries is 0 and
checkout sessions are not idempotent, so retrying is the caller's call.
"""

from __future__ import annotations

from typing import Any

import stripe

from ..errors import ProviderError


class BillingError(ProviderError):
    """Stripe call failed, timed out or was rejected."""


def customer_idempotency_key(user_id: str) -> str:
    return f"customer-create-{user_id}"


class BillingGateway:
    """
    Stripe calls used by checkout.

    `stripe_module` defaults to the stripe package itself. Tests swap in an
    object exposing the same Customer / checkout.Session surface.
    """

    def __init__(self, stripe_module: Any = stripe):
        self.stripe = stripe_module
        self.api_key: str | None = None

    def init_app(self, app) -> None:
        self.api_key = app.config["STRIPE_SECRET_KEY"] or None
        # Bounded timeout and no automatic retries for every Stripe call
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(timeout=app.config["BILLING_TIMEOUT_SECONDS"])
        app.extensions["billing"] = self

    def get_or_create_customer(self, identity) -> Any:
        """
        Return the Stripe customer for an identity, creating it if needed.

        An existing customer is returned as-is, even if its name or metadata
        no longer match the identity.
        """
        try:
            existing = self.stripe.Customer.list(
                email=identity.email,
                limit=1,
                api_key=self.api_key,
            )
            if existing.data:
                return existing.data[0]

            params: dict[str, Any] = {
                "email": identity.email,
                "metadata": {"userId": identity.user_id},
            }
            if identity.full_name:
                params["name"] = identity.full_name

            return self.stripe.Customer.create(
                **params,
                idempotency_key=customer_idempotency_key(identity.user_id),
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise BillingError(f"Customer lookup/create failed for user {identity.user_id}: {exc}") from exc

    def create_subscription_checkout(
        self,
        *,
        customer_id: str,
        price_id: str,
        metadata: dict[str, str],
        subscription_metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> Any:
        """Create a subscription-mode checkout session with a single line item."""
        try:
            return self.stripe.checkout.Session.create(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                metadata=metadata,
                subscription_data={"metadata": subscription_metadata},
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise BillingError(f"Checkout session create failed for customer {customer_id}: {exc}") from exc


billing_gateway = BillingGateway()
