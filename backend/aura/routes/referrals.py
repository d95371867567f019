# Overview: Referral link routes; redirect and landing data for dealer codes.

"""
Referral routes

GET /v/<code>
    Dealer QR codes and share links point here. An active dealer's code
    sends the visitor to the box builder with ?ref=<code> so the code can
    be submitted as dealerCode at checkout. Anything else goes to the
    site root.

GET /api/referrals/<code>
    Organization display fields for the referral landing page.
"""

from urllib.parse import urlencode

from flask import Blueprint, jsonify, redirect, current_app

from ..errors import NotFoundError, ProviderError
from ..services import referral_service


referrals_bp = Blueprint("referrals", __name__)

BOX_BUILDER_PATH = "/build-box"


@referrals_bp.get("/v/<code>")
def referral_redirect_route(code: str):
    try:
        dealer = referral_service.get_active_dealer(code)
    except ProviderError:
        current_app.logger.exception("Referral lookup failed for %r", code)
        return jsonify({"error": "Referral lookup unavailable, please retry"}), 503, {"Retry-After": "5"}

    if dealer is None:
        return redirect("/")

    return redirect(f"{BOX_BUILDER_PATH}?{urlencode({'ref': code})}")


@referrals_bp.get("/api/referrals/<code>")
def referral_landing_route(code: str):
    try:
        dealer = referral_service.get_active_dealer(code)
        if dealer is None:
            raise NotFoundError("Referral code not found")

        return jsonify({
            "referralCode": dealer.referral_code,
            "organization": dealer.organization.to_public_dict() if dealer.organization else None,
        }), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ProviderError:
        current_app.logger.exception("Referral lookup failed for %r", code)
        return jsonify({"error": "Referral lookup unavailable, please retry"}), 503, {"Retry-After": "5"}
    except Exception:
        current_app.logger.exception("Failed to load referral %r", code)
        return jsonify({"error": "Internal server error"}), 500
