# Overview: Flask API routes for box checkout; parses input and returns JSON responses.

# backend/aura/routes/checkout.py
"""
Checkout API routes

POST /api/checkout
    Body: {"boxSize": "starter", "productIds": ["p1", ...], "dealerCode": "SAVE10"}
    200 {"sessionId", "url"}        checkout session created
    400 {"error", "reason", ...}    unknown size, wrong product count, malformed body
    401 {"error"}                   no authenticated session
    500 {"error"}                   billing provider or database failure (details logged only)

GET /api/boxes
    Public box catalog for the box builder.
"""

from flask import Blueprint, request, jsonify, g, current_app

from .. import catalog
from ..decorators import require_auth
from ..errors import ProviderError, UnauthenticatedError
from ..services import checkout_service
from ..validation import ValidationError, parse_box_submission


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


@checkout_bp.post("/checkout")
@require_auth
def create_checkout_route():
    try:
        submission = parse_box_submission(request.get_json(silent=True))
        result = checkout_service.create_checkout(g.identity, submission)
        return jsonify(result.to_dict()), 200

    except UnauthenticatedError as e:
        return jsonify({"error": str(e)}), 401
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ProviderError:
        current_app.logger.exception("Checkout failed at an external provider")
        return jsonify({"error": "Failed to create checkout session"}), 500
    except Exception:
        current_app.logger.exception("Failed to create checkout session")
        return jsonify({"error": "Failed to create checkout session"}), 500


@checkout_bp.get("/boxes")
def list_boxes_route():
    return jsonify({"boxes": [config.to_dict() for config in catalog.all_boxes()]}), 200
