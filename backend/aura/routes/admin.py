# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/aura/routes/admin.py
"""
Admin API routes

The access gate redirects anonymous requests for /admin/* to login, but it
does not look at roles. Every handler here applies @require_role("admin").
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_role
from ..models.auth import ROLE_ADMIN
from ..services import dealer_service
from ..validation import ConflictError, ValidationError


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _parse_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be a boolean")


@admin_bp.get("/dealers")
@require_role(ROLE_ADMIN)
def list_dealers_route():
    """
    List dealers.

    Query params:
    - active: "true" / "false" to filter (optional)
    """
    active_param = request.args.get("active")
    active = None
    if active_param is not None:
        active = active_param.lower() == "true"

    dealers = dealer_service.list_dealers(active=active)
    return jsonify({"dealers": [d.to_dict() for d in dealers]}), 200


@admin_bp.post("/dealers")
@require_role(ROLE_ADMIN)
def create_dealer_route():
    """
    Create a dealer.

    Request body:
    {
        "organizationId": 1,
        "referralCode": "SAVE10",
        "profileId": "uuid",   (optional)
        "isActive": true       (optional, default true)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        organization_id = data.get("organizationId")
        if not isinstance(organization_id, int) or isinstance(organization_id, bool):
            raise ValidationError("organizationId must be an integer")

        dealer = dealer_service.create_dealer(
            organization_id=organization_id,
            referral_code=data.get("referralCode"),
            profile_id=data.get("profileId"),
            is_active=_parse_bool(data.get("isActive", True), "isActive"),
        )
        return jsonify({"dealer": dealer.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create dealer")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/dealers/<int:dealer_id>")
@require_role(ROLE_ADMIN)
def update_dealer_route(dealer_id: int):
    """
    Activate or deactivate a dealer.

    Request body: {"isActive": false}
    """
    try:
        data = request.get_json(silent=True) or {}
        if "isActive" not in data:
            raise ValidationError("isActive is required")

        dealer = dealer_service.set_dealer_active(dealer_id, _parse_bool(data["isActive"], "isActive"))
        return jsonify({"dealer": dealer.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update dealer")
        return jsonify({"error": "Internal server error"}), 500
