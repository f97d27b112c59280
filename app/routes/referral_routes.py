from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.services.referral_service import referral_analytics, referral_stats, validate_referral_code
from app.utils.authz import admin_required, current_profile
from app.utils.exceptions import ValidationError
from app.utils.response_formatter import success_response

bp = Blueprint("referrals", __name__, url_prefix="/api/v1")


@bp.route("/public/validate-referral-code", methods=["POST"])
def validate_code():
    data = request.get_json(silent=True) or {}
    code = data.get("referralCode")
    if not code:
        raise ValidationError("referralCode is required", {"field": "referralCode"})
    return success_response({"valid": validate_referral_code(code)})


@bp.route("/referrals/me", methods=["GET"])
@jwt_required()
def my_referrals():
    stats = referral_stats(current_profile())
    return success_response({
        "referral_code": stats["referral_code"],
        "referrals": stats["referrals"],
        "total_commission": float(stats["total_commission"]),
    })


@bp.route("/admin/referrals/stats", methods=["GET"])
@admin_required
def referral_overview(admin):
    stats = referral_analytics(admin)
    for row in stats["top_referrers"]:
        row["total_commission"] = float(row["total_commission"])
    return success_response(stats)
