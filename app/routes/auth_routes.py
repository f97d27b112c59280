from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.profile_schema import ProfileSchema
from app.services.auth_service import register_user, authenticate_user, generate_tokens_for_user
from app.utils.authz import current_profile
from app.utils.response_formatter import success_response

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

profile_schema = ProfileSchema()


@bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    user = register_user(
        email=data.get("email"),
        password=data.get("password"),
        username=data.get("username"),
        full_name=data.get("full_name"),
        role=data.get("role", "student"),
        signup_referral_code=data.get("signupReferralCode"),
        signup_course_id=data.get("signupCourseId"),
    )
    access, refresh = generate_tokens_for_user(user)
    return success_response({
        "user": profile_schema.dump(user),
        "access_token": access,
        "refresh_token": refresh,
    }, status=201)


@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    user = authenticate_user(data.get("email"), data.get("password"))
    access, refresh = generate_tokens_for_user(user)
    return success_response({
        "access_token": access,
        "refresh_token": refresh,
        "user": profile_schema.dump(user),
    })


@bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    access, _ = generate_tokens_for_user(current_profile())
    return success_response({"access_token": access})


@bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    return success_response({"user": profile_schema.dump(current_profile())})
