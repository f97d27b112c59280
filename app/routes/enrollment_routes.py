from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.enrollment_schema import EnrollmentRequestSchema, EnrollmentSchema
from app.services import enrollment_service
from app.utils.authz import current_profile
from app.utils.exceptions import ValidationError
from app.utils.response_formatter import success_response

bp = Blueprint("enrollments", __name__, url_prefix="/api/v1")

request_schema = EnrollmentRequestSchema()
enrollment_schema = EnrollmentSchema()


def _flag(value, field):
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{field} must be a boolean", {"field": field})


@bp.route("/enrollment-requests", methods=["POST"])
@jwt_required()
def create_enrollment_request():
    user = current_profile()
    data = request.get_json(silent=True) or {}
    req = enrollment_service.submit_enrollment_request(
        user,
        course_id=data.get("courseId"),
        payment_screenshots=data.get("paymentScreenshots"),
        referral_code=data.get("referralCode"),
        is_re_enrollment=_flag(data.get("isReEnrollment"), "isReEnrollment"),
    )
    return success_response({"request": request_schema.dump(req)}, status=201)


@bp.route("/enrollment-requests", methods=["GET"])
@jwt_required()
def list_enrollment_requests():
    user = current_profile()
    requests = enrollment_service.user_requests_query(user).all()
    return success_response({"requests": request_schema.dump(requests, many=True)})


@bp.route("/bundle-enrollment-requests", methods=["POST"])
@jwt_required()
def create_bundle_enrollment_request():
    user = current_profile()
    data = request.get_json(silent=True) or {}
    req = enrollment_service.submit_bundle_enrollment_request(
        user,
        bundle_id=data.get("bundleId"),
        payment_screenshots=data.get("paymentScreenshots"),
    )
    return success_response({"request": request_schema.dump(req)}, status=201)


@bp.route("/me/enrollments", methods=["GET"])
@jwt_required()
def my_enrollments():
    user = current_profile()
    include_expired = request.args.get("include_expired", "false").lower() == "true"
    enrollments = enrollment_service.user_enrollments(user, include_expired=include_expired)
    return success_response({"enrollments": enrollment_schema.dump(enrollments, many=True)})
