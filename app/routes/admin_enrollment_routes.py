from flask import Blueprint, request, current_app

from app.schemas.enrollment_schema import AdminEnrollmentRequestSchema, EnrollmentSchema
from app.schemas.ledger_schema import BalanceTransactionSchema
from app.services import enrollment_service
from app.utils.authz import admin_required
from app.utils.pagination import page_args, paginate_query
from app.utils.response_formatter import success_response

bp = Blueprint("admin_enrollments", __name__, url_prefix="/api/v1/admin/enrollment-requests")

request_schema = AdminEnrollmentRequestSchema()
enrollment_schema = EnrollmentSchema()
transaction_schema = BalanceTransactionSchema()


@bp.route("", methods=["GET"])
@admin_required
def admin_list_enrollment_requests(admin):
    page, limit = page_args()
    q = enrollment_service.admin_requests_query(
        admin,
        status=request.args.get("status"),
        kind=request.args.get("kind"),
    )
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "requests": request_schema.dump(items, many=True),
        "pagination": pagination,
    })


@bp.route("/<request_id>/approve", methods=["POST"])
@admin_required
def admin_approve_enrollment_request(request_id, admin):
    result = enrollment_service.approve_enrollment_request(request_id, admin)
    current_app.logger.info("Enrollment request %s approved via API", request_id)

    enrollments = enrollment_schema.dump(result["enrollments"], many=True)
    referral_tx = result["referral_transaction"]
    return success_response({
        "request": request_schema.dump(result["request"]),
        "enrollment": enrollments[0] if len(enrollments) == 1 else None,
        "enrollments": enrollments,
        "referral_transaction": transaction_schema.dump(referral_tx) if referral_tx else None,
    }, message="Enrollment request approved successfully")


@bp.route("/<request_id>/reject", methods=["POST"])
@admin_required
def admin_reject_enrollment_request(request_id, admin):
    data = request.get_json(silent=True) or {}
    req = enrollment_service.reject_enrollment_request(request_id, admin, reason=data.get("reason"))
    return success_response({"request": request_schema.dump(req)}, message="Enrollment request rejected")
