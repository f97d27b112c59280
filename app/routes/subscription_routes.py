from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.subscription_schema import AdminProjectSubscriptionSchema, ProjectSubscriptionSchema
from app.services import subscription_service
from app.utils.authz import admin_required, current_profile
from app.utils.pagination import page_args, paginate_query
from app.utils.response_formatter import success_response

bp = Blueprint("subscriptions", __name__, url_prefix="/api/v1")

subscription_schema = ProjectSubscriptionSchema()
admin_subscription_schema = AdminProjectSubscriptionSchema()


@bp.route("/project-subscriptions", methods=["POST"])
@jwt_required()
def submit_subscription():
    user = current_profile()
    data = request.get_json(silent=True) or {}
    sub = subscription_service.submit_project_subscription(user, data.get("paymentScreenshot"))
    return success_response(
        {"subscription": subscription_schema.dump(sub)},
        message="Subscription request submitted",
        status=201,
    )


@bp.route("/project-subscriptions", methods=["GET"])
@jwt_required()
def my_subscriptions():
    user = current_profile()
    subs = subscription_service.user_subscriptions_query(user).all()
    return success_response({
        "subscriptions": subscription_schema.dump(subs, many=True),
        "has_access": subscription_service.has_project_access(user.id),
    })


# ==========================================================
#  GET /admin/project-subscriptions
#  Filters:
#    page, limit
#    status=pending|active|expired|rejected
# ==========================================================
@bp.route("/admin/project-subscriptions", methods=["GET"])
@admin_required
def admin_list_subscriptions(admin):
    page, limit = page_args()
    q = subscription_service.admin_subscriptions_query(admin, status=request.args.get("status"))
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "subscriptions": admin_subscription_schema.dump(items, many=True),
        "counts": subscription_service.subscription_counts(admin),
        "pagination": pagination,
    })


@bp.route("/admin/project-subscriptions/<sid>/approve", methods=["POST"])
@admin_required
def admin_approve_subscription(sid, admin):
    sub = subscription_service.approve_project_subscription(sid, admin)
    return success_response(
        {"subscription": admin_subscription_schema.dump(sub)},
        message="Subscription approved",
    )


@bp.route("/admin/project-subscriptions/<sid>/reject", methods=["POST"])
@admin_required
def admin_reject_subscription(sid, admin):
    sub = subscription_service.reject_project_subscription(sid, admin)
    return success_response(
        {"subscription": admin_subscription_schema.dump(sub)},
        message="Subscription rejected",
    )
