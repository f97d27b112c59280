from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.models.notification import Notification
from app.schemas.notification_schema import NotificationSchema
from app.services.notification_service import (
    get_user_notifications,
    mark_notification_read,
    mark_all_read_for_user,
)
from app.utils.authz import current_profile, ensure_owner_or_admin
from app.utils.exceptions import NotFound
from app.utils.pagination import page_args, paginate_query
from app.utils.response_formatter import success_response

bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")

notification_schema = NotificationSchema()


@bp.route("", methods=["GET"])
@jwt_required()
def get_notifications():
    user = current_profile()
    page, limit = page_args()

    is_read = request.args.get("is_read")
    if is_read is not None:
        is_read = is_read.lower() == "true"

    items, pagination = paginate_query(get_user_notifications(user.id, is_read=is_read), page, limit)
    unread = Notification.query.filter_by(user_id=user.id, is_read=False).count()
    return success_response({
        "notifications": notification_schema.dump(items, many=True),
        "unread_count": unread,
        "pagination": pagination,
    })


@bp.route("/<nid>/read", methods=["PATCH"])
@jwt_required()
def mark_read(nid):
    user = current_profile()
    notif = Notification.query.filter_by(id=nid).first()
    if not notif:
        raise NotFound("Notification not found")
    ensure_owner_or_admin(user, notif.user_id)
    mark_notification_read(notif)
    return success_response({"notification": notification_schema.dump(notif)})


@bp.route("/read-all", methods=["POST"])
@jwt_required()
def mark_all_read():
    user = current_profile()
    updated = mark_all_read_for_user(user.id)
    return success_response({"updated": updated}, message="Notifications marked as read")
