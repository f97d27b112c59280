import logging

from app.extensions import db
from app.models.notification import Notification
from app.services import email_service

logger = logging.getLogger(__name__)


def get_user_notifications(user_id, is_read=None):
    q = Notification.query.filter_by(user_id=user_id)
    if is_read is not None:
        q = q.filter_by(is_read=is_read)
    return q.order_by(Notification.created_at.desc())

def mark_notification_read(notification):
    notification.is_read = True
    db.session.commit()
    return notification

def mark_all_read_for_user(user_id):
    updated = Notification.query.filter_by(user_id=user_id, is_read=False).update({"is_read": True})
    db.session.commit()
    return updated


def send_notification_to_user(user_id, title, message, notif_type="info", details=None, sender_id=None):
    """Best-effort in-app notification, committed on its own.

    Called after the primary operation has committed, so a failure here is
    logged and rolled back without touching that operation.
    """
    try:
        notif = Notification(
            user_id=user_id,
            created_by=sender_id,
            type=notif_type,
            title=title,
            message=message,
            details=details,
        )
        db.session.add(notif)
        db.session.commit()
        return notif
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to create %s notification for %s: %s", notif_type, user_id, e)
        return None


def _target_title(req):
    if req.bundle_id:
        return req.bundle.title if req.bundle else "the course bundle"
    return req.course.title if req.course else "the course"


def enrollment_approved(req, admin, expires_at=None):
    title = _target_title(req)
    send_notification_to_user(
        req.user_id,
        "Enrollment Approved",
        f"Your enrollment request for {title} has been approved.",
        notif_type="enrollment_approved",
        details={"request_id": req.id, "course_id": req.course_id, "bundle_id": req.bundle_id},
        sender_id=admin.id,
    )
    email_service.send_enrollment_approved_email(req.user, title, expires_at)


def enrollment_rejected(req, admin):
    title = _target_title(req)
    send_notification_to_user(
        req.user_id,
        "Enrollment Request Rejected",
        f"Your enrollment request for {title} was not approved.",
        notif_type="enrollment_rejected",
        details={"request_id": req.id, "reason": req.rejection_reason},
        sender_id=admin.id,
    )
    email_service.send_enrollment_rejected_email(req.user, title, req.rejection_reason)


def withdrawal_approved(wr, admin):
    send_notification_to_user(
        wr.user_id,
        "Withdrawal Approved",
        f"Your withdrawal request for {wr.amount:.2f} has been approved.",
        notif_type="withdrawal_approved",
        details={"request_id": wr.id, "amount": str(wr.amount)},
        sender_id=admin.id,
    )
    email_service.send_withdrawal_approved_email(wr.user, wr.amount)


def withdrawal_rejected(wr, admin):
    send_notification_to_user(
        wr.user_id,
        "Withdrawal Rejected",
        f"Your withdrawal request for {wr.amount:.2f} was rejected: {wr.admin_notes}",
        notif_type="withdrawal_rejected",
        details={"request_id": wr.id, "amount": str(wr.amount), "reason": wr.admin_notes},
        sender_id=admin.id,
    )
    email_service.send_withdrawal_rejected_email(wr.user, wr.amount, wr.admin_notes)


def subscription_approved(sub, admin):
    send_notification_to_user(
        sub.user_id,
        "Project Subscription Approved",
        f"Your project subscription is active until {sub.expires_at:%Y-%m-%d}.",
        notif_type="subscription_approved",
        details={"subscription_id": sub.id, "expires_at": sub.expires_at.isoformat()},
        sender_id=admin.id,
    )


def subscription_rejected(sub, admin):
    send_notification_to_user(
        sub.user_id,
        "Project Subscription Rejected",
        "Your project subscription request was not approved.",
        notif_type="subscription_rejected",
        details={"subscription_id": sub.id},
        sender_id=admin.id,
    )


def safe_dispatch(event, *args, **kwargs):
    """Run a notification event; failures are logged, never raised."""
    try:
        event(*args, **kwargs)
    except Exception as e:
        db.session.rollback()
        logger.error("Notification %s failed: %s", getattr(event, "__name__", event), e)
