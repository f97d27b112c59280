"""Project subscriptions: paid access to project listings, approved by hand.

A user pays out of band, uploads the payment screenshot and waits for an
admin. Subscriptions never touch the balance ledger.
"""
import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.project_subscription import ProjectSubscription, SUBSCRIPTION_STATUSES
from app.services import notification_service
from app.utils.authz import ensure_admin
from app.utils.dates import utcnow
from app.utils.exceptions import InvalidState, NotFound, ValidationError
from app.utils.transitions import transition

logger = logging.getLogger(__name__)


def submit_project_subscription(user, payment_screenshot):
    if not isinstance(payment_screenshot, str) or not payment_screenshot.strip():
        raise ValidationError("paymentScreenshot is required", {"field": "paymentScreenshot"})

    if ProjectSubscription.query.filter_by(user_id=user.id, status="pending").first():
        raise InvalidState("You already have a pending subscription request")

    sub = ProjectSubscription(
        user_id=user.id,
        price=current_app.config["PROJECT_SUBSCRIPTION_PRICE"],
        payment_screenshot=payment_screenshot.strip(),
        status="pending",
    )
    db.session.add(sub)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidState("You already have a pending subscription request")
    except Exception:
        db.session.rollback()
        raise

    logger.info("project subscription %s requested by %s", sub.id, user.id)
    return sub


def user_subscriptions_query(user):
    return (
        ProjectSubscription.query
        .filter_by(user_id=user.id)
        .order_by(ProjectSubscription.created_at.desc())
    )


def admin_subscriptions_query(admin, status=None):
    ensure_admin(admin)
    q = ProjectSubscription.query
    if status and status != "all":
        if status not in SUBSCRIPTION_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", {"field": "status"})
        q = q.filter(ProjectSubscription.status == status)
    return q.order_by(ProjectSubscription.created_at.desc())


def subscription_counts(admin):
    ensure_admin(admin)
    rows = (
        db.session.query(ProjectSubscription.status, func.count(ProjectSubscription.id))
        .group_by(ProjectSubscription.status)
        .all()
    )
    counts = {status: 0 for status in SUBSCRIPTION_STATUSES}
    counts.update(dict(rows))
    return counts


def _get_subscription(subscription_id):
    sub = db.session.get(ProjectSubscription, subscription_id)
    if not sub:
        raise NotFound("Subscription request not found")
    return sub


def approve_project_subscription(subscription_id, admin):
    ensure_admin(admin)
    sub = _get_subscription(subscription_id)
    if sub.status != "pending":
        raise InvalidState(f"Request is already {sub.status}")

    now = utcnow()
    try:
        transition(ProjectSubscription, sub.id, "pending", {
            "status": "active",
            "starts_at": now,
            "expires_at": now + timedelta(days=current_app.config["PROJECT_SUBSCRIPTION_DAYS"]),
            "approved_by": admin.id,
            "approved_at": now,
            "updated_at": now,
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire(sub)

    logger.info("project subscription %s approved by %s", sub.id, admin.id)
    notification_service.safe_dispatch(notification_service.subscription_approved, sub, admin)
    return sub


def reject_project_subscription(subscription_id, admin):
    ensure_admin(admin)
    sub = _get_subscription(subscription_id)
    if sub.status != "pending":
        raise InvalidState(f"Request is already {sub.status}")

    now = utcnow()
    try:
        transition(ProjectSubscription, sub.id, "pending", {
            "status": "rejected",
            "approved_by": admin.id,
            "approved_at": now,
            "updated_at": now,
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire(sub)

    logger.info("project subscription %s rejected by %s", sub.id, admin.id)
    notification_service.safe_dispatch(notification_service.subscription_rejected, sub, admin)
    return sub


def has_project_access(user_id):
    """True while the user holds an approved, unexpired subscription."""
    return (
        ProjectSubscription.query
        .filter(
            ProjectSubscription.user_id == user_id,
            ProjectSubscription.status == "active",
            ProjectSubscription.expires_at > utcnow(),
        )
        .first()
        is not None
    )
