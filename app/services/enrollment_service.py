import logging
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.bundle import BundleEnrollment, CourseBundle
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enrollment_request import EnrollmentRequest, REQUEST_STATUSES
from app.services import ledger_service, notification_service, referral_service
from app.utils.authz import ensure_admin
from app.utils.dates import utcnow
from app.utils.exceptions import InvalidState, NotFound, ValidationError
from app.utils.transitions import transition

logger = logging.getLogger(__name__)


def _clean_screenshots(payment_screenshots):
    if payment_screenshots is None:
        return []
    if isinstance(payment_screenshots, str):
        payment_screenshots = [payment_screenshots]
    if not isinstance(payment_screenshots, list):
        raise ValidationError("paymentScreenshots must be an array", {"field": "paymentScreenshots"})
    cleaned = []
    for url in payment_screenshots:
        if not isinstance(url, str) or not url.strip():
            raise ValidationError("paymentScreenshots must contain URLs", {"field": "paymentScreenshots"})
        cleaned.append(url.strip())
    return cleaned


def _persist_request(req, duplicate_message):
    db.session.add(req)
    try:
        db.session.commit()
    except IntegrityError:
        # lost the race against a concurrent submission for the same target
        db.session.rollback()
        raise InvalidState(duplicate_message)
    except Exception:
        db.session.rollback()
        raise
    return req


def submit_enrollment_request(user, course_id, payment_screenshots=None, referral_code=None, is_re_enrollment=False):
    if not course_id:
        raise ValidationError("courseId is required", {"field": "courseId"})
    screenshots = _clean_screenshots(payment_screenshots)
    code = referral_service.normalize_code(referral_code)

    pending = EnrollmentRequest.query.filter_by(user_id=user.id, course_id=course_id, status="pending").first()
    if pending:
        raise InvalidState("You already have a pending enrollment request for this course", {"request_id": pending.id})

    enrollment = Enrollment.query.filter_by(user_id=user.id, course_id=course_id).first()
    if enrollment:
        if enrollment.is_active():
            if is_re_enrollment:
                raise InvalidState("Your enrollment is still active. Re-enrollment is only available for expired enrollments.")
            raise InvalidState("You are already enrolled in this course")
        is_re_enrollment = True
    elif is_re_enrollment:
        raise InvalidState("No previous enrollment found for re-enrollment")

    course = Course.query.filter_by(id=course_id, is_active=True).first()
    if not course:
        raise NotFound("Course not found")

    req = EnrollmentRequest(
        user_id=user.id,
        course_id=course.id,
        status="pending",
        payment_screenshots=screenshots,
        referral_code=code,
        is_re_enrollment=bool(is_re_enrollment),
    )
    _persist_request(req, "You already have a pending enrollment request for this course")
    logger.info("enrollment request %s submitted by %s for course %s", req.id, user.id, course.id)
    return req


def submit_bundle_enrollment_request(user, bundle_id, payment_screenshots=None):
    if not bundle_id:
        raise ValidationError("bundleId is required", {"field": "bundleId"})
    screenshots = _clean_screenshots(payment_screenshots)

    if EnrollmentRequest.query.filter_by(user_id=user.id, bundle_id=bundle_id, status="pending").first():
        raise InvalidState("You already have a pending bundle enrollment request")
    if BundleEnrollment.query.filter_by(user_id=user.id, bundle_id=bundle_id).first():
        raise InvalidState("You are already enrolled in this bundle")

    bundle = CourseBundle.query.filter_by(id=bundle_id, is_active=True).first()
    if not bundle:
        raise NotFound("Bundle not found or is not active")

    req = EnrollmentRequest(
        user_id=user.id,
        bundle_id=bundle.id,
        status="pending",
        payment_screenshots=screenshots,
    )
    _persist_request(req, "You already have a pending bundle enrollment request")
    logger.info("bundle enrollment request %s submitted by %s for bundle %s", req.id, user.id, bundle.id)
    return req


def _upsert_enrollment(user_id, course_id, now, expires_at):
    enrollment = Enrollment.query.filter_by(user_id=user_id, course_id=course_id).first()
    if enrollment:
        enrollment.approved_at = now
        enrollment.expires_at = expires_at
    else:
        enrollment = Enrollment(user_id=user_id, course_id=course_id, approved_at=now, expires_at=expires_at)
        db.session.add(enrollment)
    return enrollment


def _get_request(request_id):
    req = db.session.get(EnrollmentRequest, request_id)
    if not req:
        raise NotFound("Enrollment request not found")
    return req


def _approve_course(req, now, expires_at):
    course = req.course
    if not course:
        raise NotFound("Course not found")

    enrollment = _upsert_enrollment(req.user_id, course.id, now, expires_at)
    referral_tx = referral_service.resolve_and_attribute(req, course)

    lecturer_tx = None
    if current_app.config["CREDIT_LECTURER_EARNINGS"] and course.lecturer_id:
        earnings = Decimal(course.price or 0) - (referral_tx.amount if referral_tx else Decimal("0"))
        if earnings > 0:
            lecturer_tx = ledger_service.credit(
                course.lecturer_id,
                earnings,
                "course_purchase",
                reference_id=req.id,
                reference_type="enrollment_request",
                description=(
                    "Course purchase earnings (after referral commission)"
                    if referral_tx else "Course purchase earnings"
                ),
            )
    return [enrollment], referral_tx, lecturer_tx


def _approve_bundle(req, now, expires_at):
    bundle = req.bundle
    if not bundle:
        raise NotFound("Bundle not found")

    if not BundleEnrollment.query.filter_by(user_id=req.user_id, bundle_id=bundle.id).first():
        db.session.add(BundleEnrollment(user_id=req.user_id, bundle_id=bundle.id))
    enrollments = [
        _upsert_enrollment(req.user_id, course_id, now, expires_at)
        for course_id in bundle.course_ids
    ]
    return enrollments, None, None


def approve_enrollment_request(request_id, admin):
    """Approve a pending request and apply every consequence in one commit."""
    ensure_admin(admin)
    req = _get_request(request_id)
    if req.status != "pending":
        raise InvalidState(f"Request is already {req.status}")

    now = utcnow()
    expires_at = now + timedelta(days=current_app.config["ENROLLMENT_DURATION_DAYS"])
    try:
        transition(EnrollmentRequest, req.id, "pending", {
            "status": "approved",
            "reviewed_by": admin.id,
            "reviewed_at": now,
            "updated_at": now,
        })
        db.session.expire(req)

        if req.bundle_id:
            enrollments, referral_tx, lecturer_tx = _approve_bundle(req, now, expires_at)
        else:
            enrollments, referral_tx, lecturer_tx = _approve_course(req, now, expires_at)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "enrollment request %s approved by %s (referral_tx=%s, lecturer_tx=%s)",
        req.id, admin.id,
        referral_tx.id if referral_tx else None,
        lecturer_tx.id if lecturer_tx else None,
    )
    notification_service.safe_dispatch(notification_service.enrollment_approved, req, admin, expires_at)

    return {
        "request": req,
        "enrollments": enrollments,
        "referral_transaction": referral_tx,
        "lecturer_transaction": lecturer_tx,
    }


def reject_enrollment_request(request_id, admin, reason=None):
    ensure_admin(admin)
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be a string", {"field": "reason"})
    req = _get_request(request_id)
    if req.status != "pending":
        raise InvalidState(f"Request is already {req.status}")

    now = utcnow()
    try:
        transition(EnrollmentRequest, req.id, "pending", {
            "status": "rejected",
            "reviewed_by": admin.id,
            "reviewed_at": now,
            "updated_at": now,
            "rejection_reason": (reason or "").strip() or None,
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire(req)

    logger.info("enrollment request %s rejected by %s", req.id, admin.id)
    notification_service.safe_dispatch(notification_service.enrollment_rejected, req, admin)
    return req


def user_requests_query(user):
    return (
        EnrollmentRequest.query
        .filter_by(user_id=user.id)
        .order_by(EnrollmentRequest.created_at.desc())
    )


def admin_requests_query(admin, status=None, kind=None):
    ensure_admin(admin)
    q = EnrollmentRequest.query
    if status and status != "all":
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", {"field": "status"})
        q = q.filter(EnrollmentRequest.status == status)
    if kind == "course":
        q = q.filter(EnrollmentRequest.course_id.isnot(None))
    elif kind == "bundle":
        q = q.filter(EnrollmentRequest.bundle_id.isnot(None))
    return q.order_by(EnrollmentRequest.created_at.desc())


def user_enrollments(user, include_expired=False):
    enrollments = (
        Enrollment.query
        .filter_by(user_id=user.id)
        .order_by(Enrollment.approved_at.desc())
        .all()
    )
    if include_expired:
        return enrollments
    now = utcnow()
    return [e for e in enrollments if e.is_active(now)]


def has_access(user_id, course_id):
    enrollment = Enrollment.query.filter_by(user_id=user_id, course_id=course_id).first()
    return bool(enrollment and enrollment.is_active())
