import logging
import secrets
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from app.extensions import db
from app.models.balance_transaction import BalanceTransaction
from app.models.course import Course
from app.models.enrollment_request import EnrollmentRequest
from app.models.profile import Profile
from app.models.referral import ReferralAttribution
from app.services import ledger_service
from app.utils.authz import ensure_admin
from app.utils.exceptions import ValidationError
from app.utils.money import quantize

logger = logging.getLogger(__name__)

CODE_LENGTH = 8


def normalize_code(code):
    if code is None:
        return None
    if not isinstance(code, str):
        raise ValidationError("referralCode must be a string", {"field": "referralCode"})
    code = code.strip().upper()
    if len(code) > current_app.config["REFERRAL_CODE_MAX_LENGTH"]:
        raise ValidationError(
            f"referralCode must be at most {current_app.config['REFERRAL_CODE_MAX_LENGTH']} characters",
            {"field": "referralCode"},
        )
    return code or None


def generate_referral_code():
    """Random 8-char uppercase code not yet owned by any profile."""
    while True:
        code = secrets.token_hex(CODE_LENGTH // 2).upper()
        if not Profile.query.filter_by(referral_code=code).first():
            return code


def find_referrer(code):
    if not code:
        return None
    return Profile.query.filter_by(referral_code=code, is_active=True).first()


def validate_referral_code(code):
    try:
        code = normalize_code(code)
    except ValidationError:
        return False
    return find_referrer(code) is not None


def compute_commission(price, percentage):
    """Referral commission for one sale under the configured policy."""
    price = Decimal(price or 0)
    policy = current_app.config["REFERRAL_COMMISSION_POLICY"]
    if policy == "fixed":
        return quantize(min(current_app.config["REFERRAL_FIXED_COMMISSION"], price))
    if policy == "course_percentage":
        return quantize(price * Decimal(percentage or 0) / Decimal(100))
    raise ValueError(f"Unknown REFERRAL_COMMISSION_POLICY '{policy}'")


def already_attributed(enrollment_request_id):
    if db.session.query(ReferralAttribution.id).filter_by(enrollment_request_id=enrollment_request_id).first():
        return True
    return ledger_service.find_transaction(enrollment_request_id, "referral_commission") is not None


def attribute(referral_code, referred_user_id, enrollment_request_id, course, origin="explicit"):
    """Credit the owner of ``referral_code`` for an approved enrollment.

    Returns the commission transaction, or None when nothing is owed: unknown
    code, self-referral, a commission already paid for this request, or a
    zero commission. Runs inside the caller's transaction.
    """
    code = normalize_code(referral_code)
    referrer = find_referrer(code)
    if referrer is None:
        logger.info("referral code %r did not resolve for request %s", code, enrollment_request_id)
        return None
    if referrer.id == referred_user_id:
        logger.info("self-referral ignored for user %s on request %s", referred_user_id, enrollment_request_id)
        return None
    if already_attributed(enrollment_request_id):
        logger.info("referral for request %s already attributed", enrollment_request_id)
        return None

    commission = compute_commission(course.price, course.referral_commission_percentage)
    if commission <= 0:
        logger.info("no commission configured for course %s", course.id)
        return None

    tx = ledger_service.credit(
        referrer.id,
        commission,
        "referral_commission",
        reference_id=enrollment_request_id,
        reference_type="enrollment_request",
        description="Referral commission for course enrollment",
    )
    db.session.add(ReferralAttribution(
        referrer_id=referrer.id,
        referred_user_id=referred_user_id,
        referral_code=code,
        enrollment_request_id=enrollment_request_id,
        course_id=course.id,
        origin=origin,
        transaction_id=tx.id,
    ))
    db.session.flush()
    return tx


def _signup_code_eligible(user, enrollment_request_id, course):
    if not user.signup_referral_code:
        return False
    prior_signup = ReferralAttribution.query.filter_by(referred_user_id=user.id, origin="signup").first()
    if prior_signup:
        return False
    # a course-specific signup link counts for that course only, whenever it is bought
    if user.referred_for_course_id:
        return user.referred_for_course_id == course.id
    earlier_approved = (
        EnrollmentRequest.query
        .filter(
            EnrollmentRequest.user_id == user.id,
            EnrollmentRequest.status == "approved",
            EnrollmentRequest.id != enrollment_request_id,
        )
        .first()
    )
    return earlier_approved is None


def resolve_and_attribute(enrollment_request, course):
    """Explicit code first, then the user's signup code (first enrollment, or the course it was issued for)."""
    user = enrollment_request.user
    if enrollment_request.referral_code:
        tx = attribute(enrollment_request.referral_code, user.id, enrollment_request.id, course)
        if tx is not None:
            return tx
    if _signup_code_eligible(user, enrollment_request.id, course):
        return attribute(user.signup_referral_code, user.id, enrollment_request.id, course, origin="signup")
    return None


def referral_stats(user):
    referrals = ReferralAttribution.query.filter_by(referrer_id=user.id).count()
    total = (
        db.session.query(func.coalesce(func.sum(BalanceTransaction.amount), 0))
        .filter(
            BalanceTransaction.user_id == user.id,
            BalanceTransaction.source == "referral_commission",
        )
        .scalar()
    )
    return {
        "referral_code": user.referral_code,
        "referrals": referrals,
        "total_commission": quantize(str(total or 0)),
    }


def referral_analytics(admin, top=20):
    """Platform-wide referral totals for the admin dashboard."""
    ensure_admin(admin)

    total_activations = db.session.query(func.count(ReferralAttribution.id)).scalar() or 0

    by_course = (
        db.session.query(ReferralAttribution.course_id, Course.title, func.count(ReferralAttribution.id))
        .outerjoin(Course, Course.id == ReferralAttribution.course_id)
        .group_by(ReferralAttribution.course_id, Course.title)
        .order_by(func.count(ReferralAttribution.id).desc())
        .all()
    )

    commissions = dict(
        db.session.query(BalanceTransaction.user_id, func.sum(BalanceTransaction.amount))
        .filter(BalanceTransaction.source == "referral_commission")
        .group_by(BalanceTransaction.user_id)
        .all()
    )

    activation_count = func.count(ReferralAttribution.id)
    referrers = (
        db.session.query(Profile, activation_count)
        .join(ReferralAttribution, ReferralAttribution.referrer_id == Profile.id)
        .group_by(Profile.id)
        .order_by(activation_count.desc(), Profile.id)
        .limit(top)
        .all()
    )

    return {
        "total_activations": total_activations,
        "referrals_by_course": [
            {"course_id": course_id, "course_title": title or "Unknown Course", "count": count}
            for course_id, title, count in by_course
        ],
        "top_referrers": [
            {
                "user_id": profile.id,
                "username": profile.username,
                "email": profile.email,
                "referral_code": profile.referral_code,
                "activation_count": count,
                "total_commission": quantize(str(commissions.get(profile.id) or 0)),
            }
            for profile, count in referrers
        ],
    }
