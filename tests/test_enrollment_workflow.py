from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.balance_transaction import BalanceTransaction
from app.models.bundle import BundleEnrollment
from app.models.enrollment import Enrollment
from app.models.enrollment_request import EnrollmentRequest
from app.models.notification import Notification
from app.services import enrollment_service, ledger_service
from app.utils.dates import utcnow
from app.utils.exceptions import Forbidden, InvalidState, NotFound, ValidationError

SHOTS = ["https://cdn.example.com/receipt-1.png"]


def balances(*profiles):
    return [ledger_service.verify_ledger(p.id)["balance"] for p in profiles]


def test_submit_creates_pending_request_without_touching_balances(db, student, lecturer, make_profile, course):
    other = make_profile(balance="12")
    before = balances(lecturer, other)

    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)

    assert req.status == "pending"
    assert req.payment_screenshots == SHOTS
    assert req.referral_code is None
    assert balances(lecturer, other) == before
    assert BalanceTransaction.query.filter(BalanceTransaction.user_id != other.id).count() == 0


def test_referral_code_is_normalized_on_submit(student, course, make_profile):
    referrer = make_profile(referral_code="FRIEND01")
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code="  friend01 ")
    assert req.referral_code == referrer.referral_code


def test_single_screenshot_string_is_accepted(student, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS[0])
    assert req.payment_screenshots == SHOTS


def test_bad_screenshots_are_rejected(student, course):
    with pytest.raises(ValidationError):
        enrollment_service.submit_enrollment_request(student, course.id, {"url": "x"})
    with pytest.raises(ValidationError):
        enrollment_service.submit_enrollment_request(student, course.id, [""])


def test_duplicate_pending_request_is_rejected(student, course):
    enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    with pytest.raises(InvalidState):
        enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    assert EnrollmentRequest.query.filter_by(user_id=student.id, status="pending").count() == 1


def test_unknown_or_inactive_course(db, student, make_course):
    with pytest.raises(NotFound):
        enrollment_service.submit_enrollment_request(student, "crs_missing", SHOTS)
    hidden = make_course(is_active=False)
    with pytest.raises(NotFound):
        enrollment_service.submit_enrollment_request(student, hidden.id, SHOTS)


def test_approve_creates_enrollment_and_credits_referrer(db, student, admin, lecturer, course, make_profile):
    referrer = make_profile()
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code=referrer.referral_code)

    result = enrollment_service.approve_enrollment_request(req.id, admin)

    assert result["request"].status == "approved"
    assert result["request"].reviewed_by == admin.id
    enrollment = Enrollment.query.filter_by(user_id=student.id, course_id=course.id).one()
    assert enrollment.is_active()
    assert enrollment.expires_at - enrollment.approved_at == timedelta(days=30)

    commissions = BalanceTransaction.query.filter_by(user_id=referrer.id, source="referral_commission").all()
    assert len(commissions) == 1
    assert commissions[0].amount == Decimal("10.00")
    assert commissions[0].reference_id == req.id
    assert referrer.balance == Decimal("10.00")

    # lecturer is paid the price net of the commission
    earnings = BalanceTransaction.query.filter_by(user_id=lecturer.id, source="course_purchase").one()
    assert earnings.amount == Decimal("90.00")

    for p in (referrer, lecturer, student):
        assert ledger_service.verify_ledger(p.id)["consistent"]


def test_approve_twice_fails_and_pays_once(db, student, admin, course, make_profile):
    referrer = make_profile()
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code=referrer.referral_code)
    enrollment_service.approve_enrollment_request(req.id, admin)

    with pytest.raises(InvalidState):
        enrollment_service.approve_enrollment_request(req.id, admin)

    assert Enrollment.query.filter_by(user_id=student.id).count() == 1
    assert BalanceTransaction.query.filter_by(source="referral_commission").count() == 1
    assert referrer.balance == Decimal("10.00")


def test_self_referral_pays_nothing(db, student, admin, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code=student.referral_code)
    result = enrollment_service.approve_enrollment_request(req.id, admin)

    assert result["referral_transaction"] is None
    assert student.balance == Decimal("0.00")


def test_unknown_referral_code_still_approves(db, student, admin, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code="NOBODY")
    result = enrollment_service.approve_enrollment_request(req.id, admin)

    assert result["request"].status == "approved"
    assert result["referral_transaction"] is None


def test_reject_leaves_no_enrollment_or_ledger_entry(db, student, admin, course, make_profile):
    referrer = make_profile()
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code=referrer.referral_code)

    rejected = enrollment_service.reject_enrollment_request(req.id, admin, reason="Receipt unreadable")

    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Receipt unreadable"
    assert Enrollment.query.count() == 0
    assert BalanceTransaction.query.count() == 0
    with pytest.raises(InvalidState):
        enrollment_service.approve_enrollment_request(req.id, admin)


def test_only_admins_review(student, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    with pytest.raises(Forbidden):
        enrollment_service.approve_enrollment_request(req.id, student)
    with pytest.raises(Forbidden):
        enrollment_service.reject_enrollment_request(req.id, student)


def test_missing_request(admin):
    with pytest.raises(NotFound):
        enrollment_service.approve_enrollment_request("enr_missing", admin)


def test_active_enrollment_blocks_new_request(student, admin, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    enrollment_service.approve_enrollment_request(req.id, admin)

    with pytest.raises(InvalidState):
        enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    with pytest.raises(InvalidState):
        enrollment_service.submit_enrollment_request(student, course.id, SHOTS, is_re_enrollment=True)


def test_re_enrollment_requires_previous_enrollment(student, course):
    with pytest.raises(InvalidState):
        enrollment_service.submit_enrollment_request(student, course.id, SHOTS, is_re_enrollment=True)


def test_expired_enrollment_can_be_renewed(db, student, admin, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    enrollment_service.approve_enrollment_request(req.id, admin)
    enrollment = Enrollment.query.filter_by(user_id=student.id).one()
    enrollment.expires_at = utcnow() - timedelta(days=1)
    db.session.commit()
    assert not enrollment_service.has_access(student.id, course.id)

    renewal = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    assert renewal.is_re_enrollment is True
    enrollment_service.approve_enrollment_request(renewal.id, admin)

    assert Enrollment.query.filter_by(user_id=student.id).count() == 1
    assert enrollment_service.has_access(student.id, course.id)


def test_bundle_approval_enrolls_every_course(db, student, admin, bundle):
    req = enrollment_service.submit_bundle_enrollment_request(student, bundle.id, SHOTS)
    assert req.kind == "bundle"

    result = enrollment_service.approve_enrollment_request(req.id, admin)

    assert sorted(e.course_id for e in result["enrollments"]) == sorted(bundle.course_ids)
    assert BundleEnrollment.query.filter_by(user_id=student.id, bundle_id=bundle.id).count() == 1
    assert BalanceTransaction.query.count() == 0
    with pytest.raises(InvalidState):
        enrollment_service.submit_bundle_enrollment_request(student, bundle.id, SHOTS)


def test_admin_request_listing_filters(student, admin, course, bundle):
    enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    enrollment_service.submit_bundle_enrollment_request(student, bundle.id, SHOTS)

    assert enrollment_service.admin_requests_query(admin, status="pending").count() == 2
    assert enrollment_service.admin_requests_query(admin, kind="bundle").count() == 1
    with pytest.raises(ValidationError):
        enrollment_service.admin_requests_query(admin, status="weird")
    with pytest.raises(Forbidden):
        enrollment_service.admin_requests_query(student)


def test_approval_notifies_student(student, admin, course):
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)
    enrollment_service.approve_enrollment_request(req.id, admin)

    notif = Notification.query.filter_by(user_id=student.id).one()
    assert notif.type == "enrollment_approved"
    assert course.title in notif.message


def test_notification_failure_keeps_approval(monkeypatch, db, student, admin, course):
    def boom(*args, **kwargs):
        raise RuntimeError("mail server down")

    monkeypatch.setattr("app.services.notification_service.send_notification_to_user", boom)
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS)

    result = enrollment_service.approve_enrollment_request(req.id, admin)

    assert result["request"].status == "approved"
    assert db.session.get(EnrollmentRequest, req.id).status == "approved"
    assert enrollment_service.has_access(student.id, course.id)


def test_failed_ledger_step_rolls_back_approval(monkeypatch, db, student, admin, course, make_profile):
    referrer = make_profile()
    req = enrollment_service.submit_enrollment_request(student, course.id, SHOTS, referral_code=referrer.referral_code)

    def broken_credit(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr("app.services.ledger_service.credit", broken_credit)
    with pytest.raises(RuntimeError):
        enrollment_service.approve_enrollment_request(req.id, admin)

    assert db.session.get(EnrollmentRequest, req.id).status == "pending"
    assert Enrollment.query.count() == 0
    assert BalanceTransaction.query.count() == 0
