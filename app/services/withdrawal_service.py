import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.profile import Profile
from app.models.withdrawal_request import WithdrawalRequest, WITHDRAWAL_STATUSES
from app.services import ledger_service, notification_service
from app.utils.authz import ensure_admin
from app.utils.dates import utcnow
from app.utils.exceptions import (
    Forbidden, InsufficientFunds, InvalidState, NotFound, ValidationError
)
from app.utils.money import to_money
from app.utils.transitions import transition

logger = logging.getLogger(__name__)


def _clean_bank_account(bank_account_number):
    min_length = current_app.config["BANK_ACCOUNT_MIN_LENGTH"]
    if not isinstance(bank_account_number, str) or len(bank_account_number.strip()) < min_length:
        raise ValidationError("Valid bank account number is required", {"field": "bankAccountNumber"})
    return bank_account_number.strip()


def request_withdrawal(user, amount, bank_account_number):
    """Open a pending withdrawal. The balance is checked but not reserved."""
    if user.role == "admin":
        raise Forbidden("Admins cannot request withdrawals")

    amount = to_money(amount)
    minimum = current_app.config["MIN_WITHDRAWAL_AMOUNT"]
    if amount < minimum:
        raise ValidationError(
            f"Minimum withdrawal amount is {minimum} {current_app.config['CURRENCY']}",
            {"field": "amount", "minimum": str(minimum)},
        )
    account = _clean_bank_account(bank_account_number)

    if WithdrawalRequest.query.filter_by(user_id=user.id, status="pending").first():
        raise InvalidState("You already have a pending withdrawal request")

    balance = Decimal(user.balance or 0)
    if amount > balance:
        raise InsufficientFunds(balance, amount)

    wr = WithdrawalRequest(
        user_id=user.id,
        user_type=user.role,
        amount=amount,
        bank_account_number=account,
        status="pending",
    )
    user.bank_account_number = account
    db.session.add(wr)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidState("You already have a pending withdrawal request")
    except Exception:
        db.session.rollback()
        raise

    logger.info("withdrawal %s of %s requested by %s", wr.id, amount, user.id)
    return wr


def _get_withdrawal(request_id):
    wr = db.session.get(WithdrawalRequest, request_id)
    if not wr:
        raise NotFound("Withdrawal request not found")
    return wr


def approve_withdrawal(request_id, admin, notes=None):
    """Debit the ledger for a pending withdrawal, re-checking the balance now."""
    ensure_admin(admin)
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("adminNotes must be a string", {"field": "adminNotes"})
    wr = _get_withdrawal(request_id)
    if wr.status != "pending":
        raise InvalidState(f"Request is already {wr.status}")

    balance = Decimal(wr.user.balance or 0)
    if balance < Decimal(wr.amount):
        raise InsufficientFunds(balance, wr.amount)

    now = utcnow()
    final_status = "completed" if current_app.config["WITHDRAWAL_AUTO_COMPLETE"] else "approved"
    values = {
        "status": final_status,
        "processed_at": now,
        "processed_by": admin.id,
        "updated_at": now,
    }
    if notes and notes.strip():
        values["admin_notes"] = notes.strip()

    try:
        transition(WithdrawalRequest, wr.id, "pending", values)
        tx = ledger_service.debit(
            wr.user_id,
            wr.amount,
            "withdrawal",
            reference_id=wr.id,
            reference_type="withdrawal_request",
            description="Withdrawal approved",
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("withdrawal %s approved by %s (tx=%s, status=%s)", wr.id, admin.id, tx.id, final_status)
    notification_service.safe_dispatch(notification_service.withdrawal_approved, wr, admin)
    return wr


def complete_withdrawal(request_id, admin):
    """Mark an approved (already debited) withdrawal as paid out."""
    ensure_admin(admin)
    wr = _get_withdrawal(request_id)
    if wr.status != "approved":
        raise InvalidState(f"Only approved withdrawals can be completed, this one is {wr.status}")

    now = utcnow()
    try:
        transition(WithdrawalRequest, wr.id, "approved", {"status": "completed", "updated_at": now})
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("withdrawal %s marked completed by %s", wr.id, admin.id)
    return wr


def reject_withdrawal(request_id, admin, notes):
    """Reject a pending withdrawal. Nothing was debited, so nothing is refunded."""
    ensure_admin(admin)
    if not isinstance(notes, str) or not notes.strip():
        raise ValidationError("adminNotes are required when rejecting a withdrawal", {"field": "adminNotes"})
    wr = _get_withdrawal(request_id)
    if wr.status != "pending":
        raise InvalidState(f"Request is already {wr.status}")

    now = utcnow()
    try:
        transition(WithdrawalRequest, wr.id, "pending", {
            "status": "rejected",
            "admin_notes": notes.strip(),
            "processed_at": now,
            "processed_by": admin.id,
            "updated_at": now,
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("withdrawal %s rejected by %s", wr.id, admin.id)
    notification_service.safe_dispatch(notification_service.withdrawal_rejected, wr, admin)
    return wr


def user_withdrawals_query(user):
    return (
        WithdrawalRequest.query
        .filter_by(user_id=user.id)
        .order_by(WithdrawalRequest.created_at.desc())
    )


def admin_withdrawals_query(admin, status=None, search=None):
    ensure_admin(admin)
    q = WithdrawalRequest.query.join(Profile, WithdrawalRequest.user_id == Profile.id)
    if status and status != "all":
        if status not in WITHDRAWAL_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", {"field": "status"})
        q = q.filter(WithdrawalRequest.status == status)
    if search:
        q = q.filter(
            or_(
                Profile.full_name.ilike(f"%{search}%"),
                Profile.email.ilike(f"%{search}%"),
                Profile.username.ilike(f"%{search}%"),
            )
        )
    return q.order_by(WithdrawalRequest.created_at.desc())
