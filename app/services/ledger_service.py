import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm.attributes import set_committed_value
from flask import current_app

from app.extensions import db
from app.models.balance_transaction import (
    BalanceTransaction, TRANSACTION_TYPES, SOURCES, REFERENCE_TYPES
)
from app.models.profile import Profile
from app.models.withdrawal_request import WithdrawalRequest
from app.utils.authz import ensure_admin
from app.utils.exceptions import (
    InsufficientFunds, PersistenceConflict, UserNotFound, ValidationError
)
from app.utils.money import quantize, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def apply_transaction(
    user_id,
    amount,
    transaction_type,
    source,
    reference_id=None,
    reference_type=None,
    description=None,
):
    """Append one ledger entry and move the profile balance with it.

    The profile row is locked for the read-modify-write and the balance update
    is a compare-and-swap on the value read, so two writers can never build on
    the same ``balance_before``. Nothing is committed here; the caller owns the
    transaction and rolls back on any error.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero", {"amount": str(amount)})
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type '{transaction_type}'")
    if source not in SOURCES:
        raise ValidationError(f"Unknown transaction source '{source}'")
    if reference_type is not None and reference_type not in REFERENCE_TYPES:
        raise ValidationError(f"Unknown reference type '{reference_type}'")

    profile = (
        Profile.query
        .filter_by(id=user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not profile:
        raise UserNotFound(user_id)

    before = Decimal(profile.balance or 0)
    if transaction_type == "debit":
        if before < amount:
            raise InsufficientFunds(before, amount)
        after = before - amount
    else:
        after = before + amount

    updated = (
        Profile.query
        .filter(Profile.id == user_id, Profile.balance == before)
        .update({"balance": after}, synchronize_session=False)
    )
    if updated != 1:
        raise PersistenceConflict(details={"user_id": user_id})
    set_committed_value(profile, "balance", after)

    tx = BalanceTransaction(
        user_id=user_id,
        user_type=profile.role,
        amount=amount,
        transaction_type=transaction_type,
        source=source,
        reference_id=reference_id,
        reference_type=reference_type,
        description=description,
        balance_before=before,
        balance_after=after,
    )
    db.session.add(tx)
    db.session.flush()

    logger.info(
        "ledger %s %s %s for %s (%s -> %s) ref=%s",
        transaction_type, amount, source, user_id, before, after, reference_id,
    )
    return tx


def credit(user_id, amount, source, reference_id=None, reference_type=None, description=None):
    return apply_transaction(user_id, amount, "credit", source, reference_id, reference_type, description)


def debit(user_id, amount, source, reference_id=None, reference_type=None, description=None):
    return apply_transaction(user_id, amount, "debit", source, reference_id, reference_type, description)


def find_transaction(reference_id, source, user_id=None):
    q = BalanceTransaction.query.filter_by(reference_id=reference_id, source=source)
    if user_id:
        q = q.filter_by(user_id=user_id)
    return q.first()


def _sum(query):
    # SQLite hands back floats for SUM over Numeric
    return quantize(str(query.scalar() or 0))


def get_balance_summary(user_id):
    profile = db.session.get(Profile, user_id)
    if not profile:
        raise UserNotFound(user_id)

    total_earned = _sum(
        db.session.query(func.coalesce(func.sum(BalanceTransaction.amount), 0))
        .filter(BalanceTransaction.user_id == user_id, BalanceTransaction.transaction_type == "credit")
    )
    total_withdrawn = _sum(
        db.session.query(func.coalesce(func.sum(BalanceTransaction.amount), 0))
        .filter(
            BalanceTransaction.user_id == user_id,
            BalanceTransaction.transaction_type == "debit",
            BalanceTransaction.source == "withdrawal",
        )
    )
    pending_withdrawal = _sum(
        db.session.query(func.coalesce(func.sum(WithdrawalRequest.amount), 0))
        .filter(WithdrawalRequest.user_id == user_id, WithdrawalRequest.status == "pending")
    )

    return {
        "balance": Decimal(profile.balance or 0),
        "bank_account_number": profile.bank_account_number,
        "total_earned": total_earned,
        "total_withdrawn": total_withdrawn,
        "pending_withdrawal": pending_withdrawal,
        "currency": current_app.config["CURRENCY"],
    }


def transactions_query(user_id, source=None, transaction_type=None):
    q = BalanceTransaction.query.filter_by(user_id=user_id)
    if source:
        q = q.filter(BalanceTransaction.source == source)
    if transaction_type:
        q = q.filter(BalanceTransaction.transaction_type == transaction_type)
    return q.order_by(BalanceTransaction.created_at.desc(), BalanceTransaction.id.desc())


def verify_ledger(user_id):
    """Recompute a user's balance from the ledger and check each entry's chain."""
    profile = db.session.get(Profile, user_id)
    if not profile:
        raise UserNotFound(user_id)

    entries = (
        BalanceTransaction.query
        .filter_by(user_id=user_id)
        .order_by(BalanceTransaction.created_at.asc())
        .all()
    )
    ledger_sum = sum((tx.signed_amount for tx in entries), ZERO)
    broken = [
        tx.id for tx in entries
        if Decimal(tx.balance_after) != Decimal(tx.balance_before) + tx.signed_amount
    ]
    balance = Decimal(profile.balance or 0)
    return {
        "user_id": user_id,
        "balance": balance,
        "ledger_sum": ledger_sum,
        "entries": len(entries),
        "broken_entries": broken,
        "consistent": balance == ledger_sum and not broken,
    }


def audit_all():
    return [verify_ledger(uid) for (uid,) in db.session.query(Profile.id).order_by(Profile.id)]


def adjust_balance(admin, user_id, amount, direction, description=None):
    """Manual correction by an admin, recorded as an ``admin_adjustment``."""
    ensure_admin(admin)
    if direction not in TRANSACTION_TYPES:
        raise ValidationError("direction must be 'credit' or 'debit'", {"field": "direction"})
    if not (description or "").strip():
        raise ValidationError("A description is required for balance adjustments", {"field": "description"})

    try:
        tx = apply_transaction(
            user_id,
            amount,
            direction,
            "admin_adjustment",
            reference_id=admin.id,
            reference_type="admin_action",
            description=description.strip(),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("admin %s applied %s adjustment of %s to %s", admin.id, direction, tx.amount, user_id)
    return tx
