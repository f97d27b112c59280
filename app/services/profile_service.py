import re

from app.extensions import db
from app.models.profile import Profile
from app.utils.authz import ensure_admin
from app.utils.exceptions import UserNotFound, ValidationError

GEORGIAN_IBAN_RE = re.compile(r"^GE[0-9]{2}[A-Z]{2}[0-9]{16}$")


def update_bank_account(user, bank_account_number):
    if not isinstance(bank_account_number, str) or not bank_account_number.strip():
        raise ValidationError("Bank account number is required", {"field": "bankAccountNumber"})

    iban = bank_account_number.strip().upper().replace(" ", "")
    if not GEORGIAN_IBAN_RE.match(iban):
        raise ValidationError(
            "Invalid Georgian IBAN format. Must be 22 characters: GE + 2 digits + 2 letters + 16 digits",
            {"field": "bankAccountNumber"},
        )

    user.bank_account_number = iban
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def deactivate_profile(admin, user_id):
    """Profiles are never deleted; deactivation blocks login and referral use."""
    ensure_admin(admin)
    user = db.session.get(Profile, user_id)
    if not user:
        raise UserNotFound(user_id)
    if user.id == admin.id:
        raise ValidationError("Admins cannot deactivate themselves")
    user.is_active = False
    db.session.commit()
    return user
