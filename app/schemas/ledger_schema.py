from app.extensions import ma
from app.schemas.profile_schema import ProfilePublicSchema

class BalanceTransactionSchema(ma.Schema):
    id = ma.String()
    user_id = ma.String()
    user_type = ma.String()
    amount = ma.Float()
    transaction_type = ma.String()
    source = ma.String()
    reference_id = ma.String(allow_none=True)
    reference_type = ma.String(allow_none=True)
    description = ma.String(allow_none=True)
    balance_before = ma.Float()
    balance_after = ma.Float()
    created_at = ma.DateTime()


class WithdrawalRequestSchema(ma.Schema):
    id = ma.String()
    user_id = ma.String()
    user_type = ma.String()
    amount = ma.Float()
    bank_account_number = ma.String()
    status = ma.String()
    admin_notes = ma.String(allow_none=True)
    processed_at = ma.DateTime(allow_none=True)
    processed_by = ma.String(allow_none=True)
    created_at = ma.DateTime()
    updated_at = ma.DateTime()


class AdminWithdrawalRequestSchema(WithdrawalRequestSchema):
    user = ma.Nested(ProfilePublicSchema)
    user_balance = ma.Method("get_user_balance")

    def get_user_balance(self, obj):
        return float(obj.user.balance) if obj.user else None


class BalanceSummarySchema(ma.Schema):
    balance = ma.Float()
    bank_account_number = ma.String(allow_none=True)
    pending_withdrawal = ma.Float(data_key="pendingWithdrawal")
    total_earned = ma.Float(data_key="totalEarned")
    total_withdrawn = ma.Float(data_key="totalWithdrawn")
    currency = ma.String()
