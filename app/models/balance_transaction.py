from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

TRANSACTION_TYPES = ("credit", "debit")
SOURCES = ("referral_commission", "course_purchase", "withdrawal", "admin_adjustment")
REFERENCE_TYPES = ("enrollment_request", "withdrawal_request", "admin_action")

class BalanceTransaction(db.Model):
    __tablename__ = "balance_transactions"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="balance_transactions_amount_check"),
        db.Index("balance_transactions_reference_idx", "reference_id", "reference_type"),
        db.Index("balance_transactions_user_created_idx", "user_id", "created_at"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("btx"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    user_type = db.Column(db.String(20), nullable=False)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    transaction_type = db.Column(db.String(10), nullable=False)
    source = db.Column(db.String(30), nullable=False, index=True)

    reference_id = db.Column(db.String(50))
    reference_type = db.Column(db.String(30))
    description = db.Column(db.String(255))

    balance_before = db.Column(db.Numeric(10, 2), nullable=False)
    balance_after = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship("Profile", backref="balance_transactions")

    @property
    def signed_amount(self):
        return self.amount if self.transaction_type == "credit" else -self.amount
