from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

WITHDRAWAL_STATUSES = ("pending", "approved", "rejected", "completed")

class WithdrawalRequest(db.Model):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        db.Index(
            "withdrawal_requests_user_pending_idx", "user_id",
            unique=True,
            sqlite_where=db.text("status = 'pending'"),
            postgresql_where=db.text("status = 'pending'"),
        ),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("wd"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    user_type = db.Column(db.String(20), nullable=False)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    bank_account_number = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    admin_notes = db.Column(db.Text)

    processed_at = db.Column(db.DateTime)
    processed_by = db.Column(db.String(50), db.ForeignKey("profiles.id"))

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("Profile", foreign_keys=[user_id], backref="withdrawals")
