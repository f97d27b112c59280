from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

SUBSCRIPTION_STATUSES = ("pending", "active", "expired", "rejected")

class ProjectSubscription(db.Model):
    __tablename__ = "project_subscriptions"
    __table_args__ = (
        db.Index(
            "project_subscriptions_user_pending_idx", "user_id",
            unique=True,
            sqlite_where=db.text("status = 'pending'"),
            postgresql_where=db.text("status = 'pending'"),
        ),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("psub"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    payment_screenshot = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    starts_at = db.Column(db.DateTime)
    expires_at = db.Column(db.DateTime)
    approved_by = db.Column(db.String(50), db.ForeignKey("profiles.id"))
    approved_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("Profile", foreign_keys=[user_id], backref="project_subscriptions")

    @property
    def is_current(self):
        return self.status == "active" and self.expires_at is not None and self.expires_at > utcnow()
