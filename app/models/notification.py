from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("notif"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    created_by = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=True)

    type = db.Column(db.String(50), default="info")  # e.g. 'enrollment_approved', 'withdrawal_rejected'
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    details = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=utcnow)
