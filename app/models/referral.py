from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

class ReferralAttribution(db.Model):
    __tablename__ = "referrals"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("ref"))
    referrer_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    referred_user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    referral_code = db.Column(db.String(20), nullable=False)
    # one attribution per enrollment request
    enrollment_request_id = db.Column(db.String(50), db.ForeignKey("enrollment_requests.id"), unique=True, nullable=False)
    course_id = db.Column(db.String(50), db.ForeignKey("courses.id"), nullable=True)
    origin = db.Column(db.String(20), nullable=False, default="explicit")  # 'explicit' | 'signup'
    transaction_id = db.Column(db.String(50), db.ForeignKey("balance_transactions.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    transaction = db.relationship("BalanceTransaction")
