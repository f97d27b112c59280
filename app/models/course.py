from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

class Course(db.Model):
    __tablename__ = "courses"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="courses_price_check"),
        db.CheckConstraint(
            "referral_commission_percentage >= 0 AND referral_commission_percentage <= 100",
            name="courses_referral_commission_check",
        ),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("crs"))
    title = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    lecturer_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=True, index=True)
    referral_commission_percentage = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    lecturer = db.relationship("Profile", foreign_keys=[lecturer_id], backref="courses")
