from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

ROLES = ("student", "lecturer", "admin")

class Profile(db.Model):
    __tablename__ = "profiles"
    __table_args__ = (
        db.CheckConstraint("balance >= 0", name="profiles_balance_check"),
        db.CheckConstraint("role IN ('student', 'lecturer', 'admin')", name="profiles_role_check"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(30), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(20), nullable=False, default="student")

    balance = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    bank_account_number = db.Column(db.String(64), nullable=True)

    referral_code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    signup_referral_code = db.Column(db.String(20), nullable=True, index=True)
    referred_for_course_id = db.Column(db.String(50), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self):
        return self.role == "admin" and self.is_active
