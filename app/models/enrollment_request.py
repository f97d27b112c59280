from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

REQUEST_STATUSES = ("pending", "approved", "rejected")

class EnrollmentRequest(db.Model):
    __tablename__ = "enrollment_requests"
    __table_args__ = (
        db.CheckConstraint(
            "(course_id IS NOT NULL AND bundle_id IS NULL) OR (course_id IS NULL AND bundle_id IS NOT NULL)",
            name="enrollment_requests_target_check",
        ),
        # at most one pending request per (user, course) and per (user, bundle)
        db.Index(
            "enrollment_requests_user_course_pending_idx", "user_id", "course_id",
            unique=True,
            sqlite_where=db.text("status = 'pending' AND course_id IS NOT NULL"),
            postgresql_where=db.text("status = 'pending' AND course_id IS NOT NULL"),
        ),
        db.Index(
            "enrollment_requests_user_bundle_pending_idx", "user_id", "bundle_id",
            unique=True,
            sqlite_where=db.text("status = 'pending' AND bundle_id IS NOT NULL"),
            postgresql_where=db.text("status = 'pending' AND bundle_id IS NOT NULL"),
        ),
        db.Index("enrollment_requests_status_idx", "status"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("enr"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    course_id = db.Column(db.String(50), db.ForeignKey("courses.id"), nullable=True)
    bundle_id = db.Column(db.String(50), db.ForeignKey("course_bundles.id"), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")
    payment_screenshots = db.Column(db.JSON, nullable=False, default=list)
    referral_code = db.Column(db.String(20), nullable=True)
    is_re_enrollment = db.Column(db.Boolean, nullable=False, default=False)

    reviewed_by = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("Profile", foreign_keys=[user_id], backref="enrollment_requests")
    course = db.relationship("Course")
    bundle = db.relationship("CourseBundle")

    @property
    def kind(self):
        return "bundle" if self.bundle_id else "course"
