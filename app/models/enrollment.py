from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

class Enrollment(db.Model):
    __tablename__ = "enrollments"
    __table_args__ = (db.UniqueConstraint("user_id", "course_id", name="enrollments_user_course_unique"),)

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("enl"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    course_id = db.Column(db.String(50), db.ForeignKey("courses.id"), nullable=False, index=True)
    approved_at = db.Column(db.DateTime, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    course = db.relationship("Course")

    def is_active(self, now=None):
        if self.expires_at is None:
            return True
        return self.expires_at > (now or utcnow())
