from app.extensions import db
from app.utils.dates import utcnow
from app.utils.ids import gen_uuid

class CourseBundle(db.Model):
    __tablename__ = "course_bundles"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("bdl"))
    title = db.Column(db.String(255), nullable=False)
    lecturer_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    items = db.relationship("CourseBundleItem", backref="bundle", cascade="all, delete-orphan")

    @property
    def course_ids(self):
        return [item.course_id for item in self.items]


class CourseBundleItem(db.Model):
    __tablename__ = "course_bundle_items"
    __table_args__ = (db.UniqueConstraint("bundle_id", "course_id", name="course_bundle_items_unique"),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    bundle_id = db.Column(db.String(50), db.ForeignKey("course_bundles.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = db.Column(db.String(50), db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)


class BundleEnrollment(db.Model):
    __tablename__ = "bundle_enrollments"
    __table_args__ = (db.UniqueConstraint("user_id", "bundle_id", name="bundle_enrollments_unique"),)

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("bde"))
    user_id = db.Column(db.String(50), db.ForeignKey("profiles.id"), nullable=False, index=True)
    bundle_id = db.Column(db.String(50), db.ForeignKey("course_bundles.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
