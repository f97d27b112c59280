from app.extensions import ma
from app.schemas.profile_schema import ProfilePublicSchema

class CourseSummarySchema(ma.Schema):
    id = ma.String()
    title = ma.String()
    price = ma.Float()
    referral_commission_percentage = ma.Integer()


class BundleSummarySchema(ma.Schema):
    id = ma.String()
    title = ma.String()
    price = ma.Float()
    course_ids = ma.List(ma.String())


class EnrollmentRequestSchema(ma.Schema):
    id = ma.String()
    user_id = ma.String()
    kind = ma.String()
    course_id = ma.String(allow_none=True)
    bundle_id = ma.String(allow_none=True)
    status = ma.String()
    payment_screenshots = ma.List(ma.String())
    referral_code = ma.String(allow_none=True)
    is_re_enrollment = ma.Boolean()
    reviewed_by = ma.String(allow_none=True)
    reviewed_at = ma.DateTime(allow_none=True)
    rejection_reason = ma.String(allow_none=True)
    created_at = ma.DateTime()
    updated_at = ma.DateTime()
    course = ma.Nested(CourseSummarySchema, allow_none=True)
    bundle = ma.Nested(BundleSummarySchema, allow_none=True)


class AdminEnrollmentRequestSchema(EnrollmentRequestSchema):
    user = ma.Nested(ProfilePublicSchema)


class EnrollmentSchema(ma.Schema):
    id = ma.String()
    user_id = ma.String()
    course_id = ma.String()
    approved_at = ma.DateTime()
    expires_at = ma.DateTime(allow_none=True)
    is_active = ma.Method("get_is_active")
    course = ma.Nested(CourseSummarySchema)

    def get_is_active(self, obj):
        return obj.is_active()
