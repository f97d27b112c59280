from app.extensions import ma
from app.schemas.profile_schema import ProfilePublicSchema

class ProjectSubscriptionSchema(ma.Schema):
    id = ma.String()
    user_id = ma.String()
    price = ma.Float()
    payment_screenshot = ma.String()
    status = ma.String()
    starts_at = ma.DateTime(allow_none=True)
    expires_at = ma.DateTime(allow_none=True)
    approved_by = ma.String(allow_none=True)
    approved_at = ma.DateTime(allow_none=True)
    created_at = ma.DateTime()
    updated_at = ma.DateTime()


class AdminProjectSubscriptionSchema(ProjectSubscriptionSchema):
    user = ma.Nested(ProfilePublicSchema)
