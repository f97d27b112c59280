from app.extensions import ma

class ProfilePublicSchema(ma.Schema):
    id = ma.String()
    username = ma.String()
    full_name = ma.String()
    role = ma.String()


class ProfileSchema(ProfilePublicSchema):
    email = ma.String()
    balance = ma.Float()
    bank_account_number = ma.String(allow_none=True)
    referral_code = ma.String()
    signup_referral_code = ma.String(allow_none=True)
    referred_for_course_id = ma.String(allow_none=True)
    is_active = ma.Boolean()
    created_at = ma.DateTime()
