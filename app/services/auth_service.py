import logging
import re
from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.course import Course
from app.models.profile import Profile
from app.services import referral_service
from app.utils.auth_utils import check_password, hash_password, normalize_email
from app.utils.exceptions import ServiceError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,30}$")
SELF_SERVICE_ROLES = ("student", "lecturer")


def register_user(email, password, username, full_name=None, role="student",
                  signup_referral_code=None, signup_course_id=None):
    email = normalize_email(email)
    if not email or not password or not username:
        raise ValidationError("email, password and username are required")
    username = username.strip()
    if not USERNAME_RE.match(username):
        raise ValidationError(
            "Username must be 3-30 characters: letters, numbers and underscores",
            {"field": "username"},
        )
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"Could not register {role}", {"field": "role"})

    if Profile.query.filter_by(email=email).first():
        raise ServiceError("USER_EXISTS", "User with that email already exists", {"field": "email"}, status=409)
    if Profile.query.filter_by(username=username).first():
        raise ServiceError("USER_EXISTS", "Username already exists", {"field": "username"}, status=409)

    # an unknown signup code is dropped rather than failing registration
    signup_code = referral_service.normalize_code(signup_referral_code)
    if signup_code and not referral_service.find_referrer(signup_code):
        logger.info("ignoring unknown signup referral code %r for %s", signup_code, email)
        signup_code = None

    referred_course = None
    if signup_code and signup_course_id:
        course = db.session.get(Course, signup_course_id) if isinstance(signup_course_id, str) else None
        referred_course = course.id if course else None

    user = Profile(
        email=email,
        username=username,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        balance=0,
        referral_code=referral_service.generate_referral_code(),
        signup_referral_code=signup_code,
        referred_for_course_id=referred_course,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ServiceError("USER_EXISTS", "User already exists", status=409)
    logger.info("registered %s %s", role, user.id)
    return user


def authenticate_user(email, password):
    user = Profile.query.filter_by(email=normalize_email(email)).first()
    if not user or not user.is_active or not check_password(password or "", user.password_hash):
        raise Unauthorized("Invalid credentials")
    return user


def generate_tokens_for_user(user):
    access = create_access_token(identity=user.id, expires_delta=timedelta(seconds=current_app.config.get("ACCESS_EXPIRES", 86400)))
    refresh = create_refresh_token(identity=user.id, expires_delta=timedelta(seconds=current_app.config.get("REFRESH_EXPIRES", 86400)))
    return access, refresh
