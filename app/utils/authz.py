"""Authorization guards evaluated in-process.

Routes resolve the caller with :func:`current_profile` and services re-check
capabilities with :func:`ensure_admin` / :func:`ensure_owner_or_admin`.
Ledger functions run with system privilege and never check the actor, so they
must only be reached after one of these guards has passed.
"""
from functools import wraps

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from app.extensions import db
from app.models.profile import Profile
from app.utils.exceptions import Forbidden, Unauthorized


def current_profile():
    uid = get_jwt_identity()
    profile = db.session.get(Profile, uid) if uid else None
    if not profile or not profile.is_active:
        raise Unauthorized("User not found or inactive")
    return profile


def ensure_admin(profile):
    if not profile or not profile.is_admin:
        raise Forbidden("Admin access required")
    return profile


def ensure_owner_or_admin(profile, owner_id):
    if not profile:
        raise Forbidden("Access denied")
    if profile.id != owner_id and not profile.is_admin:
        raise Forbidden("Access denied")
    return profile


def admin_required(fn):
    """Require a valid token belonging to an active admin; passes ``admin``."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        admin = ensure_admin(current_profile())
        return fn(*args, admin=admin, **kwargs)
    return wrapper
