from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from app.main import create_app
from app.extensions import db as _db
from app.models.bundle import CourseBundle, CourseBundleItem
from app.models.course import Course
from app.models.profile import Profile
from app.services import ledger_service
from app.services.referral_service import generate_referral_code
from app.utils.auth_utils import hash_password


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_profile(db):
    counter = {"n": 0}

    def _make(role="student", balance=None, password="secret123", **kwargs):
        counter["n"] += 1
        n = counter["n"]
        profile = Profile(
            email=kwargs.pop("email", f"{role}{n}@example.com"),
            username=kwargs.pop("username", f"{role}_{n}"),
            password_hash=hash_password(password),
            full_name=kwargs.pop("full_name", f"{role.title()} {n}"),
            role=role,
            balance=0,
            referral_code=kwargs.pop("referral_code", None) or generate_referral_code(),
            **kwargs,
        )
        db.session.add(profile)
        db.session.commit()
        if balance:
            # seed through the ledger so balance and history agree
            ledger_service.credit(profile.id, Decimal(str(balance)), "admin_adjustment", description="seed")
            db.session.commit()
        return profile

    return _make


@pytest.fixture
def student(make_profile):
    return make_profile("student")


@pytest.fixture
def lecturer(make_profile):
    return make_profile("lecturer")


@pytest.fixture
def admin(make_profile):
    return make_profile("admin")


@pytest.fixture
def make_course(db, lecturer):
    def _make(price="100.00", commission=10, **kwargs):
        course = Course(
            title=kwargs.pop("title", "Python Basics"),
            price=Decimal(price),
            lecturer_id=kwargs.pop("lecturer_id", lecturer.id),
            referral_commission_percentage=commission,
            **kwargs,
        )
        db.session.add(course)
        db.session.commit()
        return course

    return _make


@pytest.fixture
def course(make_course):
    return make_course()


@pytest.fixture
def bundle(db, lecturer, make_course):
    first = make_course(title="Algebra")
    second = make_course(title="Geometry")
    bundle = CourseBundle(title="Math Pack", lecturer_id=lecturer.id, price=Decimal("150.00"))
    bundle.items = [CourseBundleItem(course_id=first.id), CourseBundleItem(course_id=second.id)]
    db.session.add(bundle)
    db.session.commit()
    return bundle


@pytest.fixture
def auth_headers(app):
    def _headers(profile):
        token = create_access_token(identity=profile.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
