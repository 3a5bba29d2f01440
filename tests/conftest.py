import os
from datetime import datetime, timezone

import pytest
from flask_jwt_extended import create_access_token

from nominal_roll_api import create_app
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import UserRole
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.models.user import User
from nominal_roll_api.services import approval_ledger


@pytest.fixture(scope="function")
def app(tmp_path):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    app.config["PROFILE_IMAGE_ROOT"] = str(tmp_path / "images")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def freeze_month(monkeypatch):
    """Pin the ledger clock: freeze_month(2026, 3) -> 15 March 2026, 10:00 UTC."""
    def _freeze(year, month, day=15):
        stamp = datetime(year, month, day, 10, 0, tzinfo=timezone.utc)
        monkeypatch.setattr(approval_ledger, "_utcnow", lambda: stamp)
        return stamp
    return _freeze


def make_staff(session, staff_id, emiscode=100, school=None, **kw):
    x = StaffMember(
        staff_id=staff_id,
        name=kw.pop("name", f"Staff {staff_id}"),
        school=school or f"School {emiscode}",
        emiscode=emiscode,
        **kw,
    )
    session.add(x)
    session.commit()
    return x


def make_user(session, staff_id, role=UserRole.TEACHER.value, emiscode=100, password="secret1", **kw):
    u = User(
        email=kw.pop("email", f"{staff_id}@demo.local"),
        staff_id=staff_id,
        emiscode=emiscode,
        role=role,
        full_name=kw.pop("full_name", f"User {staff_id}"),
    )
    u.set_password(password)
    session.add(u)
    session.commit()
    return u


def make_headteacher(session, staff_id, emiscode, school=None):
    """Admin user plus the staff record it is linked to."""
    x = make_staff(session, staff_id, emiscode=emiscode, school=school,
                   stafftype="headteacher", authorised=True)
    u = make_user(session, staff_id, role=UserRole.ADMIN.value, emiscode=emiscode)
    return u, x


def auth_header(user):
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}
