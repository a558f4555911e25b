import os
import tempfile
from datetime import date, timedelta

# settings are read at import time, so point them somewhere harmless first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="lms-uploads-"))
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core import security
from app.core.config import settings
from app.core.database import Base, build_engine, get_db
from app.main import app
from app.models.auth import User
from app.models.lms import Class, ClassEnrollment
from app.models.users import UserRole

PASSWORD = "secret123"


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture()
def client(engine, upload_dir):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make_user(role=UserRole.STUDENT, email=None, name=None, password=PASSWORD, **extra):
        count = db.query(User).count()
        user = User(
            email=email or f"{role.value.lower()}{count}@lms.io",
            name=name or f"{role.value.title()} {count}",
            password_hash=security.get_password_hash(password),
            role=role,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@lms.io", name="Ada Admin")


@pytest.fixture()
def teacher(make_user):
    return make_user(UserRole.TEACHER, email="teacher@lms.io", name="Tom Teacher")


@pytest.fixture()
def student(make_user):
    return make_user(UserRole.STUDENT, email="student@lms.io", name="Sam Student")


def auth_headers(user):
    return {"Authorization": f"Bearer {security.create_access_token(user.id)}"}


@pytest.fixture()
def headers_for():
    return auth_headers


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def teacher_headers(teacher):
    return auth_headers(teacher)


@pytest.fixture()
def student_headers(student):
    return auth_headers(student)


@pytest.fixture()
def make_class(db, teacher):
    def _make_class(owner=None, **overrides):
        today = date.today()
        data = {
            "name": "Conversational English",
            "description": "Weekly speaking practice",
            "teacher_id": (owner or teacher).id,
            "start_date": today - timedelta(days=7),
            "end_date": today + timedelta(days=60),
            "max_students": 30,
            "schedule": "Mon, Wed 18:00-20:00",
        }
        data.update(overrides)
        cls = Class(**data)
        db.add(cls)
        db.commit()
        db.refresh(cls)
        return cls

    return _make_class


@pytest.fixture()
def enroll(db):
    def _enroll(cls, user):
        enrollment = ClassEnrollment(class_id=cls.id, student_id=user.id)
        db.add(enrollment)
        db.commit()
        return enrollment

    return _enroll
