from app.core import security
from app.models.auth import UserSession
from app.models.users import UserRole

PASSWORD = "secret123"


def login(client, email, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_signup_creates_student(client):
    """Self-registration always yields a student account with a normalised email."""
    response = client.post(
        "/api/auth/signup",
        json={"name": "New Person", "email": "New.Person@lms.io", "password": "secret123"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "STUDENT"
    assert data["email"] == "new.person@lms.io"
    assert "password_hash" not in data


def test_signup_duplicate_email(client, student):
    response = client.post(
        "/api/auth/signup",
        json={"name": "Copy Cat", "email": student.email, "password": "secret123"},
    )
    assert response.status_code == 409
    assert "already exists" in response.json()["error"]


def test_signup_validation_error_shape(client):
    response = client.post(
        "/api/auth/signup",
        json={"name": "Shorty", "email": "shorty@lms.io", "password": "123"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation error"
    assert body["details"][0]["field"] == "password"


def test_login_returns_tokens_and_redirect(client, student, admin):
    response = login(client, student.email)
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "STUDENT"
    assert data["redirect_to"] == "/dashboard"
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]
    assert "access_token" in response.cookies

    assert login(client, admin.email).json()["redirect_to"] == "/admin"


def test_login_bad_password(client, student):
    response = login(client, student.email, "wrong-password")
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


def test_login_unknown_email(client):
    response = login(client, "nobody@lms.io")
    assert response.status_code == 401


def test_login_inactive_account(client, make_user):
    user = make_user(UserRole.STUDENT, email="gone@lms.io", is_active=False)
    response = login(client, user.email)
    assert response.status_code == 403


def test_repeated_failures_lock_account(client, student, db):
    """Five bad passwords lock the account, even against the right password."""
    for _ in range(4):
        assert login(client, student.email, "nope").status_code == 401

    locked = login(client, student.email, "nope")
    assert locked.status_code == 403
    assert "locked" in locked.json()["error"]

    assert login(client, student.email).status_code == 403

    db.expire_all()
    db.refresh(student)
    assert student.locked_until is not None
    assert student.failed_login_attempts == 0


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Not authenticated"


def test_me_with_bearer_token(client, teacher, headers_for):
    response = client.get("/api/auth/me", headers=headers_for(teacher))
    assert response.status_code == 200
    assert response.json()["email"] == teacher.email


def test_refresh_token_is_not_an_access_token(client, student):
    token = security.create_refresh_token(student.id)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_garbage_token_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_inactive_user_token_rejected(client, make_user, headers_for):
    user = make_user(UserRole.TEACHER, email="retired@lms.io", is_active=False)
    response = client.get("/api/auth/me", headers=headers_for(user))
    assert response.status_code == 403


def test_refresh_and_logout(client, student, db):
    tokens = login(client, student.email).json()

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["role"] == "STUDENT"
    assert refreshed.json()["access_token"]

    out = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert out.status_code == 200
    assert db.query(UserSession).filter(UserSession.user_id == student.id).count() == 0

    again = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert again.status_code == 401
