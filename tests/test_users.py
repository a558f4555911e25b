import uuid
from datetime import timedelta

from app.models.auth import User
from app.models.lms import Assignment, SubmissionFile
from app.models.users import UserRole
from app.utils.schedule import utcnow


def test_admin_lists_users_by_role(client, admin_headers, teacher, student):
    response = client.get("/api/users", params={"role": "TEACHER"}, headers=admin_headers)
    assert response.status_code == 200
    assert [u["email"] for u in response.json()] == [teacher.email]


def test_teacher_cannot_list_users(client, teacher_headers):
    response = client.get("/api/users", headers=teacher_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Role 'TEACHER' is not allowed to access this resource"


def test_admin_creates_teacher(client, admin_headers):
    response = client.post(
        "/api/users",
        json={
            "name": "Grace Teacher",
            "email": "grace@lms.io",
            "password": "secret123",
            "role": "TEACHER",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["role"] == "TEACHER"


def test_admin_create_duplicate_email(client, admin_headers, student):
    response = client.post(
        "/api/users",
        json={"name": "Dup", "email": student.email, "password": "secret123"},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_user_updates_own_name(client, student, student_headers):
    response = client.put(
        f"/api/users/{student.id}", json={"name": "Samantha"}, headers=student_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Samantha"


def test_user_cannot_promote_self(client, student, student_headers):
    response = client.put(
        f"/api/users/{student.id}", json={"role": "ADMIN"}, headers=student_headers
    )
    assert response.status_code == 403


def test_user_cannot_read_someone_else(client, teacher, student_headers):
    response = client.get(f"/api/users/{teacher.id}", headers=student_headers)
    assert response.status_code == 403


def test_update_to_taken_email(client, admin_headers, student, teacher):
    response = client.put(
        f"/api/users/{student.id}", json={"email": teacher.email}, headers=admin_headers
    )
    assert response.status_code == 409


def test_delete_requires_admin(client, student, teacher, teacher_headers, student_headers):
    response = client.delete(f"/api/users/{student.id}", headers=teacher_headers)
    assert response.status_code == 403

    by_student = client.delete(f"/api/users/{teacher.id}", headers=student_headers)
    assert by_student.status_code == 403


def test_admin_cannot_delete_self(client, admin, admin_headers):
    response = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400


def test_delete_teacher_with_classes_conflicts(client, admin_headers, teacher, make_class):
    make_class()
    response = client.delete(f"/api/users/{teacher.id}", headers=admin_headers)
    assert response.status_code == 409


def test_delete_student(client, db, admin_headers, student):
    response = client.delete(f"/api/users/{student.id}", headers=admin_headers)
    assert response.status_code == 200
    assert db.query(User).filter(User.id == student.id).count() == 0

    missing = client.delete(f"/api/users/{uuid.uuid4()}", headers=admin_headers)
    assert missing.status_code == 404


def test_delete_student_removes_stored_files(
    client, db, admin_headers, make_class, enroll, student, student_headers, upload_dir
):
    cls = make_class()
    enroll(cls, student)
    assignment = Assignment(
        title="Essay",
        description="Write",
        class_id=cls.id,
        teacher_id=cls.teacher_id,
        due_date=utcnow() + timedelta(days=3),
    )
    db.add(assignment)
    db.commit()

    avatar_url = client.post(
        "/api/profile/avatar",
        files={"file": ("me.png", b"\x89PNG\r\n", "image/png")},
        headers=student_headers,
    ).json()["avatar_url"]
    submission_id = client.post(
        "/api/submissions",
        json={"assignment_id": str(assignment.id), "content": "Draft one"},
        headers=student_headers,
    ).json()["id"]
    file_url = client.post(
        "/api/submission-files",
        data={"submission_id": submission_id},
        files={"file": ("essay.txt", b"My essay", "text/plain")},
        headers=student_headers,
    ).json()["file_url"]

    stored = [upload_dir / url.split("/uploads/", 1)[1] for url in (avatar_url, file_url)]
    assert all(path.exists() for path in stored)

    response = client.delete(f"/api/users/{student.id}", headers=admin_headers)
    assert response.status_code == 200
    assert db.query(SubmissionFile).count() == 0
    assert not any(path.exists() for path in stored)


def test_students_and_teachers_directories(client, admin_headers, make_user, make_class, enroll):
    teacher = make_user(UserRole.TEACHER, email="t2@lms.io")
    pupil = make_user(UserRole.STUDENT, email="pupil@lms.io")
    cls = make_class(owner=teacher)
    enroll(cls, pupil)

    students = client.get("/api/students", headers=admin_headers).json()
    assert [s["email"] for s in students] == ["pupil@lms.io"]

    classes = client.get(f"/api/students/{pupil.id}/classes", headers=admin_headers).json()
    assert [c["id"] for c in classes] == [str(cls.id)]

    taught = client.get(f"/api/teachers/{teacher.id}/classes", headers=admin_headers).json()
    assert [c["id"] for c in taught] == [str(cls.id)]
