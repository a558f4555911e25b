import uuid

from app.models.users import UserRole


def test_admin_enrolls_student(client, admin_headers, make_class, student):
    cls = make_class()
    response = client.post(
        f"/api/classes/{cls.id}/enrollments",
        json={"student_id": str(student.id)},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["student"]["email"] == student.email

    listed = client.get(f"/api/classes/{cls.id}/enrollments", headers=admin_headers).json()
    assert [e["student_id"] for e in listed] == [str(student.id)]


def test_duplicate_enrollment_conflicts(client, admin_headers, make_class, enroll, student):
    cls = make_class()
    enroll(cls, student)
    response = client.post(
        f"/api/classes/{cls.id}/enrollments",
        json={"student_id": str(student.id)},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Student is already enrolled in this class"


def test_full_class_rejects_enrollment(client, admin_headers, make_class, enroll, student, make_user):
    cls = make_class(max_students=1)
    enroll(cls, student)
    late = make_user(UserRole.STUDENT, email="late@lms.io")

    response = client.post(
        f"/api/classes/{cls.id}/enrollments",
        json={"student_id": str(late.id)},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Class is full"


def test_only_students_can_be_enrolled(client, admin_headers, make_class, teacher):
    cls = make_class()
    response = client.post(
        f"/api/classes/{cls.id}/enrollments",
        json={"student_id": str(teacher.id)},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Student not found"


def test_enroll_in_missing_class(client, admin_headers, student):
    response = client.post(
        f"/api/classes/{uuid.uuid4()}/enrollments",
        json={"student_id": str(student.id)},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_remove_enrollment(client, admin_headers, make_class, enroll, student):
    cls = make_class()
    enroll(cls, student)

    response = client.delete(f"/api/classes/{cls.id}/enrollments/{student.id}", headers=admin_headers)
    assert response.status_code == 200

    again = client.delete(f"/api/classes/{cls.id}/enrollments/{student.id}", headers=admin_headers)
    assert again.status_code == 404
    assert again.json()["error"] == "Student is not enrolled in this class"


def test_student_self_service(client, make_class, student_headers, teacher_headers):
    cls = make_class()

    joined = client.post(f"/api/classes/{cls.id}/enroll", headers=student_headers)
    assert joined.status_code == 201

    assert client.post(f"/api/classes/{cls.id}/enroll", headers=student_headers).status_code == 409

    left = client.post(f"/api/classes/{cls.id}/unenroll", headers=student_headers)
    assert left.status_code == 200

    assert client.post(f"/api/classes/{cls.id}/unenroll", headers=student_headers).status_code == 404

    # teachers do not enroll themselves
    assert client.post(f"/api/classes/{cls.id}/enroll", headers=teacher_headers).status_code == 403


def test_teacher_sees_roster_of_own_class(client, make_class, enroll, student, teacher_headers):
    cls = make_class()
    enroll(cls, student)
    response = client.get("/api/students/by-class", params={"class_id": str(cls.id)}, headers=teacher_headers)
    assert response.status_code == 200
    assert [s["email"] for s in response.json()["students"]] == [student.email]
