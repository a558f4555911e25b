import uuid
from datetime import timedelta

import pytest

from app.core.config import settings
from app.models.lms import Assignment, AssignmentSubmission, SubmissionStatus
from app.models.users import Notification, NotificationType, UserRole
from app.utils.schedule import utcnow


@pytest.fixture()
def assignment(db, make_class, enroll, student):
    cls = make_class()
    enroll(cls, student)
    assignment = Assignment(
        title="Letter to a friend",
        description="Informal register",
        class_id=cls.id,
        teacher_id=cls.teacher_id,
        due_date=utcnow() + timedelta(days=5),
        points=20,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def submit(client, headers, assignment_id, **extra):
    payload = {"assignment_id": str(assignment_id), "content": "Dear Alex,"}
    payload.update(extra)
    return client.post("/api/submissions", json=payload, headers=headers)


def test_submit_then_resubmit(client, db, assignment, teacher, student_headers):
    first = submit(client, student_headers, assignment.id)
    assert first.status_code == 201
    assert first.json()["status"] == "submitted"
    assert first.json()["submitted_at"] is not None
    assert first.json()["assignment_title"] == "Letter to a friend"

    second = submit(client, student_headers, assignment.id, content="Dear Alex, again")
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["content"] == "Dear Alex, again"

    assert db.query(AssignmentSubmission).count() == 1
    teacher_notes = db.query(Notification).filter(Notification.user_id == teacher.id).all()
    assert {n.type for n in teacher_notes} == {NotificationType.SUBMISSION}


def test_submit_requires_enrollment(client, assignment, make_user, headers_for):
    outsider = make_user(UserRole.STUDENT, email="outsider@lms.io")
    response = submit(client, headers_for(outsider), assignment.id)
    assert response.status_code == 403


def test_teacher_cannot_submit(client, assignment, teacher_headers):
    assert submit(client, teacher_headers, assignment.id).status_code == 403


def test_grade_bounds(client, assignment, student_headers, teacher_headers):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]

    too_high = client.post(
        "/api/submissions/grade",
        json={"submission_id": submission_id, "grade": 21},
        headers=teacher_headers,
    )
    assert too_high.status_code == 400
    assert too_high.json()["error"] == "Grade must be between 0 and 20"

    negative = client.post(
        "/api/submissions/grade",
        json={"submission_id": submission_id, "grade": -1},
        headers=teacher_headers,
    )
    assert negative.status_code == 400


def test_grade_notifies_student(client, db, assignment, student, student_headers, teacher_headers):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]

    response = client.post(
        "/api/submissions/grade",
        json={"submission_id": submission_id, "grade": 17.5, "feedback": "Nice opening"},
        headers=teacher_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "graded"
    assert data["grade"] == 17.5
    assert data["feedback"] == "Nice opening"
    assert data["graded_at"] is not None

    notes = db.query(Notification).filter(Notification.user_id == student.id).all()
    assert any(n.title == "Assignment graded" for n in notes)

    # graded work is frozen
    assert submit(client, student_headers, assignment.id).status_code == 409


def test_drafts_cannot_be_graded(client, assignment, student_headers, teacher_headers):
    draft = submit(client, student_headers, assignment.id, status="draft")
    assert draft.status_code == 201
    assert draft.json()["submitted_at"] is None

    response = client.post(
        "/api/submissions/grade",
        json={"submission_id": draft.json()["id"], "grade": 10},
        headers=teacher_headers,
    )
    assert response.status_code == 400


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_grade_must_be_finite(client, db, assignment, student, student_headers, teacher_headers, value):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]

    response = client.post(
        "/api/submissions/grade",
        content=f'{{"submission_id": "{submission_id}", "grade": {value}}}',
        headers={"Content-Type": "application/json", **teacher_headers},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"

    stored = client.get(f"/api/submissions/{submission_id}", headers=teacher_headers).json()
    assert stored["status"] == "submitted"
    assert stored["grade"] is None
    graded_notes = db.query(Notification).filter(
        Notification.user_id == student.id, Notification.title == "Assignment graded"
    )
    assert graded_notes.count() == 0


def test_back_to_draft_clears_submitted_at(client, db, assignment, student_headers):
    assignment.due_date = utcnow() - timedelta(days=1)
    db.commit()

    submitted = submit(client, student_headers, assignment.id)
    assert submitted.json()["submitted_at"] is not None
    late = client.get(f"/api/assignments/{assignment.id}", headers=student_headers).json()
    assert late["is_late"] is True

    draft = submit(client, student_headers, assignment.id, status="draft")
    assert draft.status_code == 200
    assert draft.json()["status"] == "draft"
    assert draft.json()["submitted_at"] is None

    mine = client.get(f"/api/assignments/{assignment.id}", headers=student_headers).json()
    assert mine["is_late"] is False
    assert mine["status"] == "overdue"


def test_other_teacher_cannot_grade(client, assignment, student_headers, make_user, headers_for):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]
    stranger = make_user(UserRole.TEACHER, email="stranger@lms.io")
    response = client.post(
        "/api/submissions/grade",
        json={"submission_id": submission_id, "grade": 10},
        headers=headers_for(stranger),
    )
    assert response.status_code == 403


def test_grade_missing_submission(client, teacher_headers):
    response = client.post(
        "/api/submissions/grade",
        json={"submission_id": str(uuid.uuid4()), "grade": 10},
        headers=teacher_headers,
    )
    assert response.status_code == 404


def test_teacher_queue_defaults_to_submitted(client, db, assignment, student, student_headers, teacher_headers):
    submit(client, student_headers, assignment.id, status="draft")
    assert client.get("/api/submissions", headers=teacher_headers).json() == []

    submit(client, student_headers, assignment.id)
    queue = client.get("/api/submissions", headers=teacher_headers).json()
    assert [s["student_id"] for s in queue] == [str(student.id)]

    graded = client.get("/api/submissions", params={"status": "graded"}, headers=teacher_headers).json()
    assert graded == []


def test_submission_visibility(client, assignment, student_headers, make_user, headers_for, enroll, db):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]

    assert client.get(f"/api/submissions/{submission_id}", headers=student_headers).status_code == 200

    classmate = make_user(UserRole.STUDENT, email="classmate@lms.io")
    enroll(assignment.class_, classmate)
    response = client.get(f"/api/submissions/{submission_id}", headers=headers_for(classmate))
    assert response.status_code == 403


# ==================== FILES ====================


def upload_submission_file(client, headers, submission_id, name="essay.txt", body=b"My essay"):
    return client.post(
        "/api/submission-files",
        data={"submission_id": submission_id},
        files={"file": (name, body, "text/plain")},
        headers=headers,
    )


def test_submission_file_upload(client, assignment, student_headers, upload_dir):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]

    response = upload_submission_file(client, student_headers, submission_id)
    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"id", "file_url", "file_name"}
    assert data["file_name"] == "essay.txt"

    prefix = f"{settings.PUBLIC_BASE_URL}/uploads/"
    assert data["file_url"].startswith(prefix + f"submissions/{submission_id}/")
    assert (upload_dir / data["file_url"][len(prefix):]).exists()

    detail = client.get(f"/api/submissions/{submission_id}", headers=student_headers).json()
    assert [f["file_name"] for f in detail["files"]] == ["essay.txt"]


def test_cannot_attach_to_someone_elses_submission(
    client, assignment, student_headers, make_user, headers_for, enroll
):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]
    classmate = make_user(UserRole.STUDENT, email="classmate@lms.io")
    enroll(assignment.class_, classmate)

    response = upload_submission_file(client, headers_for(classmate), submission_id)
    assert response.status_code == 403


def test_cannot_attach_to_graded_submission(client, db, assignment, student, student_headers):
    graded = AssignmentSubmission(
        assignment_id=assignment.id,
        student_id=student.id,
        status=SubmissionStatus.graded,
        grade=15,
        submitted_at=utcnow(),
    )
    db.add(graded)
    db.commit()

    response = upload_submission_file(client, student_headers, str(graded.id))
    assert response.status_code == 409


def test_empty_upload_rejected(client, assignment, student_headers):
    submission_id = submit(client, student_headers, assignment.id).json()["id"]
    response = upload_submission_file(client, student_headers, submission_id, body=b"")
    assert response.status_code == 400


def test_oversized_upload_rejected(client, assignment, student_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
    submission_id = submit(client, student_headers, assignment.id).json()["id"]
    response = upload_submission_file(client, student_headers, submission_id)
    assert response.status_code == 400
    assert response.json()["error"].startswith("File too large")


def test_assignment_file_lifecycle(client, assignment, teacher_headers, upload_dir):
    response = client.post(
        "/api/assignment-files",
        data={"assignment_id": str(assignment.id)},
        files={"file": ("brief.pdf", b"%PDF-1.4", "application/pdf")},
        headers=teacher_headers,
    )
    assert response.status_code == 201
    file_id = response.json()["id"]
    key = response.json()["file_url"].split("/uploads/", 1)[1]
    assert (upload_dir / key).exists()

    view = client.get(f"/api/assignments/{assignment.id}", headers=teacher_headers).json()
    assert [f["id"] for f in view["files"]] == [file_id]

    deleted = client.delete(f"/api/assignment-files/{file_id}", headers=teacher_headers)
    assert deleted.status_code == 200
    assert not (upload_dir / key).exists()


def test_student_cannot_attach_assignment_files(client, assignment, student_headers):
    response = client.post(
        "/api/assignment-files",
        data={"assignment_id": str(assignment.id)},
        files={"file": ("brief.pdf", b"%PDF-1.4", "application/pdf")},
        headers=student_headers,
    )
    assert response.status_code == 403
