from datetime import date, timedelta

from app.models.meetings import Meeting, MeetingStatus, MeetingType
from app.models.users import Notification, NotificationType, UserRole
from app.utils.schedule import utcnow


def meeting_payload(class_id, **overrides):
    payload = {
        "title": "Speaking club",
        "class_id": str(class_id),
        "type": "GROUP",
        "date": (date.today() + timedelta(days=3)).isoformat(),
        "time": "15:00",
        "duration": "1.5 hours",
    }
    payload.update(overrides)
    return payload


def test_group_meeting_flow(client, db, make_class, enroll, student, student_headers, teacher_headers):
    cls = make_class()
    enroll(cls, student)

    created = client.post("/api/meetings", json=meeting_payload(cls.id), headers=teacher_headers)
    assert created.status_code == 201
    assert created.json()["status"] == "open"
    meeting_id = created.json()["id"]

    note = db.query(Notification).filter(Notification.user_id == student.id).one()
    assert note.type == NotificationType.MEETING

    available = client.get("/api/meetings/available", headers=student_headers).json()
    assert [m["id"] for m in available] == [meeting_id]
    assert available[0]["duration"] == "1.5 hours"
    assert available[0]["max_participants"] == 30

    joined = client.post(f"/api/meetings/{meeting_id}/join", headers=student_headers)
    assert joined.status_code == 200
    assert joined.json()["is_joined"] is True
    assert joined.json()["participant_count"] == 1

    # joining again changes nothing
    again = client.post(f"/api/meetings/{meeting_id}/join", headers=student_headers)
    assert again.status_code == 200
    assert again.json()["participant_count"] == 1

    assert client.get("/api/meetings/available", headers=student_headers).json() == []
    upcoming = client.get("/api/meetings/upcoming", headers=student_headers).json()
    assert [m["id"] for m in upcoming] == [meeting_id]


def test_one_on_one_needs_student(client, make_class, teacher_headers):
    cls = make_class()
    response = client.post(
        "/api/meetings", json=meeting_payload(cls.id, type="ONE_ON_ONE"), headers=teacher_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "A one-on-one meeting needs a student"


def test_one_on_one_meeting(client, make_class, enroll, student, student_headers, teacher_headers):
    cls = make_class()
    enroll(cls, student)

    created = client.post(
        "/api/meetings",
        json=meeting_payload(
            cls.id, type="ONE_ON_ONE", student_id=str(student.id), duration="30 minutes"
        ),
        headers=teacher_headers,
    )
    assert created.status_code == 201
    assert created.json()["status"] == "confirmed"

    detail = client.get(f"/api/meetings/{created.json()['id']}", headers=student_headers).json()
    assert detail["duration"] == "30 minutes"
    assert detail["student_name"] == student.name
    assert detail["max_participants"] == 2
    assert detail["is_joined"] is True

    # private meetings cannot be joined by others
    join = client.post(f"/api/meetings/{created.json()['id']}/join", headers=student_headers)
    assert join.status_code == 400


def test_one_on_one_student_must_be_enrolled(client, make_class, student, teacher_headers):
    cls = make_class()
    response = client.post(
        "/api/meetings",
        json=meeting_payload(cls.id, type="ONE_ON_ONE", student_id=str(student.id)),
        headers=teacher_headers,
    )
    assert response.status_code == 400


def test_bad_duration(client, make_class, teacher_headers):
    cls = make_class()
    response = client.post(
        "/api/meetings", json=meeting_payload(cls.id, duration="a while"), headers=teacher_headers
    )
    assert response.status_code == 400


def test_only_class_teacher_schedules(client, make_class, make_user, headers_for, admin_headers):
    cls = make_class()
    other = make_user(UserRole.TEACHER, email="other@lms.io")

    assert client.post("/api/meetings", json=meeting_payload(cls.id), headers=headers_for(other)).status_code == 403
    assert client.post("/api/meetings", json=meeting_payload(cls.id), headers=admin_headers).status_code == 403


def test_join_requires_enrollment(client, make_class, student_headers, teacher_headers):
    cls = make_class()
    meeting_id = client.post("/api/meetings", json=meeting_payload(cls.id), headers=teacher_headers).json()["id"]

    response = client.post(f"/api/meetings/{meeting_id}/join", headers=student_headers)
    assert response.status_code == 403


def test_cancel_meeting(client, db, make_class, enroll, student, student_headers, teacher_headers):
    cls = make_class()
    enroll(cls, student)
    meeting_id = client.post("/api/meetings", json=meeting_payload(cls.id), headers=teacher_headers).json()["id"]
    client.post(f"/api/meetings/{meeting_id}/join", headers=student_headers)

    # students cannot cancel group meetings
    assert client.post(f"/api/meetings/{meeting_id}/cancel", headers=student_headers).status_code == 403

    cancelled = client.post(f"/api/meetings/{meeting_id}/cancel", headers=teacher_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    twice = client.post(f"/api/meetings/{meeting_id}/cancel", headers=teacher_headers)
    assert twice.status_code == 400

    join = client.post(f"/api/meetings/{meeting_id}/join", headers=student_headers)
    assert join.status_code == 400

    titles = [n.title for n in db.query(Notification).filter(Notification.user_id == student.id)]
    assert "Meeting cancelled" in titles


def test_full_group_meeting(client, db, make_class, enroll, student, student_headers, teacher):
    cls = make_class()
    enroll(cls, student)
    start = utcnow() + timedelta(days=1)
    meeting = Meeting(
        title="Tiny group",
        type=MeetingType.GROUP,
        start_time=start,
        end_time=start + timedelta(hours=1),
        status=MeetingStatus.open,
        max_participants=0,
        teacher_id=teacher.id,
        class_id=cls.id,
    )
    db.add(meeting)
    db.commit()

    response = client.post(f"/api/meetings/{meeting.id}/join", headers=student_headers)
    assert response.status_code == 409


def test_finished_meetings_report_completed(client, db, make_class, teacher, teacher_headers):
    cls = make_class()
    start = utcnow() - timedelta(days=2)
    db.add(
        Meeting(
            title="Last week",
            type=MeetingType.GROUP,
            start_time=start,
            end_time=start + timedelta(hours=1),
            status=MeetingStatus.open,
            max_participants=30,
            teacher_id=teacher.id,
            class_id=cls.id,
        )
    )
    db.commit()

    past = client.get("/api/meetings/past", headers=teacher_headers).json()
    assert [m["title"] for m in past] == ["Last week"]
    assert past[0]["status"] == "completed"
    assert past[0]["duration"] == "1 hour"

    assert client.get("/api/meetings/upcoming", headers=teacher_headers).json() == []


def test_calendar_groups_by_day(client, make_class, teacher_headers):
    cls = make_class()
    day = date.today() + timedelta(days=3)
    client.post("/api/meetings", json=meeting_payload(cls.id, date=day.isoformat()), headers=teacher_headers)
    client.post(
        "/api/meetings",
        json=meeting_payload(cls.id, date=day.isoformat(), time="17:00", title="Second"),
        headers=teacher_headers,
    )

    response = client.get(
        "/api/meetings/calendar", params={"year": day.year, "month": day.month}, headers=teacher_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert [m["title"] for m in data["days"][day.isoformat()]] == ["Speaking club", "Second"]


def test_finished_meeting_cannot_be_cancelled(client, db, make_class, teacher, teacher_headers):
    cls = make_class()
    start = utcnow() - timedelta(hours=3)
    meeting = Meeting(
        title="This morning",
        type=MeetingType.GROUP,
        start_time=start,
        end_time=start + timedelta(hours=1),
        status=MeetingStatus.open,
        max_participants=30,
        teacher_id=teacher.id,
        class_id=cls.id,
    )
    db.add(meeting)
    db.commit()

    response = client.post(f"/api/meetings/{meeting.id}/cancel", headers=teacher_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Meeting has already taken place"

    db.refresh(meeting)
    assert meeting.status == MeetingStatus.open


def test_calendar_year_bounds(client, teacher_headers):
    last = client.get(
        "/api/meetings/calendar", params={"year": 9998, "month": 12}, headers=teacher_headers
    )
    assert last.status_code == 200
    assert last.json()["days"] == {}

    too_far = client.get(
        "/api/meetings/calendar", params={"year": 9999, "month": 12}, headers=teacher_headers
    )
    assert too_far.status_code == 400
