import pytest

from app.utils import email


@pytest.fixture()
def sent(monkeypatch):
    outbox = []

    def fake_send(email_to, subject, html_content):
        outbox.append(html_content)
        return True

    monkeypatch.setattr(email, "send_email", fake_send)
    return outbox


def test_grade_email_escapes_user_text(sent):
    assert email.send_grade_notification_email(
        "sam@lms.io",
        student_name="Sam <b>Student</b>",
        assignment_title="Essay & <i>notes</i>",
        grade=17.5,
        points=20,
        feedback='<script>alert("hi")</script>',
    )
    body = sent[0]
    assert "<script>" not in body
    assert "&lt;script&gt;alert(&quot;hi&quot;)&lt;/script&gt;" in body
    assert "Hello Sam &lt;b&gt;Student&lt;/b&gt;," in body
    assert "Essay &amp; &lt;i&gt;notes&lt;/i&gt;" in body
    assert "17.5 / 20" in body


def test_grade_email_without_feedback(sent):
    email.send_grade_notification_email("sam@lms.io", "Sam", "Essay", grade=20, points=20)
    assert "Feedback" not in sent[0]
    assert "20 / 20" in sent[0]


def test_send_email_skips_without_smtp_host(monkeypatch):
    monkeypatch.setattr(email.settings, "SMTP_HOST", None)
    assert email.send_email("sam@lms.io", "Hello", "<p>hi</p>") is False
