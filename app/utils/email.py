import html
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


def send_email(email_to: str, subject: str, html_content: str) -> bool:
    if not settings.SMTP_HOST:
        logger.info("SMTP_HOST not configured, skipping email to %s (%s)", email_to, subject)
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{settings.EMAILS_FROM_NAME or settings.PROJECT_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    message["To"] = email_to

    part = MIMEText(html_content, "html")
    message.attach(part)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT or 587) as server:
            if settings.SMTP_TLS:
                server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.EMAILS_FROM_EMAIL, email_to, message.as_string())
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send email to %s", email_to)
        return False


def send_grade_notification_email(
    email_to: str,
    student_name: str,
    assignment_title: str,
    grade: float,
    points: int,
    feedback: Optional[str] = None,
) -> bool:
    subject = f"{settings.PROJECT_NAME} - Your assignment has been graded"

    feedback_block = ""
    if feedback:
        feedback_block = f"""
                <p><strong>Feedback:</strong></p>
                <div style="background-color: #f3f4f6; padding: 15px; margin: 10px 0;">{html.escape(feedback)}</div>
        """

    html_content = f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #eee;">
                <h2 style="color: #1e3a8a; text-align: center;">{settings.PROJECT_NAME}</h2>
                <p>Hello {html.escape(student_name)},</p>
                <p>Your submission for <strong>{html.escape(assignment_title)}</strong> has been graded.</p>
                <div style="background-color: #f3f4f6; padding: 20px; text-align: center; font-size: 24px; font-weight: bold; color: #1e3a8a; margin: 20px 0;">
                    {grade:g} / {points}
                </div>
                {feedback_block}
                <hr style="border: 0; border-top: 1px solid #eee; margin: 20px 0;" />
                <p style="font-size: 12px; color: #777; text-align: center;">
                    This is an automated message from {settings.PROJECT_NAME}.
                </p>
            </div>
        </body>
    </html>
    """
    return send_email(email_to, subject, html_content)
