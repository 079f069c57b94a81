import smtplib
import os
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger
from leaveflow.core.config import settings

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)

# Helper to get template
def get_template(template_name):
    return _env.get_template(template_name)

# Helper to send email via SMTP
def send_email_via_smtp(to_email, subject, html_content):
    # Only HOST is required; User/Pass are optional (for Mailpit)
    if not settings.SMTP_HOST:
        logger.warning("SMTP host not configured. Skipping email.")
        return

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        logger.debug(f"Connecting to SMTP: {settings.SMTP_HOST}:{settings.SMTP_PORT}")

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.ehlo()

            # TLS only on submission ports; Mailpit on 1025 runs plain
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        logger.info(f"Email sent to {to_email}")
    except Exception:
        logger.exception(f"Failed to send email to {to_email}")


# ---------------------------------------------------------
# 1. APPLICATION SUBMITTED
# ---------------------------------------------------------
def send_leave_submitted_email(data: dict):
    """
    data requires: name, email, application_id, leave_type, start_date, end_date
    """
    try:
        template = get_template('leave_submitted.html')
        context = {
            "name": data.get("name"),
            "application_id": str(data.get("application_id")),
            "leave_type": data.get("leave_type"),
            "start_date": data.get("start_date"),
            "end_date": data.get("end_date"),
            "submission_date": datetime.now().strftime("%d-%m-%Y %I:%M %p"),
            "track_url": f"{settings.FRONTEND_URL}/dashboard"
        }
        html_content = template.render(context)
        send_email_via_smtp(data.get("email"), "Leave Application Submitted", html_content)
    except Exception:
        logger.exception("Error preparing leave submitted email")


# ---------------------------------------------------------
# 2. APPROVED (final, after TO review)
# ---------------------------------------------------------
def send_leave_approved_email(data: dict):
    try:
        template = get_template('leave_approved.html')
        context = {
            "name": data.get("name"),
            "application_id": str(data.get("application_id")),
            "start_date": data.get("start_date"),
            "end_date": data.get("end_date"),
            "comments": data.get("comments"),
            "approval_date": datetime.now().strftime("%d-%m-%Y"),
            "login_url": f"{settings.FRONTEND_URL}/login"
        }
        html_content = template.render(context)
        send_email_via_smtp(data.get("email"), "Leave Application Approved", html_content)
    except Exception:
        logger.exception("Error preparing leave approval email")


# ---------------------------------------------------------
# 3. REJECTED (teacher or TO)
# ---------------------------------------------------------
def send_leave_rejected_email(data: dict):
    try:
        template = get_template('leave_rejected.html')
        context = {
            "name": data.get("name"),
            "rejected_by": data.get("rejected_by"),
            "comments": data.get("comments"),
            "rejection_reason": data.get("rejection_reason"),
            "rejection_date": datetime.now().strftime("%d-%m-%Y"),
            "login_url": f"{settings.FRONTEND_URL}/login"
        }
        html_content = template.render(context)
        send_email_via_smtp(data.get("email"), "Leave Application Rejected", html_content)
    except Exception:
        logger.exception("Error preparing leave rejection email")
