"""Tasks for the accounts app."""

import structlog
from celery import shared_task
from django.conf import settings
from django.template.loader import render_to_string

from common.tasks import send_email

logger = structlog.get_logger(__name__)


@shared_task
def send_otp_email(email: str, name: str, code: str) -> None:
    """Send the one-time verification code."""
    logger.info("otp_email_sending", email=email)
    context = {
        "name": name,
        "code": code,
        "site_name": settings.SITE_NAME,
        "ttl_minutes": settings.OTP_TTL_SECONDS // 60,
    }
    subject = render_to_string("accounts/emails/otp_subject.txt", context).strip()
    body = render_to_string("accounts/emails/otp_body.txt", context)
    html_body = render_to_string("accounts/emails/otp_body.html", context)
    send_email(to=email, subject=subject, body=body, html_body=html_body)
    logger.info("otp_email_sent", email=email)
