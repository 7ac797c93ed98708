"""Outgoing mail and its housekeeping."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog

logger = structlog.get_logger(__name__)


@shared_task
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send one message to every recipient (as BCC) and log a copy per recipient.

    Args:
        to (str | list[str]): The recipient(s).
        subject (str): The subject line.
        body (str): The plain text body.
        html_body (str | None): An optional HTML alternative.
    """
    recipients = [to] if isinstance(to, str) else list(to)
    message = EmailMultiAlternatives(subject=subject, body=body, from_email=settings.DEFAULT_FROM_EMAIL, bcc=recipients)
    if html_body:
        message.attach_alternative(html_body, "text/html")
    message.send(fail_silently=False)

    logs = []
    for recipient in recipients:
        log = EmailLog(to=recipient, subject=subject)
        log.set_body(body)
        if html_body:
            log.set_html(html_body)
        logs.append(log)
    EmailLog.objects.bulk_create(logs)
    logger.info("email_sent", recipients=len(recipients), subject=subject)


@shared_task
def cleanup_email_logs() -> dict[str, int]:
    """Delete old mail logs and strip the bodies of recent ones.

    Runs on the beat schedule. Returns how many rows were deleted and how many
    bodies were dropped.
    """
    now = timezone.now()
    deleted, _ = EmailLog.objects.filter(sent_at__lte=now - timedelta(days=settings.EMAIL_LOG_RETENTION_DAYS)).delete()
    stripped = EmailLog.objects.filter(
        sent_at__lte=now - timedelta(days=settings.EMAIL_LOG_BODY_RETENTION_DAYS),
        compressed_body__isnull=False,
    ).update(compressed_body=None, compressed_html=None)
    logger.info("email_logs_cleaned", deleted=deleted, stripped=stripped)
    return {"deleted": deleted, "stripped": stripped}
