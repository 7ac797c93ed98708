"""Read-only views for participants and operators, fronted by the cache."""

import csv
import io
import typing as t
import uuid
from decimal import Decimal

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db.models import Count, Exists, OuterRef, Prefetch, Q, QuerySet, Sum

from common.exceptions import ErrorCode, NotFoundError
from events.models import Cohort, Event, Participant, Payment, Registration
from events.schema import ParticipantStatusSchema, RegistrationLineSchema, StatsSchema
from events.service import cache_service

logger = structlog.get_logger(__name__)

EXPORT_COLUMNS = [
    "registration_code",
    "participant_id",
    "full_name",
    "email",
    "phone",
    "institution",
    "department",
    "year_of_study",
    "cohort",
    "roll_number",
    "event",
    "event_type",
    "day",
    "amount_paid",
    "payment_status",
    "verified_by_admin",
    "attendance_status",
    "attended_at",
    "registered_at",
]


def participant_status(email: str) -> ParticipantStatusSchema:
    """Verification status for the participant with this e-mail, cached per e-mail."""
    key = cache_service.participant_status_key(email)
    if cached := cache.get(key):
        return ParticipantStatusSchema.model_validate(cached)
    participant = (
        Participant.objects.filter(email=email.strip().lower())
        .prefetch_related(Prefetch("registrations", queryset=Registration.objects.select_related("event")))
        .first()
    )
    if participant is None:
        raise NotFoundError(ErrorCode.PARTICIPANT_NOT_FOUND, "No participant with this e-mail address.")
    registrations = list(participant.registrations.all())
    status = ParticipantStatusSchema(
        participant_id=participant.pk,
        full_name=participant.full_name,
        email=participant.email,
        cohort=participant.cohort,
        is_verified=participant.is_verified,
        amount_due=sum(
            (r.amount_paid for r in registrations if r.payment_status == Registration.PaymentStatus.PENDING),
            Decimal("0"),
        ),
        registrations=[RegistrationLineSchema.from_orm(r) for r in registrations],
    )
    cache.set(key, status.model_dump(mode="json"), timeout=settings.PARTICIPANT_STATUS_CACHE_TIMEOUT)
    return status


def search_participants() -> QuerySet[Participant]:
    """Participants with their verification flag and registrations loaded for listing."""
    qs = Participant.objects.annotate(
        verified=Exists(Payment.objects.filter(participant=OuterRef("pk"), verified_by_admin=True))
    ).prefetch_related(Prefetch("registrations", queryset=Registration.objects.select_related("event")))
    return qs.order_by("-created_at")


def get_participant(participant_id: uuid.UUID) -> Participant:
    participant = search_participants().filter(pk=participant_id).first()
    if participant is None:
        raise NotFoundError(
            ErrorCode.PARTICIPANT_NOT_FOUND, "Participant not found.", participant_id=str(participant_id)
        )
    return participant


def _compute_stats() -> StatsSchema:
    by_cohort = {str(cohort): 0 for cohort in Cohort}
    for row in Participant.objects.values("cohort").annotate(n=Count("id")):
        by_cohort[row["cohort"]] = row["n"]

    by_status = {str(status): 0 for status in Registration.PaymentStatus}
    for row in Registration.objects.values("payment_status").annotate(n=Count("id")):
        by_status[row["payment_status"]] = row["n"]

    successful = Payment.objects.filter(status=Payment.Status.SUCCESS)
    revenue = successful.aggregate(
        verified=Sum("amount", filter=Q(verified_by_admin=True)),
        unverified=Sum("amount", filter=Q(verified_by_admin=False)),
    )
    events = Event.objects.annotate(
        registration_count=Count("registrations"),
        attended_count=Count(
            "registrations", filter=Q(registrations__attendance_status=Registration.AttendanceStatus.ATTENDED)
        ),
    )
    return StatsSchema(
        participants=sum(by_cohort.values()),
        participants_by_cohort=by_cohort,
        registrations_by_status=by_status,
        verified_participants=Payment.objects.filter(verified_by_admin=True)
        .values("participant_id")
        .distinct()
        .count(),
        verified_revenue=revenue["verified"] or Decimal("0"),
        unverified_revenue=revenue["unverified"] or Decimal("0"),
        attended=Registration.objects.filter(attendance_status=Registration.AttendanceStatus.ATTENDED).count(),
        accommodation_required=Participant.objects.filter(accommodation_required=True).count(),
        events=[
            {
                "event_id": event.pk,
                "name": event.name,
                "event_type": event.event_type,
                "day": event.day,
                "total_seats": event.total_seats,
                "available_seats": event.available_seats,
                "partner_seats": event.partner_seats,
                "partner_available_seats": event.partner_available_seats,
                "registrations": event.registration_count,
                "attended": event.attended_count,
            }
            for event in events
        ],
    )


def get_stats() -> StatsSchema:
    """Aggregate numbers for the admin dashboard, cached for ``ADMIN_STATS_CACHE_TIMEOUT``."""
    if cached := cache.get(cache_service.ADMIN_STATS_KEY):
        return StatsSchema.model_validate(cached)
    stats = _compute_stats()
    cache.set(
        cache_service.ADMIN_STATS_KEY, stats.model_dump(mode="json"), timeout=settings.ADMIN_STATS_CACHE_TIMEOUT
    )
    return stats


def _export_row(r: Registration) -> list[t.Any]:
    p = r.participant
    return [
        r.code,
        p.pk,
        p.full_name,
        p.email,
        p.phone,
        p.institution,
        p.department,
        p.year_of_study,
        p.cohort,
        p.roll_number or "",
        r.event.name,
        r.event.event_type,
        r.event.day,
        r.amount_paid,
        r.payment_status,
        r.participant_verified,  # type: ignore[attr-defined]
        r.attendance_status,
        r.attended_at.isoformat() if r.attended_at else "",
        r.created_at.isoformat(),
    ]


def export_registrations_csv() -> str:
    """All registrations, one row each, joined with their participant and event."""
    registrations = (
        Registration.objects.select_related("participant", "event")
        .annotate(
            participant_verified=Exists(
                Payment.objects.filter(participant=OuterRef("participant_id"), verified_by_admin=True)
            )
        )
        .order_by("pk")
    )
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    count = 0
    for registration in registrations.iterator():
        writer.writerow(_export_row(registration))
        count += 1
    logger.info("registrations_exported", rows=count)
    return output.getvalue()
