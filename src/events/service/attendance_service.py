"""Admission at the door.

A registration goes from NOT_ATTENDED to ATTENDED once and never back. Whether it may
make that step depends on the participant's cohort and year, the kind of event, the
line's payment status and whether the participant's latest payment was verified by an
admin:

* partner students in years 2-4 walk into events for free;
* partner first years need a verified payment, and a paid line for events that cost
  them something;
* everyone needs a verified payment and a paid line for workshops;
* general participants need a verified payment for events.
"""

import abc
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

import structlog
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext as _
from django.utils.translation import gettext_noop
from pydantic import BaseModel

from common.exceptions import ErrorCode, NotFoundError, ValidationFailedError
from events.exceptions import AttendanceDeniedError
from events.models import Cohort, Participant, Registration
from events.service import cache_service
from events.utils import parse_qr_payload

logger = structlog.get_logger(__name__)


class Reasons(StrEnum):
    """Why a registration was admitted or refused.

    Note: Strings are marked with _noop() for translation extraction.
    """

    FREE_ENTRY = gettext_noop("Free entry for partner students from the second year on.")
    NOT_VERIFIED = gettext_noop("Payment has not been verified by an admin.")
    PAYMENT_PENDING = gettext_noop("Payment for this registration is still pending.")
    ADMITTED = gettext_noop("Payment verified.")


class Suggestions(StrEnum):
    VERIFY_PAYMENT = gettext_noop(
        "Check the transaction id with the participant and verify the payment from the admin panel."
    )
    COLLECT_PAYMENT = gettext_noop("Ask the participant to complete the payment for this registration.")


class AdmissionDecision(BaseModel):
    """Result of the admission rules for one registration."""

    allowed: bool
    reason: str | None = None
    cohort: str
    event_type: str
    year_of_study: int
    amount_paid: Decimal
    payment_status: str
    verified_by_admin: bool
    suggestion: str | None = None


@dataclass(frozen=True)
class AdmissionFacts:
    cohort: Cohort
    is_workshop: bool
    year_of_study: int
    amount_paid: Decimal
    payment_status: str
    verified_by_admin: bool

    def decide(self, allowed: bool, reason: Reasons, suggestion: Suggestions | None = None) -> AdmissionDecision:
        return AdmissionDecision(
            allowed=allowed,
            reason=_(reason),
            cohort=self.cohort,
            event_type="workshop" if self.is_workshop else "event",
            year_of_study=self.year_of_study,
            amount_paid=self.amount_paid,
            payment_status=self.payment_status,
            verified_by_admin=self.verified_by_admin,
            suggestion=_(suggestion) if suggestion else None,
        )


class BaseAdmissionGate(abc.ABC):
    """One admission rule. Returns a decision to stop, or None to fall through."""

    @abc.abstractmethod
    def check(self, facts: AdmissionFacts) -> AdmissionDecision | None: ...


class FreeEntryGate(BaseAdmissionGate):
    """Partner students from year 2 on attend events without any checks."""

    def check(self, facts: AdmissionFacts) -> AdmissionDecision | None:
        if facts.cohort == Cohort.PARTNER and not facts.is_workshop and facts.year_of_study >= 2:
            return facts.decide(True, Reasons.FREE_ENTRY)
        return None


class AdminVerificationGate(BaseAdmissionGate):
    def check(self, facts: AdmissionFacts) -> AdmissionDecision | None:
        if not facts.verified_by_admin:
            return facts.decide(False, Reasons.NOT_VERIFIED, Suggestions.VERIFY_PAYMENT)
        return None


class PaidLineGate(BaseAdmissionGate):
    """Workshops, and partner events that cost something, need the line itself paid."""

    def check(self, facts: AdmissionFacts) -> AdmissionDecision | None:
        needs_paid_line = facts.is_workshop or (facts.cohort == Cohort.PARTNER and facts.amount_paid > 0)
        if needs_paid_line and facts.payment_status != Registration.PaymentStatus.SUCCESS:
            return facts.decide(False, Reasons.PAYMENT_PENDING, Suggestions.COLLECT_PAYMENT)
        return None


GATES: tuple[type[BaseAdmissionGate], ...] = (FreeEntryGate, AdminVerificationGate, PaidLineGate)


def evaluate_admission(facts: AdmissionFacts) -> AdmissionDecision:
    """Run the admission gates in order; the first one with an opinion wins."""
    for gate in GATES:
        if decision := gate().check(facts):
            return decision
    return facts.decide(True, Reasons.ADMITTED)


def facts_for(registration: Registration) -> AdmissionFacts:
    participant = registration.participant
    latest_payment = participant.latest_payment
    return AdmissionFacts(
        cohort=Cohort(participant.cohort),
        is_workshop=registration.event.is_workshop,
        year_of_study=participant.year_of_study,
        amount_paid=registration.amount_paid,
        payment_status=registration.payment_status,
        verified_by_admin=bool(latest_payment and latest_payment.verified_by_admin),
    )


@dataclass
class AttendanceOutcome:
    registration: Registration
    already_marked: bool
    decision: AdmissionDecision | None = None

    @property
    def participant_id(self) -> uuid.UUID:
        return self.registration.participant_id

    @property
    def full_name(self) -> str:
        return self.registration.participant.full_name


@transaction.atomic
def mark_attendance(registration_id: int, *, marked_by: str = "") -> AttendanceOutcome:
    """Admit a registration, or explain why not.

    A registration that is already ATTENDED is reported as such without evaluating
    the rules again.

    Raises:
        NotFoundError: REGISTRATION_NOT_FOUND.
        AttendanceDeniedError: with the decision that refused admission.
    """
    registration = (
        Registration.objects.select_for_update()
        .select_related("participant", "event")
        .filter(pk=registration_id)
        .first()
    )
    if registration is None:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND, "Registration not found.")
    if registration.is_attended:
        logger.info("attendance_already_marked", registration=registration.code)
        return AttendanceOutcome(registration=registration, already_marked=True)

    decision = evaluate_admission(facts_for(registration))
    if not decision.allowed:
        logger.info("attendance_denied", registration=registration.code, reason=decision.reason)
        raise AttendanceDeniedError(decision)

    now = timezone.now()
    Registration.objects.filter(
        pk=registration.pk, attendance_status=Registration.AttendanceStatus.NOT_ATTENDED
    ).update(
        attendance_status=Registration.AttendanceStatus.ATTENDED,
        attended_at=now,
        attendance_marked_by=marked_by,
        updated_at=now,
    )
    registration.refresh_from_db(fields=["attendance_status", "attended_at", "attendance_marked_by", "updated_at"])
    cache_service.invalidate_on_commit([registration.participant])
    logger.info("attendance_marked", registration=registration.code, marked_by=marked_by)
    return AttendanceOutcome(registration=registration, already_marked=False, decision=decision)


def find_by_code(code: str) -> Registration:
    registration = Registration.objects.filter(code__iexact=code.strip()).first()
    if registration is None:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND, "Registration not found.", registration_code=code)
    return registration


def find_in_qr_payload(payload: str, event_id: uuid.UUID | None = None) -> Registration:
    """Pick the registration a scanned QR code refers to.

    A QR code lists all of a participant's registrations, so the event being checked
    in is needed unless there is only one.
    """
    participant_id, codes = parse_qr_payload(payload)
    registrations = Registration.objects.filter(participant_id=participant_id, code__in=codes)
    if event_id is not None:
        registrations = registrations.filter(event_id=event_id)
    candidates = list(registrations[:2])
    if not candidates:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND, "Registration not found.")
    if len(candidates) > 1:
        raise ValidationFailedError(
            ErrorCode.INVALID_QR_PAYLOAD,
            "The QR code holds several registrations. Select the event being checked in.",
        )
    return candidates[0]


def scan(
    *, code: str | None = None, payload: str | None = None, event_id: uuid.UUID | None = None, marked_by: str = ""
) -> AttendanceOutcome:
    """Mark attendance from a registration code or a scanned QR payload."""
    if code:
        registration = find_by_code(code)
    elif payload:
        registration = find_in_qr_payload(payload, event_id)
    else:
        raise ValidationFailedError(ErrorCode.INVALID_QR_PAYLOAD, "Provide a registration code or a QR payload.")
    return mark_attendance(registration.pk, marked_by=marked_by)


def mark_manually(participant_id: uuid.UUID, event_id: uuid.UUID, *, marked_by: str = "") -> AttendanceOutcome:
    """Mark attendance for a participant and event, for when there is no QR code at hand."""
    registration = Registration.objects.filter(participant_id=participant_id, event_id=event_id).first()
    if registration is None:
        raise NotFoundError(
            ErrorCode.REGISTRATION_NOT_FOUND,
            "The participant is not registered for this event.",
            participant_id=str(participant_id),
            event_id=str(event_id),
        )
    return mark_attendance(registration.pk, marked_by=marked_by)


def lookup_qr(payload: str) -> tuple[Participant, list[Registration]]:
    """Who a QR code belongs to and which of their registrations it lists."""
    participant_id, codes = parse_qr_payload(payload)
    participant = Participant.objects.filter(pk=participant_id).first()
    if participant is None:
        raise NotFoundError(
            ErrorCode.PARTICIPANT_NOT_FOUND, "Participant not found.", participant_id=str(participant_id)
        )
    registrations = list(participant.registrations.filter(code__in=codes).select_related("event").order_by("pk"))
    return participant, registrations
