"""Registration workflow.

One workflow serves both cohorts. What differs (how identity is established, which
seat pool and which prices apply) lives in a ``CohortPolicy``; everything else runs
the same ordered steps inside a single transaction, so any failure leaves nothing
behind.
"""

import abc
import re
import typing as t
import uuid
from dataclasses import dataclass
from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.service import verification
from common.exceptions import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    StateError,
    ValidationFailedError,
)
from events.models import Cohort, Event, Participant, Registration, SymposiumSettings
from events.protocols import PartnerRoster
from events.schema import GeneralRegistrationSchema, ParticipantDetailsSchema, PartnerRegistrationSchema
from events.service import cache_service, pricing, seat_ledger
from events.service.event_service import close_events_if_due
from events.service.roster import get_roster

logger = structlog.get_logger(__name__)

PHONE_RE = re.compile(r"^\+?\d{10,15}$")
REQUIRED_TEXT_FIELDS = ("full_name", "institution", "department")


@dataclass
class RegistrationOutcome:
    participant: Participant
    registrations: list[Registration]
    total_amount: Decimal
    payment_reference: str

    @property
    def participant_id(self) -> uuid.UUID:
        return self.participant.pk

    @property
    def cohort(self) -> str:
        return self.participant.cohort

    @property
    def requires_payment(self) -> bool:
        return any(r.payment_status == Registration.PaymentStatus.PENDING for r in self.registrations)


class CohortPolicy(abc.ABC):
    """The cohort-specific half of a registration."""

    cohort: t.ClassVar[Cohort]

    @abc.abstractmethod
    def resolve_email(self, payload: t.Any) -> str:
        """Establish who is registering and return their lowercased e-mail."""

    def participant_fields(self, payload: t.Any) -> dict[str, t.Any]:
        return {"cohort": self.cohort}

    def after_participant_created(self, participant: Participant, payload: t.Any) -> None:
        """Hook for work that must happen in the same transaction as the insert."""


class GeneralCohortPolicy(CohortPolicy):
    """Identity comes from a redeemed e-mail verification token."""

    cohort = Cohort.GENERAL

    def resolve_email(self, payload: GeneralRegistrationSchema) -> str:
        return verification.redeem_token(payload.verification_token, payload.email)


class PartnerCohortPolicy(CohortPolicy):
    """Identity comes from a roll number on the partner roster; no e-mail code needed."""

    cohort = Cohort.PARTNER

    def __init__(self, roster: PartnerRoster | None = None) -> None:
        self.roster = roster or get_roster()

    def resolve_email(self, payload: PartnerRegistrationSchema) -> str:
        roll_number = payload.roll_number
        entry = self.roster.lookup(roll_number)
        if entry is None:
            raise ValidationFailedError(
                ErrorCode.INVALID_ROLL_NUMBER,
                "This roll number is not on the partner institution's roster.",
                roll_number=roll_number,
            )
        if entry.already_registered or Participant.objects.filter(roll_number=roll_number).exists():
            raise _roll_number_taken(roll_number)
        return verification.normalize_email(payload.email)

    def participant_fields(self, payload: PartnerRegistrationSchema) -> dict[str, t.Any]:
        return {"cohort": self.cohort, "roll_number": payload.roll_number}

    def after_participant_created(self, participant: Participant, payload: PartnerRegistrationSchema) -> None:
        self.roster.mark_registered(payload.roll_number)


def validate_details(payload: ParticipantDetailsSchema, email: str) -> None:
    """Check the participant fields, raising INVALID_FIELD for the first bad one."""
    for field in REQUIRED_TEXT_FIELDS:
        if not getattr(payload, field).strip():
            raise ValidationFailedError(ErrorCode.INVALID_FIELD, f"{field} is required.", field=field)
    try:
        validate_email(email)
    except DjangoValidationError as e:
        raise ValidationFailedError(
            ErrorCode.INVALID_FIELD, "A valid e-mail address is required.", field="email"
        ) from e
    phone = re.sub(r"[\s\-()]", "", payload.phone)
    if not PHONE_RE.match(phone):
        raise ValidationFailedError(ErrorCode.INVALID_FIELD, "A valid phone number is required.", field="phone")
    if payload.year_of_study not in (1, 2, 3, 4):
        raise ValidationFailedError(
            ErrorCode.INVALID_FIELD, "Year of study must be between 1 and 4.", field="year_of_study"
        )


def ensure_email_free(email: str) -> None:
    if Participant.objects.filter(email=email).exists():
        raise ConflictError(ErrorCode.EMAIL_EXISTS, "This e-mail address is already registered.", email=email)


def _roll_number_taken(roll_number: str) -> ConflictError:
    return ConflictError(
        ErrorCode.ROLL_NUMBER_USED, "This roll number has already been registered.", roll_number=roll_number
    )


def create_participant(payload: ParticipantDetailsSchema, email: str, **extra: t.Any) -> Participant:
    """Insert the participant, turning a lost race on the e-mail or roll number into a conflict.

    The insert runs in a savepoint so the unique-constraint violation of a concurrent
    registration can be caught and reported.
    """
    try:
        with transaction.atomic():
            return Participant.objects.create(
                full_name=payload.full_name.strip(),
                email=email,
                phone=re.sub(r"[\s\-()]", "", payload.phone),
                institution=payload.institution.strip(),
                department=payload.department.strip(),
                year_of_study=payload.year_of_study,
                city=payload.city.strip(),
                state=payload.state.strip(),
                accommodation_required=payload.accommodation_required,
                **extra,
            )
    except IntegrityError as e:
        roll_number = extra.get("roll_number")
        if roll_number and Participant.objects.filter(roll_number=roll_number).exists():
            logger.warning("registration_roll_number_race_lost", roll_number=roll_number)
            raise _roll_number_taken(roll_number) from e
        logger.warning("registration_email_race_lost", email=email)
        raise ConflictError(ErrorCode.EMAIL_EXISTS, "This e-mail address is already registered.", email=email) from e
    except DjangoValidationError as e:
        if "email" in e.message_dict:
            raise ConflictError(
                ErrorCode.EMAIL_EXISTS, "This e-mail address is already registered.", email=email
            ) from e
        if "roll_number" in e.message_dict:
            raise _roll_number_taken(extra.get("roll_number", "")) from e
        raise


def resolve_selection(
    workshop_ids: list[uuid.UUID], event_ids: list[uuid.UUID], pool: Cohort
) -> dict[uuid.UUID, Event]:
    """Lock the selected events and check each one exists, has the right type, is open and has a seat."""
    events = seat_ledger.lock_events([*workshop_ids, *event_ids])
    for workshop_id in workshop_ids:
        workshop = events.get(workshop_id)
        if workshop is None:
            raise NotFoundError(ErrorCode.WORKSHOP_NOT_FOUND, "Workshop not found.", event_id=str(workshop_id))
        if not workshop.is_workshop:
            raise ValidationFailedError(
                ErrorCode.NOT_A_WORKSHOP, f"{workshop.name} is not a workshop.", event=workshop.name
            )
        seat_ledger.check_available(workshop, pool)
    for event_id in event_ids:
        event = events.get(event_id)
        if event is None:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "Event not found.", event_id=str(event_id))
        if event.is_workshop:
            raise ValidationFailedError(
                ErrorCode.INVALID_FIELD, f"{event.name} is a workshop, select it as one.", field="event_ids"
            )
        seat_ledger.check_available(event, pool)
    return events


def payment_reference(participant: Participant) -> str:
    return f"{participant.pk}-{timezone.now():%Y%m%d%H%M%S}"


def register(payload: ParticipantDetailsSchema, policy: CohortPolicy) -> RegistrationOutcome:
    """Register a participant for a selection of workshops and events.

    Steps, in order: establish identity, check the deadline, reject a taken e-mail,
    validate the fields and selection, create the participant, resolve and price every
    line, take seats according to the seat policy, and create the registrations. All of
    it runs in one transaction; the auto-close check before it commits on its own.

    Args:
        payload (ParticipantDetailsSchema): The registration form.
        policy (CohortPolicy): The cohort the participant registers under.

    Returns:
        RegistrationOutcome: The participant, their registrations, the total owed and
        a payment reference.
    """
    close_events_if_due()
    return _register(payload, policy)


@transaction.atomic
def _register(payload: ParticipantDetailsSchema, policy: CohortPolicy) -> RegistrationOutcome:
    email = policy.resolve_email(payload)

    if not SymposiumSettings.get_solo().is_registration_open():
        raise StateError(ErrorCode.REGISTRATION_CLOSED, "Registration is closed.")

    ensure_email_free(email)
    validate_details(payload, email)
    workshop_ids, event_ids = list(payload.workshop_ids), list(payload.event_ids)
    if not workshop_ids and not event_ids:
        raise ValidationFailedError(ErrorCode.NO_EVENTS_SELECTED, "Select at least one workshop or event.")

    participant = create_participant(payload, email, **policy.participant_fields(payload))
    policy.after_participant_created(participant, payload)
    logger.info("participant_created", participant_id=str(participant.pk), cohort=participant.cohort)

    selected = [*workshop_ids, *event_ids]
    if len(set(selected)) != len(selected):
        raise ConflictError(ErrorCode.DUPLICATE_SELECTION, "The same event was selected more than once.")
    events = resolve_selection(workshop_ids, event_ids, policy.cohort)
    quote = pricing.quote(policy.cohort, participant.year_of_study, workshop_ids, event_ids)
    seat_policy = seat_ledger.current_policy()

    registrations = []
    for line in quote.lines:
        # free lines are confirmed now, so they take their seat now
        take_seat = line.is_free or seat_policy == seat_ledger.SeatPolicy.AT_REGISTRATION
        if take_seat:
            seat_ledger.decrement(line.event_id, policy.cohort)
        registrations.append(
            _create_registration(
                participant,
                events[line.event_id],
                amount=line.amount,
                confirmed=line.is_free,
                seat_held=take_seat,
            )
        )

    cache_service.invalidate_on_commit([participant])
    outcome = RegistrationOutcome(
        participant=participant,
        registrations=registrations,
        total_amount=quote.total,
        payment_reference=payment_reference(participant),
    )
    logger.info(
        "registration_completed",
        participant_id=str(participant.pk),
        cohort=participant.cohort,
        lines=len(registrations),
        total=str(quote.total),
        seat_policy=str(seat_policy),
    )
    return outcome


def _create_registration(
    participant: Participant, event: Event, *, amount: Decimal, confirmed: bool, seat_held: bool
) -> Registration:
    try:
        with transaction.atomic():
            registration = Registration.objects.create(
                participant=participant,
                event=event,
                amount_paid=amount,
                payment_status=(
                    Registration.PaymentStatus.SUCCESS if confirmed else Registration.PaymentStatus.PENDING
                ),
                seat_held=seat_held,
            )
    except (IntegrityError, DjangoValidationError) as e:
        raise ConflictError(
            ErrorCode.DUPLICATE_SELECTION, f"Already registered for {event.name}.", event=event.name
        ) from e
    registration.code = registration.build_code()
    Registration.objects.filter(pk=registration.pk).update(code=registration.code)
    return registration


def register_general(payload: GeneralRegistrationSchema) -> RegistrationOutcome:
    return register(payload, GeneralCohortPolicy())


def register_partner(payload: PartnerRegistrationSchema, roster: PartnerRoster | None = None) -> RegistrationOutcome:
    return register(payload, PartnerCohortPolicy(roster))


@transaction.atomic
def release_holds(participant_id: uuid.UUID) -> int:
    """Drop a participant's unpaid registrations and give back any seats they held.

    Only meaningful under the ``registration`` seat policy, where pending lines hold
    seats; under the ``payment`` policy it simply removes the pending lines.

    Returns:
        int: How many registrations were released.
    """
    participant = Participant.objects.select_for_update().filter(pk=participant_id).first()
    if participant is None:
        raise NotFoundError(
            ErrorCode.PARTICIPANT_NOT_FOUND, "Participant not found.", participant_id=str(participant_id)
        )
    pending = list(participant.registrations.pending().order_by("event_id"))
    seat_ledger.lock_events(r.event_id for r in pending)
    for registration in pending:
        if registration.seat_held:
            seat_ledger.increment(registration.event_id, Cohort(participant.cohort))
    Registration.objects.filter(pk__in=[r.pk for r in pending]).delete()
    cache_service.invalidate_on_commit([participant])
    logger.info("registration_holds_released", participant_id=str(participant.pk), released=len(pending))
    return len(pending)
