"""Payment verification.

A participant pays outside the system (UPI) and quotes the transaction reference.
Recording it confirms their pending registrations and, under the default seat policy,
takes their seats. It does not make the payment trusted: ``verified_by_admin`` is only
set by an operator or by reconciliation against a bank statement.
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from common.exceptions import ConflictError, ErrorCode, NotFoundError, StateError, ValidationFailedError
from events.models import Cohort, Participant, Payment, Registration
from events.service import cache_service, seat_ledger
from events.utils import build_qr_payload

logger = structlog.get_logger(__name__)

TRANSACTION_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-_/.]*$")


@dataclass
class PaymentOutcome:
    participant: Participant
    payment: Payment
    registrations: list[Registration]
    qr_payload: str

    @property
    def participant_id(self) -> uuid.UUID:
        return self.participant.pk


def clean_transaction_id(transaction_id: str | None) -> str:
    """Trim and validate a quoted transaction reference."""
    cleaned = (transaction_id or "").strip()
    if not cleaned:
        raise ValidationFailedError(ErrorCode.TRANSACTION_ID_REQUIRED, "A transaction id is required.")
    if len(cleaned) < settings.MIN_TRANSACTION_ID_LENGTH or not TRANSACTION_ID_RE.match(cleaned):
        raise ValidationFailedError(
            ErrorCode.INVALID_TRANSACTION_ID,
            "The transaction id does not look valid.",
            min_length=settings.MIN_TRANSACTION_ID_LENGTH,
        )
    return cleaned


def ensure_transaction_unused(transaction_id: str) -> None:
    """Transaction ids are unique across all participants."""
    if Payment.objects.filter(transaction_id=transaction_id).exists():
        logger.warning("payment_duplicate_transaction", transaction_id=transaction_id)
        raise ConflictError(
            ErrorCode.DUPLICATE_TRANSACTION,
            "This transaction id has already been used.",
            transaction_id=transaction_id,
        )


def lock_participant(participant_id: uuid.UUID) -> Participant:
    participant = Participant.objects.select_for_update().filter(pk=participant_id).first()
    if participant is None:
        raise NotFoundError(
            ErrorCode.PARTICIPANT_NOT_FOUND, "Participant not found.", participant_id=str(participant_id)
        )
    return participant


def confirm_pending(participant: Participant, pending: list[Registration]) -> None:
    """Take the seats the pending lines do not hold yet, then mark them paid.

    Runs all-or-nothing: if any event has sold out since registration the whole
    confirmation fails with SEATS_FULL_AT_PAYMENT.
    """
    seat_ledger.take_seats(
        [r.event_id for r in pending if not r.seat_held],
        Cohort(participant.cohort),
        full_code=ErrorCode.SEATS_FULL_AT_PAYMENT,
    )
    Registration.objects.filter(pk__in=[r.pk for r in pending]).update(
        payment_status=Registration.PaymentStatus.SUCCESS, seat_held=True, updated_at=timezone.now()
    )


def _create_payment(**fields: object) -> Payment:
    try:
        with transaction.atomic():
            return Payment.objects.create(**fields)
    except IntegrityError as e:
        raise ConflictError(
            ErrorCode.DUPLICATE_TRANSACTION,
            "This transaction id has already been used.",
            transaction_id=fields["transaction_id"],
        ) from e


def confirmed_registrations(participant: Participant) -> list[Registration]:
    return list(participant.registrations.confirmed().select_related("event").order_by("pk"))


@transaction.atomic
def verify_payment(
    participant_id: uuid.UUID,
    transaction_id: str | None,
    amount: Decimal | None = None,
    method: str = Payment.Method.UPI,
    *,
    expected_cohort: Cohort | None = None,
) -> PaymentOutcome:
    """Record a self-reported payment and confirm the participant's pending registrations.

    The amount recorded is what the pending lines add up to; a differing declared
    amount is noted on the payment for the operator but does not fail the call.

    Args:
        participant_id (uuid.UUID): Who is paying.
        transaction_id (str | None): The external reference they quoted.
        amount (Decimal | None): The amount they say they paid.
        method (str): Payment method.
        expected_cohort (Cohort | None): Reject participants of any other cohort.

    Returns:
        PaymentOutcome: The payment, the confirmed registrations and the QR payload.
    """
    cleaned_id = clean_transaction_id(transaction_id)
    ensure_transaction_unused(cleaned_id)
    participant = lock_participant(participant_id)
    if expected_cohort is not None and participant.cohort != expected_cohort:
        raise ValidationFailedError(
            ErrorCode.COHORT_MISMATCH,
            f"This payment endpoint is for {expected_cohort} participants.",
            cohort=participant.cohort,
        )

    pending = list(participant.registrations.pending().select_related("event").order_by("pk"))
    if not pending:
        raise StateError(ErrorCode.NO_PENDING_REGISTRATIONS, "There is nothing left to pay for.")
    total = sum((r.amount_paid for r in pending), Decimal("0"))
    if total <= 0:
        raise ValidationFailedError(ErrorCode.INVALID_AMOUNT, "The amount owed must be positive.", amount=str(total))

    confirm_pending(participant, pending)

    notes = ""
    if amount is not None and amount != total:
        logger.warning(
            "payment_amount_differs",
            participant_id=str(participant.pk),
            declared=str(amount),
            owed=str(total),
        )
        notes = f"Declared amount {amount} differs from amount owed {total}."
    payment = _create_payment(
        participant=participant,
        transaction_id=cleaned_id,
        amount=total,
        method=method,
        status=Payment.Status.SUCCESS,
        verified_by_admin=False,
        source=Payment.Source.SELF_REPORTED,
        notes=notes,
    )
    cache_service.invalidate_on_commit([participant])

    registrations = confirmed_registrations(participant)
    logger.info(
        "payment_recorded",
        participant_id=str(participant.pk),
        transaction_id=cleaned_id,
        amount=str(total),
        confirmed=len(pending),
    )
    return PaymentOutcome(
        participant=participant,
        payment=payment,
        registrations=registrations,
        qr_payload=build_qr_payload(participant.pk, [r.code for r in registrations if r.code]),
    )


@transaction.atomic
def verify_manually(
    participant_id: uuid.UUID,
    *,
    verified_by: str,
    transaction_id: str | None = None,
    amount: Decimal | None = None,
    notes: str = "",
) -> PaymentOutcome:
    """Mark a participant's payment as admin-verified.

    Without a transaction id, the participant's latest successful payment is promoted.
    With one, a new ``manual`` payment is recorded already verified (for payments the
    participant never reported themselves). Either way any pending registrations are
    confirmed too.
    """
    participant = lock_participant(participant_id)
    now = timezone.now()
    pending = list(participant.registrations.pending().select_related("event").order_by("pk"))

    if transaction_id is not None:
        cleaned_id = clean_transaction_id(transaction_id)
        ensure_transaction_unused(cleaned_id)
        owed = sum((r.amount_paid for r in pending), Decimal("0"))
        if pending:
            confirm_pending(participant, pending)
        payment = _create_payment(
            participant=participant,
            transaction_id=cleaned_id,
            amount=amount if amount is not None else owed,
            method=Payment.Method.OTHER,
            status=Payment.Status.SUCCESS,
            verified_by_admin=True,
            verified_at=now,
            verified_by=verified_by,
            source=Payment.Source.MANUAL,
            notes=notes,
        )
    else:
        payment = (
            participant.payments.select_for_update()
            .filter(status=Payment.Status.SUCCESS)
            .order_by("-created_at")
            .first()
        )
        if payment is None:
            raise StateError(
                ErrorCode.NO_PAYMENT_TO_VERIFY,
                "The participant has no payment to verify. Quote a transaction id to record one.",
            )
        if pending:
            confirm_pending(participant, pending)
        if not payment.verified_by_admin:
            payment.verified_by_admin = True
            payment.verified_at = now
            payment.verified_by = verified_by
            if notes:
                payment.notes = f"{payment.notes}\n{notes}".strip()
            payment.save(update_fields=["verified_by_admin", "verified_at", "verified_by", "notes", "updated_at"])

    cache_service.invalidate_on_commit([participant])
    registrations = confirmed_registrations(participant)
    logger.info(
        "payment_verified_manually",
        participant_id=str(participant.pk),
        transaction_id=payment.transaction_id,
        verified_by=verified_by,
    )
    return PaymentOutcome(
        participant=participant,
        payment=payment,
        registrations=registrations,
        qr_payload=build_qr_payload(participant.pk, [r.code for r in registrations if r.code]),
    )
