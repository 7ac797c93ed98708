"""Reconciliation of recorded payments against a bank or UPI statement.

Every successful payment that is not yet admin-verified is looked up in the statement
by transaction id. A match with the same amount (within the tolerance) promotes the
payment to admin-verified and confirms the participant's pending registrations. A
participant who already has a verified payment is skipped entirely, which makes
re-running the same statement a no-op.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from common.exceptions import ErrorCode
from events.models import Participant, Payment, Registration
from events.service import cache_service

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StatementRecord:
    transaction_id: str
    amount: Decimal


@dataclass(frozen=True)
class ReconciliationFailure:
    participant_id: uuid.UUID
    transaction_id: str
    code: ErrorCode
    expected_amount: Decimal
    received_amount: Decimal | None = None


@dataclass
class ReconciliationReport:
    newly_verified: int = 0
    total_verified: int = 0
    failures: list[ReconciliationFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


def index_statement(records: Iterable[StatementRecord]) -> dict[str, Decimal]:
    """Map trimmed transaction ids to amounts. A repeated id keeps its first amount."""
    index: dict[str, Decimal] = {}
    for record in records:
        index.setdefault(record.transaction_id.strip(), Decimal(record.amount))
    return index


@transaction.atomic
def reconcile(records: Iterable[StatementRecord], *, verified_by: str = "") -> ReconciliationReport:
    """Match unverified payments against a statement and promote the matches.

    Args:
        records (Iterable[StatementRecord]): The statement lines.
        verified_by (str): The operator running the reconciliation.

    Returns:
        ReconciliationReport: Counts of newly verified and failed payments, the total
        number of verified payments, and why each failure failed.
    """
    statement = index_statement(records)
    tolerance = Decimal(settings.RECONCILIATION_AMOUNT_TOLERANCE)
    already_verified = Payment.objects.filter(verified_by_admin=True).values("participant_id")
    candidates = (
        Payment.objects.select_for_update()
        .filter(status=Payment.Status.SUCCESS, verified_by_admin=False)
        .exclude(participant_id__in=already_verified)
        .order_by("pk")
    )

    report = ReconciliationReport()
    matched_payments: list[uuid.UUID] = []
    matched_participants: set[uuid.UUID] = set()
    for payment in candidates:
        received = statement.get(payment.transaction_id.strip())
        if received is None:
            report.failures.append(
                ReconciliationFailure(
                    participant_id=payment.participant_id,
                    transaction_id=payment.transaction_id,
                    code=ErrorCode.TRANSACTION_NOT_FOUND,
                    expected_amount=payment.amount,
                )
            )
        elif abs(received - payment.amount) > tolerance:
            report.failures.append(
                ReconciliationFailure(
                    participant_id=payment.participant_id,
                    transaction_id=payment.transaction_id,
                    code=ErrorCode.AMOUNT_MISMATCH,
                    expected_amount=payment.amount,
                    received_amount=received,
                )
            )
        else:
            matched_payments.append(payment.pk)
            matched_participants.add(payment.participant_id)

    now = timezone.now()
    report.newly_verified = Payment.objects.filter(pk__in=matched_payments).update(
        verified_by_admin=True,
        verified_at=now,
        verified_by=verified_by,
        source=Payment.Source.RECONCILED,
        updated_at=now,
    )
    confirmed = Registration.objects.filter(
        participant_id__in=matched_participants, payment_status=Registration.PaymentStatus.PENDING
    ).update(payment_status=Registration.PaymentStatus.SUCCESS, updated_at=now)
    report.total_verified = Payment.objects.filter(verified_by_admin=True).count()

    cache_service.invalidate_on_commit(Participant.objects.filter(pk__in=matched_participants).only("id", "email"))
    logger.info(
        "reconciliation_completed",
        statement_records=len(statement),
        newly_verified=report.newly_verified,
        failed=report.failed,
        registrations_confirmed=confirmed,
        total_verified=report.total_verified,
        verified_by=verified_by,
    )
    return report
