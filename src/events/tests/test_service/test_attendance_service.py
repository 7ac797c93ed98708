import typing as t
import uuid
from decimal import Decimal

import pytest

from common.exceptions import ErrorCode, NotFoundError, ValidationFailedError
from events.exceptions import AttendanceDeniedError
from events.models import Cohort, Event, Participant, Payment, Registration
from events.service import attendance_service
from events.service.attendance_service import AdmissionFacts, evaluate_admission
from events.utils import build_qr_payload

pytestmark = pytest.mark.django_db

PENDING = Registration.PaymentStatus.PENDING
SUCCESS = Registration.PaymentStatus.SUCCESS


def facts(
    cohort: Cohort,
    is_workshop: bool,
    year: int,
    amount: str,
    status: str,
    verified: bool,
) -> AdmissionFacts:
    return AdmissionFacts(
        cohort=cohort,
        is_workshop=is_workshop,
        year_of_study=year,
        amount_paid=Decimal(amount),
        payment_status=status,
        verified_by_admin=verified,
    )


class TestAdmissionRules:
    @pytest.mark.parametrize(
        "admission_facts,allowed",
        [
            # partner events, years 2-4: free entry, no checks
            (facts(Cohort.PARTNER, False, 2, "0", PENDING, False), True),
            (facts(Cohort.PARTNER, False, 4, "0", SUCCESS, False), True),
            # partner events, first year
            (facts(Cohort.PARTNER, False, 1, "250", SUCCESS, True), True),
            (facts(Cohort.PARTNER, False, 1, "250", PENDING, True), False),
            (facts(Cohort.PARTNER, False, 1, "0", PENDING, True), True),
            (facts(Cohort.PARTNER, False, 1, "250", SUCCESS, False), False),
            # partner workshops, every year
            (facts(Cohort.PARTNER, True, 3, "300", SUCCESS, True), True),
            (facts(Cohort.PARTNER, True, 3, "300", PENDING, True), False),
            (facts(Cohort.PARTNER, True, 3, "300", SUCCESS, False), False),
            # general events
            (facts(Cohort.GENERAL, False, 2, "0", PENDING, True), True),
            (facts(Cohort.GENERAL, False, 2, "300", SUCCESS, False), False),
            # general workshops
            (facts(Cohort.GENERAL, True, 2, "400", SUCCESS, True), True),
            (facts(Cohort.GENERAL, True, 2, "400", PENDING, True), False),
            (facts(Cohort.GENERAL, True, 2, "400", SUCCESS, False), False),
        ],
    )
    def test_admission_table(self, admission_facts: AdmissionFacts, allowed: bool) -> None:
        assert evaluate_admission(admission_facts).allowed is allowed

    def test_denial_carries_context_for_operator(self) -> None:
        decision = evaluate_admission(facts(Cohort.GENERAL, True, 2, "400", PENDING, True))

        assert decision.cohort == "general"
        assert decision.event_type == "workshop"
        assert decision.year_of_study == 2
        assert decision.amount_paid == Decimal("400")
        assert decision.payment_status == PENDING
        assert decision.verified_by_admin is True
        assert decision.reason == str(attendance_service.Reasons.PAYMENT_PENDING)
        assert decision.suggestion == str(attendance_service.Suggestions.COLLECT_PAYMENT)

    def test_unverified_denial_suggests_verification(self) -> None:
        decision = evaluate_admission(facts(Cohort.GENERAL, False, 2, "300", SUCCESS, False))

        assert decision.reason == str(attendance_service.Reasons.NOT_VERIFIED)
        assert decision.suggestion == str(attendance_service.Suggestions.VERIFY_PAYMENT)


@pytest.fixture
def paid_workshop_line(
    participant: Participant,
    workshop: Event,
    registration_factory: t.Callable[..., Registration],
    payment_factory: t.Callable[..., Payment],
) -> Registration:
    registration = registration_factory(participant, workshop, "400", SUCCESS)
    payment_factory(participant, "UPI123456", "400", verified_by_admin=True)
    return registration


class TestMarkAttendance:
    def test_admits_and_marks(self, paid_workshop_line: Registration) -> None:
        outcome = attendance_service.mark_attendance(paid_workshop_line.pk, marked_by="desk")

        assert not outcome.already_marked
        assert outcome.decision is not None and outcome.decision.allowed
        paid_workshop_line.refresh_from_db()
        assert paid_workshop_line.attendance_status == Registration.AttendanceStatus.ATTENDED
        assert paid_workshop_line.attended_at is not None
        assert paid_workshop_line.attendance_marked_by == "desk"

    def test_second_scan_is_idempotent(self, paid_workshop_line: Registration) -> None:
        attendance_service.mark_attendance(paid_workshop_line.pk, marked_by="desk")
        paid_workshop_line.refresh_from_db()
        first_attended_at = paid_workshop_line.attended_at

        outcome = attendance_service.mark_attendance(paid_workshop_line.pk, marked_by="other-desk")

        assert outcome.already_marked
        paid_workshop_line.refresh_from_db()
        assert paid_workshop_line.attended_at == first_attended_at
        assert paid_workshop_line.attendance_marked_by == "desk"

    def test_already_attended_skips_rules(self, paid_workshop_line: Registration) -> None:
        attendance_service.mark_attendance(paid_workshop_line.pk)
        # the payment loses its verification afterwards; the registration stays attended
        Payment.objects.update(verified_by_admin=False)

        outcome = attendance_service.mark_attendance(paid_workshop_line.pk)

        assert outcome.already_marked

    def test_denial_leaves_registration_untouched(
        self,
        participant: Participant,
        workshop: Event,
        registration_factory: t.Callable[..., Registration],
    ) -> None:
        registration = registration_factory(participant, workshop, "400", PENDING)

        with pytest.raises(AttendanceDeniedError) as exc_info:
            attendance_service.mark_attendance(registration.pk)

        error = exc_info.value
        assert error.code == ErrorCode.ATTENDANCE_DENIED
        assert error.status_code == 403
        assert error.context["cohort"] == "general"
        assert error.context["event_type"] == "workshop"
        assert error.context["suggestion"]
        registration.refresh_from_db()
        assert registration.attendance_status == Registration.AttendanceStatus.NOT_ATTENDED

    def test_uses_stored_cohort(
        self,
        participant_factory: t.Callable[..., Participant],
        events: list[Event],
        registration_factory: t.Callable[..., Registration],
    ) -> None:
        student = participant_factory("kavya@example.com", Cohort.PARTNER, year=2, roll_number="22EE007")
        registration = registration_factory(student, events[0], "0", SUCCESS)

        outcome = attendance_service.mark_attendance(registration.pk)

        assert outcome.decision is not None
        assert outcome.decision.reason == str(attendance_service.Reasons.FREE_ENTRY)

    def test_latest_payment_decides_verification(
        self,
        participant: Participant,
        events: list[Event],
        registration_factory: t.Callable[..., Registration],
        payment_factory: t.Callable[..., Payment],
    ) -> None:
        registration = registration_factory(participant, events[0], "300", SUCCESS)
        payment_factory(participant, "UPI-OLD-001", "300", verified_by_admin=True)
        payment_factory(participant, "UPI-NEW-002", "300")

        with pytest.raises(AttendanceDeniedError):
            attendance_service.mark_attendance(registration.pk)

    def test_unknown_registration(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            attendance_service.mark_attendance(999_999)

        assert exc_info.value.code == ErrorCode.REGISTRATION_NOT_FOUND


class TestScan:
    def test_by_code_is_case_insensitive(self, paid_workshop_line: Registration) -> None:
        assert paid_workshop_line.code is not None

        outcome = attendance_service.scan(code=f" {paid_workshop_line.code.lower()} ", marked_by="desk")

        assert outcome.registration.pk == paid_workshop_line.pk

    def test_by_qr_payload_with_single_registration(self, paid_workshop_line: Registration) -> None:
        payload = build_qr_payload(paid_workshop_line.participant_id, [paid_workshop_line.code or ""])

        outcome = attendance_service.scan(payload=payload)

        assert outcome.registration.pk == paid_workshop_line.pk

    def test_qr_payload_with_several_registrations_needs_event(
        self,
        paid_workshop_line: Registration,
        events: list[Event],
        registration_factory: t.Callable[..., Registration],
    ) -> None:
        other = registration_factory(paid_workshop_line.participant, events[0], "300", SUCCESS)
        payload = build_qr_payload(other.participant_id, [paid_workshop_line.code or "", other.code or ""])

        with pytest.raises(ValidationFailedError) as exc_info:
            attendance_service.scan(payload=payload)
        assert exc_info.value.code == ErrorCode.INVALID_QR_PAYLOAD

        outcome = attendance_service.scan(payload=payload, event_id=events[0].pk)
        assert outcome.registration.pk == other.pk

    def test_malformed_payload(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            attendance_service.scan(payload="not-a-uuid|SYMP26EVENT0001")

        assert exc_info.value.code == ErrorCode.INVALID_QR_PAYLOAD

    def test_nothing_to_scan(self) -> None:
        with pytest.raises(ValidationFailedError):
            attendance_service.scan()

    def test_unknown_code(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            attendance_service.scan(code="SYMP26EVENT9999")

        assert exc_info.value.code == ErrorCode.REGISTRATION_NOT_FOUND
        assert exc_info.value.context == {"registration_code": "SYMP26EVENT9999"}


class TestManualAndLookup:
    def test_mark_manually(self, paid_workshop_line: Registration, workshop: Event) -> None:
        outcome = attendance_service.mark_manually(paid_workshop_line.participant_id, workshop.pk, marked_by="desk")

        assert outcome.registration.pk == paid_workshop_line.pk
        assert outcome.registration.is_attended

    def test_mark_manually_not_registered(self, participant: Participant, events: list[Event]) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            attendance_service.mark_manually(participant.pk, events[0].pk)

        assert exc_info.value.code == ErrorCode.REGISTRATION_NOT_FOUND

    def test_lookup_qr(self, paid_workshop_line: Registration) -> None:
        payload = build_qr_payload(paid_workshop_line.participant_id, [paid_workshop_line.code or ""])

        participant, registrations = attendance_service.lookup_qr(payload)

        assert participant.pk == paid_workshop_line.participant_id
        assert registrations == [paid_workshop_line]

    def test_lookup_qr_unknown_participant(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            attendance_service.lookup_qr(f"{uuid.uuid4()}|SYMP26EVENT0001")

        assert exc_info.value.code == ErrorCode.PARTICIPANT_NOT_FOUND
