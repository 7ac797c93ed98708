import typing as t
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import Field, field_validator

from common.schema import OneToOneFiftyString, StrippedString
from events.models import Announcement, Event, Participant, Payment, Registration
from events.service import pricing

# --- Events ---


class EventSchema(ModelSchema):
    event_type: Event.EventType
    fee: Decimal

    class Meta:
        model = Event
        fields = [
            "id",
            "name",
            "description",
            "event_type",
            "day",
            "total_seats",
            "available_seats",
            "partner_seats",
            "partner_available_seats",
            "is_active",
        ]

    @staticmethod
    def resolve_fee(obj: Event) -> Decimal:
        return pricing.FeeSchedule.from_settings().list_price(obj)


class EventDatesSchema(Schema):
    name: str
    day_one: date | None = None
    day_two: date | None = None
    registration_closes_at: datetime | None = None
    events_close_at: datetime | None = None
    registration_open: bool
    seconds_until_start: int | None = None
    seconds_until_registration_closes: int | None = None


class AnnouncementSchema(ModelSchema):
    class Meta:
        model = Announcement
        fields = ["id", "title", "body", "is_pinned", "created_at"]


class AnnouncementCreateSchema(Schema):
    title: OneToOneFiftyString
    body: StrippedString = Field(..., min_length=1)
    is_pinned: bool = False


class CloseEventsResponse(Schema):
    closed: int


# --- Registration ---


class ParticipantDetailsSchema(Schema):
    """Participant fields shared by both registration forms.

    Kept loose on purpose: the registration workflow validates them and reports
    INVALID_FIELD with the offending field name.
    """

    full_name: str = ""
    email: str = ""
    phone: str = ""
    institution: str = ""
    department: str = ""
    year_of_study: int = 0
    city: str = ""
    state: str = ""
    accommodation_required: bool = False
    workshop_ids: list[UUID] = Field(default_factory=list)
    event_ids: list[UUID] = Field(default_factory=list)


class GeneralRegistrationSchema(ParticipantDetailsSchema):
    verification_token: str


class PartnerRegistrationSchema(ParticipantDetailsSchema):
    roll_number: str

    @field_validator("roll_number", mode="after")
    @classmethod
    def normalize_roll_number(cls, v: str) -> str:
        """Roll numbers are stored uppercased."""
        return v.strip().upper()


class RegistrationLineSchema(ModelSchema):
    event_id: UUID
    event_name: str
    event_type: Event.EventType
    payment_status: Registration.PaymentStatus
    attendance_status: Registration.AttendanceStatus

    class Meta:
        model = Registration
        fields = ["code", "amount_paid", "payment_status", "attendance_status", "attended_at"]


class RegistrationResultSchema(Schema):
    participant_id: UUID
    cohort: str
    registrations: list[RegistrationLineSchema]
    total_amount: Decimal
    requires_payment: bool
    payment_reference: str


class ParticipantStatusSchema(Schema):
    participant_id: UUID
    full_name: str
    email: str
    cohort: str
    is_verified: bool
    amount_due: Decimal
    registrations: list[RegistrationLineSchema]


# --- Payments ---


class PaymentVerifySchema(Schema):
    participant_id: UUID
    transaction_id: str = ""
    amount: Decimal | None = None
    method: Payment.Method = Payment.Method.UPI


class PaymentSchema(ModelSchema):
    status: Payment.Status
    method: Payment.Method
    source: Payment.Source

    class Meta:
        model = Payment
        fields = [
            "id",
            "transaction_id",
            "amount",
            "method",
            "status",
            "verified_by_admin",
            "verified_at",
            "verified_by",
            "source",
            "notes",
            "created_at",
        ]


class PaymentResultSchema(Schema):
    participant_id: UUID
    payment: PaymentSchema
    registrations: list[RegistrationLineSchema]
    qr_payload: str
    qr_code: str | None = None


class ManualVerificationSchema(Schema):
    transaction_id: str | None = None
    amount: Decimal | None = None
    notes: StrippedString = ""


class StatementRecordSchema(Schema):
    transaction_id: str
    amount: Decimal


class ReconciliationRequestSchema(Schema):
    records: list[StatementRecordSchema] = Field(..., min_length=1)


class ReconciliationFailureSchema(Schema):
    participant_id: UUID
    transaction_id: str
    code: str
    expected_amount: Decimal
    received_amount: Decimal | None = None


class ReconciliationReportSchema(Schema):
    newly_verified: int
    failed: int
    total_verified: int
    failures: list[ReconciliationFailureSchema]


class ReleaseHoldsResponse(Schema):
    released: int


# --- Attendance ---


class AttendanceScanSchema(Schema):
    """Either a registration code, or a QR payload plus the event being checked in."""

    code: str | None = None
    payload: str | None = None
    event_id: UUID | None = None


class ManualAttendanceSchema(Schema):
    participant_id: UUID
    event_id: UUID


class AdmissionDecisionSchema(Schema):
    allowed: bool
    reason: str | None = None
    cohort: str
    event_type: str
    year_of_study: int
    amount_paid: Decimal
    payment_status: str
    verified_by_admin: bool
    suggestion: str | None = None


class AttendanceResultSchema(Schema):
    participant_id: UUID
    full_name: str
    registration: RegistrationLineSchema
    already_marked: bool
    decision: AdmissionDecisionSchema | None = None


# --- Admin dashboard ---


class ParticipantSchema(ModelSchema):
    is_verified: bool
    registrations: list[RegistrationLineSchema]

    class Meta:
        model = Participant
        fields = [
            "id",
            "full_name",
            "email",
            "phone",
            "institution",
            "department",
            "year_of_study",
            "city",
            "state",
            "accommodation_required",
            "cohort",
            "roll_number",
            "created_at",
        ]

    @staticmethod
    def resolve_is_verified(obj: Participant) -> bool:
        if hasattr(obj, "verified"):
            return bool(obj.verified)
        return obj.is_verified

    @staticmethod
    def resolve_registrations(obj: Participant) -> t.Any:
        return obj.registrations.all()


class QrLookupSchema(Schema):
    participant: ParticipantSchema
    registrations: list[RegistrationLineSchema]


class EventFillSchema(Schema):
    event_id: UUID
    name: str
    event_type: str
    day: int
    total_seats: int
    available_seats: int
    partner_seats: int
    partner_available_seats: int
    registrations: int
    attended: int


class StatsSchema(Schema):
    participants: int
    participants_by_cohort: dict[str, int]
    registrations_by_status: dict[str, int]
    verified_participants: int
    verified_revenue: Decimal
    unverified_revenue: Decimal
    attended: int
    accommodation_required: int
    events: list[EventFillSchema]
