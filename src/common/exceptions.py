"""Structured service errors.

Every failure a caller can act on is raised as a ``ServiceError`` subclass carrying a
stable machine-readable ``code``, a human-readable ``detail`` and a ``context`` dict.
The API layer turns them into ``{"code", "detail", "context"}`` responses; nothing
downstream ever parses the message text.
"""

import typing as t
from enum import StrEnum


class ErrorCode(StrEnum):
    # identity verification
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    OTP_EXPIRED = "OTP_EXPIRED"
    OTP_LOCKED = "OTP_LOCKED"
    OTP_INVALID = "OTP_INVALID"
    VERIFICATION_EXPIRED = "VERIFICATION_EXPIRED"
    EMAIL_MISMATCH = "EMAIL_MISMATCH"

    # registration
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    INVALID_FIELD = "INVALID_FIELD"
    NO_EVENTS_SELECTED = "NO_EVENTS_SELECTED"
    DUPLICATE_SELECTION = "DUPLICATE_SELECTION"
    INVALID_ROLL_NUMBER = "INVALID_ROLL_NUMBER"
    ROLL_NUMBER_USED = "ROLL_NUMBER_USED"

    # seats
    WORKSHOP_NOT_FOUND = "WORKSHOP_NOT_FOUND"
    NOT_A_WORKSHOP = "NOT_A_WORKSHOP"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_INACTIVE = "EVENT_INACTIVE"
    SEATS_FULL = "SEATS_FULL"

    # payments
    TRANSACTION_ID_REQUIRED = "TRANSACTION_ID_REQUIRED"
    INVALID_TRANSACTION_ID = "INVALID_TRANSACTION_ID"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    NO_PENDING_REGISTRATIONS = "NO_PENDING_REGISTRATIONS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    SEATS_FULL_AT_PAYMENT = "SEATS_FULL_AT_PAYMENT"
    COHORT_MISMATCH = "COHORT_MISMATCH"
    NO_PAYMENT_TO_VERIFY = "NO_PAYMENT_TO_VERIFY"

    # reconciliation (per record)
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

    # attendance
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    INVALID_QR_PAYLOAD = "INVALID_QR_PAYLOAD"
    ATTENDANCE_DENIED = "ATTENDANCE_DENIED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = 400

    def __init__(self, code: ErrorCode, detail: str, /, **context: t.Any) -> None:
        super().__init__(detail)
        self.code = code
        self.detail = detail
        self.context = context

    def to_payload(self) -> dict[str, t.Any]:
        """Serializable representation used by the API layer."""
        return {"code": str(self.code), "detail": self.detail, "context": self.context}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.code!s}, {self.detail!r})"


class ValidationFailedError(ServiceError):
    """Missing or malformed input."""

    status_code = 400


class ConflictError(ServiceError):
    """Duplicate e-mail, duplicate transaction id, already-registered."""

    status_code = 409


class CapacityError(ServiceError):
    """No seats left in the requested pool, at registration or at payment time."""

    status_code = 409


class StateError(ServiceError):
    """The operation is not allowed in the current state (expired OTP, nothing pending...)."""

    status_code = 400


class NotFoundError(ServiceError):
    """A participant, event or registration does not exist."""

    status_code = 404


class DeliveryFailedError(ServiceError):
    """The mail collaborator could not accept a message."""

    status_code = 502
