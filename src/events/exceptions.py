import typing as t

from common.exceptions import ErrorCode, StateError

if t.TYPE_CHECKING:
    from events.service.attendance_service import AdmissionDecision


class AttendanceDeniedError(StateError):
    """Raised when the admission rules refuse a registration at the door."""

    status_code = 403

    def __init__(self, decision: "AdmissionDecision") -> None:
        super().__init__(
            ErrorCode.ATTENDANCE_DENIED,
            decision.reason or "Attendance denied.",
            **decision.model_dump(mode="json"),
        )
        self.decision = decision
