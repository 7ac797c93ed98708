import typing as t
from uuid import UUID

from django.contrib.auth.models import AbstractBaseUser
from django.db.models import QuerySet
from django.http import HttpResponse
from django.utils import timezone
from ninja import Query
from ninja_extra import ControllerBase, api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_extra.permissions import IsAdminUser
from ninja_extra.searching import Searching, searching
from ninja_jwt.authentication import JWTAuth

from common.schema import ResponseOk, ServiceErrorResponse
from events import filters, models, schema
from events.controllers.payments import to_result
from events.service import (
    announcement_service,
    attendance_service,
    dashboard_service,
    event_service,
    payment_service,
    reconciliation_service,
    registration_service,
)
from events.service.reconciliation_service import StatementRecord

ERROR_RESPONSES = {400: ServiceErrorResponse, 404: ServiceErrorResponse, 409: ServiceErrorResponse}


class AdminControllerBase(ControllerBase):
    def admin_username(self) -> str:
        """Username of the staff member making the request."""
        user = t.cast(AbstractBaseUser, self.context.request.user)  # type: ignore[union-attr]
        return user.get_username()


@api_controller("/admin/payments", auth=JWTAuth(), permissions=[IsAdminUser], tags=["Admin: Payments"])
class AdminPaymentController(AdminControllerBase):
    @route.post("/reconcile", url_name="reconcile_payments", response=schema.ReconciliationReportSchema)
    def reconcile(self, payload: schema.ReconciliationRequestSchema) -> reconciliation_service.ReconciliationReport:
        """Match unverified payments against a bank statement export.

        Matching payments become admin-verified and their participants' pending
        registrations are confirmed. Every unverified payment that does not match is
        reported with TRANSACTION_NOT_FOUND or AMOUNT_MISMATCH. Safe to run again with
        the same statement.
        """
        return reconciliation_service.reconcile(
            [StatementRecord(transaction_id=r.transaction_id, amount=r.amount) for r in payload.records],
            verified_by=self.admin_username(),
        )


@api_controller("/admin/participants", auth=JWTAuth(), permissions=[IsAdminUser], tags=["Admin: Participants"])
class AdminParticipantController(AdminControllerBase):
    @route.get("/", url_name="list_participants", response=PaginatedResponseSchema[schema.ParticipantSchema])
    @paginate(PageNumberPaginationExtra, page_size=50)
    @searching(Searching, search_fields=["full_name", "email", "phone", "roll_number", "registrations__code"])
    def list_participants(
        self,
        params: filters.ParticipantFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Participant]:
        """Search participants by name, e-mail, phone, roll number or registration code."""
        return params.filter(dashboard_service.search_participants()).distinct()

    @route.get(
        "/{participant_id}",
        url_name="get_participant",
        response={200: schema.ParticipantSchema, 404: ServiceErrorResponse},
    )
    def get_participant(self, participant_id: UUID) -> models.Participant:
        return dashboard_service.get_participant(participant_id)

    @route.post(
        "/{participant_id}/verify-payment",
        url_name="verify_participant_payment",
        response={200: schema.PaymentResultSchema, **ERROR_RESPONSES},
    )
    def verify_payment(
        self, participant_id: UUID, payload: schema.ManualVerificationSchema
    ) -> schema.PaymentResultSchema:
        """Verify a participant's payment by hand.

        Without a transaction id the participant's latest payment is verified; with one,
        a new verified payment is recorded for it.
        """
        outcome = payment_service.verify_manually(
            participant_id,
            verified_by=self.admin_username(),
            transaction_id=payload.transaction_id,
            amount=payload.amount,
            notes=payload.notes,
        )
        return to_result(outcome)

    @route.post(
        "/{participant_id}/release-holds",
        url_name="release_holds",
        response={200: schema.ReleaseHoldsResponse, 404: ServiceErrorResponse},
    )
    def release_holds(self, participant_id: UUID) -> schema.ReleaseHoldsResponse:
        """Drop the participant's unpaid registrations and return the seats they held."""
        return schema.ReleaseHoldsResponse(released=registration_service.release_holds(participant_id))


@api_controller("/admin/attendance", auth=JWTAuth(), permissions=[IsAdminUser], tags=["Admin: Attendance"])
class AdminAttendanceController(AdminControllerBase):
    @route.post(
        "/scan",
        url_name="scan_attendance",
        response={200: schema.AttendanceResultSchema, 403: ServiceErrorResponse, **ERROR_RESPONSES},
    )
    def scan(self, payload: schema.AttendanceScanSchema) -> attendance_service.AttendanceOutcome:
        """Check a registration in from its code or a scanned QR payload.

        A denial answers 403 with the cohort, event type, year, amounts and a suggestion
        for resolving it. Scanning an already checked-in registration succeeds with
        already_marked set.
        """
        return attendance_service.scan(
            code=payload.code, payload=payload.payload, event_id=payload.event_id, marked_by=self.admin_username()
        )

    @route.post(
        "/manual",
        url_name="manual_attendance",
        response={200: schema.AttendanceResultSchema, 403: ServiceErrorResponse, **ERROR_RESPONSES},
    )
    def manual(self, payload: schema.ManualAttendanceSchema) -> attendance_service.AttendanceOutcome:
        """Check a participant in for an event without a QR code."""
        return attendance_service.mark_manually(
            payload.participant_id, payload.event_id, marked_by=self.admin_username()
        )

    @route.get(
        "/lookup",
        url_name="lookup_qr",
        response={200: schema.QrLookupSchema, **ERROR_RESPONSES},
    )
    def lookup(self, payload: str) -> dict[str, t.Any]:
        """Show who a QR code belongs to and the registrations it lists."""
        participant, registrations = attendance_service.lookup_qr(payload)
        return {"participant": participant, "registrations": registrations}


@api_controller("/admin", auth=JWTAuth(), permissions=[IsAdminUser], tags=["Admin: Dashboard"])
class AdminDashboardController(AdminControllerBase):
    @route.get("/stats", url_name="admin_stats", response=schema.StatsSchema)
    def stats(self) -> schema.StatsSchema:
        """Participant, revenue, attendance and seat figures. Cached briefly."""
        return dashboard_service.get_stats()

    @route.get("/export", url_name="admin_export", response={200: None})
    def export(self) -> HttpResponse:
        """Download every registration as CSV."""
        response = HttpResponse(dashboard_service.export_registrations_csv(), content_type="text/csv")
        filename = f"registrations-{timezone.now():%Y%m%d-%H%M%S}.csv"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    @route.post("/events/close", url_name="close_events", response=schema.CloseEventsResponse)
    def close_events(self) -> schema.CloseEventsResponse:
        """Close every active event if the configured closing moment has passed."""
        return schema.CloseEventsResponse(closed=event_service.close_events_if_due())

    @route.post("/announcements", url_name="create_announcement", response={201: schema.AnnouncementSchema})
    def create_announcement(self, payload: schema.AnnouncementCreateSchema) -> tuple[int, models.Announcement]:
        return 201, announcement_service.create_announcement(payload, created_by=self.admin_username())

    @route.delete(
        "/announcements/{announcement_id}",
        url_name="delete_announcement",
        response={200: ResponseOk},
    )
    def delete_announcement(self, announcement_id: UUID) -> ResponseOk:
        announcement_service.delete_announcement(announcement_id, deleted_by=self.admin_username())
        return ResponseOk()
