import typing as t

from django.conf import settings
from django.db import models

from common.models import TimeStampedModel

from .event import Event
from .participant import Participant


class RegistrationQuerySet(models.QuerySet["Registration"]):
    def pending(self) -> t.Self:
        return self.filter(payment_status=Registration.PaymentStatus.PENDING)

    def confirmed(self) -> t.Self:
        return self.filter(payment_status=Registration.PaymentStatus.SUCCESS)

    def full(self) -> t.Self:
        return self.select_related("participant", "event")


class Registration(TimeStampedModel):
    """One participant signed up for one event."""

    class PaymentStatus(models.TextChoices):
        PENDING = "Pending", "Pending"
        SUCCESS = "Success", "Success"

    class AttendanceStatus(models.TextChoices):
        NOT_ATTENDED = "NOT_ATTENDED", "Not attended"
        ATTENDED = "ATTENDED", "Attended"

    # sequential so codes stay short
    id = models.BigAutoField(primary_key=True)
    participant = models.ForeignKey(Participant, on_delete=models.PROTECT, related_name="registrations")
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="registrations")
    code = models.CharField(max_length=40, unique=True, null=True, blank=True)
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    attendance_status = models.CharField(
        max_length=20, choices=AttendanceStatus.choices, default=AttendanceStatus.NOT_ATTENDED, db_index=True
    )
    attended_at = models.DateTimeField(null=True, blank=True)
    attendance_marked_by = models.CharField(max_length=150, blank=True, default="")
    seat_held = models.BooleanField(default=False)

    objects = RegistrationQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["participant", "event"], name="unique_participant_event"),
        ]

    def __str__(self) -> str:
        return self.code or f"registration #{self.pk}"

    def build_code(self) -> str:
        """Human-readable code, e.g. SYMP26EVENT0042 or SYMP26PWORKSHOP0007 for partner students."""
        cohort_marker = "P" if self.participant.is_partner else ""
        category = "WORKSHOP" if self.event.is_workshop else "EVENT"
        return f"{settings.REGISTRATION_CODE_PREFIX}{cohort_marker}{category}{self.pk:04d}"

    @property
    def is_attended(self) -> bool:
        return self.attendance_status == self.AttendanceStatus.ATTENDED

    @property
    def event_name(self) -> str:
        return self.event.name

    @property
    def event_type(self) -> str:
        return self.event.event_type
