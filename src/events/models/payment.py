from django.db import models

from common.models import TimeStampedModel

from .participant import Participant


class Payment(TimeStampedModel):
    """One externally quoted transaction.

    ``status`` says whether the participant completed the payment; ``verified_by_admin``
    says whether an operator (or a bank statement) confirmed it. The flag only ever goes
    from False to True.
    """

    class Status(models.TextChoices):
        PENDING = "Pending", "Pending"
        SUCCESS = "Success", "Success"
        FAILED = "Failed", "Failed"

    class Method(models.TextChoices):
        UPI = "upi", "UPI"
        BANK_TRANSFER = "bank_transfer", "Bank transfer"
        CASH = "cash", "Cash"
        OTHER = "other", "Other"

    class Source(models.TextChoices):
        SELF_REPORTED = "self_reported", "Self reported"
        RECONCILED = "reconciled", "Reconciled from statement"
        MANUAL = "manual", "Manual"

    participant = models.ForeignKey(Participant, on_delete=models.PROTECT, related_name="payments")
    transaction_id = models.CharField(max_length=100, unique=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.UPI)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUCCESS, db_index=True)
    verified_by_admin = models.BooleanField(default=False, db_index=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.CharField(max_length=150, blank=True, default="")
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.SELF_REPORTED)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.transaction_id} ({self.amount})"
