import typing as t

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel

if t.TYPE_CHECKING:
    from .payment import Payment


class Cohort(models.TextChoices):
    GENERAL = "general", "General"
    PARTNER = "partner", "Partner institution"


class Participant(TimeStampedModel):
    """Someone who registered. Participants are never deleted."""

    full_name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20)
    institution = models.CharField(max_length=200)
    department = models.CharField(max_length=150)
    year_of_study = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(4)])
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    accommodation_required = models.BooleanField(default=False)
    cohort = models.CharField(max_length=20, choices=Cohort.choices, default=Cohort.GENERAL, db_index=True)
    roll_number = models.CharField(max_length=32, null=True, blank=True, unique=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(year_of_study__gte=1) & Q(year_of_study__lte=4),
                name="participant_year_of_study_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Store e-mails lowercased so uniqueness is case-insensitive."""
        self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_partner(self) -> bool:
        return self.cohort == Cohort.PARTNER

    @property
    def latest_payment(self) -> "Payment | None":
        return self.payments.order_by("-created_at").first()

    @property
    def is_verified(self) -> bool:
        return self.payments.filter(verified_by_admin=True).exists()


class PartnerStudent(models.Model):
    """Roster of partner-institution roll numbers allowed to register without an e-mail code."""

    roll_number = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=150, blank=True, default="")
    is_registered = models.BooleanField(default=False)
    registered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["roll_number"]

    def __str__(self) -> str:
        return self.roll_number

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.roll_number = self.roll_number.strip().upper()
        super().save(*args, **kwargs)
