import typing as t
from datetime import date, datetime

from django.db import models
from django.utils import timezone
from solo.models import SingletonModel


class SymposiumSettings(SingletonModel):
    """Singleton holding the symposium calendar."""

    name = models.CharField(max_length=150, default="Symposium")
    day_one = models.DateField(null=True, blank=True)
    day_two = models.DateField(null=True, blank=True)
    registration_closes_at = models.DateTimeField(
        null=True, blank=True, help_text="No new registrations are accepted after this moment."
    )
    events_close_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Once this moment has passed every active event is switched to inactive.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return "Symposium Settings"

    class Meta:
        verbose_name = "Symposium Settings"
        verbose_name_plural = "Symposium Settings"

    def is_registration_open(self, now: datetime | None = None) -> bool:
        """Registration is open until the deadline, or forever when none is set."""
        now = now or timezone.now()
        return self.registration_closes_at is None or now <= self.registration_closes_at

    def events_are_due_to_close(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        return self.events_close_at is not None and now >= self.events_close_at

    def day_for(self, day: int) -> date | None:
        return t.cast(date | None, {1: self.day_one, 2: self.day_two}.get(day))
