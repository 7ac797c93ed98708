import typing as t

from django.db import models
from django.db.models import F, Q

from common.models import TimeStampedModel


class EventQuerySet(models.QuerySet["Event"]):
    def active(self) -> t.Self:
        return self.filter(is_active=True)

    def workshops(self) -> t.Self:
        return self.filter(event_type=Event.EventType.WORKSHOP)

    def non_workshops(self) -> t.Self:
        return self.exclude(event_type=Event.EventType.WORKSHOP)


class Event(TimeStampedModel):
    """A workshop or event on one of the two symposium days.

    Every event has two seat pools. The general pool (``total_seats``/``available_seats``)
    covers everyone. The partner pool (``partner_seats``/``partner_available_seats``) is
    the partner institution's quota inside it: a partner seat uses up one seat of each.
    The counters are only changed by ``events.service.seat_ledger``.
    """

    class EventType(models.TextChoices):
        WORKSHOP = "workshop", "Workshop"
        EVENT = "event", "Event"

    class Day(models.IntegerChoices):
        ONE = 1, "Day 1"
        TWO = 2, "Day 2"

    name = models.CharField(max_length=150, unique=True)
    description = models.TextField(blank=True, default="")
    event_type = models.CharField(max_length=20, choices=EventType.choices, default=EventType.EVENT, db_index=True)
    day = models.PositiveSmallIntegerField(choices=Day.choices, default=Day.ONE)
    total_seats = models.PositiveIntegerField(default=0)
    available_seats = models.PositiveIntegerField(default=0)
    partner_seats = models.PositiveIntegerField(default=0)
    partner_available_seats = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["day", "event_type", "name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_seats__gte=0) & Q(available_seats__lte=F("total_seats")),
                name="event_available_seats_within_total",
            ),
            models.CheckConstraint(
                condition=Q(partner_available_seats__gte=0) & Q(partner_available_seats__lte=F("partner_seats")),
                name="event_partner_available_seats_within_total",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (day {self.day})"

    @property
    def is_workshop(self) -> bool:
        return self.event_type == self.EventType.WORKSHOP
