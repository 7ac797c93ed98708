# src/events/filters.py

from uuid import UUID

from django.db.models import Q
from ninja import Field, FilterSchema

from events.models import Cohort, Event, Registration


class EventFilterSchema(FilterSchema):
    event_type: Event.EventType | None = None
    day: int | None = None
    include_inactive: bool = False

    def filter_include_inactive(self, include_inactive: bool) -> Q:
        """Only open events unless asked otherwise."""
        if include_inactive:
            return Q()
        return Q(is_active=True)


class ParticipantFilterSchema(FilterSchema):
    cohort: Cohort | None = None
    year_of_study: int | None = None
    verified: bool | None = None
    payment_status: Registration.PaymentStatus | None = Field(  # type: ignore[call-overload]
        None, q="registrations__payment_status"
    )
    event_id: UUID | None = Field(None, q="registrations__event_id")  # type: ignore[call-overload]
