"""Symposium calendar: auto-close and countdown."""

from datetime import datetime, time

import structlog
from django.utils import timezone

from events.models import Event, SymposiumSettings
from events.schema import EventDatesSchema

logger = structlog.get_logger(__name__)


def close_events_if_due(now: datetime | None = None) -> int:
    """Switch every active event to inactive once ``events_close_at`` has passed.

    Cheap enough to run on demand from the listing and registration paths.

    Returns:
        int: How many events were closed.
    """
    now = now or timezone.now()
    if not SymposiumSettings.get_solo().events_are_due_to_close(now):
        return 0
    closed = Event.objects.active().update(is_active=False)
    if closed:
        logger.info("events_auto_closed", closed=closed)
    return closed


def _seconds_until(moment: datetime | None, now: datetime) -> int | None:
    if moment is None:
        return None
    return max(int((moment - now).total_seconds()), 0)


def get_dates(now: datetime | None = None) -> EventDatesSchema:
    """Symposium dates plus countdowns to the start and to the registration deadline."""
    now = now or timezone.now()
    symposium = SymposiumSettings.get_solo()
    start = (
        timezone.make_aware(datetime.combine(symposium.day_one, time.min)) if symposium.day_one else None
    )
    return EventDatesSchema(
        name=symposium.name,
        day_one=symposium.day_one,
        day_two=symposium.day_two,
        registration_closes_at=symposium.registration_closes_at,
        events_close_at=symposium.events_close_at,
        registration_open=symposium.is_registration_open(now),
        seconds_until_start=_seconds_until(start, now),
        seconds_until_registration_closes=_seconds_until(symposium.registration_closes_at, now),
    )
