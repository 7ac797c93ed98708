"""Seat inventory.

Each event has a general pool and a partner quota inside it. A partner seat takes one
seat from each pool, so a partner registration needs both counters to be positive.

All functions must be called inside the caller's ``transaction.atomic()`` block: the
availability check locks the event row (``SELECT ... FOR UPDATE``) and the decrement is
a conditional ``UPDATE ... WHERE available > 0``, so two concurrent claims on the last
seat can never both succeed and a counter can never go negative.
"""

import typing as t
import uuid
from collections.abc import Iterable
from enum import StrEnum

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import F

from common.exceptions import CapacityError, ErrorCode, NotFoundError, StateError
from events.models import Cohort, Event

logger = structlog.get_logger(__name__)


class SeatPolicy(StrEnum):
    """When a registration takes its seat."""

    AT_PAYMENT = "payment"
    AT_REGISTRATION = "registration"


def current_policy() -> SeatPolicy:
    return SeatPolicy(settings.SEAT_DECREMENT_POLICY)


def _counters(pool: Cohort) -> tuple[str, ...]:
    if pool == Cohort.PARTNER:
        return "available_seats", "partner_available_seats"
    return ("available_seats",)


def has_seat(event: Event, pool: Cohort) -> bool:
    return all(getattr(event, counter) > 0 for counter in _counters(pool))


def _full_error(event: Event, pool: Cohort, full_code: ErrorCode) -> CapacityError:
    return CapacityError(
        full_code,
        f"No seats left for {event.name}.",
        event=event.name,
        event_id=str(event.pk),
        pool=str(pool),
        available_seats=event.available_seats,
        partner_available_seats=event.partner_available_seats,
    )


def check_available(
    event: Event | uuid.UUID, pool: Cohort, *, full_code: ErrorCode = ErrorCode.SEATS_FULL, lock: bool = True
) -> Event:
    """Return the event if it is active and has a free seat in the pool.

    Args:
        event (Event | uuid.UUID): The event to check. An ``Event`` is expected to be
            a row already locked by ``lock_events``; an id is fetched here.
        pool (Cohort): Which pool the seat would come from.
        full_code (ErrorCode): The code to raise when the pool is empty.
        lock (bool): Lock the row for the rest of the transaction.

    Raises:
        NotFoundError: EVENT_NOT_FOUND.
        StateError: EVENT_INACTIVE.
        CapacityError: ``full_code`` when there is no seat left.
    """
    if not isinstance(event, Event):
        event_id = event
        qs = Event.objects.select_for_update() if lock else Event.objects.all()
        found = qs.filter(pk=event_id).first()
        if found is None:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "Event not found.", event_id=str(event_id))
        event = found
    if not event.is_active:
        raise StateError(ErrorCode.EVENT_INACTIVE, f"{event.name} is no longer open.", event=event.name)
    if not has_seat(event, pool):
        raise _full_error(event, pool, full_code)
    return event


def lock_events(event_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Event]:
    """Lock the given events in primary-key order and return them by id.

    A fixed lock order keeps two transactions that touch the same events from
    deadlocking.
    """
    ids = sorted(set(event_ids))
    return {event.pk: event for event in Event.objects.select_for_update().filter(pk__in=ids).order_by("pk")}


def decrement(event_id: uuid.UUID, pool: Cohort, *, full_code: ErrorCode = ErrorCode.SEATS_FULL) -> None:
    """Take one seat from the pool.

    The update only matches while every affected counter is still positive; if it
    matches nothing the seat was taken by someone else and ``full_code`` is raised.
    """
    counters = _counters(pool)
    filters: dict[str, t.Any] = {f"{counter}__gt": 0 for counter in counters}
    updated = Event.objects.filter(pk=event_id, **filters).update(
        **{counter: F(counter) - 1 for counter in counters}
    )
    if not updated:
        event = Event.objects.filter(pk=event_id).first()
        if event is None:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "Event not found.", event_id=str(event_id))
        logger.warning("seat_decrement_rejected", event_id=str(event_id), pool=str(pool))
        raise CapacityError(
            full_code, f"No seats left for {event.name}.", event=event.name, event_id=str(event_id), pool=str(pool)
        )
    logger.debug("seat_taken", event_id=str(event_id), pool=str(pool))


def increment(event_id: uuid.UUID, pool: Cohort) -> None:
    """Return one seat to the pool, never past the pool's total."""
    limits = {"available_seats": "total_seats", "partner_available_seats": "partner_seats"}
    counters = _counters(pool)
    filters = {f"{counter}__lt": F(limits[counter]) for counter in counters}
    updated = Event.objects.filter(pk=event_id, **filters).update(**{counter: F(counter) + 1 for counter in counters})
    if not updated:
        logger.warning("seat_increment_skipped", event_id=str(event_id), pool=str(pool))
        return
    logger.debug("seat_returned", event_id=str(event_id), pool=str(pool))


@transaction.atomic
def take_seats(event_ids: Iterable[uuid.UUID], pool: Cohort, *, full_code: ErrorCode = ErrorCode.SEATS_FULL) -> None:
    """Check and take one seat per event, all or nothing.

    Events are locked in primary-key order first, then every event is checked before
    any counter moves, so a full event aborts the batch without partial decrements.
    """
    ids = list(event_ids)
    locked = lock_events(ids)
    for event_id in sorted(ids):
        if event_id not in locked:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "Event not found.", event_id=str(event_id))
        event = locked[event_id]
        if not has_seat(event, pool):
            raise _full_error(event, pool, full_code)
    for event_id in sorted(ids):
        decrement(event_id, pool, full_code=full_code)
