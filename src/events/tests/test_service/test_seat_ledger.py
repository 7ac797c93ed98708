import typing as t
import uuid

import pytest
from django.db import transaction

from common.exceptions import CapacityError, ErrorCode, NotFoundError, StateError
from events.models import Cohort, Event
from events.service import seat_ledger

pytestmark = pytest.mark.django_db


@pytest.fixture
def contest(event_factory: t.Callable[..., Event]) -> Event:
    return event_factory("Coding Contest", seats=2, partner_seats=1)


class TestCheckAvailable:
    def test_returns_open_event_with_seats(self, contest: Event) -> None:
        with transaction.atomic():
            assert seat_ledger.check_available(contest.pk, Cohort.GENERAL) == contest

    def test_missing_event(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            seat_ledger.check_available(uuid.uuid4(), Cohort.GENERAL, lock=False)

        assert exc_info.value.code == ErrorCode.EVENT_NOT_FOUND

    def test_inactive_event(self, contest: Event) -> None:
        Event.objects.filter(pk=contest.pk).update(is_active=False)

        with pytest.raises(StateError) as exc_info:
            seat_ledger.check_available(contest.pk, Cohort.GENERAL, lock=False)

        assert exc_info.value.code == ErrorCode.EVENT_INACTIVE

    def test_full_general_pool(self, contest: Event) -> None:
        Event.objects.filter(pk=contest.pk).update(available_seats=0, partner_available_seats=0)

        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.check_available(contest.pk, Cohort.GENERAL, lock=False)

        assert exc_info.value.code == ErrorCode.SEATS_FULL
        assert exc_info.value.context["event"] == "Coding Contest"
        assert exc_info.value.context["pool"] == "general"

    def test_partner_needs_partner_quota(self, contest: Event) -> None:
        Event.objects.filter(pk=contest.pk).update(partner_available_seats=0)

        seat_ledger.check_available(contest.pk, Cohort.GENERAL, lock=False)
        with pytest.raises(CapacityError):
            seat_ledger.check_available(contest.pk, Cohort.PARTNER, lock=False)

    def test_custom_full_code(self, contest: Event) -> None:
        Event.objects.filter(pk=contest.pk).update(available_seats=0, partner_available_seats=0)

        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.check_available(
                contest.pk, Cohort.GENERAL, full_code=ErrorCode.SEATS_FULL_AT_PAYMENT, lock=False
            )

        assert exc_info.value.code == ErrorCode.SEATS_FULL_AT_PAYMENT


    def test_accepts_an_already_locked_row(self, contest: Event) -> None:
        with transaction.atomic():
            locked = seat_ledger.lock_events([contest.pk])[contest.pk]
            Event.objects.filter(pk=contest.pk).update(partner_available_seats=0)

            # checks the row it was given, without reading it again
            assert seat_ledger.check_available(locked, Cohort.PARTNER) is locked

    def test_locked_row_without_seat(self, contest: Event) -> None:
        contest.available_seats = 0

        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.check_available(contest, Cohort.GENERAL)

        assert exc_info.value.context["available_seats"] == 0


class TestDecrement:
    def test_general_seat_only_touches_general_pool(self, contest: Event) -> None:
        seat_ledger.decrement(contest.pk, Cohort.GENERAL)

        contest.refresh_from_db()
        assert contest.available_seats == 1
        assert contest.partner_available_seats == 1

    def test_partner_seat_takes_from_both_pools(self, contest: Event) -> None:
        seat_ledger.decrement(contest.pk, Cohort.PARTNER)

        contest.refresh_from_db()
        assert contest.available_seats == 1
        assert contest.partner_available_seats == 0

    def test_never_goes_below_zero(self, contest: Event) -> None:
        seat_ledger.decrement(contest.pk, Cohort.GENERAL)
        seat_ledger.decrement(contest.pk, Cohort.GENERAL)

        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.decrement(contest.pk, Cohort.GENERAL)

        assert exc_info.value.code == ErrorCode.SEATS_FULL
        contest.refresh_from_db()
        assert contest.available_seats == 0

    def test_partner_blocked_when_general_pool_is_empty(self, contest: Event) -> None:
        Event.objects.filter(pk=contest.pk).update(available_seats=0)

        with pytest.raises(CapacityError):
            seat_ledger.decrement(contest.pk, Cohort.PARTNER)

        contest.refresh_from_db()
        assert contest.partner_available_seats == 1

    def test_missing_event(self) -> None:
        with pytest.raises(NotFoundError):
            seat_ledger.decrement(uuid.uuid4(), Cohort.GENERAL)


class TestIncrement:
    def test_returns_seat(self, contest: Event) -> None:
        seat_ledger.decrement(contest.pk, Cohort.PARTNER)

        seat_ledger.increment(contest.pk, Cohort.PARTNER)

        contest.refresh_from_db()
        assert contest.available_seats == 2
        assert contest.partner_available_seats == 1

    def test_never_exceeds_total(self, contest: Event) -> None:
        seat_ledger.increment(contest.pk, Cohort.GENERAL)

        contest.refresh_from_db()
        assert contest.available_seats == 2


class TestTakeSeats:
    def test_takes_one_seat_per_event(self, contest: Event, event_factory: t.Callable[..., Event]) -> None:
        quiz = event_factory("Tech Quiz", seats=5)

        seat_ledger.take_seats([contest.pk, quiz.pk], Cohort.GENERAL)

        contest.refresh_from_db()
        quiz.refresh_from_db()
        assert (contest.available_seats, quiz.available_seats) == (1, 4)

    def test_all_or_nothing(self, contest: Event, event_factory: t.Callable[..., Event]) -> None:
        sold_out = event_factory("Robo Race", seats=3, available_seats=0, partner_available_seats=0)

        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.take_seats([contest.pk, sold_out.pk], Cohort.GENERAL, full_code=ErrorCode.SEATS_FULL_AT_PAYMENT)

        assert exc_info.value.code == ErrorCode.SEATS_FULL_AT_PAYMENT
        assert exc_info.value.context["event"] == "Robo Race"
        contest.refresh_from_db()
        assert contest.available_seats == 2

    def test_unknown_event(self, contest: Event) -> None:
        with pytest.raises(NotFoundError):
            seat_ledger.take_seats([contest.pk, uuid.uuid4()], Cohort.GENERAL)


def test_current_policy_follows_setting(settings: t.Any) -> None:
    assert seat_ledger.current_policy() == seat_ledger.SeatPolicy.AT_PAYMENT

    settings.SEAT_DECREMENT_POLICY = "registration"

    assert seat_ledger.current_policy() == seat_ledger.SeatPolicy.AT_REGISTRATION


class TestLastSeatRace:
    """Two claimants that both saw the last seat free: only the first decrement lands."""

    def test_second_claim_on_stale_snapshot_is_refused(self, event_factory: t.Callable[..., Event]) -> None:
        last_seat = event_factory("Paper Presentation", seats=5, partner_seats=2, available_seats=1)
        first_view = seat_ledger.check_available(last_seat.pk, Cohort.GENERAL, lock=False)
        second_view = seat_ledger.check_available(last_seat.pk, Cohort.GENERAL, lock=False)
        assert first_view.available_seats == second_view.available_seats == 1

        seat_ledger.decrement(first_view.pk, Cohort.GENERAL)
        with pytest.raises(CapacityError) as exc_info:
            seat_ledger.decrement(second_view.pk, Cohort.GENERAL, full_code=ErrorCode.SEATS_FULL_AT_PAYMENT)

        assert exc_info.value.code == ErrorCode.SEATS_FULL_AT_PAYMENT
        last_seat.refresh_from_db()
        assert last_seat.available_seats == 0

    def test_take_seats_rolls_back_when_the_update_loses(
        self, event_factory: t.Callable[..., Event], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        open_event = event_factory("Quiz", seats=5, partner_seats=2)
        sold_out = event_factory("Hackathon", seats=5, partner_seats=2, available_seats=0)
        # the availability check passes, as it would for a claimant holding a stale view
        monkeypatch.setattr(seat_ledger, "has_seat", lambda event, pool: True)

        with pytest.raises(CapacityError):
            seat_ledger.take_seats([open_event.pk, sold_out.pk], Cohort.GENERAL)

        open_event.refresh_from_db()
        sold_out.refresh_from_db()
        assert open_event.available_seats == 5
        assert sold_out.available_seats == 0
