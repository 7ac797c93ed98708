"""Fixtures shared by every app's tests."""

import typing as t
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.contrib.auth.models import User
from django.core.cache import cache
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken
from pytest import MonkeyPatch

from events.models import Cohort, Event, Participant, PartnerStudent, Payment, Registration, SymposiumSettings
from events.service import roster


@pytest.fixture(autouse=True)
def use_local_memory_cache(settings: t.Any) -> None:
    """Run against an in-process cache so tests never need Redis."""
    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "symposium-tests",
        }
    }


@pytest.fixture(autouse=True)
def clear_cache(use_local_memory_cache: None) -> t.Iterator[None]:
    """OTPs, tokens, read caches and throttle history all live in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def increase_rate_limit(monkeypatch: MonkeyPatch) -> None:
    """Increase the rate limits of the public throttles to allow testing."""
    monkeypatch.setattr("common.throttling.OtpThrottle.rate", "1000/min")
    monkeypatch.setattr("common.throttling.RegistrationThrottle.rate", "1000/min")
    monkeypatch.setattr("common.throttling.AnonDefaultThrottle.rate", "1000/min")


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def reset_roster_backend() -> t.Iterator[None]:
    """The configured roster is cached per process; tests may swap the setting."""
    roster.get_roster.cache_clear()
    yield
    roster.get_roster.cache_clear()


@pytest.fixture
def mock_otp_mail(monkeypatch: MonkeyPatch) -> MagicMock:
    """Capture OTP e-mails instead of rendering and sending them."""
    mock_delay = MagicMock(return_value=None)
    monkeypatch.setattr("accounts.tasks.send_otp_email.delay", mock_delay)
    return mock_delay


# --- Admin users ---


@pytest.fixture
def admin_user(django_user_model: t.Type[User]) -> User:
    return django_user_model.objects.create_user(
        username="desk", email="desk@example.com", password="pass", is_staff=True
    )


@pytest.fixture
def admin_client(admin_user: User) -> Client:
    """API client for a staff member at the registration desk."""
    refresh = RefreshToken.for_user(admin_user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def non_staff_client(django_user_model: t.Type[User]) -> Client:
    user = django_user_model.objects.create_user(username="volunteer", email="v@example.com", password="pass")
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


# --- Factories ---


class EventFactory:
    def __call__(
        self,
        name: str,
        event_type: str = Event.EventType.EVENT,
        seats: int = 50,
        partner_seats: int = 20,
        **kwargs: t.Any,
    ) -> Event:
        return Event.objects.create(
            name=name,
            event_type=event_type,
            total_seats=seats,
            available_seats=kwargs.pop("available_seats", seats),
            partner_seats=partner_seats,
            partner_available_seats=kwargs.pop("partner_available_seats", partner_seats),
            **kwargs,
        )


class ParticipantFactory:
    def __call__(
        self, email: str = "priya@example.com", cohort: str = Cohort.GENERAL, year: int = 3, **kwargs: t.Any
    ) -> Participant:
        return Participant.objects.create(
            full_name=kwargs.pop("full_name", "Priya Natarajan"),
            email=email,
            phone=kwargs.pop("phone", "9876543210"),
            institution=kwargs.pop("institution", "Anna University"),
            department=kwargs.pop("department", "ECE"),
            year_of_study=year,
            cohort=cohort,
            **kwargs,
        )


class RegistrationFactory:
    def __call__(
        self,
        participant: Participant,
        event: Event,
        amount: str = "0",
        status: str = Registration.PaymentStatus.PENDING,
        **kwargs: t.Any,
    ) -> Registration:
        registration = Registration.objects.create(
            participant=participant, event=event, amount_paid=Decimal(amount), payment_status=status, **kwargs
        )
        registration.code = registration.build_code()
        Registration.objects.filter(pk=registration.pk).update(code=registration.code)
        return registration


class PaymentFactory:
    def __call__(self, participant: Participant, transaction_id: str, amount: str, **kwargs: t.Any) -> Payment:
        return Payment.objects.create(
            participant=participant, transaction_id=transaction_id, amount=Decimal(amount), **kwargs
        )


@pytest.fixture
def event_factory() -> EventFactory:
    return EventFactory()


@pytest.fixture
def participant_factory() -> ParticipantFactory:
    return ParticipantFactory()


@pytest.fixture
def registration_factory() -> RegistrationFactory:
    return RegistrationFactory()


@pytest.fixture
def payment_factory() -> PaymentFactory:
    return PaymentFactory()


# --- Symposium ---


@pytest.fixture
def symposium() -> SymposiumSettings:
    """A symposium a month away with registration open."""
    symposium_settings = SymposiumSettings.get_solo()
    symposium_settings.name = "TechSymp"
    symposium_settings.day_one = (timezone.now() + timedelta(days=30)).date()
    symposium_settings.day_two = (timezone.now() + timedelta(days=31)).date()
    symposium_settings.registration_closes_at = timezone.now() + timedelta(days=20)
    symposium_settings.events_close_at = timezone.now() + timedelta(days=32)
    symposium_settings.save()
    return symposium_settings


@pytest.fixture
def workshop(event_factory: EventFactory) -> Event:
    return event_factory("Machine Learning Workshop", Event.EventType.WORKSHOP)


@pytest.fixture
def second_workshop(event_factory: EventFactory) -> Event:
    return event_factory("IoT Workshop", Event.EventType.WORKSHOP, day=Event.Day.TWO)


@pytest.fixture
def events(event_factory: EventFactory) -> list[Event]:
    return [
        event_factory("Paper Presentation"),
        event_factory("Coding Contest"),
        event_factory("Tech Quiz", day=Event.Day.TWO),
    ]


@pytest.fixture
def partner_student() -> PartnerStudent:
    return PartnerStudent.objects.create(roll_number="21CS042", name="Asha Raman")


@pytest.fixture
def participant(participant_factory: ParticipantFactory) -> Participant:
    return participant_factory()


@pytest.fixture
def partner_participant(participant_factory: ParticipantFactory) -> Participant:
    return participant_factory(
        "asha@example.com", Cohort.PARTNER, year=1, full_name="Asha Raman", roll_number="21CS042"
    )
