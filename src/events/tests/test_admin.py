import typing as t

import pytest
from django.contrib.auth.models import User
from django.test.client import Client
from django.urls import reverse

from events.models import Event, Participant, Payment, Registration

pytestmark = pytest.mark.django_db


@pytest.fixture
def superuser_client(django_user_model: t.Type[User]) -> Client:
    user = django_user_model.objects.create_superuser(username="root", email="root@example.com", password="pass")
    client = Client()
    client.force_login(user)
    return client


@pytest.mark.parametrize("model_name", ["event", "participant", "registration", "payment", "partnerstudent"])
def test_changelist_renders(
    superuser_client: Client,
    model_name: str,
    participant: Participant,
    workshop: Event,
    registration_factory: t.Callable[..., Registration],
    payment_factory: t.Callable[..., Payment],
) -> None:
    registration_factory(participant, workshop, "400")
    payment_factory(participant, "UPI123456", "400")

    response = superuser_client.get(reverse(f"admin:events_{model_name}_changelist"))

    assert response.status_code == 200


def test_participant_page_shows_registrations(
    superuser_client: Client,
    participant: Participant,
    workshop: Event,
    registration_factory: t.Callable[..., Registration],
) -> None:
    registration = registration_factory(participant, workshop, "400")

    response = superuser_client.get(reverse("admin:events_participant_change", args=[participant.pk]))

    assert response.status_code == 200
    assert registration.code in response.content.decode()


def test_new_event_starts_with_every_seat_free(superuser_client: Client) -> None:
    response = superuser_client.post(
        reverse("admin:events_event_add"),
        {
            "name": "Robo Race",
            "description": "",
            "event_type": Event.EventType.EVENT,
            "day": 1,
            "total_seats": 40,
            "partner_seats": 10,
            "is_active": "on",
        },
    )

    assert response.status_code == 302
    event = Event.objects.get(name="Robo Race")
    assert event.available_seats == 40
    assert event.partner_available_seats == 10
