from unittest.mock import MagicMock

import orjson
import pytest
from django.core.cache import cache
from django.http import HttpResponse
from django.test.client import Client
from django.urls import reverse

from accounts.service import verification
from events.models import Participant

pytestmark = pytest.mark.django_db


def _post(client: Client, url_name: str, payload: dict[str, str]) -> HttpResponse:
    return client.post(reverse(url_name), data=orjson.dumps(payload), content_type="application/json")


def test_send_otp(client: Client, mock_otp_mail: MagicMock) -> None:
    response = _post(client, "api:send-otp", {"email": "Priya@Example.com", "name": "Priya"})

    assert response.status_code == 200, response.content
    assert response.json() == {"message": "Verification code sent."}
    assert cache.get(verification.otp_key("priya@example.com")) is not None


def test_send_otp_to_registered_email(client: Client, mock_otp_mail: MagicMock, participant: Participant) -> None:
    response = _post(client, "api:send-otp", {"email": participant.email, "name": "Priya"})

    assert response.status_code == 409
    assert response.json()["code"] == "ALREADY_REGISTERED"


def test_send_otp_rejects_malformed_email(client: Client, mock_otp_mail: MagicMock) -> None:
    response = _post(client, "api:send-otp", {"email": "not-an-email", "name": "Priya"})

    assert response.status_code == 422
    mock_otp_mail.assert_not_called()


def test_send_otp_reports_delivery_failure(client: Client, mock_otp_mail: MagicMock) -> None:
    mock_otp_mail.side_effect = ConnectionError("broker down")

    response = _post(client, "api:send-otp", {"email": "priya@example.com", "name": "Priya"})

    assert response.status_code == 502
    assert response.json()["code"] == "DELIVERY_FAILED"


def test_verify_otp_returns_token(client: Client, mock_otp_mail: MagicMock) -> None:
    _post(client, "api:send-otp", {"email": "priya@example.com", "name": "Priya"})
    code = mock_otp_mail.call_args.args[2]

    response = _post(client, "api:verify-otp", {"email": "priya@example.com", "code": code})

    assert response.status_code == 200, response.content
    data = response.json()
    assert data["expires_in"] == 900
    assert cache.get(verification.token_key(data["verification_token"])) == "priya@example.com"


def test_verify_otp_wrong_code(client: Client, mock_otp_mail: MagicMock) -> None:
    _post(client, "api:send-otp", {"email": "priya@example.com", "name": "Priya"})
    code = mock_otp_mail.call_args.args[2]
    wrong = "000000" if code != "000000" else "111111"

    response = _post(client, "api:verify-otp", {"email": "priya@example.com", "code": wrong})

    assert response.status_code == 400
    assert response.json() == {
        "code": "OTP_INVALID",
        "detail": "The verification code is not correct.",
        "context": {"attempts_remaining": 4},
    }


def test_verify_otp_without_code_issued(client: Client) -> None:
    response = _post(client, "api:verify-otp", {"email": "priya@example.com", "code": "123456"})

    assert response.status_code == 400
    assert response.json()["code"] == "OTP_EXPIRED"


def test_verify_otp_rejects_non_ascii_digits(client: Client, mock_otp_mail: MagicMock) -> None:
    _post(client, "api:send-otp", {"email": "priya@example.com", "name": "Priya"})

    response = _post(client, "api:verify-otp", {"email": "priya@example.com", "code": "١٢٣٤٥٦"})

    assert response.status_code == 422
    assert cache.get(verification.attempts_key("priya@example.com")) is None
