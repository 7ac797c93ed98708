from symposium.settings.observability import scrub_pii


def test_secrets_are_redacted() -> None:
    event = scrub_pii(None, "info", {"event": "x", "verification_token": "abc", "otp": "123456", "password": "pw"})

    assert event["verification_token"] == event["otp"] == event["password"] == "[REDACTED]"


def test_otp_in_mail_subject_is_masked() -> None:
    event = scrub_pii(None, "info", {"event": "email_sent", "subject": "482913 is your TechSymp verification code"})

    assert event["subject"] == "[OTP] is your TechSymp verification code"


def test_emails_survive_only_in_email_fields() -> None:
    event = scrub_pii(
        None,
        "info",
        {"event": "x", "email": "priya@example.com", "detail": "sent to priya@example.com", "ctx": {"to": "a@b.io"}},
    )

    assert event["email"] == "priya@example.com"
    assert event["detail"] == "sent to [EMAIL]"
    assert event["ctx"] == {"to": "[EMAIL]"}


def test_phone_numbers_keep_last_four_digits() -> None:
    event = scrub_pii(None, "info", {"event": "x", "phone": "+919876543210", "registrations": 3})

    assert event["phone"] == "***3210"
    assert event["registrations"] == 3
