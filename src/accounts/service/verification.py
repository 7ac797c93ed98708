"""E-mail ownership verification with one-time codes.

Codes and verification tokens only ever live in the cache:

* ``otp:<email>`` holds the 6-digit code for ``OTP_TTL_SECONDS``;
* ``otp_attempts:<email>`` counts wrong guesses against that code;
* ``verify_token:<token>`` maps a 256-bit token to the verified e-mail for
  ``VERIFICATION_TOKEN_TTL_SECONDS``.

A token backs exactly one registration: it is deleted when it is redeemed, whatever
happens afterwards.
"""

import secrets

import structlog
from django.conf import settings
from django.core.cache import cache

from accounts import tasks
from common.exceptions import ConflictError, DeliveryFailedError, ErrorCode, StateError
from events.models import Participant

logger = structlog.get_logger(__name__)


def otp_key(email: str) -> str:
    return f"otp:{email}"


def attempts_key(email: str) -> str:
    return f"otp_attempts:{email}"


def token_key(token: str) -> str:
    return f"verify_token:{token}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def ensure_not_registered(email: str) -> None:
    """Raise ALREADY_REGISTERED if a participant already owns this e-mail."""
    if Participant.objects.filter(email=email).exists():
        logger.info("otp_email_already_registered", email=email)
        raise ConflictError(ErrorCode.ALREADY_REGISTERED, "This e-mail address is already registered.", email=email)


def issue_code(email: str, name: str) -> None:
    """Generate a code for the e-mail and hand it to the mailer.

    A failure to queue the e-mail is reported as DELIVERY_FAILED, but the stored code
    stays valid so a retry of the verification step can still succeed.

    Args:
        email (str): The address to verify.
        name (str): The participant's name, used in the greeting.
    """
    email = normalize_email(email)
    ensure_not_registered(email)
    code = f"{secrets.randbelow(10**6):06d}"
    cache.set(otp_key(email), code, timeout=settings.OTP_TTL_SECONDS)
    cache.delete(attempts_key(email))
    logger.info("otp_issued", email=email)
    try:
        tasks.send_otp_email.delay(email, name, code)
    except Exception as e:
        logger.exception("otp_delivery_failed", email=email)
        raise DeliveryFailedError(
            ErrorCode.DELIVERY_FAILED, "The verification e-mail could not be sent. Please try again.", email=email
        ) from e


def verify_code(email: str, code: str) -> str:
    """Check a code and mint a single-use verification token.

    Args:
        email (str): The address the code was issued for.
        code (str): The 6-digit code entered by the user.

    Returns:
        str: The verification token.

    Raises:
        StateError: OTP_EXPIRED, OTP_LOCKED, or OTP_INVALID with ``attempts_remaining``.
    """
    email = normalize_email(email)
    ensure_not_registered(email)
    stored = cache.get(otp_key(email))
    if stored is None:
        raise StateError(ErrorCode.OTP_EXPIRED, "The verification code has expired. Please request a new one.")

    if not secrets.compare_digest(str(stored).encode(), code.encode()):
        cache.add(attempts_key(email), 0, timeout=settings.OTP_TTL_SECONDS)
        attempts = cache.incr(attempts_key(email))
        if attempts >= settings.OTP_MAX_ATTEMPTS:
            cache.delete_many([otp_key(email), attempts_key(email)])
            logger.warning("otp_locked", email=email, attempts=attempts)
            raise StateError(ErrorCode.OTP_LOCKED, "Too many wrong attempts. Please request a new code.")
        remaining = settings.OTP_MAX_ATTEMPTS - attempts
        logger.info("otp_invalid", email=email, attempts_remaining=remaining)
        raise StateError(
            ErrorCode.OTP_INVALID, "The verification code is not correct.", attempts_remaining=remaining
        )

    cache.delete_many([otp_key(email), attempts_key(email)])
    token = secrets.token_hex(32)
    cache.set(token_key(token), email, timeout=settings.VERIFICATION_TOKEN_TTL_SECONDS)
    logger.info("otp_verified", email=email)
    return token


def redeem_token(token: str, claimed_email: str) -> str:
    """Consume a verification token and return the e-mail it vouches for.

    The token is deleted before the e-mail comparison, so it cannot be replayed even
    when the claim is rejected. If two callers race for the same token only the one
    whose delete succeeds gets through.
    """
    key = token_key(token)
    email = cache.get(key)
    if email is None or not cache.delete(key):
        raise StateError(ErrorCode.VERIFICATION_EXPIRED, "E-mail verification expired. Please verify again.")
    if email != normalize_email(claimed_email):
        logger.warning("verification_email_mismatch", verified_email=email, claimed_email=claimed_email)
        raise StateError(ErrorCode.EMAIL_MISMATCH, "The e-mail does not match the verified address.")
    logger.info("verification_token_redeemed", email=email)
    return email
