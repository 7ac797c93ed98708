"""Logging settings for the symposium backend.

Everything goes through structlog. Application loggers and foreign ones (Django,
Celery) share one processor chain and are rendered as JSON lines, or as coloured
console output when DEBUG is on.
"""

import re
import typing as t

import structlog
from decouple import config

from .base import DEBUG, VERSION

SERVICE_NAME = config("SERVICE_NAME", default="symposium")
SERVICE_VERSION = VERSION
DEPLOYMENT_ENVIRONMENT = config("DEPLOYMENT_ENVIRONMENT", default="development" if DEBUG else "production")
LOG_LEVEL = config("LOG_LEVEL", default="INFO")
LOG_JSON = config("LOG_JSON", default=not DEBUG, cast=bool)

REDACTED_KEYS = ("password", "secret", "token", "otp", "authorization", "cookie")
EMAIL_RE = re.compile(r"\b[\w.+-]+@[\w.-]+\.\w+\b")
PHONE_RE = re.compile(r"\+?\d[\d\s-]{8,}\d")
OTP_IN_SUBJECT_RE = re.compile(r"\b\d{6}\b")


def _scrub_value(key: str, value: t.Any) -> t.Any:
    if isinstance(value, dict):
        return {k: _scrub_value(k, v) for k, v in value.items()}
    if not isinstance(value, str):
        return value
    lowered = key.lower()
    if lowered == "subject":
        # the OTP mail puts the code in its subject line
        value = OTP_IN_SUBJECT_RE.sub("[OTP]", value)
    if "email" not in lowered:
        value = EMAIL_RE.sub("[EMAIL]", value)
    if "phone" in lowered:
        return PHONE_RE.sub(lambda m: f"***{m.group()[-4:]}", value)
    return value


def scrub_pii(logger: t.Any, method_name: str, event_dict: dict[str, t.Any]) -> dict[str, t.Any]:
    """Redact credentials, OTP codes and stray contact details from log events.

    Keys naming a secret (passwords, verification tokens, OTPs, auth headers) are
    replaced outright. E-mail addresses survive only in fields named after them and
    phone numbers keep their last four digits.
    """
    for key in list(event_dict):
        if any(sensitive in key.lower() for sensitive in REDACTED_KEYS):
            event_dict[key] = "[REDACTED]"
        else:
            event_dict[key] = _scrub_value(key, event_dict[key])
    return event_dict


def add_app_context(logger: t.Any, method_name: str, event_dict: dict[str, t.Any]) -> dict[str, t.Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    event_dict.setdefault("environment", DEPLOYMENT_ENVIRONMENT)
    return event_dict


SHARED_PROCESSORS: list[t.Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    add_app_context,
    scrub_pii,
]

RENDERER: t.Any = structlog.processors.JSONRenderer() if LOG_JSON else structlog.dev.ConsoleRenderer()

structlog.configure(
    processors=[*SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "structured": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processors": [
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info if LOG_JSON else structlog.processors.UnicodeDecoder(),
                RENDERER,
            ],
            "foreign_pre_chain": SHARED_PROCESSORS,
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.db.backends": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "celery": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
