"""Exception handlers for the API."""

import traceback
import typing as t

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from common.exceptions import ErrorCode, ServiceError

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Nothing about the failure is returned to the caller except a generic message.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception("INTERNAL_SERVER_ERROR", exc_info=True, path=request.path, method=request.method)
    data: dict[str, t.Any] = {"code": str(ErrorCode.INTERNAL_ERROR), "detail": "Internal Server Error.", "context": {}}
    if settings.DEBUG:  # pragma: no cover
        data["traceback"] = traceback.format_exc()
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path, exc_info=True)
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        error_dict = {"__all__": list(t.cast(ValidationError, exc).messages)}
    return Response(status=400, data={"errors": error_dict})


def handle_service_error(request: HttpRequest, exc: ServiceError | t.Type[ServiceError]) -> Response:
    """Translate a service error into ``{code, detail, context}`` with its status."""
    exc = t.cast(ServiceError, exc)
    logger.info("service_error", path=request.path, code=str(exc.code), status=exc.status_code)
    return Response(status=exc.status_code, data=exc.to_payload())
