from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI
from ninja_jwt.controller import NinjaJWTDefaultController

from accounts.controllers.otp import OtpController
from common.exceptions import ServiceError
from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers.admin import (
    AdminAttendanceController,
    AdminDashboardController,
    AdminParticipantController,
    AdminPaymentController,
)
from events.controllers.events import AnnouncementController, EventController
from events.controllers.payments import PaymentController
from events.controllers.registrations import RegistrationController

from .exception_handlers import (
    handle_django_validation_error,
    handle_general_exception,
    handle_service_error,
)

api = NinjaExtraAPI(
    title=f"{settings.SITE_NAME} API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"{settings.SITE_NAME} registration API {settings.VERSION}",
    app_name=f"symposium-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, ResponseOk()


api.register_controllers(
    # Admin auth
    NinjaJWTDefaultController,
    # Public
    OtpController,
    EventController,
    AnnouncementController,
    RegistrationController,
    PaymentController,
    # Admin
    AdminPaymentController,
    AdminParticipantController,
    AdminAttendanceController,
    AdminDashboardController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    ServiceError: handle_service_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
