from ninja_extra import ControllerBase, api_controller, route
from pydantic import EmailStr

from common.schema import ServiceErrorResponse
from common.throttling import RegistrationThrottle
from events import schema
from events.service import dashboard_service, registration_service

ERROR_RESPONSES = {400: ServiceErrorResponse, 404: ServiceErrorResponse, 409: ServiceErrorResponse}


@api_controller("/registrations", tags=["Registrations"], throttle=RegistrationThrottle())
class RegistrationController(ControllerBase):
    @route.post(
        "/general",
        url_name="register_general",
        response={201: schema.RegistrationResultSchema, **ERROR_RESPONSES},
    )
    def register_general(
        self, payload: schema.GeneralRegistrationSchema
    ) -> tuple[int, registration_service.RegistrationOutcome]:
        """Register with a verified e-mail.

        Requires the verification token from /otp/verify; the token is used up by this
        call whether or not the registration succeeds. Returns the registration codes,
        the amount owed and a payment reference to quote when paying.
        """
        return 201, registration_service.register_general(payload)

    @route.post(
        "/partner",
        url_name="register_partner",
        response={201: schema.RegistrationResultSchema, **ERROR_RESPONSES},
    )
    def register_partner(
        self, payload: schema.PartnerRegistrationSchema
    ) -> tuple[int, registration_service.RegistrationOutcome]:
        """Register as a student of the partner institution using a roll number.

        Events are free from the second year on and are confirmed immediately.
        """
        return 201, registration_service.register_partner(payload)

    @route.get(
        "/status",
        url_name="registration_status",
        response={200: schema.ParticipantStatusSchema, 404: ServiceErrorResponse},
    )
    def registration_status(self, email: EmailStr) -> schema.ParticipantStatusSchema:
        """Registration and payment verification status for an e-mail address."""
        return dashboard_service.participant_status(email)
