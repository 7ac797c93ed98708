"""Controllers for e-mail verification with one-time codes."""

from django.conf import settings
from ninja_extra import ControllerBase, api_controller, route

from accounts import schema
from accounts.service import verification
from common.schema import ResponseMessage, ServiceErrorResponse
from common.throttling import OtpThrottle


@api_controller("/otp", tags=["OTP"], throttle=OtpThrottle())
class OtpController(ControllerBase):
    @route.post(
        "/send",
        url_name="send-otp",
        response={200: ResponseMessage, 409: ServiceErrorResponse, 502: ServiceErrorResponse},
    )
    def send_otp(self, payload: schema.OtpSendSchema) -> ResponseMessage:
        """Send a 6-digit verification code to the given e-mail address.

        The code is valid for five minutes. Fails with ALREADY_REGISTERED if the
        address already belongs to a participant.
        """
        verification.issue_code(payload.email, payload.name)
        return ResponseMessage(message="Verification code sent.")

    @route.post(
        "/verify",
        url_name="verify-otp",
        response={200: schema.VerificationTokenSchema, 400: ServiceErrorResponse, 409: ServiceErrorResponse},
    )
    def verify_otp(self, payload: schema.OtpVerifySchema) -> schema.VerificationTokenSchema:
        """Exchange a correct code for a single-use verification token.

        Pass the token to the registration endpoint. Wrong codes report the attempts
        left; the fifth wrong attempt invalidates the code.
        """
        token = verification.verify_code(payload.email, payload.code)
        return schema.VerificationTokenSchema(
            verification_token=token, expires_in=settings.VERIFICATION_TOKEN_TTL_SECONDS
        )
