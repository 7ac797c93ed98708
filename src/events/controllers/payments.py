from ninja_extra import ControllerBase, api_controller, route

from common.schema import ServiceErrorResponse
from events import schema
from events.models import Cohort
from events.service import payment_service
from events.utils import render_qr_code

ERROR_RESPONSES = {400: ServiceErrorResponse, 404: ServiceErrorResponse, 409: ServiceErrorResponse}


def to_result(outcome: payment_service.PaymentOutcome) -> schema.PaymentResultSchema:
    """Build the response, rendering the QR image after the payment has been committed."""
    return schema.PaymentResultSchema(
        participant_id=outcome.participant_id,
        payment=schema.PaymentSchema.from_orm(outcome.payment),
        registrations=[schema.RegistrationLineSchema.from_orm(r) for r in outcome.registrations],
        qr_payload=outcome.qr_payload,
        qr_code=render_qr_code(outcome.qr_payload),
    )


@api_controller("/payments", tags=["Payments"])
class PaymentController(ControllerBase):
    @route.post("/verify", url_name="verify_payment", response={200: schema.PaymentResultSchema, **ERROR_RESPONSES})
    def verify_payment(self, payload: schema.PaymentVerifySchema) -> schema.PaymentResultSchema:
        """Submit the UPI transaction id for a general registration.

        Confirms every pending registration and takes their seats. Fails with
        SEATS_FULL_AT_PAYMENT if an event sold out in the meantime, in which case
        nothing is confirmed. The payment still needs to be verified by an admin.
        """
        outcome = payment_service.verify_payment(
            payload.participant_id,
            payload.transaction_id,
            payload.amount,
            payload.method,
            expected_cohort=Cohort.GENERAL,
        )
        return to_result(outcome)

    @route.post(
        "/partner/verify",
        url_name="verify_partner_payment",
        response={200: schema.PaymentResultSchema, **ERROR_RESPONSES},
    )
    def verify_partner_payment(self, payload: schema.PaymentVerifySchema) -> schema.PaymentResultSchema:
        """Submit the UPI transaction id for a partner-institution registration."""
        outcome = payment_service.verify_payment(
            payload.participant_id,
            payload.transaction_id,
            payload.amount,
            payload.method,
            expected_cohort=Cohort.PARTNER,
        )
        return to_result(outcome)
