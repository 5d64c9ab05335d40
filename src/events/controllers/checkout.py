from ninja_extra import api_controller, route

from common.authentication import CampusJWTAuth
from common.controllers import UserAwareController
from common.throttling import CheckoutThrottle
from events import schema
from events.controllers.registration import outcome_response
from events.exceptions import CheckoutSessionMismatchError
from events.service import stripe_service


@api_controller("/checkout", auth=CampusJWTAuth(), tags=["Checkout"])
class CheckoutController(UserAwareController):
    @route.get("/{session_id}/status", url_name="checkout_status", response={200: schema.CheckoutStatusResponse})
    def status(self, session_id: str) -> schema.CheckoutStatusResponse:
        """Current state of one of your checkout sessions."""
        state = stripe_service.get_checkout_status(session_id)
        if state.user_id != str(self.user().pk):
            raise CheckoutSessionMismatchError(session_id)
        return schema.CheckoutStatusResponse(
            status=state.status, amount=state.amount, currency=state.currency, event_id=state.event_id
        )

    @route.post(
        "/{session_id}/confirm",
        url_name="checkout_confirm",
        response={
            200: schema.RegisterResponse,
            202: schema.RegisterResponse,
            400: schema.RegisterResponse,
            409: schema.RegisterResponse,
        },
        throttle=CheckoutThrottle(),
    )
    def confirm(self, session_id: str) -> tuple[int, schema.RegisterResponse]:
        """Register from a paid checkout session.

        Safe to call repeatedly; a session registers at most once. Answers 202 while the payment is not
        confirmed yet.
        """
        outcome = stripe_service.finalize_checkout(session_id, self.user())
        if outcome is None:
            return 202, schema.RegisterResponse(success=False, error="payment_not_confirmed")
        return outcome_response(outcome)
