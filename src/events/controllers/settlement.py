from ninja_extra import api_controller, route

from common.authentication import CampusJWTAuth
from common.controllers import UserAwareController
from common.throttling import WriteThrottle
from events import schema
from events.controllers.permissions import IsOrganiser
from events.service import stripe_service


@api_controller("/settlement", auth=CampusJWTAuth(), permissions=[IsOrganiser()], tags=["Settlement"])
class SettlementController(UserAwareController):
    """Stripe Connect onboarding for organisers."""

    @route.post(
        "/account",
        url_name="settlement_account",
        response={200: schema.SettlementAccountResponse},
        throttle=WriteThrottle(),
    )
    def create_account(self) -> schema.SettlementAccountResponse:
        """Start or resume onboarding.

        Creates the connected account on first use and always returns a fresh onboarding link.
        """
        account_id, onboarding_url = stripe_service.create_settlement_account(self.user())
        return schema.SettlementAccountResponse(account_id=account_id, onboarding_url=onboarding_url)

    @route.get("/status", url_name="settlement_status", response={200: schema.SettlementStatusResponse})
    def status(self) -> schema.SettlementStatusResponse:
        """Onboarding state, recomputed from the connected account.

        `inconclusive` means Stripe could not be reached; the capability flags are the last known ones.
        """
        report = stripe_service.get_settlement_status(self.user())
        return schema.SettlementStatusResponse(
            has_account=report.has_account,
            status=report.status,
            card_payments_enabled=report.card_payments_enabled,
            transfers_enabled=report.transfers_enabled,
            payouts_enabled=report.payouts_enabled,
        )
