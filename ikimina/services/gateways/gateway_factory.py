from ...constants.payment_methods import PaymentProvider
from .mtn_momo_gateway_service import MtnMomoGatewayService
from .airtel_money_gateway_service import AirtelMoneyGatewayService

GATEWAY_SERVICES = {
    PaymentProvider.MTN: MtnMomoGatewayService,
    PaymentProvider.AIRTEL: AirtelMoneyGatewayService,
}


def get_gateway_service(provider):
    """
    Return the gateway client for a mobile-money provider, or None for
    providers settled manually (bank transfer, card).
    """
    try:
        provider = PaymentProvider(str(provider).upper())
    except ValueError:
        return None
    service_class = GATEWAY_SERVICES.get(provider)
    return service_class() if service_class else None
