from requests.auth import HTTPBasicAuth
from flask import current_app

from ...constants.payment_methods import PaymentProvider
from ...models.contribution_transaction import ContributionTransaction
from ...utils.generators import generate_gateway_request_id
from ...utils.phone import to_msisdn
from ...utils.logger import Log
from .mobile_money_gateway_service import MobileMoneyGatewayService, GatewayError


class MtnMomoGatewayService(MobileMoneyGatewayService):
    """
    MTN Mobile Money Collections API (request-to-pay).
    """

    name = "mtn_momo"
    provider_code = PaymentProvider.MTN.value
    callback_secret_key = "MTN_MOMO_CALLBACK_SECRET"

    STATUS_MAP = {
        "SUCCESSFUL": ContributionTransaction.STATUS_SUCCESSFUL,
        "FAILED": ContributionTransaction.STATUS_FAILED,
        "REJECTED": ContributionTransaction.STATUS_FAILED,
        "TIMEOUT": ContributionTransaction.STATUS_FAILED,
        "PENDING": ContributionTransaction.STATUS_PENDING,
        "ONGOING": ContributionTransaction.STATUS_PENDING,
    }

    def __init__(self, timeout=None):
        config = current_app.config
        super().__init__(config["MTN_MOMO_API_URL"], timeout=timeout)
        self.subscription_key = config.get("MTN_MOMO_COLLECTIONS_KEY")
        self.api_user = config.get("MTN_MOMO_API_USER")
        self.api_key = config.get("MTN_MOMO_API_KEY")
        self.environment = config.get("MTN_MOMO_ENVIRONMENT", "sandbox")

    def _fetch_access_token(self):
        if not (self.api_user and self.api_key and self.subscription_key):
            raise GatewayError(f"{self.log_tag} MTN MoMo credentials are not configured")

        data = self._make_request(
            "POST",
            "collection/token/",
            headers={"Ocp-Apim-Subscription-Key": self.subscription_key},
            auth=HTTPBasicAuth(self.api_user, self.api_key),
        )
        return data.get("access_token"), data.get("expires_in")

    def _headers(self, **extra):
        headers = {
            "Authorization": f"Bearer {self.get_access_token()}",
            "X-Target-Environment": self.environment,
            "Ocp-Apim-Subscription-Key": self.subscription_key,
        }
        headers.update(extra)
        return headers

    def initiate_collection(self, amount, phone_number, reference, description, currency=None):
        """
        Send a request-to-pay prompt to the payer's handset.

        The gateway answers 202 with no body; the X-Reference-Id we generate
        is the id used for status lookups.
        """
        request_id = generate_gateway_request_id()

        payload = {
            "amount": str(int(round(amount))),
            "currency": currency or self.currency,
            "externalId": reference,
            "payer": {
                "partyIdType": "MSISDN",
                "partyId": to_msisdn(phone_number),
            },
            "payerMessage": description,
            "payeeNote": description,
        }

        Log.info(f"{self.log_tag} request-to-pay reference={reference} request_id={request_id}")

        self._make_request(
            "POST",
            "collection/v1_0/requesttopay",
            payload=payload,
            headers=self._headers(**{
                "X-Reference-Id": request_id,
                "X-Callback-Url": self.callback_url(),
            }),
        )

        return {
            "gateway_transaction_id": request_id,
            "status": ContributionTransaction.STATUS_PENDING,
            "next_step": "Check your MTN Mobile Money phone for a prompt to approve payment",
            "raw": {"reference": reference, "request_id": request_id},
        }

    def get_collection_status(self, gateway_transaction_id):
        data = self._make_request(
            "GET",
            f"collection/v1_0/requesttopay/{gateway_transaction_id}",
            headers=self._headers(),
        )
        provider_status = data.get("status")
        return {
            "status": self.map_status(provider_status),
            "provider_status": provider_status,
            "operator_reference": data.get("financialTransactionId"),
            "raw": data,
        }

    def parse_callback(self, payload):
        """
        MTN posts the request-to-pay resource back:
        {"externalId": "IKIM-...", "status": "SUCCESSFUL", "financialTransactionId": "...", ...}
        """
        if not isinstance(payload, dict) or not payload.get("externalId"):
            return None

        provider_status = payload.get("status")
        reason = payload.get("reason")
        if isinstance(reason, dict):
            reason = reason.get("message")
        return {
            "reference": payload.get("externalId"),
            "gateway_transaction_id": None,
            "status": self.map_status(provider_status),
            "provider_status": provider_status,
            "operator_reference": payload.get("financialTransactionId"),
            "reason": reason,
        }
