from flask import current_app

from ...constants.payment_methods import PaymentProvider
from ...models.contribution_transaction import ContributionTransaction
from ...utils.generators import generate_airtel_transaction_id
from ...utils.phone import to_national_msisdn
from ...utils.logger import Log
from .mobile_money_gateway_service import MobileMoneyGatewayService, GatewayError


class AirtelMoneyGatewayService(MobileMoneyGatewayService):
    """
    Airtel Money Collections API (merchant payments).
    """

    name = "airtel_money"
    provider_code = PaymentProvider.AIRTEL.value
    callback_secret_key = "AIRTEL_CALLBACK_SECRET"

    # Airtel reports short codes (TS, TF, TIP, TA) on status lookups and callbacks
    STATUS_MAP = {
        "TS": ContributionTransaction.STATUS_SUCCESSFUL,
        "SUCCESS": ContributionTransaction.STATUS_SUCCESSFUL,
        "SUCCESSFUL": ContributionTransaction.STATUS_SUCCESSFUL,
        "TF": ContributionTransaction.STATUS_FAILED,
        "FAILED": ContributionTransaction.STATUS_FAILED,
        "REJECTED": ContributionTransaction.STATUS_FAILED,
        "TIMEOUT": ContributionTransaction.STATUS_FAILED,
        "TIP": ContributionTransaction.STATUS_PENDING,
        "TA": ContributionTransaction.STATUS_PENDING,
        "PENDING": ContributionTransaction.STATUS_PENDING,
    }

    def __init__(self, timeout=None):
        config = current_app.config
        super().__init__(config["AIRTEL_API_URL"], timeout=timeout)
        self.client_id = config.get("AIRTEL_CLIENT_ID")
        self.client_secret = config.get("AIRTEL_CLIENT_SECRET")
        self.country = config.get("AIRTEL_COUNTRY", "RW")
        self.region = config.get("PHONE_REGION", "RW")

    def _fetch_access_token(self):
        if not (self.client_id and self.client_secret):
            raise GatewayError(f"{self.log_tag} Airtel Money credentials are not configured")

        data = self._make_request(
            "POST",
            "auth/oauth2/token",
            payload={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
        )
        return data.get("access_token"), data.get("expires_in")

    def _headers(self, currency=None):
        return {
            "Authorization": f"Bearer {self.get_access_token()}",
            "X-Country": self.country,
            "X-Currency": currency or self.currency,
            "Accept": "*/*",
        }

    @staticmethod
    def _check_status_block(data):
        status_block = data.get("status") or {}
        if status_block and status_block.get("success") is False:
            raise GatewayError(
                f"[AirtelMoneyGatewayService] {status_block.get('message') or 'Request rejected'}",
                payload=data,
            )

    def initiate_collection(self, amount, phone_number, reference, description, currency=None):
        transaction_id = generate_airtel_transaction_id()
        currency = currency or self.currency

        payload = {
            "reference": reference,
            "subscriber": {
                "country": self.country,
                "currency": currency,
                "msisdn": to_national_msisdn(phone_number, self.region),
            },
            "transaction": {
                "amount": int(round(amount)),
                "country": self.country,
                "currency": currency,
                "id": transaction_id,
            },
        }

        Log.info(f"{self.log_tag} collection reference={reference} transaction_id={transaction_id}")

        data = self._make_request(
            "POST",
            "merchant/v1/payments/",
            payload=payload,
            headers=self._headers(currency),
        )
        self._check_status_block(data)

        return {
            "gateway_transaction_id": transaction_id,
            "status": ContributionTransaction.STATUS_PENDING,
            "next_step": "Check your Airtel Money phone for a prompt to approve payment",
            "raw": data,
        }

    def get_collection_status(self, gateway_transaction_id):
        data = self._make_request(
            "GET",
            f"standard/v1/payments/{gateway_transaction_id}",
            headers=self._headers(),
        )
        self._check_status_block(data)

        transaction = (data.get("data") or {}).get("transaction") or {}
        provider_status = transaction.get("status")
        return {
            "status": self.map_status(provider_status),
            "provider_status": provider_status,
            "operator_reference": transaction.get("airtel_money_id"),
            "raw": data,
        }

    def parse_callback(self, payload):
        """
        Airtel callback body:
        {"transaction": {"id": "AIRTEL-...", "status_code": "TS", "airtel_money_id": "...", "message": "..."}}
        """
        if not isinstance(payload, dict):
            return None
        transaction = payload.get("transaction")
        if not isinstance(transaction, dict) or not transaction.get("id"):
            return None

        provider_status = transaction.get("status_code")
        return {
            "reference": None,
            "gateway_transaction_id": transaction.get("id"),
            "status": self.map_status(provider_status),
            "provider_status": provider_status,
            "operator_reference": transaction.get("airtel_money_id"),
            "reason": transaction.get("message"),
        }
