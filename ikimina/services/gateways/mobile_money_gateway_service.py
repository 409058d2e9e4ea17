import hmac

import requests
from requests.exceptions import RequestException, Timeout, HTTPError
from flask import current_app

from ...extensions.db import redis_connection
from ...models.contribution_transaction import ContributionTransaction
from ...utils.logger import Log


class GatewayError(Exception):
    """Raised when a payment gateway call fails or answers unexpectedly."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class MobileMoneyGatewayService:
    """
    Shared plumbing for mobile-money collection APIs: HTTP requests with a
    timeout, bearer token caching in Redis and callback secret checks.

    Subclasses implement `_fetch_access_token`, `initiate_collection`,
    `get_collection_status` and `parse_callback`.
    """

    name = None
    provider_code = None
    callback_secret_key = None

    # provider status -> transaction status
    STATUS_MAP = {}

    def __init__(self, base_url, timeout=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or current_app.config.get("GATEWAY_TIMEOUT", 30)
        self.currency = current_app.config.get("CURRENCY_CODE", "RWF")
        self.callback_base_url = current_app.config.get("CALLBACK_BASE_URL")

    @property
    def log_tag(self):
        return f"[{self.__class__.__name__}]"

    def _make_request(self, method, endpoint, payload=None, headers=None, params=None, **kwargs):
        """
        Send a request to the gateway and return the decoded JSON body
        (an empty dict for bodiless answers such as MTN's 202 Accepted).
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        Log.info(f"{self.log_tag} {method} {url}")

        try:
            response = requests.request(
                method=method,
                url=url,
                json=payload,
                headers=request_headers,
                params=params,
                timeout=self.timeout,
                **kwargs
            )
            Log.info(f"{self.log_tag} {method} {url} -> {response.status_code}")
            response.raise_for_status()
        except Timeout:
            raise GatewayError(f"{self.log_tag} Request to {url} timed out after {self.timeout} seconds.")
        except HTTPError as http_err:
            status_code = http_err.response.status_code if http_err.response is not None else None
            raise GatewayError(f"{self.log_tag} HTTP error occurred: {http_err}.", status_code=status_code)
        except RequestException as req_err:
            raise GatewayError(f"{self.log_tag} Error occurred while making the request: {req_err}.")

        if not response.content or not response.content.strip():
            return {}
        try:
            return response.json()
        except ValueError:
            raise GatewayError(f"{self.log_tag} Invalid JSON response from gateway", status_code=response.status_code)

    # ---------------------------------------------------------
    # Tokens
    # ---------------------------------------------------------
    def _token_cache_key(self):
        return f"gateway_token:{self.name}"

    def get_access_token(self):
        cache = redis_connection.connection
        key = self._token_cache_key()

        if cache is not None:
            cached = cache.get(key)
            if cached:
                return cached.decode("utf-8") if isinstance(cached, bytes) else cached

        token, expires_in = self._fetch_access_token()
        if not token:
            raise GatewayError(f"{self.log_tag} Gateway did not return an access token")

        if cache is not None:
            # refresh a minute before the gateway expires it
            cache.setex(key, max(int(expires_in or 3600) - 60, 60), token)
        return token

    def _fetch_access_token(self):
        raise NotImplementedError

    # ---------------------------------------------------------
    # Collections
    # ---------------------------------------------------------
    def initiate_collection(self, amount, phone_number, reference, description, currency=None):
        raise NotImplementedError

    def get_collection_status(self, gateway_transaction_id):
        raise NotImplementedError

    def parse_callback(self, payload):
        raise NotImplementedError

    def map_status(self, provider_status):
        return self.STATUS_MAP.get(
            str(provider_status or "").upper(), ContributionTransaction.STATUS_PENDING
        )

    def verify_callback(self, request_headers):
        """
        Check the shared secret header. Without a configured secret callbacks
        are accepted only when CALLBACK_SECRET_REQUIRED is off; their status
        is still confirmed with the gateway before it is applied.
        """
        secret = current_app.config.get(self.callback_secret_key) if self.callback_secret_key else None
        if not secret:
            if current_app.config.get("CALLBACK_SECRET_REQUIRED"):
                Log.error(f"{self.log_tag} {self.callback_secret_key} is not configured; refusing callback")
                return False
            return True
        supplied = request_headers.get("X-Callback-Secret", "")
        return hmac.compare_digest(str(supplied), str(secret))

    def callback_url(self):
        return f"{self.callback_base_url}/api/v1/payments/{self.provider_code}/callback"
