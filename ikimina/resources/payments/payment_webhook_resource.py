# resources/payments/payment_webhook_resource.py

from flask import request
from flask.views import MethodView
from flask_smorest import Blueprint

from ...constants.service_code import HTTP_STATUS_CODES
from ...services.payments.contribution_payment_service import ContributionPaymentService
from ...utils.extensions import limiter
from ...utils.logger import Log

payment_webhook_blp = Blueprint(
    "contribution_payment_webhooks",
    __name__,
    description="Mobile money provider callbacks"
)


@payment_webhook_blp.route("/payments/<string:provider>/callback", methods=["POST"])
class ContributionPaymentCallback(MethodView):
    """Handle MTN MoMo and Airtel Money payment callbacks."""

    # callbacks are never throttled
    decorators = [limiter.exempt]

    def post(self, provider):
        log_tag = f"[ContributionPaymentCallback][post][{provider}]"
        client_ip = request.remote_addr

        data = request.get_json(silent=True) or {}
        Log.info(f"{log_tag} Received callback ip={client_ip}")

        success, result, error = ContributionPaymentService.process_callback(
            provider.upper(), data, request.headers
        )

        if not success:
            code = HTTP_STATUS_CODES[error["status_code"]]
            Log.error(f"{log_tag} rejected: {error['message']}")
            return {"code": code, "message": error["message"]}, code

        Log.info(f"{log_tag} reference={result['reference']} status={result['status']}")
        return {"code": 200, **result}, 200
