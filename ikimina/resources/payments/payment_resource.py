# resources/payments/payment_resource.py

from flask import current_app, jsonify, request
from flask.views import MethodView
from flask_smorest import Blueprint
from flask_jwt_extended import jwt_required, get_jwt_identity

from ...constants.payment_methods import parse_providers
from ...schemas.payment_schema import (
    InitiateContributionSchema,
    PaymentHistoryQuerySchema,
    PaymentMethodsQuerySchema,
)
from ...services.payments.contribution_payment_service import ContributionPaymentService
from ...utils.extensions import limiter, member_or_ip_key
from ...utils.helpers import make_log_tag
from ...utils.idempotency import (
    IDEMPOTENCY_HEADER, STATE_COMPLETED, build_idempotency_key, get_stored_response,
    release_key, request_fingerprint, reserve_key, store_response,
)
from ...utils.json_response import prepared_response
from ...utils.logger import Log
from ...views.payment_method_selector import PaymentMethodSelector

payment_blp = Blueprint(
    "contribution_payments",
    __name__,
    description="Contribution payment initiation, status and history"
)


@payment_blp.route("/payments/contribution/initiate", methods=["POST"])
class InitiateContributionPayment(MethodView):
    """Initiate a contribution payment."""

    decorators = [limiter.limit("10 per minute", key_func=member_or_ip_key)]

    @jwt_required()
    @payment_blp.arguments(InitiateContributionSchema, location="json", error_status_code=400)
    @payment_blp.response(200)
    @payment_blp.doc(
        summary="Initiate a contribution payment",
        description="""
            Records the contribution and sends a collection request to the
            selected mobile-money provider. Bank and card payments are
            recorded as Pending for manual settlement.
            - Send an `Idempotency-Key` header to make retries safe.
        """,
        security=[{"Bearer": []}],
    )
    def post(self, json_data):
        client_ip = request.remote_addr
        member_id = get_jwt_identity()

        log_tag = make_log_tag(
            "payment_resource.py",
            "InitiateContributionPayment",
            "post",
            client_ip,
            member_id,
            group=json_data.get("group_id"),
        )

        ttl = current_app.config.get("IDEMPOTENCY_TTL_SECONDS", 86400)
        idempotency_header = request.headers.get(IDEMPOTENCY_HEADER)
        idempotency_key = None
        fingerprint = None
        if idempotency_header:
            idempotency_key = build_idempotency_key(member_id, idempotency_header)
            fingerprint = request_fingerprint(json_data)
            if not reserve_key(idempotency_key, fingerprint, ttl=ttl):
                return _replay_idempotent_response(idempotency_key, fingerprint, log_tag)

        Log.info(f"{log_tag} initiating {json_data.get('provider')} contribution")

        try:
            success, data, error = ContributionPaymentService.initiate_contribution(
                member_id, json_data, ip_address=client_ip
            )
        except Exception:
            # the key must not stay reserved for a request that never finished
            if idempotency_key:
                release_key(idempotency_key)
            raise

        if success:
            message = data.pop("message")
            response, status_code = prepared_response(
                status=True,
                status_code="OK",
                message=message,
                data=data,
            )
        else:
            Log.info(f"{log_tag} initiation failed: {error['message']}")
            response, status_code = prepared_response(
                status=False,
                status_code=error["status_code"],
                message=error["message"],
                data=data,
            )

        if idempotency_key:
            store_response(
                idempotency_key,
                response.get_json(),
                status_code,
                fingerprint=fingerprint,
                ttl=ttl,
            )

        return response, status_code


def _replay_idempotent_response(idempotency_key, fingerprint, log_tag):
    stored = get_stored_response(idempotency_key)

    if stored and stored.get("fingerprint") != fingerprint:
        Log.warning(f"{log_tag} idempotency key reused with a different request body")
        return prepared_response(
            False,
            "VALIDATION_ERROR",
            f"{IDEMPOTENCY_HEADER} was already used for a different request",
        )

    if not stored or stored.get("state") != STATE_COMPLETED:
        Log.info(f"{log_tag} idempotency key still in progress")
        return prepared_response(
            False,
            "CONFLICT",
            f"A request with this {IDEMPOTENCY_HEADER} is still being processed",
        )

    Log.info(f"{log_tag} replaying response for idempotency key")
    return jsonify(stored["body"]), stored["status_code"]


@payment_blp.route("/payments/<string:transaction_id>/status", methods=["GET"])
class ContributionPaymentStatus(MethodView):
    """Check the status of a contribution payment."""

    @jwt_required()
    @payment_blp.response(200)
    @payment_blp.doc(summary="Get contribution payment status", security=[{"Bearer": []}])
    def get(self, transaction_id):
        member_id = get_jwt_identity()
        log_tag = make_log_tag(
            "payment_resource.py",
            "ContributionPaymentStatus",
            "get",
            request.remote_addr,
            member_id,
            transaction=transaction_id,
        )

        success, data, error = ContributionPaymentService.get_status(member_id, transaction_id)
        if not success:
            Log.info(f"{log_tag} {error['message']}")
            return prepared_response(False, error["status_code"], error["message"])

        return prepared_response(True, "OK", "Payment status retrieved", data=data)


@payment_blp.route("/payments/history", methods=["GET"])
class ContributionPaymentHistory(MethodView):
    """Paginated contribution history for the current member."""

    @jwt_required()
    @payment_blp.arguments(PaymentHistoryQuerySchema, location="query", error_status_code=400)
    @payment_blp.response(200)
    @payment_blp.doc(summary="List contribution payments", security=[{"Bearer": []}])
    def get(self, query_data):
        member_id = get_jwt_identity()
        log_tag = make_log_tag(
            "payment_resource.py",
            "ContributionPaymentHistory",
            "get",
            request.remote_addr,
            member_id,
        )
        Log.info(f"{log_tag} page={query_data['page']} limit={query_data['limit']}")

        history = ContributionPaymentService.get_history(
            member_id,
            group_id=query_data.get("group_id"),
            status=query_data.get("status"),
            page=query_data["page"],
            limit=query_data["limit"],
        )
        return prepared_response(True, "OK", "Contribution history retrieved", data=history)


@payment_blp.route("/payments/methods", methods=["GET"])
class ContributionPaymentMethods(MethodView):
    """Payment method selector view model."""

    @payment_blp.arguments(PaymentMethodsQuerySchema, location="query", error_status_code=400)
    @payment_blp.response(200)
    @payment_blp.doc(summary="List payment methods for the selector")
    def get(self, query_data):
        if query_data.get("available"):
            available = parse_providers(query_data["available"])
        else:
            available = ContributionPaymentService.available_providers()

        # the API only describes the selector; changes happen client side
        selector = PaymentMethodSelector(
            selected=query_data["selected"],
            on_method_change=lambda provider: None,
            available=available,
        )
        return prepared_response(True, "OK", "Payment methods retrieved", data=selector.to_dict())
