from flask import request, redirect, url_for
from flask_jwt_extended import jwt_required, get_jwt_identity

from ..constants.payment_methods import parse_providers
from ..schemas.payment_schema import PaymentMethodsQuerySchema
from ..services.payments.contribution_payment_service import ContributionPaymentService
from ..utils.helpers import make_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..views.contribution_confirmation import ContributionConfirmation
from ..views.payment_method_selector import PaymentMethodSelector

HTML_HEADERS = {"Content-Type": "text/html; charset=utf-8"}


def get_payment_methods_page():
    """Selector fragment. Submitting the form reloads it with the new choice."""
    log_tag = make_log_tag(
        "contribution_page_controller.py", "payment_methods", "get", request.remote_addr, None
    )
    query = PaymentMethodsQuerySchema().load(request.args)

    if query.get("available"):
        available = parse_providers(query["available"])
    else:
        available = ContributionPaymentService.available_providers()

    chosen = []
    selector = PaymentMethodSelector(
        selected=query["selected"],
        on_method_change=chosen.append,
        available=available,
    )

    if "selected" in request.args:
        try:
            selector.select(query["selected"])
        except ValueError as e:
            Log.info(f"{log_tag} {e}")
            return prepared_response(False, "BAD_REQUEST", str(e))
        Log.info(f"{log_tag} method changed to {chosen[-1]}")

    html = selector.render(form_action=url_for("get_payment_methods_page"))
    return html, 200, HTML_HEADERS


def _build_confirmation(transaction):
    result = ContributionPaymentService.build_confirmation_result(transaction)
    group_id = str(transaction.get("group_id"))

    return ContributionConfirmation(
        result,
        on_make_another=lambda: redirect(
            url_for("get_payment_methods_page", selected=transaction.get("provider"))
        ),
        on_view_history=lambda: redirect(
            url_for("contribution_payments.ContributionPaymentHistory", group_id=group_id)
        ),
    )


@jwt_required()
def get_contribution_confirmation_page(transaction_id):
    member_id = get_jwt_identity()
    log_tag = make_log_tag(
        "contribution_page_controller.py", "confirmation", "get", request.remote_addr, member_id,
        transaction=transaction_id,
    )

    transaction = ContributionPaymentService.get_member_transaction(member_id, transaction_id)
    if not transaction:
        Log.info(f"{log_tag} transaction not found")
        return prepared_response(False, "NOT_FOUND", "Transaction not found")

    confirmation = _build_confirmation(transaction)
    html = confirmation.render(action_url_prefix=f"/contributions/{transaction_id}/actions")
    return html, 200, HTML_HEADERS


@jwt_required()
def post_contribution_confirmation_action(transaction_id, action):
    member_id = get_jwt_identity()
    log_tag = make_log_tag(
        "contribution_page_controller.py", "confirmation_action", "post", request.remote_addr, member_id,
        transaction=transaction_id, action=action,
    )

    transaction = ContributionPaymentService.get_member_transaction(member_id, transaction_id)
    if not transaction:
        return prepared_response(False, "NOT_FOUND", "Transaction not found")

    confirmation = _build_confirmation(transaction)
    try:
        response = confirmation.trigger(action)
    except KeyError:
        Log.info(f"{log_tag} unknown action")
        return prepared_response(False, "NOT_FOUND", f"Action {action} is not available")

    Log.info(f"{log_tag} redirecting to {response.location}")
    return response
