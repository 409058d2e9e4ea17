# services/payments/contribution_payment_service.py

from flask import current_app

from ...constants.payment_methods import (
    PaymentProvider, PAYMENT_GATEWAYS, get_payment_method_name, parse_providers
)
from ...constants.service_code import ERROR_MESSAGES, TRANSACTION_MESSAGES
from ...extensions.db import redis_connection
from ...models.contribution_transaction import ContributionTransaction
from ...models.group import Group
from ...schemas.payment_schema import ContributionResultSchema
from ...services.gateways.gateway_factory import get_gateway_service
from ...services.gateways.mobile_money_gateway_service import GatewayError
from ...services.notifications.sms_service import (
    send_contribution_failed_sms, send_contribution_receipt_sms
)
from ...utils.generators import generate_internal_reference
from ...utils.helpers import calculate_contribution_fee, paginate, mask_phone
from ...utils.logger import Log
from ...views.contribution_confirmation import ContributionPaymentResult

PHONE_NOT_PROVIDED = "Not provided"

MANUAL_NEXT_STEP = "Complete the transfer quoting reference {reference}. Your contribution is confirmed once the funds arrive."


def _error(status_code, message):
    return {"status_code": status_code, "message": message}


def serialize_transaction(transaction):
    """Mongo document -> JSON friendly dict for API responses."""
    return {
        "transaction_id": str(transaction.get("_id")),
        "reference": transaction.get("reference"),
        "group_id": str(transaction.get("group_id")) if transaction.get("group_id") else None,
        "group_name": transaction.get("group_name"),
        "cycle_period": transaction.get("cycle_period"),
        "amount": transaction.get("amount"),
        "fee": transaction.get("fee"),
        "currency": transaction.get("currency"),
        "provider": transaction.get("provider"),
        "payment_method": get_payment_method_name(transaction.get("provider")),
        "phone_number": transaction.get("phone_number"),
        "status": transaction.get("status"),
        "created_at": transaction.get("created_at"),
        "completed_at": transaction.get("completed_at"),
        "failed_at": transaction.get("failed_at"),
    }


class ContributionPaymentService:
    """Contribution payments: initiation, status polling, provider callbacks and history."""

    @staticmethod
    def available_providers():
        return parse_providers(current_app.config.get("AVAILABLE_PAYMENT_PROVIDERS"))

    # ========================================
    # INITIATION
    # ========================================

    @staticmethod
    def initiate_contribution(member_id, data, ip_address=None):
        """
        Record a contribution and ask the provider to collect it.

        Args:
            member_id: Paying member (JWT identity)
            data: Loaded InitiateContributionSchema payload
            ip_address: Client IP for the audit trail

        Returns:
            Tuple (success: bool, data: dict or None, error: dict or None)

        Raises:
            PermissionError: the member is not active in the group
        """
        log_tag = f"[ContributionPaymentService][initiate_contribution][member:{member_id}]"

        provider = PaymentProvider(data["provider"])
        if provider not in ContributionPaymentService.available_providers():
            Log.info(f"{log_tag} provider {provider} is not enabled")
            return False, None, _error("BAD_REQUEST", f"{get_payment_method_name(provider)} is not available")

        group = Group.get_by_id(data["group_id"])
        if not group:
            Log.info(f"{log_tag} group {data['group_id']} not found")
            return False, None, _error("NOT_FOUND", "Group not found")

        if not Group.is_active_member(group, member_id):
            raise PermissionError("You are not an active member of this group")

        config = current_app.config
        amount = float(data["amount"])
        currency = group.get("currency") or config.get("CURRENCY_CODE", "RWF")
        fee = calculate_contribution_fee(
            amount,
            config.get("CONTRIBUTION_FEE_PERCENTAGE", 0.5),
            minimum_fee=config.get("MINIMUM_FEE"),
            maximum_fee=config.get("MAXIMUM_FEE"),
        )
        reference = generate_internal_reference()

        transaction = ContributionTransaction(
            member_id=member_id,
            group_id=group["_id"],
            group_name=group.get("name"),
            amount=amount,
            fee=fee,
            currency=currency,
            provider=provider,
            gateway=PAYMENT_GATEWAYS[provider],
            reference=reference,
            phone_number=data.get("phone_number"),
            cycle_period=data.get("cycle_period"),
            ip_address=ip_address,
        )
        transaction_id = transaction.save()

        Log.info(
            f"{log_tag} transaction {transaction_id} created reference={reference} "
            f"provider={provider} amount={amount} fee={fee} phone={mask_phone(data.get('phone_number'))}"
        )

        gateway = get_gateway_service(provider)
        if gateway is None:
            ContributionTransaction.update_status(transaction_id, ContributionTransaction.STATUS_PENDING)
            status = ContributionTransaction.STATUS_PENDING
            next_step = MANUAL_NEXT_STEP.format(reference=reference)
            message = TRANSACTION_MESSAGES["MANUAL_PAYMENT_INITIATED"]
        else:
            try:
                outcome = gateway.initiate_collection(
                    amount=amount,
                    phone_number=data["phone_number"],
                    reference=reference,
                    description=transaction.description,
                    currency=currency,
                )
            except GatewayError as e:
                Log.error(f"{log_tag} gateway {gateway.name} failed for {reference}: {e}", exc_info=True)
                ContributionTransaction.update_status(
                    transaction_id,
                    ContributionTransaction.STATUS_FAILED,
                    error_message=str(e),
                )
                return False, {"transaction_id": transaction_id, "reference": reference}, _error(
                    "BAD_GATEWAY", ERROR_MESSAGES["GATEWAY_ERROR"]
                )

            status = outcome["status"]
            ContributionTransaction.update_status(
                transaction_id,
                status,
                gateway_transaction_id=outcome["gateway_transaction_id"],
            )
            next_step = outcome.get("next_step") or TRANSACTION_MESSAGES["CHECK_PHONE"]
            message = TRANSACTION_MESSAGES["PAYMENT_INITIATED"]

        Log.info(f"{log_tag} reference={reference} status={status}")

        return True, {
            "message": message,
            "transaction_id": transaction_id,
            "reference": reference,
            "status": status,
            "amount": amount,
            "fee": fee,
            "currency": currency,
            "provider": provider.value,
            "payment_method": get_payment_method_name(provider),
            "phone_number": data.get("phone_number"),
            "group_name": group.get("name"),
            "cycle_period": data.get("cycle_period"),
            "next_step": next_step,
        }, None

    # ========================================
    # STATUS
    # ========================================

    @staticmethod
    def get_member_transaction(member_id, transaction_id):
        transaction = ContributionTransaction.get_by_id(transaction_id)
        if not transaction or transaction.get("member_id") != str(member_id):
            return None
        return transaction

    @staticmethod
    def get_status(member_id, transaction_id):
        """
        Current state of a member's contribution. Open mobile-money payments
        are checked against the gateway first.
        """
        log_tag = f"[ContributionPaymentService][get_status][{transaction_id}]"

        transaction = ContributionPaymentService.get_member_transaction(member_id, transaction_id)
        if not transaction:
            return False, None, _error("NOT_FOUND", "Transaction not found")

        if transaction.get("status") in ContributionTransaction.OPEN_STATUSES:
            transaction = ContributionPaymentService.refresh_from_gateway(transaction, log_tag=log_tag)

        return True, serialize_transaction(transaction), None

    @staticmethod
    def refresh_from_gateway(transaction, log_tag="[ContributionPaymentService][refresh_from_gateway]"):
        """
        Ask the gateway for the latest status of an open transaction and
        apply it. Returns the (possibly updated) document; gateway errors
        leave the transaction as it was.
        """
        gateway_transaction_id = transaction.get("gateway_transaction_id")
        gateway = get_gateway_service(transaction.get("provider"))
        if gateway is None or not gateway_transaction_id:
            return transaction

        try:
            outcome = gateway.get_collection_status(gateway_transaction_id)
        except GatewayError as e:
            Log.warning(f"{log_tag} status lookup failed for {transaction.get('reference')}: {e}")
            return transaction

        Log.info(
            f"{log_tag} reference={transaction.get('reference')} "
            f"provider_status={outcome.get('provider_status')} -> {outcome['status']}"
        )
        return ContributionPaymentService.apply_gateway_status(
            transaction,
            outcome["status"],
            provider_status=outcome.get("provider_status"),
            operator_reference=outcome.get("operator_reference"),
        ) or transaction

    @staticmethod
    def apply_gateway_status(transaction, status, provider_status=None, operator_reference=None,
                             reason=None, callback_payload=None):
        """
        Move an open transaction to a gateway reported status. Returns the
        updated document, or None when nothing changed (still pending, or
        already settled by a concurrent update).

        Only the update that settles the transaction has side effects: a
        Successful one credits the group pool and queues the receipt SMS, a
        Failed one queues the failure SMS.
        """
        extra = {}
        if provider_status is not None:
            extra["provider_status"] = provider_status
        if operator_reference:
            extra["operator_reference"] = operator_reference
        if callback_payload is not None:
            extra["callback_payload"] = callback_payload

        if status == ContributionTransaction.STATUS_PENDING:
            if extra:
                ContributionTransaction.update(transaction["_id"], **extra)
            return None

        if status == ContributionTransaction.STATUS_FAILED:
            extra["error_message"] = reason or "Payment was not approved"

        updated = ContributionTransaction.update_status(transaction["_id"], status, **extra)
        if not updated:
            return None

        if status == ContributionTransaction.STATUS_SUCCESSFUL:
            ContributionPaymentService.credit_group(updated)
            ContributionPaymentService.enqueue_receipt_sms(updated)
        elif status == ContributionTransaction.STATUS_FAILED:
            ContributionPaymentService.enqueue_failure_sms(updated)
        return updated

    @staticmethod
    def credit_group(transaction):
        log_tag = f"[ContributionPaymentService][credit_group][{transaction.get('reference')}]"
        if not Group.credit_contribution(transaction.get("group_id"), transaction.get("amount")):
            Log.error(f"{log_tag} group {transaction.get('group_id')} not found, contribution not credited")
            return False
        Log.info(f"{log_tag} credited {transaction.get('amount')} to group {transaction.get('group_id')}")
        return True

    # ========================================
    # CALLBACKS
    # ========================================

    @staticmethod
    def process_callback(provider, payload, headers):
        """
        Apply a provider webhook. Settled transactions are acknowledged
        without change; a final status is applied only as the gateway's
        status lookup reports it.

        Returns:
            Tuple (success: bool, data: dict or None, error: dict or None)
        """
        log_tag = f"[ContributionPaymentService][process_callback][{provider}]"

        gateway = get_gateway_service(provider)
        if gateway is None:
            return False, None, _error("NOT_FOUND", "Unknown payment provider")

        if not gateway.verify_callback(headers):
            Log.warning(f"{log_tag} callback secret mismatch")
            return False, None, _error("UNAUTHORIZED", "Invalid callback signature")

        parsed = gateway.parse_callback(payload)
        if not parsed:
            Log.error(f"{log_tag} failed to parse callback: {payload}")
            return False, None, _error("BAD_REQUEST", "Invalid callback payload")

        if parsed.get("reference"):
            transaction = ContributionTransaction.get_by_reference(parsed["reference"])
        else:
            transaction = ContributionTransaction.get_by_gateway_transaction_id(parsed["gateway_transaction_id"])

        if not transaction or transaction.get("provider") != gateway.provider_code:
            Log.error(
                f"{log_tag} transaction not found reference={parsed.get('reference')} "
                f"gateway_transaction_id={parsed.get('gateway_transaction_id')}"
            )
            return False, None, _error("NOT_FOUND", "Transaction not found")

        reference = transaction.get("reference")
        if transaction.get("status") in ContributionTransaction.SETTLED_STATUSES:
            Log.warning(f"{log_tag} {reference} already settled as {transaction.get('status')}")
            return True, {
                "message": TRANSACTION_MESSAGES["CALLBACK_ALREADY_PROCESSED"],
                "reference": reference,
                "status": transaction.get("status"),
            }, None

        Log.info(f"{log_tag} {reference} provider_status={parsed.get('provider_status')} -> {parsed['status']}")

        status = parsed["status"]
        provider_status = parsed.get("provider_status")
        operator_reference = parsed.get("operator_reference")

        if status != ContributionTransaction.STATUS_PENDING:
            # a callback only settles a payment once the gateway reports the same outcome
            confirmed = ContributionPaymentService.confirm_with_gateway(gateway, transaction, log_tag)
            if confirmed is None:
                ContributionTransaction.update(transaction["_id"], callback_payload=payload)
                return True, {
                    "message": TRANSACTION_MESSAGES["CALLBACK_AWAITING_CONFIRMATION"],
                    "reference": reference,
                    "status": transaction.get("status"),
                }, None
            if confirmed["status"] != status:
                Log.warning(
                    f"{log_tag} {reference} callback reported {status} "
                    f"but gateway reports {confirmed['status']}"
                )
            status = confirmed["status"]
            provider_status = confirmed.get("provider_status") or provider_status
            operator_reference = confirmed.get("operator_reference") or operator_reference

        updated = ContributionPaymentService.apply_gateway_status(
            transaction,
            status,
            provider_status=provider_status,
            operator_reference=operator_reference,
            reason=parsed.get("reason"),
            callback_payload=payload,
        )

        if updated is None and status != ContributionTransaction.STATUS_PENDING:
            # lost a race with another callback or the verification job
            current = ContributionTransaction.get_by_id(transaction["_id"]) or transaction
            return True, {
                "message": TRANSACTION_MESSAGES["CALLBACK_ALREADY_PROCESSED"],
                "reference": reference,
                "status": current.get("status"),
            }, None

        return True, {
            "message": TRANSACTION_MESSAGES["CALLBACK_PROCESSED"],
            "reference": reference,
            "status": (updated or transaction).get("status"),
        }, None

    @staticmethod
    def confirm_with_gateway(gateway, transaction, log_tag):
        """
        Gateway's own view of a transaction a callback wants to settle, or
        None when it cannot be looked up right now (the verification job
        retries later).
        """
        gateway_transaction_id = transaction.get("gateway_transaction_id")
        if not gateway_transaction_id:
            Log.warning(f"{log_tag} {transaction.get('reference')} has no gateway transaction id to confirm")
            return None
        try:
            return gateway.get_collection_status(gateway_transaction_id)
        except GatewayError as e:
            Log.warning(f"{log_tag} confirmation lookup failed for {transaction.get('reference')}: {e}")
            return None

    # ========================================
    # NOTIFICATIONS
    # ========================================

    @staticmethod
    def enqueue_receipt_sms(transaction):
        return ContributionPaymentService._enqueue_sms(transaction, send_contribution_receipt_sms, "receipt")

    @staticmethod
    def enqueue_failure_sms(transaction):
        return ContributionPaymentService._enqueue_sms(transaction, send_contribution_failed_sms, "failure")

    @staticmethod
    def _enqueue_sms(transaction, job_func, kind):
        log_tag = f"[ContributionPaymentService][enqueue_{kind}_sms][{transaction.get('reference')}]"

        if not current_app.config.get("SMS_RECEIPTS_ENABLED"):
            return None
        if not transaction.get("phone_number"):
            Log.info(f"{log_tag} no phone number, skipping {kind} SMS")
            return None
        if redis_connection.queue is None:
            Log.warning(f"{log_tag} SMS queue not configured")
            return None

        job = redis_connection.queue.enqueue(
            job_func,
            kwargs={
                "phone_number": transaction["phone_number"],
                "group_name": transaction.get("group_name") or "your group",
                "amount": transaction.get("amount"),
                "currency": transaction.get("currency"),
                "reference": transaction.get("reference"),
                "locale": current_app.config.get("CURRENCY_LOCALE", "en_RW"),
            },
            job_timeout=120,
        )
        Log.info(f"{log_tag} {kind} SMS queued")
        return job

    # ========================================
    # HISTORY & CONFIRMATION
    # ========================================

    @staticmethod
    def get_history(member_id, group_id=None, status=None, page=1, limit=10):
        transactions, total = ContributionTransaction.get_member_history(
            member_id, group_id=group_id, status=status, page=page, limit=limit
        )
        return {
            "transactions": [serialize_transaction(t) for t in transactions],
            "pagination": paginate(total, page, limit),
        }

    @staticmethod
    def build_confirmation_result(transaction):
        """
        Validated ContributionPaymentResult for the confirmation page.

        Raises:
            marshmallow.ValidationError: the transaction lacks a displayable field
        """
        loaded = ContributionResultSchema().load({
            "transaction_id": transaction.get("reference") or str(transaction.get("_id")),
            "amount": transaction.get("amount"),
            "currency": transaction.get("currency") or current_app.config.get("CURRENCY_CODE", "RWF"),
            "phone_number": transaction.get("phone_number") or PHONE_NOT_PROVIDED,
            "payment_method": get_payment_method_name(transaction.get("provider")),
            "group_name": transaction.get("group_name"),
            "cycle_period": transaction.get("cycle_period"),
        })
        return ContributionPaymentResult(**loaded)
