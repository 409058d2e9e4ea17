# ikimina/jobs/payment_verification_job.py

from typing import Dict

from flask import current_app

from ..models.contribution_transaction import ContributionTransaction
from ..services.payments.contribution_payment_service import ContributionPaymentService
from ..utils.logger import Log


# =========================================================
# VERIFY PENDING CONTRIBUTIONS
# =========================================================

def verify_pending_payments() -> Dict:
    """
    Poll the gateway for mobile-money contributions still waiting on a
    callback.

    Recommended schedule:
    - Every minute via cron (`flask verify-payments`)

    Actions:
    1. Find open transactions older than PAYMENT_VERIFY_AFTER_SECONDS
    2. Count the attempt and ask the gateway for the latest status
    3. Settle them when the gateway has a final answer
    4. Fail transactions that used up PAYMENT_MAX_VERIFICATION_ATTEMPTS
       and text the member that the payment failed

    Must run inside an application context.
    """
    log_tag = "[payment_verification_job][verify_pending_payments]"
    config = current_app.config
    max_attempts = config.get("PAYMENT_MAX_VERIFICATION_ATTEMPTS", 10)
    verify_after = config.get("PAYMENT_VERIFY_AFTER_SECONDS", 30)

    checked = 0
    settled = 0
    expired = 0
    errors = 0

    try:
        Log.info(f"{log_tag} Starting job")

        pending = ContributionTransaction.get_pending_for_verification(verify_after, max_attempts)
        Log.info(f"{log_tag} Found {len(pending)} pending contributions")

        for transaction in pending:
            reference = transaction.get("reference")
            try:
                ContributionTransaction.increment_verification_attempts(transaction["_id"])
                checked += 1

                updated = ContributionPaymentService.refresh_from_gateway(transaction, log_tag=log_tag)
                if updated.get("status") in ContributionTransaction.SETTLED_STATUSES:
                    settled += 1
                    Log.info(f"{log_tag} {reference} settled as {updated.get('status')}")
            except Exception as tx_err:
                errors += 1
                Log.error(f"{log_tag} Failed to verify {reference}: {tx_err}", exc_info=True)

        for transaction in ContributionTransaction.get_stale_for_expiry(max_attempts):
            updated = ContributionPaymentService.apply_gateway_status(
                transaction,
                ContributionTransaction.STATUS_FAILED,
                reason=f"Payment not confirmed after {max_attempts} verification attempts",
            )
            if updated:
                expired += 1
                Log.warning(f"{log_tag} {transaction.get('reference')} expired after {max_attempts} attempts")

        Log.info(
            f"{log_tag} Completed | checked={checked} | settled={settled} | expired={expired} | errors={errors}"
        )

        return {
            "success": True,
            "checked": checked,
            "settled": settled,
            "expired": expired,
            "errors": errors,
        }

    except Exception as e:
        Log.critical(f"{log_tag} Job failed catastrophically: {e}", exc_info=True)
        return {
            "success": False,
            "checked": checked,
            "settled": settled,
            "expired": expired,
            "errors": errors + 1,
            "error": str(e),
        }
