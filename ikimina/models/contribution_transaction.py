# models/contribution_transaction.py

from datetime import datetime, timedelta
from pymongo import DESCENDING, ReturnDocument
from .base_model import BaseModel, to_object_id
from ..constants.service_code import TRANSACTION_STATUS, TRANSACTION_TYPES


class ContributionTransaction(BaseModel):
    """
    A member's contribution payment into a group, from initiation until the
    provider settles (or rejects) it.
    """

    collection_name = "contribution_transactions"

    STATUS_INITIATED = TRANSACTION_STATUS["INITIATED"]
    STATUS_PENDING = TRANSACTION_STATUS["PENDING"]
    STATUS_SUCCESSFUL = TRANSACTION_STATUS["SUCCESSFUL"]
    STATUS_FAILED = TRANSACTION_STATUS["FAILED"]
    STATUS_CANCELLED = TRANSACTION_STATUS["CANCELLED"]

    OPEN_STATUSES = (STATUS_INITIATED, STATUS_PENDING)
    SETTLED_STATUSES = (STATUS_SUCCESSFUL, STATUS_FAILED, STATUS_CANCELLED)

    def __init__(
        self,
        member_id,
        group_id,
        amount,
        provider,
        reference,
        currency="RWF",
        fee=0,
        phone_number=None,
        cycle_period=None,
        gateway="manual",
        group_name=None,
        status=None,
        description=None,
        ip_address=None,
        **kwargs
    ):
        """
        Args:
            member_id: Paying member id (JWT identity)
            group_id: Group ObjectId or string
            amount: Contribution amount in currency units
            provider: PaymentProvider value (MTN, AIRTEL, BANK, CARD)
            reference: Internal reference sent to the gateway
            currency: Currency code (default: RWF)
            fee: Service fee charged on top of the amount
            phone_number: Payer phone in E.164 (mobile money only)
            cycle_period: Contribution cycle label
            gateway: Gateway identifier (mtn_momo, airtel_money, manual)
            group_name: Group name at initiation time
            status: Initial status (default: Initiated)
        """
        super().__init__(**kwargs)

        self.type = TRANSACTION_TYPES["CONTRIBUTION"]
        self.member_id = str(member_id)
        self.group_id = to_object_id(group_id)
        self.group_name = group_name
        self.amount = float(amount)
        self.fee = fee
        self.currency = currency
        self.provider = str(provider)
        self.gateway = gateway
        self.reference = reference
        self.phone_number = phone_number
        self.cycle_period = cycle_period
        self.status = status or self.STATUS_INITIATED
        self.description = description or (f"Contribution to {group_name}" if group_name else "Contribution")
        self.ip_address = ip_address

        self.gateway_transaction_id = None
        self.verification_attempts = 0
        self.error_message = None

    @classmethod
    def get_by_reference(cls, reference):
        return cls.collection().find_one({"reference": reference})

    @classmethod
    def get_by_gateway_transaction_id(cls, gateway_transaction_id):
        return cls.collection().find_one({"gateway_transaction_id": gateway_transaction_id})

    @classmethod
    def update_status(cls, transaction_id, status, **extra):
        """
        Move an open transaction to `status`. Settled transactions are left
        untouched so duplicate callbacks cannot flip a final outcome.

        Returns the updated document, or None if nothing changed.
        """
        object_id = to_object_id(transaction_id)
        if object_id is None:
            return None

        now = datetime.utcnow()
        updates = {"status": status, "updated_at": now, **extra}
        if status == cls.STATUS_SUCCESSFUL:
            updates["completed_at"] = now
        elif status == cls.STATUS_FAILED:
            updates["failed_at"] = now
        elif status == cls.STATUS_CANCELLED:
            updates["cancelled_at"] = now

        return cls.collection().find_one_and_update(
            {"_id": object_id, "status": {"$in": list(cls.OPEN_STATUSES)}},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    @classmethod
    def increment_verification_attempts(cls, transaction_id):
        cls.collection().update_one(
            {"_id": to_object_id(transaction_id)},
            {"$inc": {"verification_attempts": 1}, "$set": {"last_verified_at": datetime.utcnow()}},
        )

    @classmethod
    def get_member_history(cls, member_id, group_id=None, status=None, page=1, limit=10):
        """Return (transactions, total) for a member, newest first."""
        query = {"member_id": str(member_id)}
        if group_id:
            query["group_id"] = to_object_id(group_id)
        if status:
            query["status"] = status

        total = cls.collection().count_documents(query)
        cursor = (
            cls.collection()
            .find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return list(cursor), total

    @classmethod
    def get_pending_for_verification(cls, older_than_seconds, max_attempts, limit=100):
        """Open mobile-money transactions old enough to poll the gateway for."""
        cutoff = datetime.utcnow() - timedelta(seconds=older_than_seconds)
        cursor = cls.collection().find({
            "status": {"$in": list(cls.OPEN_STATUSES)},
            "gateway": {"$ne": "manual"},
            "gateway_transaction_id": {"$ne": None},
            "created_at": {"$lte": cutoff},
            "verification_attempts": {"$lt": max_attempts},
        }).limit(limit)
        return list(cursor)

    @classmethod
    def get_stale_for_expiry(cls, max_attempts, limit=100):
        cursor = cls.collection().find({
            "status": {"$in": list(cls.OPEN_STATUSES)},
            "gateway": {"$ne": "manual"},
            "verification_attempts": {"$gte": max_attempts},
        }).limit(limit)
        return list(cursor)
