# models/group.py

from datetime import datetime

from .base_model import BaseModel, to_object_id


class Group(BaseModel):
    """
    Savings groups. Groups and their memberships are managed by the group
    service; payments look them up and credit settled contributions to the
    group's pool.
    """

    collection_name = "groups"

    MEMBER_STATUS_ACTIVE = "active"

    @classmethod
    def is_active_member(cls, group, member_id):
        for member in group.get("members") or []:
            if str(member.get("user")) == str(member_id) and member.get("status") == cls.MEMBER_STATUS_ACTIVE:
                return True
        return False

    @classmethod
    def credit_contribution(cls, group_id, amount):
        """Add a settled contribution to total_savings and available_funds."""
        object_id = to_object_id(group_id)
        if object_id is None:
            return False
        result = cls.collection().update_one(
            {"_id": object_id},
            {
                "$inc": {"total_savings": amount, "available_funds": amount},
                "$set": {"updated_at": datetime.utcnow()},
            },
        )
        return result.matched_count > 0
