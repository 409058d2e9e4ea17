# ikimina/models/base_model.py

from datetime import datetime
from bson.objectid import ObjectId
from bson.errors import InvalidId
from ..extensions.db import db


def to_object_id(value):
    """Return an ObjectId for value, or None when value is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class BaseModel:
    """
    A base class for models providing common CRUD operations.
    """
    collection_name = None

    def __init__(self, **kwargs):
        self.created_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

        for key, value in kwargs.items():
            setattr(self, key, value)

    def to_dict(self):
        """
        Convert the model object to a dictionary representation.
        """
        return {key: getattr(self, key) for key in self.__dict__}

    @classmethod
    def collection(cls):
        return db.get_collection(cls.collection_name)

    def save(self):
        result = self.__class__.collection().insert_one(self.to_dict())
        return str(result.inserted_id)

    @classmethod
    def get_by_id(cls, record_id):
        object_id = to_object_id(record_id)
        if object_id is None:
            return None
        return cls.collection().find_one({"_id": object_id})

    @classmethod
    def update(cls, record_id, **updates):
        object_id = to_object_id(record_id)
        if object_id is None:
            return False
        updates["updated_at"] = datetime.utcnow()
        result = cls.collection().update_one({"_id": object_id}, {"$set": updates})
        return result.matched_count > 0
