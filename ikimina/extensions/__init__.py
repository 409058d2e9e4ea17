# ikimina/extensions/__init__.py

from flask_jwt_extended import JWTManager
from flask_cors import CORS
from .db import db, redis_connection
from .jwt_manager import jwt_manager_configuration

# Only app-aware extensions should be global
jwt = jwt_manager_configuration(JWTManager())
cors = CORS()

__all__ = [
    "jwt",
    "cors",
    "db",
    "redis_connection"
]
