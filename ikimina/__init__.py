import click
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from marshmallow import ValidationError
from flask_smorest import Api
from flask_limiter.errors import RateLimitExceeded

from .utils.extensions import limiter
from .extensions import db, redis_connection, jwt, cors

from .config import load_config
from .routes import register_routes
from .jobs.payment_verification_job import verify_pending_payments
from .utils.error_handlers import (
    handle_permission_error, handle_validation_error, handle_type_error,
    handle_rate_limit
)


def create_app(config_name=None, mongo_client=None, redis_client=None):
    """
    Build the payments app. `mongo_client` and `redis_client` replace the
    connections made from configuration (tests pass in-memory fakes).
    """
    app = Flask(__name__)

    #get actual client IP
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,      # Trust X-Forwarded-For
        x_proto=1,    # Trust X-Forwarded-Proto
        x_host=1,     # Trust X-Forwarded-Host
        x_port=1,     # Trust X-Forwarded-Port
        x_prefix=1    # Trust X-Forwarded-Prefix
    )

    # Load configuration (ensure it does NOT override Flask-Smorest keys)
    load_config(app, config_name)

    app.config["API_TITLE"] = "Ikimina Payments API"
    app.config["API_VERSION"] = "v1"
    app.config["OPENAPI_VERSION"] = "3.0.3"
    app.config["OPENAPI_URL_PREFIX"] = "/api"
    app.config["OPENAPI_JSON_PATH"] = "openapi.json"
    app.config["OPENAPI_SWAGGER_UI_PATH"] = "/docs"
    app.config["OPENAPI_SWAGGER_UI_URL"] = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"
    app.config["API_SPEC_OPTIONS"] = {
        "components": {
            "securitySchemes": {
                "Bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
            }
        }
    }

    api = Api(app)

    # Initialize all extensions
    db.init_app(app, client=mongo_client)
    redis_connection.init_app(app, connection=redis_client)
    jwt.init_app(app)
    cors.init_app(app, origins=app.config["ALLOWED_ORIGINS"])
    limiter.init_app(app)

    # Register custom error handlers
    app.errorhandler(PermissionError)(handle_permission_error)
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(TypeError)(handle_type_error)
    app.errorhandler(RateLimitExceeded)(handle_rate_limit)

    register_routes(app, api)

    @app.cli.command("verify-payments")
    def verify_payments_command():
        """Poll gateways for pending contributions (run from cron)."""
        click.echo(verify_pending_payments())

    return app
