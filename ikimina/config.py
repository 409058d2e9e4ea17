from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import os


def _env_bool(name, default="false"):
    return os.getenv(name, default).strip().lower() == "true"


class Config:
    """Base configuration class."""
    APP_NAME = os.getenv("APP_NAME", "Ikimina Payments")

    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    DEBUG = os.getenv("FLASK_DEBUG", "False") == "True"
    TESTING = False

    # ========================================
    # STORAGE
    # ========================================
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/ikimina")
    DB_NAME = os.getenv("DB_NAME", "ikimina")
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    SMS_QUEUE_NAME = os.getenv("SMS_QUEUE_NAME", "sms")
    RATELIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    IDEMPOTENCY_TTL_SECONDS = int(os.getenv("IDEMPOTENCY_TTL_SECONDS", 86400))

    ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

    # ========================================
    # CURRENCY & LOCALE
    # ========================================
    CURRENCY_CODE = os.getenv("CURRENCY_CODE", "RWF")
    CURRENCY_LOCALE = os.getenv("CURRENCY_LOCALE", "en_RW")
    PHONE_REGION = os.getenv("PHONE_REGION", "RW")
    AVAILABLE_PAYMENT_PROVIDERS = os.getenv("AVAILABLE_PAYMENT_PROVIDERS", "MTN,AIRTEL")

    # ========================================
    # FEES
    # ========================================
    CONTRIBUTION_FEE_PERCENTAGE = float(os.getenv("CONTRIBUTION_FEE_PERCENTAGE", 0.5))
    MINIMUM_FEE = int(os.getenv("MINIMUM_FEE", 100))
    MAXIMUM_FEE = int(os.getenv("MAXIMUM_FEE", 2000))

    # ========================================
    # VERIFICATION
    # ========================================
    PAYMENT_VERIFY_AFTER_SECONDS = int(os.getenv("PAYMENT_VERIFY_AFTER_SECONDS", 30))
    PAYMENT_MAX_VERIFICATION_ATTEMPTS = int(os.getenv("PAYMENT_MAX_VERIFICATION_ATTEMPTS", 10))
    GATEWAY_TIMEOUT = int(os.getenv("GATEWAY_TIMEOUT", 30))

    CALLBACK_BASE_URL = os.getenv("CALLBACK_BASE_URL", "http://localhost:5000")
    # refuse provider callbacks when the gateway has no shared secret configured
    CALLBACK_SECRET_REQUIRED = _env_bool("CALLBACK_SECRET_REQUIRED", "false")

    # ========================================
    # MTN MOBILE MONEY CONFIGURATION
    # ========================================
    MTN_MOMO_ENVIRONMENT = os.getenv("MTN_MOMO_ENVIRONMENT", "sandbox")
    MTN_MOMO_API_URL = os.getenv("MTN_MOMO_API_URL", "https://sandbox.momodeveloper.mtn.com")
    MTN_MOMO_COLLECTIONS_KEY = os.getenv("MTN_MOMO_COLLECTIONS_KEY")
    MTN_MOMO_API_USER = os.getenv("MTN_MOMO_API_USER")
    MTN_MOMO_API_KEY = os.getenv("MTN_MOMO_API_KEY")
    MTN_MOMO_CALLBACK_SECRET = os.getenv("MTN_MOMO_CALLBACK_SECRET")

    # ========================================
    # AIRTEL MONEY CONFIGURATION
    # ========================================
    AIRTEL_API_URL = os.getenv("AIRTEL_API_URL", "https://openapiuat.airtel.africa")
    AIRTEL_CLIENT_ID = os.getenv("AIRTEL_CLIENT_ID")
    AIRTEL_CLIENT_SECRET = os.getenv("AIRTEL_CLIENT_SECRET")
    AIRTEL_COUNTRY = os.getenv("AIRTEL_COUNTRY", "RW")
    AIRTEL_CALLBACK_SECRET = os.getenv("AIRTEL_CALLBACK_SECRET")

    # ========================================
    # SMS (TWILIO)
    # ========================================
    # Twilio credentials (TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM) are
    # read from the environment by the RQ worker, see services/notifications/sms_service.py
    SMS_RECEIPTS_ENABLED = _env_bool("SMS_RECEIPTS_ENABLED", "true")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    MONGO_URI = os.getenv("DEV_MONGO_URI", "mongodb://localhost:27017/ikimina_dev")


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    JWT_SECRET_KEY = SECRET_KEY
    MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017/ikimina_test")
    DB_NAME = "ikimina_test"
    RATELIMIT_STORAGE_URI = "memory://"
    RATELIMIT_ENABLED = False
    AVAILABLE_PAYMENT_PROVIDERS = "MTN,AIRTEL,BANK"
    MTN_MOMO_COLLECTIONS_KEY = "test-collections-key"
    MTN_MOMO_API_USER = "test-api-user"
    MTN_MOMO_API_KEY = "test-api-key"
    MTN_MOMO_CALLBACK_SECRET = None
    AIRTEL_CLIENT_ID = "test-client-id"
    AIRTEL_CLIENT_SECRET = "test-client-secret"
    AIRTEL_CALLBACK_SECRET = None
    CALLBACK_SECRET_REQUIRED = False
    SMS_RECEIPTS_ENABLED = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    MTN_MOMO_ENVIRONMENT = os.getenv("MTN_MOMO_ENVIRONMENT", "mtnrwanda")
    MTN_MOMO_API_URL = os.getenv("MTN_MOMO_API_URL", "https://proxy.momoapi.mtn.com")
    AIRTEL_API_URL = os.getenv("AIRTEL_API_URL", "https://openapi.airtel.africa")
    CALLBACK_SECRET_REQUIRED = _env_bool("CALLBACK_SECRET_REQUIRED", "true")


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(app, config_name=None):
    load_dotenv()
    config_name = config_name or os.getenv("APP_ENV", "development")
    app.config.from_object(CONFIG_BY_NAME.get(config_name, DevelopmentConfig))
    app.config["APP_ENV"] = config_name
