import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")
    CHECKOUT_CURRENCY = os.environ.get("CHECKOUT_CURRENCY", "usd")

    # --- Identity provider (Clerk-style REST API) ---
    IDENTITY_API_URL = os.environ.get("IDENTITY_API_URL", "https://api.clerk.com/v1")
    IDENTITY_SECRET_KEY = os.environ.get("IDENTITY_SECRET_KEY")
    IDENTITY_API_TIMEOUT = int(os.environ.get("IDENTITY_API_TIMEOUT", 10))
    IDENTITY_CACHE_TTL = int(os.environ.get("IDENTITY_CACHE_TTL", 300))        # seconds
    IDENTITY_CACHE_MAXSIZE = int(os.environ.get("IDENTITY_CACHE_MAXSIZE", 1024))

    # --- Pagination defaults ---
    EVENTS_PAGE_SIZE = 6
    ORDERS_PAGE_SIZE = 3
    RELATED_EVENTS_PAGE_SIZE = 3

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
            "APP_BASE_URL",
            "IDENTITY_SECRET_KEY",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True


class TestConfig(Config):
    """Testing — in-memory SQLite, external APIs faked."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STRIPE_SECRET_KEY = "sk_test_fake"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    APP_BASE_URL = "http://localhost:5000"
    IDENTITY_API_URL = "https://identity.test/v1"
    IDENTITY_SECRET_KEY = "sk_identity_test_fake"
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
