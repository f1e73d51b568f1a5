import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _minutes(name, default):
    return timedelta(minutes=int(os.getenv(name, default)))


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

    # access and refresh tokens are signed with independent secrets
    JWT_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me")
    JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_TOKEN_LOCATION = ["cookies", "headers"]
    JWT_ACCESS_COOKIE_NAME = "accessToken"
    JWT_COOKIE_CSRF_PROTECT = False

    JWT_ACCESS_TOKEN_EXPIRES = _minutes("JWT_ACCESS_EXPIRES_MINUTES", 15)
    JWT_REFRESH_TOKEN_EXPIRES = _minutes("JWT_REFRESH_EXPIRES_MINUTES", 55)
    REFRESH_SESSION_EXPIRES = _minutes("REFRESH_SESSION_EXPIRES_MINUTES", 30)
    REFRESH_COOKIE_MAX_AGE = _minutes("REFRESH_COOKIE_MAX_AGE_MINUTES", 35)

    ACCESS_COOKIE_NAME = "accessToken"
    REFRESH_COOKIE_NAME = "refreshToken"
    AUTH_COOKIE_SECURE = False

    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:5000/auth/google/callback")

    RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
    MAIL_FROM = os.getenv("MAIL_FROM", "Blissora <hello@blissora.shop>")
    MAIL_ENABLED = bool(os.getenv("RESEND_API_KEY"))

    REDIS_URL = os.getenv("REDIS_URL", "")
    CACHE_DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", 3600))
    PRODUCT_LIST_CACHE_TTL = 300
    CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", 1024))  # in-process store only

    TAX_RATE = float(os.getenv("TAX_RATE", "0.1"))
    FREE_SHIPPING_THRESHOLD = float(os.getenv("FREE_SHIPPING_THRESHOLD", "500"))
    SHIPPING_FEE = float(os.getenv("SHIPPING_FEE", "40"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    AUTO_CREATE_TABLES = True

    @staticmethod
    def init_app(app):
        if not app.config.get("SQLALCHEMY_DATABASE_URI"):
            url = os.getenv("DATABASE_URL")
            if url:
                app.config["SQLALCHEMY_DATABASE_URI"] = url
            else:
                os.makedirs(app.instance_path, exist_ok=True)
                app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"

        # The session-store lifetime is the one that governs; the signed
        # claim and the cookie must never end a session before it does.
        session_ttl = app.config["REFRESH_SESSION_EXPIRES"]
        if app.config["JWT_REFRESH_TOKEN_EXPIRES"] < session_ttl:
            raise ValueError("JWT_REFRESH_TOKEN_EXPIRES must not be shorter than REFRESH_SESSION_EXPIRES")
        if app.config["REFRESH_COOKIE_MAX_AGE"] < session_ttl:
            raise ValueError("REFRESH_COOKIE_MAX_AGE must not be shorter than REFRESH_SESSION_EXPIRES")


class DevelopmentConfig(Config):
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    MAIL_ENABLED = False
    REDIS_URL = ""
    CLIENT_URL = "http://client.test"
    GOOGLE_CLIENT_ID = "test-client-id"
    GOOGLE_CLIENT_SECRET = "test-client-secret"


class ProductionConfig(Config):
    AUTH_COOKIE_SECURE = True
    AUTO_CREATE_TABLES = False

    @staticmethod
    def init_app(app):
        Config.init_app(app)
        for key in ("SECRET_KEY", "JWT_SECRET_KEY", "JWT_REFRESH_SECRET_KEY"):
            if app.config[key].startswith("dev-"):
                raise ValueError(f"{key} must be set in production")


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
