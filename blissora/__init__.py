import os

from flask import Flask
from sqlalchemy import text

from .config import config_by_name
from .errors import register_error_handlers, register_jwt_handlers
from .extensions import cache, cors, db, jwt, mailer, migrate


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=True)

    config_name = config_name or os.getenv("APP_CONFIG") or os.getenv("FLASK_ENV", "development")
    cfg = config_by_name.get(config_name) if isinstance(config_name, str) else config_name
    if cfg is None:
        raise ValueError(f"unknown config {config_name!r}")
    app.config.from_object(cfg)
    cfg.init_app(app)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": app.config["CLIENT_URL"]}}, supports_credentials=True)
    migrate.init_app(app, db)
    cache.init_app(app)
    mailer.init_app(app)

    _register_user_loader()
    register_jwt_handlers(jwt)
    register_error_handlers(app)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .payment import bp as payment_bp; app.register_blueprint(payment_bp)
    from .review import bp as review_bp; app.register_blueprint(review_bp)
    from .admin import bp as admin_bp; app.register_blueprint(admin_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        from .utils.api import ok
        return ok("Blissora API running")

    with app.app_context():
        from . import model  # noqa: F401  (registers tables)
        _check_database(app)
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()

    app.logger.info("blissora api ready (%s)", config_name)
    return app


def _check_database(app):
    """Fail fast when the database is unreachable."""
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        app.logger.critical("database connection failed: %s", app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1])
        raise
    finally:
        db.session.remove()


def _register_user_loader():
    from .model import User

    @jwt.user_lookup_loader
    def load_user(jwt_header, jwt_data):
        try:
            return db.session.get(User, int(jwt_data["sub"]))
        except (TypeError, ValueError):
            return None
