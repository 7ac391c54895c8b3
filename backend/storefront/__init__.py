# backend/storefront/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Payment gateway, notifier, asset store, code generator
    from .services import collaborators
    collaborators.init_app(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.transactions import transactions_bp
    from .routes.stores import stores_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(stores_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
