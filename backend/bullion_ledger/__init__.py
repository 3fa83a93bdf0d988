# backend/bullion_ledger/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.accounts import accounts_bp
    from .routes.metal_transactions import metal_transactions_bp
    from .routes.registry import registry_bp
    from .routes.fixings import fixings_bp
    from .routes.fund_transfers import fund_transfers_bp
    from .routes.entries import entries_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(metal_transactions_bp)
    app.register_blueprint(registry_bp)
    app.register_blueprint(fixings_bp)
    app.register_blueprint(fund_transfers_bp)
    app.register_blueprint(entries_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
