# backend/stockledger/__init__.py
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .logging_config import configure_logging


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .errors import errors_bp
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.tags import tags_bp
    from .routes.locations import locations_bp
    from .routes.suppliers import suppliers_bp
    from .routes.users import users_bp
    from .routes.stock import stock_bp
    from .routes.purchases import purchases_bp
    from .routes.sales import sales_bp
    from .routes.transfers import transfers_bp
    from .routes.counts import counts_bp
    from .routes.recipes import recipes_bp
    from .routes.activity import activity_bp

    app.register_blueprint(errors_bp)
    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(tags_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(counts_bp)
    app.register_blueprint(recipes_bp)
    app.register_blueprint(activity_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.debug("stockledger app created (db=%s)", app.config.get("SQLALCHEMY_DATABASE_URI"))
    return app
