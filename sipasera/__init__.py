# -*- coding: utf-8 -*-
from flask import Flask, flash, jsonify
from flask_login import current_user

from .config import Config, ensure_instance
from .errors import LedgerError
from .extensions import db, migrate, login_manager
from .logging_config import setup_logging, get_logger
from .utils import fmt_rupiah

# blueprints
from .auth import auth_bp
from .modules.cart import bp as cart_bp
from .modules.billing import bp as billing_bp
from .modules.paylater import bp as paylater_bp
from .modules.orders import bp as orders_bp
from .modules.finance import bp as finance_bp

# models, so create_all() and migrations see every table
from .models import catalog, credit, order, report, user  # noqa: F401

log = get_logger(__name__)


def create_app(overrides=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    ensure_instance(app)
    setup_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_FILE"))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.add_template_filter(fmt_rupiah, "fmt_money")

    # --- ledger errors -> flash + JSON ---
    @app.errorhandler(LedgerError)
    def on_ledger_error(e: LedgerError):
        flash(e.message, e.category)
        return jsonify(e.as_dict()), e.http_status

    # --- blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(billing_bp)
    app.register_blueprint(paylater_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(finance_bp)

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        log.info("tables created")

    # --- home ---
    @app.get("/")
    def home():
        if not current_user.is_authenticated:
            return jsonify({"ok": True, "user": None})
        return jsonify({"ok": True, "user": current_user.as_dict()})

    return app
