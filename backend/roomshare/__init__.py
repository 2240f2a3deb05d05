import logging

from flask import Flask, jsonify

from .extensions import db, jwt, migrate
from .cli import register_cli
from .errors import register_error_handlers
from .events import register_audit_log
from .routes.rooms import bp as rooms_bp
from .routes.posts import bp as posts_bp
from .routes.rental_requests import bp as rental_requests_bp
from .routes.contracts import bp as contracts_bp
from .routes.invoices import bp as invoices_bp
from .routes.payments import bp as payments_bp
from config import Config


def _register_jwt_errors():
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "unauthorized", "message": reason}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"error": "invalid_token", "message": reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"error": "token_expired"}), 401


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _register_jwt_errors()

    app.register_blueprint(rooms_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(rental_requests_bp)
    app.register_blueprint(contracts_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(payments_bp)

    register_error_handlers(app)
    register_audit_log()
    register_cli(app)

    return app
