import logging
import os

from flask import Flask, jsonify

from .config import CONFIGS, DevelopmentConfig
from .extensions import db, migrate, jwt, ma, cors, bcrypt
from .utils.exceptions import ServiceError


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, DevelopmentConfig))

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    bcrypt.init_app(app)

    # models must be imported before create_all / migrations see the metadata
    from app.models import (  # noqa: F401
        balance_transaction,
        bundle,
        course,
        enrollment,
        enrollment_request,
        notification,
        profile,
        project_subscription,
        referral,
        withdrawal_request,
    )

    # register blueprints
    from app.routes.auth_routes import bp as auth_bp
    from app.routes.enrollment_routes import bp as enrollment_bp
    from app.routes.admin_enrollment_routes import bp as admin_enrollment_bp
    from app.routes.payment_routes import bp as payment_bp
    from app.routes.admin_payments_routes import bp as admin_payment_bp
    from app.routes.referral_routes import bp as referral_bp
    from app.routes.notification_routes import bp as notification_bp
    from app.routes.subscription_routes import bp as subscription_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(enrollment_bp)
    app.register_blueprint(admin_enrollment_bp)
    app.register_blueprint(payment_bp)
    app.register_blueprint(admin_payment_bp)
    app.register_blueprint(referral_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(subscription_bp)

    from app.cli import ledger_audit
    app.cli.add_command(ledger_audit)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # error handlers to match required error format
    from app.utils.response_formatter import error_response, service_error_response

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        db.session.rollback()
        if e.status >= 500:
            app.logger.error("Service error %s: %s", e.code, e.message)
        return service_error_response(e)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(401)
    def unauthorized(e):
        return error_response("UNAUTHORIZED", str(e), status=401)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", "Method not allowed", status=405)

    @app.errorhandler(500)
    def server_error(e):
        app.logger.exception("Unhandled error: %s", e)
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response("UNAUTHORIZED", "Token has expired", status=401)

    return app
