"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time. This enables:
           - Multiple isolated test app instances
           - `flask --app tripsplit.app settle ...` without starting a server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Apply the configured log level to app.logger
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError → JSON, Exception → 500)
  5. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)
  6. Register the `flask settle` CLI command

The app holds no data. Every request carries its own snapshot of
participants and expenses, and nothing is kept after the response.
"""

from __future__ import annotations

import os
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from tripsplit.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Falls back to FLASK_ENV, then "development".

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "development")

    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    app.logger.setLevel(app.config["LOG_LEVEL"])

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)
    _register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """Registers all route blueprints under the /api/v1 prefix."""
    from tripsplit.app.routes.settlements import settlements_bp
    from tripsplit.app.routes.splits import splits_bp

    app.register_blueprint(settlements_bp, url_prefix="/api/v1/settlements")
    app.register_blueprint(splits_bp,      url_prefix="/api/v1/splits")


def _register_commands(app: Flask) -> None:
    from tripsplit.app.cli import settle_command

    app.cli.add_command(settle_command)


def _first_validation_error(messages, path: tuple = ()) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages to the first leaf.

    Returns (dotted field path, message). Nested list errors are keyed by
    index, so a bad share comes back as "expenses.0.splits.1.share_amount".
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            next_path = path if key == "_schema" else path + (str(key),)
            return _first_validation_error(value, next_path)
    if isinstance(messages, list) and messages:
        return _first_validation_error(messages[0], path)
    field = ".".join(path) if path else None
    return field, str(messages) if messages else "Invalid input."


def validation_error_body(error: ValidationError) -> dict:
    """
    Converts a marshmallow ValidationError into the standard error envelope.

    Only the FIRST error is returned ("one error, not many"). When the
    message is itself a registered ErrorCode it becomes the code, and the
    message is replaced by readable prose.
    """
    from tripsplit.app.errors import ErrorCode

    field, raw_message = _first_validation_error(error.messages)

    if raw_message in vars(ErrorCode).values():
        code = raw_message
        message = _code_to_message(code)
    elif raw_message.startswith("Missing data for required field"):
        code = ErrorCode.MISSING_FIELD
        message = raw_message
    else:
        code = ErrorCode.INVALID_FIELD
        message = raw_message

    body = {"error": {"code": code, "message": message}}
    if field is not None:
        body["error"]["field"] = field
    return body


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → first marshmallow error as MISSING_FIELD /
                        INVALID_FIELD / registered code (400)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from tripsplit.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError; they let it propagate here."""
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        return jsonify(validation_error_body(error)), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        # 404 / 405 and friends keep their own status.
        if isinstance(error, HTTPException):
            return error

        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser clients.

    DEBUG or TESTING: any origin is reflected, for local frontends on
    another port. Otherwise only origins listed in CORS_ALLOWED_ORIGINS.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            allowed_origin = origin if origin else "*"
        elif origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            allowed_origin = origin
        else:
            return response

        response.headers["Access-Control-Allow-Origin"] = allowed_origin
        response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_SPLIT_MODE": "split_mode must be 'equal' or 'custom'.",
        "SPLITS_SENT_FOR_EQUAL_MODE": "Do not send a splits array when split_mode is 'equal'.",
        "SPLIT_AMONG_SENT_FOR_CUSTOM_MODE": "Do not send split_among when split_mode is 'custom'.",
        "EMPTY_SPLIT_AMONG": "An expense must be split among at least one participant.",
        "DUPLICATE_PARTICIPANT": "The same participant id appears more than once.",
        "DUPLICATE_SPLIT_PARTICIPANT": "The same participant appears more than once in one expense.",
    }
    return _messages.get(code, "Invalid input.")
