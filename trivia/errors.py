# trivia/errors.py
"""
Error taxonomy shared by every game mode.

Each error carries a stable machine code, an HTTP status and a user-facing
message. Blueprints never build error payloads by hand; they raise one of
these and ``register_error_handlers`` turns it into::

    {"ok": false, "error": {"code": "...", "message": "...", "retryable": bool}}
"""

from __future__ import annotations

from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from trivia.extensions import db


class TriviaError(Exception):
    code = "ERROR"
    status = 400
    default_message = "Something went wrong."
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {
            "ok": False,
            "error": {"code": self.code, "message": self.message, "retryable": self.retryable},
        }


class NotFoundError(TriviaError):
    # Expired and never-existed are reported identically.
    code = "NOT_FOUND"
    status = 404
    default_message = "This session has expired. Start over."


class UnauthorizedError(TriviaError):
    code = "UNAUTHORIZED"
    status = 403
    default_message = "You do not have access to this session."


class InvalidStateError(TriviaError):
    code = "INVALID_STATE"
    status = 409
    default_message = "That action is not allowed right now."


class AlreadyAnsweredError(TriviaError):
    code = "ALREADY_ANSWERED"
    status = 409
    default_message = "This question is already being answered."


class GenerationError(TriviaError):
    code = "GENERATION_FAILED"
    status = 502
    default_message = "We couldn't generate a question. Please try again."
    retryable = True


class ValidationError(TriviaError):
    code = "VALIDATION_ERROR"
    status = 400
    default_message = "Invalid request."


def error_response(code: str, message: str, status: int = 400):
    return jsonify({"ok": False, "error": {"code": code, "message": message, "retryable": False}}), status


def register_error_handlers(app):
    @app.errorhandler(TriviaError)
    def _handle_trivia_error(exc: TriviaError):
        # Discard any half-applied transition before answering.
        db.session.rollback()
        if exc.status >= 500:
            current_app.logger.warning(f"[trivia] {exc.code}: {exc.message}")
        return jsonify(exc.to_payload()), exc.status

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(_exc):
        db.session.rollback()
        current_app.logger.exception("[trivia] database error")
        payload = {"code": "STORAGE_ERROR", "message": "Something went wrong. Please try again.", "retryable": True}
        return jsonify({"ok": False, "error": payload}), 500

    @app.errorhandler(404)
    def _handle_404(_exc):
        return error_response("NOT_FOUND", "Not found.", 404)

    @app.errorhandler(405)
    def _handle_405(_exc):
        return error_response("METHOD_NOT_ALLOWED", "Method not allowed.", 405)
