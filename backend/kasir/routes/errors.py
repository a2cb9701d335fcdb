# Overview: Maps service-layer exceptions to JSON error responses.

from flask import current_app, jsonify

from ..validation import (
    BadRequestError,
    ConflictError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)


def json_error(exc: Exception):
    """
    400 ValidationError / BadRequestError, 404 NotFoundError (including
    TenantAccessError), 409 ConflictError, 403 LimitExceededError.
    Anything else is logged and answered with a generic 500.
    """
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, BadRequestError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 400
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, LimitExceededError):
        return jsonify({"error": str(exc), "limit_exceeded": True}), 403
    current_app.logger.exception("Unhandled error")
    return jsonify({"error": "Internal server error"}), 500
