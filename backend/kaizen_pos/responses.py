# Overview: Uniform JSON envelopes for every API response.

from __future__ import annotations

from flask import current_app

from .exceptions import PosError
from .validation import ConflictError, ValidationError


def ok(data, status: int = 200):
    return {"success": True, "data": data}, status


def fail(message: str, status: int, code: str | None = None, details: dict | None = None):
    body = {"success": False, "message": message}
    if code:
        body["code"] = code
    if details:
        body["details"] = details
    return body, status


def from_error(exc: Exception):
    """
    Map a known error to its envelope; anything else is logged and hidden
    behind a generic 500.
    """
    if isinstance(exc, PosError):
        return fail(exc.message, exc.status_code, exc.code, exc.details)
    if isinstance(exc, ConflictError):
        return fail(str(exc), 409, "CONFLICT")
    if isinstance(exc, ValidationError):
        return fail(str(exc), 400, "VALIDATION_ERROR")
    current_app.logger.exception("Unhandled error")
    return fail("Server error", 500, "SERVER_ERROR")
