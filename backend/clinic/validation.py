"""
Error taxonomy and request input coercion.

Every service raises one of the ClinicError subclasses below; routes map them
to HTTP status codes with ``error_response``. Anything else is an internal
failure.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request


class ClinicError(ValueError):
    """Base class for expected, client-facing failures."""
    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.details)
        return payload


class ValidationError(ClinicError):
    """400-level input problem."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(ClinicError):
    """
    404-level missing record.

    Also used for records owned by another tenant so that cross-tenant
    existence is never revealed.
    """
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(ClinicError):
    """409-level business rule conflict (e.g., drawer already open)."""
    status_code = 409
    default_code = "CONFLICT"


class ForbiddenError(ClinicError):
    """403-level rejection that is not a permission check (e.g., booking disabled)."""
    status_code = 403
    default_code = "FORBIDDEN"


def error_response(exc: ClinicError):
    """Map a ClinicError to (json, status). Business conflicts are logged at INFO."""
    if exc.status_code in (403, 409):
        current_app.logger.info("%s rejected (%s): %s", request.path, exc.code, exc.message)
    return jsonify(exc.to_dict()), exc.status_code


# =============================================================================
# COERCION HELPERS
# =============================================================================

def require_json(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Accepts ints and plain digit strings; rejects bools, floats, decimals and
    scientific notation.
    """
    # bool is a subclass of int
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, field)


def required_int(data: dict, field: str) -> int:
    if data.get(field) is None or data.get(field) == "":
        raise ValidationError(f"{field} required")
    return coerce_int(data[field], field)


def positive_int(value: Any, field: str, *, maximum: int | None = None) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return number


def required_str(data: dict, field: str, *, max_length: int | None = None) -> str:
    value = data.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} required")
    value = str(value).strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} exceeds {max_length} characters")
    return value


def optional_str(data: dict, field: str, *, max_length: int | None = None) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} exceeds {max_length} characters")
    return value


def field_or_default(data: dict, field: str, default: Any) -> Any:
    """Raw field value, or default when absent/null/blank. Falsy values like 0 are kept for validation."""
    value = data.get(field)
    if value is None or value == "":
        return default
    return value
