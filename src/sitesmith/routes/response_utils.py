"""Route Response Utilities
===========================

Consistent JSON envelope for every API response::

    {
      "ok": true/false,
      "message": str | null,
      "data": {...} | list | null,
      "error": {"type": str, "details": any} | null,
      "meta": {...} | null
    }
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import jsonify, request

from sitesmith.utils.errors import BadRequestError


def json_success(data: Any = None, message: Optional[str] = None, status: int = 200, **meta):
    """Build a standardized success JSON response.

    Additional keyword args become part of meta.
    """
    payload: Dict[str, Any] = {
        "ok": True,
        "message": message,
        "data": data,
        "error": None,
        "meta": meta or None,
    }
    return jsonify(payload), status


def json_error(message: str, status: int = 400, *, error_type: Optional[str] = None, **details):
    """Build a standardized error JSON response."""
    payload: Dict[str, Any] = {
        "ok": False,
        "message": message,
        "data": None,
        "error": {
            "type": error_type or "ApplicationError",
            "details": details or None,
        },
        "meta": None,
    }
    return jsonify(payload), status


def json_body() -> Dict[str, Any]:
    """Request JSON object, or an empty dict when no body was sent."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object", code="invalid_body")
    return data


def require_field(data: Dict[str, Any], name: str) -> Any:
    value = data.get(name)
    if value is None:
        raise BadRequestError(f"Missing required field '{name}'", code="missing_field", details={"field": name})
    return value


def string_field(data: Dict[str, Any], name: str, *, required: bool = False) -> Optional[str]:
    """Read a text field, rejecting numbers, lists and objects."""
    value = require_field(data, name) if required else data.get(name)
    if value is not None and not isinstance(value, str):
        raise BadRequestError(f"'{name}' must be a string", code="invalid_field", details={"field": name})
    return value


__all__ = ["json_success", "json_error", "json_body", "require_field", "string_field"]
