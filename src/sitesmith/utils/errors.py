"""Error response utilities and HTTP status mapping.

Builds atop the service_base exceptions and adds HTTP semantics.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import g, has_request_context, request

HTTP_DEFAULT_STATUS = 500


@dataclass
class AppError(Exception):
    message: str
    http_status: int = 400
    code: Optional[str] = None  # machine readable stable code
    details: Optional[Dict[str, Any]] = None

    def __str__(self):  # pragma: no cover - trivial
        return self.message


class BadRequestError(AppError):
    http_status = 400


# Keyed by class name to avoid importing the service layer here.
# Lookup walks the MRO so the most specific listed class wins.
SERVICE_EXCEPTION_HTTP_MAP = {
    'NotFoundError': 404,
    'NoHtmlFound': 400,
    'ContentError': 400,
    'ValidationError': 400,
    'QuotaError': 429,
    'ConflictError': 409,
    'CapacityError': 503,
    'TransportError': 502,
    'OperationError': 500,
}


def build_error_payload(message: str, *, status: int, error: str | None = None, **extra: Any) -> Dict[str, Any]:
    payload = {
        'status': 'error',
        'status_code': status,
        'message': message,
        'error': error or message,
        'error_id': getattr(g, 'request_id', None) if has_request_context() else None,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'path': request.path if has_request_context() else None,
    }
    payload.update({k: v for k, v in extra.items() if v is not None})
    return payload


def map_service_exception(exc: Exception) -> int:
    for klass in type(exc).__mro__:
        status = SERVICE_EXCEPTION_HTTP_MAP.get(klass.__name__)
        if status is not None:
            return status
    return HTTP_DEFAULT_STATUS
