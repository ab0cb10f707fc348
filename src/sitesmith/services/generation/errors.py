"""Generation Error Taxonomy
===========================

Failures from the model and deployment backends are classified once, at the
HTTP client boundary, into one of these types. Callers branch on the type,
never on message text.

- CapacityError: backend overloaded / rate limited. Retried, then the
  fallback model is tried, then surfaced as "try again later".
- ContentError: malformed or missing input (empty upload, unsupported
  extension, no HTML in archive, empty model output). Never retried.
- TransportError: network or deployment failure. Never retried.
- QuotaError: local credit or publish limit exhausted. Raised before any
  network call.
"""
from __future__ import annotations

from typing import Optional

from sitesmith.constants import ErrorKind
from sitesmith.services.service_base import (
    ConflictError,
    OperationError,
    ServiceError,
    ValidationError,
)


class GenerationError(ServiceError):
    """Base class for classified backend failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, status_code: Optional[int] = None, model: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.model = model


class CapacityError(GenerationError):
    """Backend is overloaded or rate limited."""

    kind = ErrorKind.CAPACITY


class ContentError(GenerationError, ValidationError):
    """Request or response content is unusable."""

    kind = ErrorKind.CONTENT


class NoHtmlFound(ContentError):
    """Uploaded archive contains no HTML entry."""


class TransportError(GenerationError, OperationError):
    """Network or deployment failure."""

    kind = ErrorKind.TRANSPORT


class QuotaError(ConflictError):
    """Local credit balance or publish limit does not allow the action."""


__all__ = [
    'GenerationError',
    'CapacityError',
    'ContentError',
    'NoHtmlFound',
    'TransportError',
    'QuotaError',
]
