"""Centralized JSON error handlers.

Every error leaving the API uses the ``json_error`` envelope. Service layer
exceptions are mapped to HTTP status codes through
``SERVICE_EXCEPTION_HTTP_MAP``.
"""
from __future__ import annotations

import logging
import uuid

from flask import Flask, current_app, g
from werkzeug.exceptions import HTTPException

from sitesmith.routes.response_utils import json_error
from sitesmith.services.generation.errors import GenerationError
from sitesmith.services.service_base import ServiceError
from sitesmith.utils.errors import AppError, map_service_exception

logger = logging.getLogger(__name__)


def handle_service_error(exc: ServiceError):
    status = map_service_exception(exc)
    details = {}
    if isinstance(exc, GenerationError):
        details['kind'] = exc.kind.value
        if exc.status_code is not None:
            details['upstream_status'] = exc.status_code
    if status >= 500:
        logger.warning(f"{type(exc).__name__} -> {status}: {exc}")
    return json_error(str(exc), status=status, error_type=type(exc).__name__, **details)


def handle_app_error(exc: AppError):
    return json_error(
        exc.message,
        status=exc.http_status,
        error_type=exc.code or type(exc).__name__,
        **(exc.details or {}),
    )


def handle_http_exception(exc: HTTPException):
    return json_error(
        exc.description or exc.name,
        status=exc.code or 500,
        error_type=exc.name.replace(' ', ''),
    )


def handle_uncaught_exception(exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")
    details = {'exception': type(exc).__name__} if current_app.debug else {}
    return json_error("Internal server error", status=500, error_type="InternalServerError", **details)


def register_error_handlers(app: Flask) -> Flask:
    """Register handlers and attach request id generation."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover - simple
        g.request_id = uuid.uuid4().hex

    app.register_error_handler(ServiceError, handle_service_error)
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_uncaught_exception)
    return app
