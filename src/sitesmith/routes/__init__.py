"""
Routes Package
==============

Flask blueprints for the JSON API.
"""

from flask import Flask

from .api import core_bp, sessions_bp


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints under ``/api``."""
    app.register_blueprint(core_bp, url_prefix='/api')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')


__all__ = ['register_blueprints', 'core_bp', 'sessions_bp']
