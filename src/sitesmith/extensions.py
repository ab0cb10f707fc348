"""
Flask Extensions Configuration

Extensions are created here and initialized in the app factory.
"""

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_extensions(app: Flask) -> None:
    """Initialize Flask extensions with the app instance."""
    db.init_app(app)
    app.logger.debug("Extensions initialized")
