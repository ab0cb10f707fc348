"""
Flask Application Factory
=========================

Factory pattern for creating Flask application instances with the
generation backends, session registry and API blueprints wired in.
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from flask import Flask

from sitesmith.utils.logging_config import get_logger, setup_application_logging

logger = get_logger('factory')

# Load .env before the settings module reads the environment
_ENV_PATH = Path(__file__).resolve().parent.parent.parent / '.env'
if _ENV_PATH.exists():
    load_dotenv(_ENV_PATH, override=False)


def _build_backends(app: Flask) -> Dict[str, Any]:
    """Shared collaborators every session controller is built from."""
    from sitesmith.services.generation import (
        GenerationConfig,
        OpenRouterClient,
        SeoGenerator,
        SiteGenerator,
    )
    from sitesmith.services.publish_service import VercelPublisher
    from sitesmith.services.session_store import SqlSessionStore

    gen_config = GenerationConfig.from_mapping(app.config)
    client = OpenRouterClient(
        api_key=app.config.get('OPENROUTER_API_KEY', ''),
        site_url=app.config.get('OPENROUTER_SITE_URL'),
        site_name=app.config.get('OPENROUTER_SITE_NAME'),
    )
    return {
        'config': gen_config,
        'generator': SiteGenerator(gen_config, client),
        'seo_generator': SeoGenerator(gen_config, client),
        'publisher': VercelPublisher(
            token=app.config.get('VERCEL_TOKEN', ''),
            team_id=app.config.get('VERCEL_TEAM_ID') or None,
        ),
        'store': SqlSessionStore(app),
    }


def _init_sessions(app: Flask) -> None:
    from sitesmith.services.session_registry import SessionRegistry
    from sitesmith.services.turn_controller import TurnController

    app.extensions['sitesmith_backends'] = _build_backends(app)

    def controller_factory(session_id: str) -> TurnController:
        # Read at call time so tests can swap backends after app creation
        backends = app.extensions['sitesmith_backends']
        return TurnController(
            session_id,
            backends['generator'],
            backends['seo_generator'],
            backends['publisher'],
            backends['store'],
            config=backends['config'],
            update_cost=app.config['UPDATE_COST'],
            publish_limit=app.config['MAX_PUBLISH_LIMIT'],
            initial_credits=app.config['INITIAL_CREDITS'],
        )

    registry = SessionRegistry(controller_factory, timeout=app.config.get('SESSION_OPERATION_TIMEOUT'))
    registry.loop.start()
    app.extensions['sitesmith_sessions'] = registry


def create_app(config_name: str = 'default') -> Flask:
    """
    Create and configure Flask application.

    Args:
        config_name: Configuration environment name

    Returns:
        Configured Flask application
    """
    from sitesmith.config.settings import config

    config_name = os.environ.get('FLASK_CONFIG', config_name) if config_name == 'default' else config_name
    if config_name not in config:
        raise ValueError(f"Unknown configuration '{config_name}'")

    app = Flask(__name__)
    app.config.from_object(config[config_name]())

    setup_application_logging(
        level=app.config.get('LOG_LEVEL'),
        log_dir=app.config.get('LOG_DIR'),
        development=bool(app.config.get('DEBUG')),
    )

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and ':memory:' not in app.config['SQLALCHEMY_DATABASE_URI']:
        Path(app.config['DATA_DIR']).mkdir(parents=True, exist_ok=True)

    from sitesmith.extensions import db, init_extensions
    init_extensions(app)

    with app.app_context():
        from sitesmith import models  # noqa: F401 - register tables
        db.create_all()

    _init_sessions(app)

    from sitesmith.errors import register_error_handlers
    from sitesmith.routes import register_blueprints
    register_error_handlers(app)
    register_blueprints(app)

    logger.info(f"Application created with config '{config_name}'")
    return app


__all__ = ['create_app']
