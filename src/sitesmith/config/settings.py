"""
Application Configuration
========================

Configuration settings for different environments. Values come from the
process environment, which the app factory first populates from ``.env``.
"""

import os
from pathlib import Path

from sitesmith.constants import (
    DEFAULT_BRAND_NAME,
    DEFAULT_FALLBACK_MODEL,
    DEFAULT_PRIMARY_MODEL,
    INITIAL_CREDITS,
    MAX_PUBLISH_LIMIT,
    UPDATE_COST,
)


class Config:
    """Base configuration class."""

    # Basic Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    BASE_DIR = Path(__file__).resolve().parent.parent
    DATA_DIR = Path(os.environ.get('SITESMITH_DATA_DIR', BASE_DIR / 'data'))
    DATABASE_PATH = DATA_DIR / 'sitesmith.db'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Uploads (HTML / TXT / ZIP)
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_UPLOAD_MB', '10')) * 1024 * 1024

    # OpenRouter
    OPENROUTER_API_KEY = os.environ.get('OPENROUTER_API_KEY', '')
    OPENROUTER_SITE_URL = os.environ.get('OPENROUTER_SITE_URL', 'https://sitesmith.local')
    OPENROUTER_SITE_NAME = os.environ.get('OPENROUTER_SITE_NAME', 'SiteSmith')

    # Models and retry policy
    SITESMITH_PRIMARY_MODEL = os.environ.get('SITESMITH_PRIMARY_MODEL', DEFAULT_PRIMARY_MODEL)
    SITESMITH_FALLBACK_MODEL = os.environ.get('SITESMITH_FALLBACK_MODEL', DEFAULT_FALLBACK_MODEL)
    SITESMITH_SEO_MODEL = os.environ.get('SITESMITH_SEO_MODEL', '')
    GENERATION_MAX_ATTEMPTS = int(os.environ.get('GENERATION_MAX_ATTEMPTS', '3'))
    GENERATION_RETRY_DELAY = float(os.environ.get('GENERATION_RETRY_DELAY', '2.0'))
    GENERATION_TIMEOUT = int(os.environ.get('GENERATION_TIMEOUT', '300'))
    SEO_MAX_ATTEMPTS = int(os.environ.get('SEO_MAX_ATTEMPTS', '2'))
    SEO_RETRY_DELAY = float(os.environ.get('SEO_RETRY_DELAY', '1.0'))

    # Session economics
    INITIAL_CREDITS = int(os.environ.get('INITIAL_CREDITS', str(INITIAL_CREDITS)))
    UPDATE_COST = int(os.environ.get('UPDATE_COST', str(UPDATE_COST)))
    MAX_PUBLISH_LIMIT = int(os.environ.get('MAX_PUBLISH_LIMIT', str(MAX_PUBLISH_LIMIT)))
    BRAND_NAME = os.environ.get('BRAND_NAME', DEFAULT_BRAND_NAME)

    # Publishing (Vercel)
    VERCEL_TOKEN = os.environ.get('VERCEL_TOKEN', '')
    VERCEL_TEAM_ID = os.environ.get('VERCEL_TEAM_ID', '')

    # Seconds a request waits for a session operation; None waits indefinitely
    SESSION_OPERATION_TIMEOUT = None

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = Path(os.environ.get('SITESMITH_LOG_DIR', BASE_DIR / 'logs'))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    # Use in-memory database for tests
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    OPENROUTER_API_KEY = 'test-key'
    VERCEL_TOKEN = 'test-token'
    GENERATION_RETRY_DELAY = 0.0
    SEO_RETRY_DELAY = 0.0
    SESSION_OPERATION_TIMEOUT = 10
    LOG_DIR = None


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    def __init__(self):
        super().__init__()
        # Production database should be set via environment variable
        if not os.environ.get('DATABASE_URL'):
            raise ValueError("DATABASE_URL environment variable is required for production")
        self.SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
