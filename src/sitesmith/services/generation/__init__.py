"""Generation Package
=====================

Backend-facing half of the orchestration core:

- retry.py: exponential backoff for capacity failures
- prompt_composer.py: system instructions and conversation context
- api_client.py: OpenRouter client with failure classification
- site_generator.py: primary/fallback site generation
- seo_generator.py: robots.txt / sitemap.xml derivation with defaults
- uploads.py: HTML extraction from uploaded files and archives
- errors.py: CapacityError / ContentError / TransportError / QuotaError
"""

from .config import GenerationConfig, GenerationRequest, SeoArtifacts, default_seo_artifacts
from .errors import (
    CapacityError,
    ContentError,
    GenerationError,
    NoHtmlFound,
    QuotaError,
    TransportError,
)
from .retry import backoff_schedule, with_retry
from .prompt_composer import build_recreation_request, build_update_request, compose
from .api_client import OpenRouterClient, get_api_client
from .site_generator import SiteGenerator
from .seo_generator import SeoGenerator
from .uploads import ExtractedUpload, extract_upload, select_html_entry

__all__ = [
    # Config
    'GenerationConfig',
    'GenerationRequest',
    'SeoArtifacts',
    'default_seo_artifacts',
    # Errors
    'GenerationError',
    'CapacityError',
    'ContentError',
    'NoHtmlFound',
    'TransportError',
    'QuotaError',
    # Components
    'with_retry',
    'backoff_schedule',
    'compose',
    'build_update_request',
    'build_recreation_request',
    'OpenRouterClient',
    'get_api_client',
    'SiteGenerator',
    'SeoGenerator',
    'ExtractedUpload',
    'extract_upload',
    'select_html_entry',
]
