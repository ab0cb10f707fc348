"""Generation Configuration
===========================

Dataclasses shared by the generation components: backend settings, the
composed request, and the SEO artifact pair.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sitesmith.constants import (
    DEFAULT_BRAND_NAME,
    DEFAULT_FALLBACK_MODEL,
    DEFAULT_PRIMARY_MODEL,
)


@dataclass
class GenerationConfig:
    """Backend and retry settings for site and SEO generation.

    Attributes:
        primary_model: Higher-quality model tried first
        fallback_model: Faster model used once when the primary is at capacity
        seo_model: Model used for robots.txt / sitemap derivation
        max_attempts: Attempts against the primary model
        retry_delay: Initial backoff delay in seconds
        seo_max_attempts: Attempts for SEO derivation
        seo_retry_delay: Initial SEO backoff delay in seconds
        temperature: Sampling temperature for site generation
        top_p: Nucleus sampling for site generation
        max_tokens: Output token ceiling
        timeout: Per-request timeout in seconds
        brand_name: Text shown in the mandatory branding badge
    """
    primary_model: str = DEFAULT_PRIMARY_MODEL
    fallback_model: str = DEFAULT_FALLBACK_MODEL
    seo_model: str = DEFAULT_FALLBACK_MODEL
    max_attempts: int = 3
    retry_delay: float = 2.0
    seo_max_attempts: int = 2
    seo_retry_delay: float = 1.0
    temperature: float = 0.7
    top_p: float = 0.95
    max_tokens: int = 32000
    timeout: int = 300
    brand_name: str = DEFAULT_BRAND_NAME

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "GenerationConfig":
        """Build from a Flask config (or any mapping) with env-style keys."""
        defaults = cls()
        fallback = values.get('SITESMITH_FALLBACK_MODEL') or defaults.fallback_model
        return cls(
            primary_model=values.get('SITESMITH_PRIMARY_MODEL') or defaults.primary_model,
            fallback_model=fallback,
            seo_model=values.get('SITESMITH_SEO_MODEL') or fallback,
            max_attempts=int(values.get('GENERATION_MAX_ATTEMPTS', defaults.max_attempts)),
            retry_delay=float(values.get('GENERATION_RETRY_DELAY', defaults.retry_delay)),
            seo_max_attempts=int(values.get('SEO_MAX_ATTEMPTS', defaults.seo_max_attempts)),
            seo_retry_delay=float(values.get('SEO_RETRY_DELAY', defaults.seo_retry_delay)),
            temperature=float(values.get('GENERATION_TEMPERATURE', defaults.temperature)),
            max_tokens=int(values.get('GENERATION_MAX_TOKENS', defaults.max_tokens)),
            timeout=int(values.get('GENERATION_TIMEOUT', defaults.timeout)),
            brand_name=values.get('BRAND_NAME') or defaults.brand_name,
        )

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        return cls.from_mapping(os.environ)


@dataclass(frozen=True)
class GenerationRequest:
    """Composed request for the site generation backend."""
    system_prompt: str
    prompt: str

    def to_messages(self) -> List[Dict[str, str]]:
        """Chat-completions message list."""
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.prompt},
        ]


@dataclass(frozen=True)
class SeoArtifacts:
    """Crawler rules (robots.txt) and sitemap (sitemap.xml) for a site."""
    crawler_rules: str
    site_map: str
    is_default: bool = field(default=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'crawler_rules': self.crawler_rules,
            'site_map': self.site_map,
            'is_default': self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["SeoArtifacts"]:
        if not data:
            return None
        return cls(
            crawler_rules=data.get('crawler_rules', ''),
            site_map=data.get('site_map', ''),
            is_default=bool(data.get('is_default', False)),
        )


def default_seo_artifacts(base_url: str) -> SeoArtifacts:
    """Allow-all crawler rules and a single-entry sitemap rooted at ``base_url``."""
    root = base_url.rstrip('/')
    crawler_rules = (
        "User-agent: *\n"
        "Allow: /\n"
        "\n"
        f"Sitemap: {root}/sitemap.xml\n"
    )
    site_map = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        '  <url>\n'
        f'    <loc>{root}/</loc>\n'
        '    <changefreq>weekly</changefreq>\n'
        '    <priority>1.0</priority>\n'
        '  </url>\n'
        '</urlset>\n'
    )
    return SeoArtifacts(crawler_rules=crawler_rules, site_map=site_map, is_default=True)
