"""SEO Generator
================

Derives robots.txt and sitemap.xml from generated markup with a
schema-constrained model call. Derivation is best-effort: any failure,
including a malformed structured response, yields the static defaults.
"""

import json
import logging
from typing import Any, Dict, Optional

from sitesmith.constants import SEO_MARKUP_PREFIX_CHARS

from .api_client import OpenRouterClient, extract_content, get_api_client
from .config import GenerationConfig, SeoArtifacts, default_seo_artifacts
from .errors import ContentError
from .prompt_composer import render_prompt
from .retry import Sleep, with_retry

logger = logging.getLogger(__name__)

SEO_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "robots_txt": {"type": "string"},
        "sitemap_xml": {"type": "string"},
    },
    "required": ["robots_txt", "sitemap_xml"],
    "additionalProperties": False,
}

SEO_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "seo_files",
        "strict": True,
        "schema": SEO_RESPONSE_SCHEMA,
    },
}


def parse_seo_response(text: str) -> SeoArtifacts:
    """Validate a structured response against the two-string-field schema."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ContentError(f"SEO response is not JSON: {exc}")
    if not isinstance(data, dict) or set(data) != {"robots_txt", "sitemap_xml"}:
        raise ContentError("SEO response does not match schema")
    robots, sitemap = data["robots_txt"], data["sitemap_xml"]
    if not isinstance(robots, str) or not isinstance(sitemap, str):
        raise ContentError("SEO response fields must be strings")
    if not robots.strip() or not sitemap.strip():
        raise ContentError("SEO response fields must not be empty")
    return SeoArtifacts(crawler_rules=robots, site_map=sitemap)


class SeoGenerator:
    """Best-effort robots.txt / sitemap.xml derivation."""

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        client: Optional[OpenRouterClient] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.config = config or GenerationConfig()
        self.client = client or get_api_client()
        self._sleep = sleep

    def _messages(self, markup: str, base_url: str) -> list:
        prefix = markup[:SEO_MARKUP_PREFIX_CHARS]
        return [
            {"role": "system", "content": render_prompt('seo/system.md.jinja2', base_url=base_url)},
            {"role": "user", "content": render_prompt(
                'seo/user.md.jinja2',
                base_url=base_url,
                markup=prefix,
                prefix_chars=SEO_MARKUP_PREFIX_CHARS,
            )},
        ]

    async def _call(self, messages: list) -> SeoArtifacts:
        model = self.config.seo_model
        data = await self.client.chat_completion(
            model=model,
            messages=messages,
            temperature=0.2,
            max_tokens=4000,
            timeout=self.config.timeout,
            response_format=SEO_RESPONSE_FORMAT,
        )
        return parse_seo_response(extract_content(data, model=model))

    async def derive(self, markup: str, base_url: str) -> SeoArtifacts:
        """Derive SEO files for ``markup`` served at ``base_url``. Never raises."""
        base_url = base_url.rstrip('/')
        messages = self._messages(markup, base_url)
        retry_kwargs = {'sleep': self._sleep} if self._sleep is not None else {}
        try:
            return await with_retry(
                lambda: self._call(messages),
                self.config.seo_max_attempts,
                self.config.seo_retry_delay,
                label="seo",
                **retry_kwargs,
            )
        except Exception as exc:  # noqa: BLE001 - derivation failures are absorbed
            logger.warning(f"SEO derivation failed, using defaults for {base_url}: {exc}")
            return default_seo_artifacts(base_url)


__all__ = [
    'SeoGenerator',
    'parse_seo_response',
    'SEO_RESPONSE_SCHEMA',
    'SEO_RESPONSE_FORMAT',
]
