"""Publish Service
==================

Deploys the current site to Vercel as a static deployment containing
``index.html``, ``robots.txt`` and ``sitemap.xml``.
"""

import asyncio
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from sitesmith.services.generation.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYMENT_NAME = "ai-generated-site"


def safe_project_name(name: Optional[str]) -> str:
    """Lowercase, URL-safe deployment name of at most 32 characters."""
    safe = re.sub(r'[^a-z0-9]', '-', (name or '').lower())[:32]
    return safe or DEFAULT_DEPLOYMENT_NAME


@dataclass(frozen=True)
class PublishRequest:
    markup: str
    crawler_rules: str
    site_map: str
    target_name: str

    def files(self) -> List[Dict[str, str]]:
        return [
            {"file": "index.html", "data": self.markup},
            {"file": "robots.txt", "data": self.crawler_rules},
            {"file": "sitemap.xml", "data": self.site_map},
        ]


class VercelPublisher:
    """Client for the Vercel deployments API."""

    API_URL = "https://api.vercel.com/v13/deployments"

    def __init__(self, token: Optional[str] = None, team_id: Optional[str] = None, timeout: int = 60):
        self.token = token if token is not None else os.getenv('VERCEL_TOKEN', '')
        self.team_id = team_id if team_id is not None else os.getenv('VERCEL_TEAM_ID') or None
        self.timeout = timeout

        if not self.token:
            logger.warning("VERCEL_TOKEN not set")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: PublishRequest) -> Dict[str, Any]:
        return {
            "name": safe_project_name(request.target_name),
            "files": request.files(),
            "projectSettings": {"framework": None},
            "target": "production",
        }

    async def publish(self, request: PublishRequest) -> str:
        """Deploy and return the live URL.

        Raises:
            TransportError: with the provider's message on any failure
        """
        if not self.token:
            raise TransportError("Publishing is not configured (missing VERCEL_TOKEN).")

        params = {"teamId": self.team_id} if self.team_id else None
        payload = self._payload(request)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.API_URL,
                    json=payload,
                    headers=self._headers(),
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    status_code = response.status
                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        data = {}
        except asyncio.TimeoutError:
            raise TransportError(f"Publishing timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise TransportError(f"Publishing failed: {e}")

        if status_code >= 400 or not isinstance(data, dict) or not data.get('url'):
            error_obj = data.get('error') if isinstance(data, dict) else None
            message = (error_obj or {}).get('message') if isinstance(error_obj, dict) else None
            logger.error(f"Vercel API error {status_code}: {data}")
            raise TransportError(message or "Failed to publish to Vercel", status_code=status_code)

        url = f"https://{data['url']}"
        logger.info(f"Published {payload['name']} to {url}")
        return url


__all__ = ['VercelPublisher', 'PublishRequest', 'safe_project_name']
