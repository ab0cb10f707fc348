"""API Client for OpenRouter
============================

Minimal async client for OpenRouter chat completions.

Features:
- Async HTTP calls with aiohttp
- Failure classification at the boundary: every non-success outcome is
  raised as CapacityError, ContentError or TransportError so callers never
  inspect status codes or message text
- Optional JSON-schema constrained responses (structured output)

Retrying is not done here; see ``retry.with_retry``.
"""

import asyncio
import json
import logging
import os
import time
import uuid
from typing import Any, Dict, List, Optional

import aiohttp

from .errors import CapacityError, ContentError, GenerationError, TransportError

logger = logging.getLogger(__name__)

# Statuses that mean "backend busy, try again later"
CAPACITY_STATUS_CODES = frozenset({429, 503, 529})

# Provider messages that signal capacity even when the status is generic
CAPACITY_MARKERS = (
    "rate limit",
    "rate-limit",
    "ratelimit",
    "quota",
    "resource_exhausted",
    "resource exhausted",
    "overloaded",
    "capacity",
    "too many requests",
)


def classify_failure(status_code: int, message: str, model: Optional[str] = None) -> GenerationError:
    """Map a failed backend response to the error taxonomy."""
    lowered = (message or "").lower()
    if status_code in CAPACITY_STATUS_CODES or any(marker in lowered for marker in CAPACITY_MARKERS):
        return CapacityError(message, status_code=status_code, model=model)
    if 400 <= status_code < 500 and status_code != 408:
        return ContentError(message, status_code=status_code, model=model)
    return TransportError(message, status_code=status_code, model=model)


def _error_message(data: Dict[str, Any]) -> str:
    error_obj = data.get('error', {})
    if isinstance(error_obj, dict):
        return str(error_obj.get('message') or data)
    return str(error_obj)


def _error_code(data: Dict[str, Any], default: int) -> int:
    error_obj = data.get('error')
    if isinstance(error_obj, dict):
        try:
            return int(error_obj.get('code', default))
        except (TypeError, ValueError):
            return default
    return default


def extract_content(data: Dict[str, Any], model: Optional[str] = None) -> str:
    """Return the first choice's message text.

    Raises:
        ContentError: when the response carries no usable text
    """
    try:
        content = data['choices'][0]['message'].get('content')
    except (KeyError, IndexError, TypeError, AttributeError):
        raise ContentError("Response did not contain a message", model=model)
    if isinstance(content, list):
        # Some providers return content parts
        content = "".join(part.get('text', '') for part in content if isinstance(part, dict))
    if not content or not str(content).strip():
        raise ContentError("Model returned an empty response", model=model)
    return str(content)


class OpenRouterClient:
    """Client for OpenRouter chat completions.

    Usage:
        client = OpenRouterClient()
        data = await client.chat_completion(
            model="google/gemini-2.5-pro",
            messages=[{"role": "user", "content": "Hello"}],
        )
        text = extract_content(data)
    """

    API_URL = "https://openrouter.ai/api/v1/chat/completions"

    def __init__(self, api_key: Optional[str] = None, site_url: Optional[str] = None, site_name: Optional[str] = None):
        self.api_key = api_key if api_key is not None else os.getenv('OPENROUTER_API_KEY', '')
        self.site_url = site_url or os.getenv("OPENROUTER_SITE_URL", "https://sitesmith.local")
        self.site_name = site_name or os.getenv("OPENROUTER_SITE_NAME", "SiteSmith")

        if not self.api_key:
            logger.warning("OPENROUTER_API_KEY not set")

    def _headers(self) -> Dict[str, str]:
        """Build request headers."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.site_url,
            "X-Title": self.site_name,
            "Content-Type": "application/json",
            "X-Request-ID": str(uuid.uuid4()),
        }

    def _payload(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        top_p: Optional[float] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build request payload."""
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": min(max_tokens, 32000),
        }
        if top_p is not None:
            payload["top_p"] = top_p
        if response_format is not None:
            payload["response_format"] = response_format
            payload["provider"] = {"require_parameters": True}
        return payload

    async def chat_completion(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 32000,
        timeout: int = 300,
        top_p: Optional[float] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make a single chat completion request.

        Args:
            model: OpenRouter model ID (e.g., 'google/gemini-2.5-pro')
            messages: Chat messages
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            timeout: Request timeout in seconds
            top_p: Optional nucleus sampling value
            response_format: Optional structured-output schema

        Returns:
            Decoded response JSON

        Raises:
            CapacityError, ContentError, TransportError
        """
        if not self.api_key:
            raise TransportError("API key not configured", status_code=401, model=model)

        payload = self._payload(model, messages, temperature, max_tokens, top_p, response_format)
        short_model = model.split('/')[-1] if '/' in model else model
        start_time = time.time()

        logger.info(f"API call -> {short_model}")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.API_URL,
                    json=payload,
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as response:
                    status_code = response.status
                    content_type = response.headers.get('Content-Type', '')
                    if 'application/json' in content_type:
                        try:
                            data = await response.json()
                        except (aiohttp.ContentTypeError, json.JSONDecodeError):
                            text = await response.text()
                            data = {"error": f"Invalid JSON: {text[:200]}"}
                    else:
                        text = await response.text()
                        data = {"error": f"Non-JSON response: {text[:200]}"}
        except asyncio.TimeoutError:
            logger.warning(f"Timeout after {timeout}s ({short_model})")
            raise TransportError(f"Request timed out after {timeout}s", model=model)
        except aiohttp.ClientError as e:
            logger.warning(f"Network error ({short_model}): {e}")
            raise TransportError(f"Network error: {e}", model=model)

        if status_code == 200 and 'choices' in data:
            elapsed = time.time() - start_time
            usage = data.get('usage') or {}
            logger.info(
                f"{short_model} in {elapsed:.1f}s "
                f"({usage.get('prompt_tokens', 0)}->{usage.get('completion_tokens', 0)} tokens)"
            )
            return data

        # Errors may arrive in a 200 body with their own code
        effective_status = _error_code(data, status_code) if status_code == 200 else status_code
        error_msg = _error_message(data) if 'error' in data else "Missing choices in response"
        logger.warning(f"API error {effective_status} ({short_model}): {error_msg}")
        raise classify_failure(effective_status, error_msg, model)


# Singleton instance
_client: Optional[OpenRouterClient] = None


def get_api_client() -> OpenRouterClient:
    """Get shared API client instance."""
    global _client
    if _client is None:
        _client = OpenRouterClient()
    return _client


__all__ = [
    'OpenRouterClient',
    'get_api_client',
    'classify_failure',
    'extract_content',
    'CAPACITY_STATUS_CODES',
]
