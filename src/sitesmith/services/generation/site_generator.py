"""Site Generator
=================

Turns a composed ``GenerationRequest`` into raw site markup.

Flow:
1. Primary model, wrapped in the retry policy (capacity failures only)
2. If the primary stays at capacity, the fallback model exactly once
3. If the fallback is also at capacity, a normalized CapacityError

Content and transport failures propagate immediately at any stage and never
trigger the fallback. The returned text is the backend's answer, unmodified.
"""

import logging
from typing import Optional

from .api_client import OpenRouterClient, extract_content, get_api_client
from .config import GenerationConfig, GenerationRequest
from .errors import CapacityError
from .retry import Sleep, with_retry

logger = logging.getLogger(__name__)


class SiteGenerator:
    """Primary/fallback site generation over OpenRouter."""

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        client: Optional[OpenRouterClient] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.config = config or GenerationConfig()
        self.client = client or get_api_client()
        self._sleep = sleep

    async def _call(self, model: str, request: GenerationRequest) -> str:
        data = await self.client.chat_completion(
            model=model,
            messages=request.to_messages(),
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            timeout=self.config.timeout,
            top_p=self.config.top_p,
        )
        return extract_content(data, model=model)

    async def generate(self, request: GenerationRequest) -> str:
        """Generate site markup for ``request``.

        Raises:
            CapacityError: both models are at capacity
            ContentError: the backend rejected the request or answered empty
            TransportError: network or backend failure
        """
        cfg = self.config
        retry_kwargs = {'sleep': self._sleep} if self._sleep is not None else {}
        try:
            return await with_retry(
                lambda: self._call(cfg.primary_model, request),
                cfg.max_attempts,
                cfg.retry_delay,
                label=f"generate[{cfg.primary_model}]",
                **retry_kwargs,
            )
        except CapacityError as primary_exc:
            logger.warning(
                f"Primary model {cfg.primary_model} at capacity ({primary_exc}); "
                f"falling back to {cfg.fallback_model}"
            )

        try:
            return await self._call(cfg.fallback_model, request)
        except CapacityError as fallback_exc:
            logger.error(f"Fallback model {cfg.fallback_model} at capacity: {fallback_exc}")
            raise CapacityError(
                "All generation models are at capacity. Please try again later.",
                status_code=fallback_exc.status_code,
                model=cfg.fallback_model,
            ) from fallback_exc


__all__ = ['SiteGenerator']
