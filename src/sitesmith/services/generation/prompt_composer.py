"""Prompt Composer
==================

Builds the instruction set and conversation context sent to the site
generation backend. Composition is pure: templates are rendered from the
package's ``prompts/`` directory and no network or state is touched.

The system prompt encodes every output contract the backend must satisfy:
complete self-contained markup, responsive modern styling, content-tailored
SEO metadata, and the fixed branding badge.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from sitesmith.constants import DEFAULT_BRAND_NAME, UPDATE_CONTEXT_CHARS

from .config import GenerationRequest

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent / 'prompts'

HISTORY_PREFIX = "Previous History: "


@lru_cache(maxsize=1)
def get_prompt_environment() -> Environment:
    """Shared Jinja environment for prompt templates."""
    if not PROMPTS_DIR.exists():
        logger.error(f"Prompts directory not found at {PROMPTS_DIR}")
    # Prompts are plain text for the model, not HTML pages
    return Environment(
        loader=FileSystemLoader(str(PROMPTS_DIR)),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_prompt(template_name: str, **context) -> str:
    return get_prompt_environment().get_template(template_name).render(**context)


def site_system_prompt(brand_name: str = DEFAULT_BRAND_NAME) -> str:
    """System instructions for site generation."""
    return render_prompt('site/system.md.jinja2', brand_name=brand_name)


def serialize_history(history: Sequence) -> str:
    """JSON-encode the conversation as a list of ``{role, content}`` objects."""
    return json.dumps([turn.to_dict() for turn in history], ensure_ascii=False)


def compose(user_request: str, history: Sequence, *, brand_name: str = DEFAULT_BRAND_NAME) -> GenerationRequest:
    """Compose the backend request for ``user_request``.

    Args:
        user_request: The instruction for this turn (already wrapped by one of
            the ``build_*_request`` helpers where applicable)
        history: Prior turns; serialized in full and prefixed when non-empty
        brand_name: Text shown in the mandatory branding badge

    Returns:
        GenerationRequest with system and combined prompt text
    """
    if history:
        prompt = f"{HISTORY_PREFIX}{serialize_history(history)}\n\n{user_request}"
    else:
        prompt = user_request
    return GenerationRequest(system_prompt=site_system_prompt(brand_name), prompt=prompt)


def build_update_request(message: str, current_markup: str) -> str:
    """Wrap a chat message as a change request against the current site."""
    return (
        f'Update/Recreate the website based on this request: "{message}".\n'
        f"Current Code Context: {current_markup[:UPDATE_CONTEXT_CHARS]}\n"
        "Return the FULL updated HTML code."
    )


def build_recreation_request(filename: str, content: str) -> str:
    """Wrap uploaded file content as a "recreate this site" request."""
    return (
        f"I have uploaded a file named {filename}. Here is its content:\n"
        "---\n"
        f"{content}\n"
        "---\n"
        "Please recreate this exact website/app using Tailwind CSS and modern best practices. "
        "Keep the functionality and design identical."
    )


__all__ = [
    'compose',
    'site_system_prompt',
    'serialize_history',
    'build_update_request',
    'build_recreation_request',
    'render_prompt',
    'HISTORY_PREFIX',
]
