"""
Constants and Enums for SiteSmith
=================================

Centralized enums and the small set of shared defaults used by the
generation layer and the turn controller.
"""

from enum import Enum


class BaseEnum(str, Enum):
    """Base enum class with string values for consistent behavior."""

    def __str__(self):
        return self.value


class SessionPhase(BaseEnum):
    """Lifecycle phase of a generation session."""
    IDLE = "idle"
    BUILDING = "building"  # first generation only
    AWAITING_EDIT = "awaiting_edit"
    GENERATING = "generating"
    PUBLISHING = "publishing"


class TurnRole(BaseEnum):
    """Author of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ErrorKind(BaseEnum):
    """Normalized failure kinds surfaced by the generation backends."""
    CAPACITY = "capacity"
    CONTENT = "content"
    TRANSPORT = "transport"


# ===========================
# SESSION ECONOMICS
# ===========================

INITIAL_CREDITS = 1_000_000
UPDATE_COST = 30_000
MAX_PUBLISH_LIMIT = 15

DEFAULT_BRAND_NAME = "SITESMITH AI"
DEFAULT_PROJECT_NAME = "sitesmith-project"


# ===========================
# MODEL DEFAULTS
# ===========================

DEFAULT_PRIMARY_MODEL = "google/gemini-2.5-pro"
DEFAULT_FALLBACK_MODEL = "google/gemini-2.5-flash"

# Characters of current markup quoted back to the model on update requests
UPDATE_CONTEXT_CHARS = 2000
# Characters of markup submitted for SEO derivation
SEO_MARKUP_PREFIX_CHARS = 5000


# ===========================
# ASSISTANT MESSAGES
# ===========================

class AssistantMessages:
    """Canned assistant turn contents."""
    INITIAL_SUCCESS = "Initial version created! What would you like to change?"
    INITIAL_FAILURE = "Error building initial site. Please check your connection and try again."
    UPDATE_SUCCESS = "Website updated based on your input/file!"
    UPDATE_FAILURE = "Sorry, I encountered an error. Please try again."
    CAPACITY_FAILURE = (
        "The AI service is at capacity right now. Please wait a moment and try again later."
    )
    SUPERSEDED = "This request was replaced by a newer one before it finished."
    PUBLISH_SUCCESS = "Website published successfully! View it live at: {url}"
    RECREATION_SUCCESS = "I've analyzed {filename} and recreated it. Check the preview!"
    FILE_ERROR = "Error processing file: {error}"


__all__ = [
    'BaseEnum',
    'SessionPhase',
    'TurnRole',
    'ErrorKind',
    'INITIAL_CREDITS',
    'UPDATE_COST',
    'MAX_PUBLISH_LIMIT',
    'DEFAULT_BRAND_NAME',
    'DEFAULT_PROJECT_NAME',
    'DEFAULT_PRIMARY_MODEL',
    'DEFAULT_FALLBACK_MODEL',
    'UPDATE_CONTEXT_CHARS',
    'SEO_MARKUP_PREFIX_CHARS',
    'AssistantMessages',
]
