"""
API Routes Package
==================

- core: health endpoint
- sessions: generation sessions, publishing, export and snapshots
"""

from .core import core_bp
from .sessions import sessions_bp

__all__ = ['core_bp', 'sessions_bp']
