"""
Core API routes
===============
"""

from flask import Blueprint, current_app

from ..response_utils import json_success

core_bp = Blueprint('core_api', __name__)


@core_bp.route('/health')
def health():
    """Liveness probe."""
    registry = current_app.extensions.get('sitesmith_sessions')
    return json_success({
        'status': 'healthy',
        'session_loop': bool(registry and registry.loop.is_running),
    })
