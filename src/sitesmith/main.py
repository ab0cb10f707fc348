"""
Main Application Entry Point
============================

Runs the SiteSmith API with Flask's built-in server.
"""

import os
import sys

from sitesmith.utils.logging_config import get_logger

logger = get_logger('main')


def main() -> int:
    """Main application entry point."""
    from sitesmith.factory import create_app

    config_name = os.environ.get('FLASK_CONFIG', 'development')
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')

    try:
        app = create_app(config_name)
    except Exception as e:
        logger.error(f"Failed to create Flask application: {e}")
        return 1

    logger.info(f"Starting SiteSmith in {config_name} mode on {host}:{port}")
    try:
        # The reloader would start a second session loop in the child process
        app.run(host=host, port=port, debug=app.debug, use_reloader=False, threaded=True)
    finally:
        app.extensions['sitesmith_sessions'].shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())
