"""
SiteSmith Application Package
=============================

Chat-driven website generator. Uses the factory pattern implemented in
factory.py for application creation.
"""

from sitesmith.factory import create_app

__all__ = ['create_app']
