# seva_app/routes/__init__.py
"""
Application routes package
"""

from .volunteer import register_volunteer_routes


def init_routes(app):
    """Initialize all application routes"""
    register_volunteer_routes(app)
