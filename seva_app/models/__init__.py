# seva_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .volunteer import RegisteredVolunteer, Volunteer

__all__ = [
    "db",
    "BaseModel",
    "Volunteer",
    "RegisteredVolunteer",
]
