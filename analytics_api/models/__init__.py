"""
Database models package.

Other modules can import from here: `from analytics_api.models import User`
"""

from analytics_api.models.user import User

__all__ = [
    "User",
]
