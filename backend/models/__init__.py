"""
Models package - SQLAlchemy models
"""
from models.database import Base
from models.user import User, ROLES
from models.post import Post

__all__ = [
    'Base',
    'User',
    'ROLES',
    'Post',
]
