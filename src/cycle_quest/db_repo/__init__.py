from .base import BaseDatabase
from .users import UserMixin
from .cycles import CycleMixin
from .gamification import GamificationMixin

__all__ = [
    "BaseDatabase",
    "UserMixin",
    "CycleMixin",
    "GamificationMixin",
]
