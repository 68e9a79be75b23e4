# src/core/ratings/__init__.py
"""
Домен оценок мойщиков.
"""

from src.core.ratings.models import Rating, RatingCreateDTO, WasherRatings
from src.core.ratings.repository import RatingRepository
from src.core.ratings.service import RatingService

__all__ = [
    "Rating",
    "RatingCreateDTO",
    "WasherRatings",
    "RatingRepository",
    "RatingService",
]
