"""
API Routes
"""

from .match import router as match_router

__all__ = ['match_router']
