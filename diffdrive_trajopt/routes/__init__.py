"""
API route modules.
"""

from .solve import router as solve_router

__all__ = ['solve_router']
