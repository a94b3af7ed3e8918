"""API routes."""

from .agents import router as agents_router
from .extraction import router as extraction_router

__all__ = [
    "agents_router",
    "extraction_router",
]
