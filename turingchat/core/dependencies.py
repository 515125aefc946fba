"""
FastAPI dependencies. Injected into route handlers.
"""

from fastapi import Request

from ..services.registry import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    """The process-wide session registry created by the app factory."""
    return request.app.state.registry
