"""
app/api/deps.py

Purpose: Shared route dependencies
"""

from fastapi import Request

from app.context import AppContext


def get_context(request: Request) -> AppContext:
    """Returns the AppContext built during startup."""
    return request.app.state.context
