"""
HTTP surface of the Agent API.
"""
from .app import create_app, run
from .dependencies import AgentAPIContext, AuthenticatedRequest
from .responses import fail, ok
from .routes import API_BASE_PATH, public_origin, router

__all__ = [
    "create_app", "run", "AgentAPIContext", "AuthenticatedRequest",
    "ok", "fail", "API_BASE_PATH", "public_origin", "router",
]
