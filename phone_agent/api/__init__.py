"""
API Module
==========

FastAPI routes for the Phone Agent.

This package contains:
    - routes/: REST API endpoints
    - dependencies: Shared service instances injected into routes
"""

from phone_agent.api.routes import agent_router, health_router, heartbeat_router, memory_router

__all__ = [
    "agent_router",
    "health_router",
    "heartbeat_router",
    "memory_router",
]
