"""
API Routes Package
==================

REST API route definitions.
"""

from phone_agent.api.routes.agent import router as agent_router
from phone_agent.api.routes.health import router as health_router
from phone_agent.api.routes.heartbeat import router as heartbeat_router
from phone_agent.api.routes.memory import router as memory_router

__all__ = [
    "agent_router",
    "health_router",
    "heartbeat_router",
    "memory_router",
]
