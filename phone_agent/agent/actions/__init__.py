"""
Agent Actions Module
====================

Routes model decisions to device capabilities.

This package contains:
    - handler: Action router and dispatch result
"""

from phone_agent.agent.actions.handler import ActionRouter, DispatchResult, parse_coordinates

__all__ = [
    "ActionRouter",
    "DispatchResult",
    "parse_coordinates",
]
