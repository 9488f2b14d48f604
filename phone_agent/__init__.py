"""
Phone Agent
===========

Autonomous phone-control agent driven by a remote vision language model.

A natural-language command starts a step loop: capture the screen, ask the
model for the next action, persist the exchange to conversation memory, and
execute the action on the device until the task completes, fails, or the
step budget runs out.

Modules:
    - agent: Step-loop orchestrator, action router, heartbeat check
    - llm: Chat-completions gateway and structured reply parser
    - memory: SQLite conversation memory and auxiliary state
    - device: Provider interfaces and the ADB device adapter
    - api: FastAPI routes
    - utils: Logging and security helpers
"""

__version__ = "1.0.0"
__author__ = "Phone Agent Team"
