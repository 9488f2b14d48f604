"""
Test Package
============

Unit and integration tests for the Phone Agent.

Test organization:
    - test_orchestrator.py: Step loop outcomes, cancellation and persistence
    - test_router.py: Action routing to device capabilities
    - test_response_parser.py: Model reply parsing
    - test_gateway.py: Chat completions request/response handling
    - test_memory_store.py: SQLite conversation memory
    - test_heartbeat.py / test_prompts.py: Heartbeat check and prompt builders
    - test_adb_device.py: ADB device capabilities
    - test_api.py: FastAPI endpoint tests

Run tests with:
    pytest tests/ -v
"""
