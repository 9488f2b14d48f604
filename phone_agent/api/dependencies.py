"""
API Dependencies
================

Shared service instances injected into routes with ``Depends``.
Tests replace these through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from phone_agent.agent.heartbeat import HeartbeatMonitor
from phone_agent.agent.orchestrator import AgentConfig, CancellationToken, Orchestrator
from phone_agent.config import Settings, get_settings
from phone_agent.device.adb_device import ADBDevice
from phone_agent.device.providers import AlertSink, LoggingAlertSink
from phone_agent.llm.gateway import ProtocolGateway
from phone_agent.llm.models import LLMConfig
from phone_agent.memory.store import MemoryStore


class RunRegistry:
    """Tracks the single active run so it can be cancelled or rejected."""

    def __init__(self) -> None:
        self._token: Optional[CancellationToken] = None

    @property
    def active(self) -> bool:
        return self._token is not None

    def start(self) -> CancellationToken:
        """
        Register a new run.

        Raises:
            RuntimeError: If a run is already active.
        """
        if self._token is not None:
            raise RuntimeError("A task is already running")
        self._token = CancellationToken()
        return self._token

    def finish(self) -> None:
        self._token = None

    def cancel(self) -> bool:
        """Request cancellation of the active run, False if none."""
        if self._token is None:
            return False
        self._token.cancel()
        return True


@lru_cache
def get_memory() -> MemoryStore:
    return MemoryStore(get_settings().memory.memory_db_path)


@lru_cache
def get_gateway() -> ProtocolGateway:
    return ProtocolGateway(get_memory(), LLMConfig.from_settings(get_settings().llm))


@lru_cache
def get_device() -> ADBDevice:
    settings = get_settings()
    return ADBDevice(
        device_id=settings.device.adb_device_serial or None,
        adb_path=settings.device.adb_path or None,
    )


@lru_cache
def get_alert_sink() -> AlertSink:
    return LoggingAlertSink()


@lru_cache
def get_run_registry() -> RunRegistry:
    return RunRegistry()


def get_orchestrator(
    memory: MemoryStore = Depends(get_memory),
    gateway: ProtocolGateway = Depends(get_gateway),
    device: ADBDevice = Depends(get_device),
    settings: Settings = Depends(get_settings),
) -> Orchestrator:
    return Orchestrator(
        memory=memory,
        gateway=gateway,
        observation=device,
        automation=device,
        config=AgentConfig(
            max_steps=settings.agent.max_steps,
            settle_delay=settings.agent.settle_delay,
        ),
    )


def get_heartbeat(
    memory: MemoryStore = Depends(get_memory),
    gateway: ProtocolGateway = Depends(get_gateway),
    alert_sink: AlertSink = Depends(get_alert_sink),
) -> HeartbeatMonitor:
    return HeartbeatMonitor(memory, gateway, alert_sink)
