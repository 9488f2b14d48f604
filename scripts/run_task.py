#!/usr/bin/env python3
"""
Run Task Script
===============

Run one natural-language task against a local ADB device from the terminal.

Prerequisites:
    1. Set LLM_API_KEY in .env
    2. Start an Android emulator or connect a device over USB

Usage:
    python scripts/run_task.py "Open Settings and turn on dark mode"

    # With a smaller step budget and no reasoning trace
    python scripts/run_task.py "Open YouTube" --max-steps 5 --no-thinking

Press Ctrl+C once to stop after the current step, twice to exit immediately.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from phone_agent.agent import AgentConfig, CancellationToken, Orchestrator, StepUpdate
from phone_agent.config import get_settings
from phone_agent.device import ADBDevice
from phone_agent.llm import LLMConfig, ProtocolGateway, RunOptions
from phone_agent.memory import MemoryStore
from phone_agent.utils.logger import setup_logging


def print_step(update: StepUpdate) -> None:
    """Print a step update to the terminal."""
    print(f"\n{update.message}")
    if update.thinking:
        print(f"🧠 Thinking: {update.thinking[:300]}")


async def run(command: str, max_steps: int, thinking: bool, device_serial: str = "") -> int:
    settings = get_settings()
    if not settings.llm.llm_api_key:
        print("❌ LLM_API_KEY is not set")
        return 1

    device = ADBDevice(
        device_id=device_serial or settings.device.adb_device_serial or None,
        adb_path=settings.device.adb_path or None,
    )
    if not await device.connect():
        print("❌ No ADB device available")
        return 1

    memory = MemoryStore(settings.memory.memory_db_path)
    gateway = ProtocolGateway(memory, LLMConfig.from_settings(settings.llm))
    orchestrator = Orchestrator(
        memory,
        gateway,
        observation=device,
        automation=device,
        config=AgentConfig(max_steps=max_steps, settle_delay=settings.agent.settle_delay),
    )

    cancel_token = CancellationToken()

    def handle_signal(sig, frame):
        if cancel_token.is_cancelled:
            # Second interrupt forces exit
            sys.exit(1)
        cancel_token.cancel()
        print("\n\n⚠️  Interrupted, stopping after the current step…")

    signal.signal(signal.SIGINT, handle_signal)

    print(f"\n🚀 Task: {command}")
    try:
        result = await orchestrator.execute(
            command,
            settings.llm.llm_api_key,
            max_steps=max_steps,
            options=RunOptions(thinking_enabled=thinking),
            on_step_update=print_step,
            cancel_token=cancel_token,
        )
    finally:
        await gateway.close()
        memory.close()

    print(f"\n{result}")
    return 0 if result.startswith("✅") else 2


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run a Phone Agent task on a local ADB device",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", help="Natural language task")
    parser.add_argument("--max-steps", type=int, default=get_settings().agent.max_steps)
    parser.add_argument("--no-thinking", action="store_true", help="Disable the reasoning trace")
    parser.add_argument("--device", default="", help="ADB device serial (defaults to ADB_DEVICE_SERIAL)")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(run(args.command, args.max_steps, not args.no_thinking, args.device)))


if __name__ == "__main__":
    main()
