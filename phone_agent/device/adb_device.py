"""
ADB Local Device Client
=======================

Observation and automation providers backed by Android Debug Bridge.

ADB (Android Debug Bridge) is included with Android SDK and allows:
- Screenshot capture
- UI hierarchy retrieval via uiautomator (for tap-by-text lookups)
- Touch and gesture input
- App launching and key presses

Prerequisites:
    1. Android SDK installed with platform-tools (adb)
    2. Android Emulator running OR physical device connected via USB
    3. ADB available in PATH or ANDROID_HOME set

Usage:
    from phone_agent.device import ADBDevice

    device = ADBDevice()  # Uses first available device
    await device.connect()
    screenshot = await device.capture_observation()
    await device.tap_at_coordinates(540, 1200)
"""

import asyncio
import base64
import os
import re
import shutil
import subprocess
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from phone_agent.device.providers import AutomationProvider, ObservationProvider
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SCREEN_SIZE = (1080, 2340)
UI_DUMP_PATH = "/sdcard/ui_dump.xml"
GESTURE_DURATION_MS = 300

# Gesture endpoints in pixels along the swipe axis.
SCROLL_DOWN_Y = (800, 200)
SCROLL_UP_Y = (200, 800)
SWIPE_LEFT_X = (900, 100)
SWIPE_RIGHT_X = (100, 900)

_BOUNDS_PATTERN = re.compile(r"\[(\d+),(\d+)\]")


@dataclass
class UINode:
    """A node from a uiautomator dump."""

    text: str
    content_desc: str
    clickable: bool
    focusable: bool
    center_x: int
    center_y: int


def parse_ui_dump(xml_content: str) -> list[UINode]:
    """
    Parse a uiautomator XML dump into nodes in document order.

    Args:
        xml_content: Raw XML from ``uiautomator dump``.

    Returns:
        Flat list of nodes, empty if the XML cannot be parsed.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        logger.error("Failed to parse UI XML", error=str(e))
        return []

    nodes = []
    for node in root.iter("node"):
        # Bounds look like "[x1,y1][x2,y2]"
        corners = _BOUNDS_PATTERN.findall(node.get("bounds", ""))
        if len(corners) < 2:
            continue
        (left, top), (right, bottom) = [(int(x), int(y)) for x, y in corners[:2]]

        nodes.append(
            UINode(
                text=node.get("text", ""),
                content_desc=node.get("content-desc", ""),
                clickable=node.get("clickable", "false") == "true",
                focusable=node.get("focusable", "false") == "true",
                center_x=(left + right) // 2,
                center_y=(top + bottom) // 2,
            )
        )
    return nodes


def escape_input_text(text: str) -> str:
    """Escape text for ``adb shell input text``."""
    # Spaces become %s in the input text format
    escaped = text.replace(" ", "%s")
    for char in ("'", '"', "&", "<", ">", "|", ";", "(", ")"):
        escaped = escaped.replace(char, f"\\{char}")
    return escaped


class ADBDevice(ObservationProvider, AutomationProvider):
    """
    Local Android device control via ADB.

    Works with the Android Emulator or a USB-connected device. Uses
    subprocess to call ADB commands, so no API keys are required.
    Capability methods return False on any failure instead of raising.
    """

    def __init__(
        self,
        device_id: Optional[str] = None,
        adb_path: Optional[str] = None,
    ) -> None:
        """
        Initialize ADB device client.

        Args:
            device_id: Optional device serial (from 'adb devices').
                       If None, uses the first available device.
            adb_path: Optional path to adb executable.
                      If None, searches PATH and ANDROID_HOME.
        """
        self.adb_path = adb_path or self._find_adb()
        self._device_serial: Optional[str] = device_id
        self.screen_width, self.screen_height = DEFAULT_SCREEN_SIZE
        self.connected = False

        if not self.adb_path:
            logger.warning(
                "ADB not found. Please install Android SDK platform-tools "
                "and ensure 'adb' is in PATH or set ANDROID_HOME."
            )

    @staticmethod
    def _find_adb() -> Optional[str]:
        """Find ADB executable in system."""
        adb_in_path = shutil.which("adb")
        if adb_in_path:
            return adb_in_path

        android_home = os.environ.get("ANDROID_HOME") or os.environ.get("ANDROID_SDK_ROOT")
        if android_home:
            for name in ("adb", "adb.exe"):
                candidate = Path(android_home) / "platform-tools" / name
                if candidate.exists():
                    return str(candidate)

        return None

    def _command(self, args: tuple[str, ...]) -> list[str]:
        if not self.adb_path:
            raise RuntimeError("ADB not found. Please install Android SDK platform-tools.")
        cmd = [self.adb_path]
        if self._device_serial:
            cmd.extend(["-s", self._device_serial])
        cmd.extend(args)
        return cmd

    async def _run_adb(
        self,
        *args: str,
        timeout: float = 30.0,
    ) -> subprocess.CompletedProcess:
        """
        Run an ADB command in a worker thread.

        Raises:
            RuntimeError: If ADB is missing or the command times out.
        """
        cmd = self._command(args)
        logger.debug("Running ADB command", cmd=" ".join(cmd))
        try:
            return await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=timeout,
                text=True,
            )
        except subprocess.TimeoutExpired as e:
            raise RuntimeError(f"ADB command timed out after {timeout}s") from e

    async def _run_adb_bytes(self, *args: str, timeout: float = 30.0) -> bytes:
        """Run ADB command and return raw stdout bytes (for screenshots)."""
        cmd = self._command(args)
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=timeout,
            )
            return result.stdout
        except subprocess.TimeoutExpired as e:
            raise RuntimeError("ADB command timed out") from e

    async def _shell_ok(self, *args: str, action: str) -> bool:
        """Run ``adb shell`` and report success, logging any failure."""
        try:
            result = await self._run_adb("shell", *args)
        except Exception as e:
            logger.error("ADB action failed", action=action, error=str(e))
            return False

        if result.returncode != 0:
            logger.warning("ADB action failed", action=action, error=result.stderr.strip())
            return False

        logger.debug("ADB action performed", action=action)
        return True

    async def connect(self) -> bool:
        """
        Resolve the target device and read its screen size.

        Returns:
            True if a device is available.
        """
        logger.info("Connecting to ADB device", device_id=self._device_serial)
        try:
            result = await self._run_adb("devices")
        except Exception as e:
            logger.error("Failed to connect to ADB device", error=str(e))
            return False

        serials = [
            line.split()[0]
            for line in result.stdout.strip().splitlines()[1:]
            if line.strip().endswith("device")
        ]
        if not serials:
            logger.error("No Android devices found. Start an emulator or connect a device.")
            return False

        if self._device_serial and self._device_serial not in serials:
            logger.error(
                "Specified device not found",
                device_id=self._device_serial,
                available=serials,
            )
            return False
        self._device_serial = self._device_serial or serials[0]

        size = await self._run_adb("shell", "wm", "size")
        match = re.search(r"(\d+)x(\d+)", size.stdout) if size.returncode == 0 else None
        if match:
            self.screen_width, self.screen_height = int(match.group(1)), int(match.group(2))

        self.connected = True
        logger.info(
            "Connected to ADB device",
            serial=self._device_serial,
            screen_size=f"{self.screen_width}x{self.screen_height}",
        )
        return True

    async def capture_observation(self) -> Optional[str]:
        """
        Capture current screen as base64-encoded PNG.

        Returns:
            Base64 string, or None if the capture failed.
        """
        start_time = time.time()
        try:
            screenshot_bytes = await self._run_adb_bytes("exec-out", "screencap", "-p")
        except Exception as e:
            logger.error("Screenshot failed", error=str(e))
            return None

        if not screenshot_bytes:
            logger.warning("Screenshot appears empty")
            return None

        logger.debug(
            "Screenshot captured",
            size_kb=round(len(screenshot_bytes) / 1024, 1),
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return base64.b64encode(screenshot_bytes).decode("utf-8")

    async def _dump_ui(self) -> list[UINode]:
        """Dump and parse the current UI hierarchy."""
        try:
            await self._run_adb("shell", "uiautomator", "dump", UI_DUMP_PATH)
            result = await self._run_adb("shell", "cat", UI_DUMP_PATH)
        except Exception as e:
            logger.error("Failed to get UI hierarchy", error=str(e))
            return []

        if result.returncode != 0:
            logger.error("Failed to read UI dump", error=result.stderr.strip())
            return []
        return parse_ui_dump(result.stdout)

    async def _tap_first(self, predicate: Callable[[UINode], bool], action: str) -> bool:
        for node in await self._dump_ui():
            if predicate(node):
                return await self.tap_at_coordinates(node.center_x, node.center_y)
        logger.debug("No matching element", action=action)
        return False

    async def tap_by_text(self, text: str) -> bool:
        needle = text.lower()
        return await self._tap_first(
            lambda node: needle in node.text.lower() and node.clickable,
            action="tap_by_text",
        )

    async def tap_by_description(self, description: str) -> bool:
        needle = description.lower()
        return await self._tap_first(
            lambda node: needle in node.content_desc.lower() and (node.clickable or node.focusable),
            action="tap_by_description",
        )

    async def tap_at_coordinates(self, x: float, y: float) -> bool:
        return await self._shell_ok("input", "tap", str(int(x)), str(int(y)), action="tap")

    async def type_text(self, text: str) -> bool:
        return await self._shell_ok("input", "text", escape_input_text(text), action="type")

    async def _swipe(self, start: tuple[int, int], end: tuple[int, int], action: str) -> bool:
        return await self._shell_ok(
            "input", "swipe",
            str(start[0]), str(start[1]),
            str(end[0]), str(end[1]),
            str(GESTURE_DURATION_MS),
            action=action,
        )

    async def scroll_down(self) -> bool:
        x = self.screen_width // 2
        return await self._swipe((x, SCROLL_DOWN_Y[0]), (x, SCROLL_DOWN_Y[1]), "scroll_down")

    async def scroll_up(self) -> bool:
        x = self.screen_width // 2
        return await self._swipe((x, SCROLL_UP_Y[0]), (x, SCROLL_UP_Y[1]), "scroll_up")

    async def swipe_left(self) -> bool:
        y = self.screen_height // 2
        return await self._swipe((SWIPE_LEFT_X[0], y), (SWIPE_LEFT_X[1], y), "swipe_left")

    async def swipe_right(self) -> bool:
        y = self.screen_height // 2
        return await self._swipe((SWIPE_RIGHT_X[0], y), (SWIPE_RIGHT_X[1], y), "swipe_right")

    async def open_app(self, package_name: str) -> bool:
        # monkey launches the default activity without knowing its name
        try:
            result = await self._run_adb(
                "shell", "monkey", "-p", package_name,
                "-c", "android.intent.category.LAUNCHER", "1",
            )
        except Exception as e:
            logger.error("App launch failed", package=package_name, error=str(e))
            return False

        if result.returncode != 0 or "No activities found" in result.stdout:
            logger.warning("No launch intent for package", package=package_name)
            return False

        logger.debug("App launched", package=package_name)
        return True

    async def press_back(self) -> bool:
        return await self._shell_ok("input", "keyevent", "KEYCODE_BACK", action="press_back")

    async def press_home(self) -> bool:
        return await self._shell_ok("input", "keyevent", "KEYCODE_HOME", action="press_home")
