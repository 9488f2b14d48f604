"""
Tests for Action Router
=======================

Tests for:
- Coordinate detection in tap targets
- Tap fallback from text to description
- Type, open_app and direct-call verbs
- Failure policy (never raises, records the error)
"""

import pytest

from phone_agent.agent.actions.handler import ActionRouter, parse_coordinates
from tests.conftest import AUTOMATION_METHODS, make_decision


@pytest.fixture
def router(mock_automation) -> ActionRouter:
    return ActionRouter(mock_automation)


class TestParseCoordinates:
    @pytest.mark.parametrize(
        "target,expected",
        [
            ("(540, 1200)", (540, 1200)),
            ("[100,200]", (100, 200)),
            ("540 1200", (540, 1200)),
            ("Tap at (12, 34) please", (12, 34)),
            ("Settings icon", None),
            ("", None),
        ],
    )
    def test_parse(self, target, expected):
        assert parse_coordinates(target) == expected


class TestTap:
    @pytest.mark.asyncio
    async def test_coordinates(self, router, mock_automation):
        result = await router.dispatch(make_decision(action="tap", target="(540, 1200)"))

        mock_automation.tap_at_coordinates.assert_awaited_once_with(540, 1200)
        mock_automation.tap_by_text.assert_not_awaited()
        assert result.success
        assert result.capability == "tap_at_coordinates"

    @pytest.mark.asyncio
    async def test_text_match(self, router, mock_automation):
        result = await router.dispatch(make_decision(action="tap", target="Settings icon"))

        mock_automation.tap_by_text.assert_awaited_once_with("Settings icon")
        mock_automation.tap_by_description.assert_not_awaited()
        mock_automation.tap_at_coordinates.assert_not_awaited()
        assert result.capability == "tap_by_text"

    @pytest.mark.asyncio
    async def test_description_fallback(self, router, mock_automation):
        mock_automation.tap_by_text.return_value = False

        result = await router.dispatch(make_decision(action="tap", target="Settings icon"))

        mock_automation.tap_by_text.assert_awaited_once_with("Settings icon")
        mock_automation.tap_by_description.assert_awaited_once_with("Settings icon")
        assert result.success
        assert result.capability == "tap_by_description"

    @pytest.mark.asyncio
    async def test_no_match_anywhere(self, router, mock_automation):
        mock_automation.tap_by_text.return_value = False
        mock_automation.tap_by_description.return_value = False

        result = await router.dispatch(make_decision(action="tap", target="Missing"))

        assert not result.success
        assert result.error == "tap_by_description reported failure"


class TestOtherVerbs:
    @pytest.mark.asyncio
    async def test_type(self, router, mock_automation):
        result = await router.dispatch(make_decision(action="type", text="hello"))
        mock_automation.type_text.assert_awaited_once_with("hello")
        assert result.success

    @pytest.mark.asyncio
    async def test_type_without_text_is_noop(self, router, mock_automation):
        result = await router.dispatch(make_decision(action="type", text=None))
        mock_automation.type_text.assert_not_awaited()
        assert not result.success
        assert result.capability is None

    @pytest.mark.asyncio
    async def test_open_app_with_package(self, router, mock_automation):
        await router.dispatch(
            make_decision(action="open_app", target="Settings", package_name="com.android.settings")
        )
        mock_automation.open_app.assert_awaited_once_with("com.android.settings")
        mock_automation.tap_by_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_open_app_without_package_taps_name(self, router, mock_automation):
        result = await router.dispatch(make_decision(action="open_app", target="Chrome"))
        mock_automation.open_app.assert_not_awaited()
        mock_automation.tap_by_text.assert_awaited_once_with("Chrome")
        assert result.capability == "tap_by_text"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "verb",
        ["scroll_down", "scroll_up", "swipe_left", "swipe_right", "press_back", "press_home"],
    )
    async def test_direct_calls(self, router, mock_automation, verb):
        result = await router.dispatch(make_decision(action=verb, target=""))
        getattr(mock_automation, verb).assert_awaited_once_with()
        assert result.success
        assert result.capability == verb

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["dance", "done", "failed"])
    async def test_unknown_verbs_dispatch_nothing(self, router, mock_automation, verb):
        result = await router.dispatch(make_decision(action=verb))

        assert not result.success
        assert result.capability is None
        for name in AUTOMATION_METHODS:
            getattr(mock_automation, name).assert_not_awaited()


class TestFailurePolicy:
    @pytest.mark.asyncio
    async def test_exception_is_swallowed(self, router, mock_automation):
        mock_automation.tap_at_coordinates.side_effect = RuntimeError("device gone")

        result = await router.dispatch(make_decision(action="tap", target="(1, 2)"))

        assert not result.success
        assert result.error == "device gone"

    @pytest.mark.asyncio
    async def test_capability_failure_recorded(self, router, mock_automation):
        mock_automation.press_back.return_value = False

        result = await router.dispatch(make_decision(action="press_back"))

        assert not result.success
        assert result.capability == "press_back"
        assert "press_back" in result.error
