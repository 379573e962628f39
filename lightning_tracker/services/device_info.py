"""User-agent parsing for session device attributes."""

import re
from dataclasses import dataclass

USER_AGENT_MAX_LENGTH = 200

MOBILE_PATTERN = re.compile(r"Mobile|Android|iPhone|iPad", re.IGNORECASE)
TABLET_PATTERN = re.compile(r"Tablet|iPad", re.IGNORECASE)

# First match wins. Edge and Chrome UAs both mention Safari, Edge also
# mentions Chrome, so the more specific tokens come first.
BROWSER_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("Edg/", "Edge"), "Edge"),
    (("Chrome", "CriOS"), "Chrome"),
    (("Firefox", "FxiOS"), "Firefox"),
    (("Safari",), "Safari"),
)

# Android UAs contain "Linux" and iOS UAs contain "Mac OS X".
PLATFORM_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("Windows",), "Windows"),
    (("Android",), "Android"),
    (("iPhone", "iPad"), "iOS"),
    (("Mac",), "macOS"),
    (("Linux",), "Linux"),
)


@dataclass(frozen=True)
class DeviceInfo:
    """Device attributes derived from a client's user-agent string."""

    platform: str = "Unknown"
    browser: str = "Unknown"
    mobile: bool = False
    device_type: str = "Desktop"
    user_agent: str | None = None


def _first_match(user_agent: str, rules: tuple[tuple[tuple[str, ...], str], ...]) -> str:
    for needles, name in rules:
        if any(needle in user_agent for needle in needles):
            return name
    return "Unknown"


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Resolve platform, browser and mobile flag by substring matching."""
    if not user_agent:
        return DeviceInfo()

    mobile = bool(MOBILE_PATTERN.search(user_agent))
    if TABLET_PATTERN.search(user_agent):
        device_type = "Tablet"
    elif mobile:
        device_type = "Mobile"
    else:
        device_type = "Desktop"

    return DeviceInfo(
        platform=_first_match(user_agent, PLATFORM_RULES),
        browser=_first_match(user_agent, BROWSER_RULES),
        mobile=mobile,
        device_type=device_type,
        user_agent=user_agent[:USER_AGENT_MAX_LENGTH],
    )
