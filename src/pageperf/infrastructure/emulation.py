"""
Environment Emulation.

Viewports, device descriptors and network presets used to make page loads
reproducible, plus the CDP calls that apply them to a page.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _kbps(value: float) -> float:
    """Kilobits per second to bytes per second."""
    return value * 1024 / 8


def _mbps(value: float) -> float:
    """Megabits per second to bytes per second."""
    return value * 1024 * 1024 / 8


# Parameters for Network.emulateNetworkConditions (latency ms, throughput B/s)
NETWORK_PRESETS: Dict[str, Dict[str, Any]] = {
    "GPRS": {"offline": False, "latency": 500, "downloadThroughput": _kbps(50), "uploadThroughput": _kbps(20)},
    "Regular2G": {"offline": False, "latency": 300, "downloadThroughput": _kbps(250), "uploadThroughput": _kbps(50)},
    "Good2G": {"offline": False, "latency": 150, "downloadThroughput": _kbps(450), "uploadThroughput": _kbps(150)},
    "Regular3G": {"offline": False, "latency": 100, "downloadThroughput": _kbps(750), "uploadThroughput": _kbps(250)},
    "Good3G": {"offline": False, "latency": 40, "downloadThroughput": _mbps(1.5), "uploadThroughput": _kbps(750)},
    "Regular4G": {"offline": False, "latency": 20, "downloadThroughput": _mbps(4), "uploadThroughput": _mbps(3)},
    "DSL": {"offline": False, "latency": 5, "downloadThroughput": _mbps(2), "uploadThroughput": _mbps(1)},
    "WiFi": {"offline": False, "latency": 2, "downloadThroughput": _mbps(30), "uploadThroughput": _mbps(15)},
}

VIEWPORTS: Dict[str, Dict[str, int]] = {
    "desktop": {"width": 1920, "height": 1080},
}

DEVICES: Dict[str, Dict[str, Any]] = {
    "mobile": {
        "user_agent": (
            "Mozilla/5.0 (Linux; Android 14; Pixel 7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
        ),
        "viewport": {"width": 412, "height": 915},
        "device_scale_factor": 2.625,
        "is_mobile": True,
        "has_touch": True,
    },
}


def context_options(platform: str) -> Dict[str, Any]:
    """Browser context options for a platform, as passed to new_context().

    Device metrics live on the context so that Playwright's own viewport
    updates keep the mobile flag and scale factor.
    """
    if platform == "mobile":
        options = dict(DEVICES["mobile"])
        options["viewport"] = dict(options["viewport"])
        return options
    return {"viewport": dict(VIEWPORTS["desktop"])}


async def emulate_platform(page, client, platform: str) -> None:
    """Apply desktop viewport or mobile device emulation.

    The mobile branch only talks CDP; resizing through the page would make
    Playwright re-send the context's (non-mobile) device metrics.

    Args:
        page: Playwright page
        client: CDP session attached to the page
        platform: 'desktop' or 'mobile'
    """
    if platform == "mobile":
        device = DEVICES["mobile"]
        viewport = device["viewport"]
        await client.send("Emulation.setDeviceMetricsOverride", {
            "width": viewport["width"],
            "height": viewport["height"],
            "deviceScaleFactor": device["device_scale_factor"],
            "mobile": device["is_mobile"],
        })
        await client.send("Emulation.setUserAgentOverride", {"userAgent": device["user_agent"]})
        await client.send("Emulation.setTouchEmulationEnabled", {"enabled": device["has_touch"]})
        logger.debug(f"Emulating mobile device {viewport['width']}x{viewport['height']}")
    else:
        await page.set_viewport_size(VIEWPORTS["desktop"])


async def apply_throttling(client, throttling) -> None:
    """Apply network and CPU throttling from a ThrottlingConfig (or None)."""
    if throttling is None:
        return

    if throttling.network:
        await client.send("Network.enable")
        await client.send("Network.emulateNetworkConditions", NETWORK_PRESETS[throttling.network])
        logger.debug(f"Network throttling: {throttling.network}")

    if throttling.cpu:
        await client.send("Emulation.setCPUThrottlingRate", {"rate": throttling.cpu})
        logger.debug(f"CPU throttling: {throttling.cpu}x")


async def set_cookies(client, cookies: Optional[List[Dict[str, Any]]]) -> None:
    """Set cookies through the CDP session."""
    for cookie in cookies or []:
        await client.send("Network.setCookie", cookie)


async def clear_browser_state(client) -> None:
    """Drop HTTP cache and cookies so each load starts cold."""
    await client.send("Network.clearBrowserCache")
    await client.send("Network.clearBrowserCookies")
