"""
Environment probes for session snapshots.

A probe supplies the device, runtime and location facts recorded when a
session starts. The session store treats the results as opaque; tests inject
their own probe for deterministic snapshots.
"""

import locale
import logging
import os
import platform
import time
from typing import Optional, Protocol, runtime_checkable

import psutil

from ..core.models import BrowserInfo, DeviceInfo, LocationInfo

logger = logging.getLogger(__name__)


@runtime_checkable
class EnvironmentProbe(Protocol):
    """Protocol for collaborators that describe the host environment."""

    def device_info(self) -> Optional[DeviceInfo]:
        """Describe the host device."""
        ...

    def browser_info(self) -> Optional[BrowserInfo]:
        """Describe the runtime the SDK is embedded in."""
        ...

    def location_info(self) -> Optional[LocationInfo]:
        """Describe the coarse location of the host."""
        ...


class PlatformProbe:
    """
    Probe backed by the Python runtime.

    The interpreter plays the part of the "browser": its implementation and
    version, together with the process locale and timezone, form the runtime
    snapshot. Location is not collected.
    """

    def device_info(self) -> Optional[DeviceInfo]:
        memory = psutil.virtual_memory()
        battery = psutil.sensors_battery() if hasattr(psutil, "sensors_battery") else None
        return DeviceInfo(
            type="desktop" if battery is None else "laptop",
            os=platform.system() or None,
            os_version=platform.release() or None,
            cpu_count=os.cpu_count(),
            memory_total_mb=int(memory.total / 1024 / 1024),
        )

    def browser_info(self) -> Optional[BrowserInfo]:
        language, _ = locale.getlocale()
        return BrowserInfo(
            name=platform.python_implementation(),
            version=platform.python_version(),
            user_agent=f"beacon-sdk ({platform.platform()})",
            language=language,
            timezone=time.tzname[1 if time.localtime().tm_isdst > 0 else 0],
        )

    def location_info(self) -> Optional[LocationInfo]:
        return None
