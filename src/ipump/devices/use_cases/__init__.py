"""Use cases for the device service.

Each use case orchestrates domain logic without knowing about
infrastructure details.
"""

from .device_lifecycle import DeviceLifecycleService

__all__ = [
    "DeviceLifecycleService",
]
