"""Errors raised by the device history services."""

from __future__ import annotations

from typing import Optional


class DeviceHistoryError(Exception):
    """Base class carrying the HTTP status the API answers with."""

    status_code = 500


class CapacityExceeded(DeviceHistoryError):
    """Raised when registering a device at or above the device ceiling."""

    status_code = 409

    def __init__(self, limit: int) -> None:
        super().__init__(f"Device limit reached ({limit})")
        self.limit = limit


class DeviceUnavailable(DeviceHistoryError):
    """Raised when a recording call cannot obtain its device record."""

    def __init__(self, device_id: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Device {device_id} could not be registered: {cause}")
        self.device_id = device_id
        self.status_code = 409 if isinstance(cause, CapacityExceeded) else 503


class DeviceNotFound(DeviceHistoryError):
    status_code = 404

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device {device_id} not found")
        self.device_id = device_id


class StorageUnavailable(DeviceHistoryError):
    """Raised when the store fails mid-request; the transaction is rolled back."""

    status_code = 503


class DeadlineExceeded(DeviceHistoryError):
    status_code = 504


class InvalidQuery(DeviceHistoryError, ValueError):
    """Raised for malformed sort, filter or pagination parameters."""

    status_code = 400


class DeviceAlreadyRegistered(DeviceHistoryError):
    status_code = 409

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device {device_id} is already registered")
        self.device_id = device_id
