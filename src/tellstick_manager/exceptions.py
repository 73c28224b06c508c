"""
Exceptions raised by the Tellstick manager.
"""
from typing import List, Optional


class TellstickManagerError(Exception):
    """Base class for all errors raised by this package."""


class LibraryUnavailableError(TellstickManagerError):
    """The Telldus Core shared library could not be loaded."""


class SymbolResolutionError(TellstickManagerError):
    """The shared library is present but lacks an expected entry point."""


class DeviceError(TellstickManagerError):
    """A device operation failed."""


class NativeCallError(DeviceError):
    """
    A native action returned a non-success result code.

    Attributes:
        code: The raw result code returned by the library
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class NoSuchDeviceError(DeviceError):
    """An operation referenced a device id that does not exist."""

    def __init__(self, device_id: int):
        super().__init__(f"no device exist with id {device_id}")
        self.device_id = device_id


class UnsupportedActionError(DeviceError):
    """The device does not support the requested action."""


class DeviceEnumerationError(DeviceError):
    """
    Device enumeration stopped part way.

    Attributes:
        device_ids: The ids successfully fetched before the failure
    """

    def __init__(self, message: str, device_ids: Optional[List[int]] = None):
        super().__init__(message)
        self.device_ids = list(device_ids or [])


class UnknownParameterError(TellstickManagerError, ValueError):
    """A device parameter key is not one of the supported keys."""

    def __init__(self, parameter: str):
        super().__init__(f"unknown parameter '{parameter}'")
        self.parameter = parameter


class GroupParseError(TellstickManagerError, ValueError):
    """A group configuration line is malformed."""


class GroupError(TellstickManagerError):
    """Base class for group table errors."""


class GroupExistsError(GroupError, ValueError):
    """A group with the given id already exists."""

    def __init__(self, group_id: int):
        super().__init__(f"Group with id {group_id} already exists")
        self.group_id = group_id


class GroupNotFoundError(GroupError, LookupError):
    """No group with the given id exists."""

    def __init__(self, group_id: int):
        super().__init__(f"Group with id {group_id} does not exist")
        self.group_id = group_id
