from .library import DeviceLibrary, PARAMETERS
from .mock import MockDeviceLibrary
from .tellstick import TellstickDeviceLibrary

__all__ = ["DeviceLibrary", "PARAMETERS", "MockDeviceLibrary", "TellstickDeviceLibrary"]
