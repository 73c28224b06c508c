"""
In-memory device backend for testing without real hardware.
"""
import threading
from dataclasses import dataclass, field
from typing import Dict, List

from ..exceptions import NoSuchDeviceError, UnsupportedActionError
from ..utils.logging import get_logger
from .library import DeviceLibrary, check_parameter

# Get logger for this module
logger = get_logger(__name__)


@dataclass
class MockDevice:
    """State of one simulated device."""
    id: int
    name: str = ""
    protocol: str = ""
    model: str = ""
    parameters: Dict[str, str] = field(default_factory=dict)
    supports_on_off: bool = False
    supports_dim: bool = False
    supports_learn: bool = False
    is_on: bool = False
    dim_level: int = 0
    learn_count: int = 0


class MockDeviceLibrary(DeviceLibrary):
    """
    DeviceLibrary that keeps devices in a dict.

    New devices get the lowest free positive id. Tests may add fully
    configured devices with add_device() and inspect them through devices.
    """

    def __init__(self):
        self.devices: Dict[int, MockDevice] = {}
        self._lock = threading.RLock()

    def add_device(self, device: MockDevice) -> MockDevice:
        """Insert or replace a simulated device."""
        with self._lock:
            self.devices[device.id] = device
        return device

    def _device(self, device_id: int) -> MockDevice:
        device = self.devices.get(device_id)
        if device is None:
            raise NoSuchDeviceError(device_id)
        return device

    def get_device_ids(self) -> List[int]:
        with self._lock:
            return sorted(self.devices)

    def get_name(self, device_id: int) -> str:
        device = self.devices.get(device_id)
        return device.name if device else ""

    def set_name(self, device_id: int, name: str) -> None:
        with self._lock:
            self._device(device_id).name = name

    def get_protocol(self, device_id: int) -> str:
        device = self.devices.get(device_id)
        return device.protocol if device else ""

    def set_protocol(self, device_id: int, protocol: str) -> None:
        with self._lock:
            self._device(device_id).protocol = protocol

    def get_model(self, device_id: int) -> str:
        device = self.devices.get(device_id)
        return device.model if device else ""

    def set_model(self, device_id: int, model: str) -> None:
        with self._lock:
            self._device(device_id).model = model

    def get_parameters(self, device_id: int) -> Dict[str, str]:
        with self._lock:
            device = self.devices.get(device_id)
            return dict(device.parameters) if device else {}

    def set_parameters(self, device_id: int, parameters: Dict[str, str]) -> None:
        with self._lock:
            device = self._device(device_id)
            for parameter, value in parameters.items():
                check_parameter(parameter)
                # Empty means unset, as with Telldus Core
                if value:
                    device.parameters[parameter] = value
                else:
                    device.parameters.pop(parameter, None)

    def supports_on_off(self, device_id: int) -> bool:
        device = self.devices.get(device_id)
        return device.supports_on_off if device else False

    def supports_dim(self, device_id: int) -> bool:
        device = self.devices.get(device_id)
        return device.supports_dim if device else False

    def supports_learn(self, device_id: int) -> bool:
        device = self.devices.get(device_id)
        return device.supports_learn if device else False

    def new_device(self) -> int:
        with self._lock:
            device_id = 1
            while device_id in self.devices:
                device_id += 1
            self.devices[device_id] = MockDevice(id=device_id)
        logger.debug(f"Mock device {device_id} created")
        return device_id

    def remove_device(self, device_id: int) -> None:
        with self._lock:
            self._device(device_id)
            del self.devices[device_id]
        logger.debug(f"Mock device {device_id} removed")

    def turn_on(self, device_id: int) -> None:
        with self._lock:
            device = self._device(device_id)
            if not device.supports_on_off:
                raise UnsupportedActionError(f"on off not supported for device with id {device_id}")
            device.is_on = True

    def turn_off(self, device_id: int) -> None:
        with self._lock:
            device = self._device(device_id)
            if not device.supports_on_off:
                raise UnsupportedActionError(f"on off not supported for device with id {device_id}")
            device.is_on = False

    def dim(self, device_id: int, level: int) -> None:
        with self._lock:
            device = self._device(device_id)
            if not device.supports_dim:
                raise UnsupportedActionError(f"dim not supported for device with id {device_id}")
            device.dim_level = level

    def learn(self, device_id: int) -> None:
        with self._lock:
            device = self._device(device_id)
            if not device.supports_learn:
                raise UnsupportedActionError(f"learn not supported for device with id {device_id}")
            device.learn_count += 1

    def last_cmd_was_on(self, device_id: int) -> bool:
        device = self.devices.get(device_id)
        return device.is_on if device else False

    def last_dim_value(self, device_id: int) -> int:
        device = self.devices.get(device_id)
        return device.dim_level if device else 0
