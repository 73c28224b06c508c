"""
Telldus Core entry points used by the device backend.

Each method forwards to exactly one bridge adapter.
"""
from typing import Optional

from .bridge import NativeBridge, get_bridge

# Method bits accepted by tdMethods and tdLastSentCommand
TELLSTICK_TURNON = 1
TELLSTICK_TURNOFF = 2
TELLSTICK_BELL = 4
TELLSTICK_TOGGLE = 8
TELLSTICK_DIM = 16
TELLSTICK_LEARN = 32
TELLSTICK_ALL_METHODS = (
    TELLSTICK_TURNON | TELLSTICK_TURNOFF | TELLSTICK_BELL
    | TELLSTICK_TOGGLE | TELLSTICK_DIM | TELLSTICK_LEARN
)

TELLSTICK_SUCCESS = 0


class TelldusCore:
    """Thin typed wrapper over the td* functions of the shared library."""

    def __init__(self, bridge: Optional[NativeBridge] = None):
        self.bridge = bridge or get_bridge()

    @property
    def is_available(self) -> bool:
        return self.bridge.is_available

    @property
    def error_reason(self) -> Optional[str]:
        return self.bridge.error_reason

    def get_number_of_devices(self) -> int:
        return self.bridge.call_ri("tdGetNumberOfDevices")

    def get_device_id(self, index: int) -> int:
        return self.bridge.call_ri_pi("tdGetDeviceId", index)

    def get_error_string(self) -> str:
        return self.bridge.call_rs("tdGetErrorString")

    def get_name(self, device_id: int) -> str:
        return self.bridge.call_rs_pi("tdGetName", device_id)

    def set_name(self, device_id: int, name: str) -> bool:
        return self.bridge.call_rb_pis("tdSetName", device_id, name)

    def get_protocol(self, device_id: int) -> str:
        return self.bridge.call_rs_pi("tdGetProtocol", device_id)

    def set_protocol(self, device_id: int, protocol: str) -> bool:
        return self.bridge.call_rb_pis("tdSetProtocol", device_id, protocol)

    def get_model(self, device_id: int) -> str:
        return self.bridge.call_rs_pi("tdGetModel", device_id)

    def set_model(self, device_id: int, model: str) -> bool:
        return self.bridge.call_rb_pis("tdSetModel", device_id, model)

    def get_device_parameter(self, device_id: int, name: str, default_value: str) -> str:
        return self.bridge.call_rs_piss("tdGetDeviceParameter", device_id, name, default_value)

    def set_device_parameter(self, device_id: int, name: str, value: str) -> bool:
        return self.bridge.call_rb_piss("tdSetDeviceParameter", device_id, name, value)

    def add_device(self) -> int:
        return self.bridge.call_ri("tdAddDevice")

    def remove_device(self, device_id: int) -> bool:
        return self.bridge.call_rb_pi("tdRemoveDevice", device_id)

    def methods(self, device_id: int, methods_supported: int) -> int:
        return self.bridge.call_ri_pii("tdMethods", device_id, methods_supported)

    def turn_on(self, device_id: int) -> int:
        return self.bridge.call_ri_pi("tdTurnOn", device_id)

    def turn_off(self, device_id: int) -> int:
        return self.bridge.call_ri_pi("tdTurnOff", device_id)

    def dim(self, device_id: int, level: int) -> int:
        return self.bridge.call_ri_pii("tdDim", device_id, level)

    def learn(self, device_id: int) -> int:
        return self.bridge.call_ri_pi("tdLearn", device_id)

    def last_sent_command(self, device_id: int, methods_supported: int) -> int:
        return self.bridge.call_ri_pii("tdLastSentCommand", device_id, methods_supported)

    def last_sent_value(self, device_id: int) -> str:
        return self.bridge.call_rs_pi("tdLastSentValue", device_id)
