"""
Device backend driving real hardware through Telldus Core.
"""
import threading
from typing import Dict, List, Optional

from ..exceptions import (
    DeviceEnumerationError,
    DeviceError,
    LibraryUnavailableError,
    NativeCallError,
)
from ..native.telldus_core import (
    TELLSTICK_DIM,
    TELLSTICK_LEARN,
    TELLSTICK_SUCCESS,
    TELLSTICK_TURNON,
    TelldusCore,
)
from ..utils.logging import get_logger
from .library import PARAMETERS, DeviceLibrary, check_parameter

# Get logger for this module
logger = get_logger(__name__)

# Result codes of the td* action functions
ERROR_REASONS = {
    -1: "not found",
    -2: "permission denied",
    -3: "device not found",
    -4: "method not supported",
    -5: "communication error",
    -6: "connecting service error",
    -7: "unknown response",
    -8: "syntax error",
    -9: "broken pipe",
    -10: "communicating service error",
    -99: "unknown error",
}


def check_result(code: int) -> None:
    """
    Translate a native action result code.

    Raises:
        NativeCallError: For any code other than TELLSTICK_SUCCESS
    """
    if code == TELLSTICK_SUCCESS:
        return
    reason = ERROR_REASONS.get(code, f"unknown response code {code}")
    raise NativeCallError(reason, code=code)


class TellstickDeviceLibrary(DeviceLibrary):
    """
    DeviceLibrary backed by the Telldus Core shared library.

    Device state lives in the Telldus service; this class keeps none of its
    own. Writes and actions are serialized by a single lock.
    """

    def __init__(self, core: Optional[TelldusCore] = None):
        """
        Initialize the backend.

        Args:
            core: Telldus Core wrapper. If None, uses the process-wide bridge.

        Raises:
            LibraryUnavailableError: If the shared library cannot be loaded
        """
        self.core = core or TelldusCore()
        if not self.core.is_available:
            raise LibraryUnavailableError(self.core.error_reason or "Telldus Core is not available")
        self._lock = threading.RLock()
        logger.debug("TellstickDeviceLibrary initialized")

    def _error_string(self) -> str:
        return self.core.get_error_string()

    def get_device_ids(self) -> List[int]:
        ids: List[int] = []
        for index in range(self.core.get_number_of_devices()):
            device_id = self.core.get_device_id(index)
            if device_id == -1:
                raise DeviceEnumerationError(
                    f"unable to get device ID for {index}. Reason: {self._error_string()}",
                    device_ids=ids
                )
            ids.append(device_id)
        return ids

    def get_name(self, device_id: int) -> str:
        return self.core.get_name(device_id)

    def set_name(self, device_id: int, name: str) -> None:
        with self._lock:
            if not self.core.set_name(device_id, name):
                raise DeviceError(
                    f"unable to set device {device_id} name to '{name}'. Reason: {self._error_string()}"
                )

    def get_protocol(self, device_id: int) -> str:
        return self.core.get_protocol(device_id)

    def set_protocol(self, device_id: int, protocol: str) -> None:
        with self._lock:
            if not self.core.set_protocol(device_id, protocol):
                raise DeviceError(
                    f"unable to set protocol {protocol} to device {device_id}. Reason: {self._error_string()}"
                )

    def get_model(self, device_id: int) -> str:
        return self.core.get_model(device_id)

    def set_model(self, device_id: int, model: str) -> None:
        with self._lock:
            if not self.core.set_model(device_id, model):
                raise DeviceError(
                    f"unable to set model {model} to device {device_id}. Reason: {self._error_string()}"
                )

    def get_parameters(self, device_id: int) -> Dict[str, str]:
        return {
            parameter: self.core.get_device_parameter(device_id, parameter, "")
            for parameter in PARAMETERS
        }

    def set_parameters(self, device_id: int, parameters: Dict[str, str]) -> None:
        with self._lock:
            for parameter, value in parameters.items():
                check_parameter(parameter)
                if not self.core.set_device_parameter(device_id, parameter, value):
                    raise DeviceError(
                        f"unable to set parameter '{parameter}' to '{value}'. "
                        f"Reason: {self._error_string()}"
                    )

    def _supports_method(self, device_id: int, method: int) -> bool:
        # Exact echo only: a superset of the queried bit counts as unsupported
        return self.core.methods(device_id, method) == method

    def supports_on_off(self, device_id: int) -> bool:
        return self._supports_method(device_id, TELLSTICK_TURNON)

    def supports_dim(self, device_id: int) -> bool:
        return self._supports_method(device_id, TELLSTICK_DIM)

    def supports_learn(self, device_id: int) -> bool:
        return self._supports_method(device_id, TELLSTICK_LEARN)

    def new_device(self) -> int:
        with self._lock:
            device_id = self.core.add_device()
            if device_id < 0:
                raise DeviceError(f"unable to add device. Reason: {self._error_string()}")
        logger.info(f"Added device {device_id}")
        return device_id

    def remove_device(self, device_id: int) -> None:
        with self._lock:
            if not self.core.remove_device(device_id):
                raise DeviceError(
                    f"unable to remove device {device_id}. Reason: {self._error_string()}"
                )
        logger.info(f"Removed device {device_id}")

    def turn_on(self, device_id: int) -> None:
        with self._lock:
            check_result(self.core.turn_on(device_id))

    def turn_off(self, device_id: int) -> None:
        with self._lock:
            check_result(self.core.turn_off(device_id))

    def dim(self, device_id: int, level: int) -> None:
        with self._lock:
            check_result(self.core.dim(device_id, level))

    def learn(self, device_id: int) -> None:
        with self._lock:
            check_result(self.core.learn(device_id))

    def last_cmd_was_on(self, device_id: int) -> bool:
        return self.core.last_sent_command(device_id, TELLSTICK_TURNON) == TELLSTICK_TURNON

    def last_dim_value(self, device_id: int) -> int:
        value = self.core.last_sent_value(device_id)
        try:
            return int(value)
        except ValueError:
            return 0
