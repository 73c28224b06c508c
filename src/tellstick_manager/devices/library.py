"""
Device capability interface shared by every device backend.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from ..exceptions import DeviceEnumerationError, UnknownParameterError

# The only parameter keys a device accepts
PARAMETERS = ("devices", "house", "unit", "code", "system", "units", "fade")

MIN_DIM_LEVEL = 0
MAX_DIM_LEVEL = 255


def check_parameter(parameter: str) -> None:
    """
    Raises:
        UnknownParameterError: If the key is not one of PARAMETERS
    """
    if parameter not in PARAMETERS:
        raise UnknownParameterError(parameter)


def check_parameters(parameters: Iterable[str]) -> None:
    """Validate every key, raising on the first unknown one."""
    for parameter in parameters:
        check_parameter(parameter)


class DeviceLibrary(ABC):
    """
    Abstract device backend.

    Queries never fail for an unknown id: they return an empty string, an
    empty dict, False or 0. Setters and actions raise an error naming the id.
    """

    @abstractmethod
    def get_device_ids(self) -> List[int]:
        """
        Get the ids of all devices.

        Raises:
            DeviceEnumerationError: If enumeration stopped part way; the
                exception carries the ids fetched so far
        """

    @abstractmethod
    def get_name(self, device_id: int) -> str:
        ...

    @abstractmethod
    def set_name(self, device_id: int, name: str) -> None:
        ...

    @abstractmethod
    def get_protocol(self, device_id: int) -> str:
        ...

    @abstractmethod
    def set_protocol(self, device_id: int, protocol: str) -> None:
        ...

    @abstractmethod
    def get_model(self, device_id: int) -> str:
        ...

    @abstractmethod
    def set_model(self, device_id: int, model: str) -> None:
        ...

    @abstractmethod
    def get_parameters(self, device_id: int) -> Dict[str, str]:
        ...

    @abstractmethod
    def set_parameters(self, device_id: int, parameters: Dict[str, str]) -> None:
        """
        Set device parameters in the order given. An empty value clears the
        parameter.

        An unknown key raises UnknownParameterError. Keys written before it in
        the same call are not rolled back.
        """

    @abstractmethod
    def supports_on_off(self, device_id: int) -> bool:
        ...

    @abstractmethod
    def supports_dim(self, device_id: int) -> bool:
        ...

    @abstractmethod
    def supports_learn(self, device_id: int) -> bool:
        ...

    @abstractmethod
    def new_device(self) -> int:
        """Allocate a new, unconfigured device and return its id."""

    @abstractmethod
    def remove_device(self, device_id: int) -> None:
        ...

    @abstractmethod
    def turn_on(self, device_id: int) -> None:
        ...

    @abstractmethod
    def turn_off(self, device_id: int) -> None:
        ...

    @abstractmethod
    def dim(self, device_id: int, level: int) -> None:
        ...

    @abstractmethod
    def learn(self, device_id: int) -> None:
        ...

    @abstractmethod
    def last_cmd_was_on(self, device_id: int) -> bool:
        ...

    @abstractmethod
    def last_dim_value(self, device_id: int) -> int:
        ...

    def min_dim_level(self) -> int:
        return MIN_DIM_LEVEL

    def max_dim_level(self) -> int:
        return MAX_DIM_LEVEL

    def has_device(self, device_id: int) -> bool:
        """
        Check if a device exists.

        A partial enumeration is still searched, so one failing index does not
        hide the devices listed before it.
        """
        try:
            device_ids = self.get_device_ids()
        except DeviceEnumerationError as e:
            device_ids = e.device_ids
        return device_id in device_ids
