from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional

from ..devices.library import PARAMETERS, DeviceLibrary


class DeviceConfig(BaseModel):
    """Pydantic model for a device configuration"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, alias="ID")
    name: str = Field("", alias="Name")
    protocol: str = Field("", alias="Protocol")
    model: str = Field("", alias="Model")
    parameters: Dict[str, str] = Field(default_factory=dict, alias="Parameters")

    @classmethod
    def from_library(cls, devices: DeviceLibrary, device_id: int) -> "DeviceConfig":
        return cls(
            id=device_id,
            name=devices.get_name(device_id),
            protocol=devices.get_protocol(device_id),
            model=devices.get_model(device_id),
            parameters=devices.get_parameters(device_id),
        )

    def apply_to(self, devices: DeviceLibrary, device_id: int) -> None:
        """
        Replace name, protocol, model and parameters of a device.

        Parameters missing from this config are cleared by writing an empty
        value, which is also what an unset parameter reads back as.
        """
        devices.set_name(device_id, self.name)
        devices.set_protocol(device_id, self.protocol)
        devices.set_model(device_id, self.model)
        parameters = dict(self.parameters)
        for parameter in PARAMETERS:
            parameters.setdefault(parameter, "")
        devices.set_parameters(device_id, parameters)


class DeviceStatus(BaseModel):
    """Pydantic model for device status API responses"""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., alias="ID")
    name: str = Field("", alias="Name")
    supports_on_off: bool = Field(False, alias="SupportOnOff")
    supports_dim: bool = Field(False, alias="SupportDim")
    supports_learn: bool = Field(False, alias="SupportLearn")
    on: bool = Field(False, alias="On")
    dim_level_min: int = Field(0, alias="DimLevelMin")
    dim_level_max: int = Field(0, alias="DimLevelMax")
    dim_level_last: int = Field(0, alias="DimLevelLast")

    @classmethod
    def from_library(cls, devices: DeviceLibrary, device_id: int) -> "DeviceStatus":
        # Capabilities are queried on every call, a device may change model
        supports_dim = devices.supports_dim(device_id)
        return cls(
            id=device_id,
            name=devices.get_name(device_id),
            supports_on_off=devices.supports_on_off(device_id),
            supports_dim=supports_dim,
            supports_learn=devices.supports_learn(device_id),
            on=devices.last_cmd_was_on(device_id),
            dim_level_min=devices.min_dim_level() if supports_dim else 0,
            dim_level_max=devices.max_dim_level() if supports_dim else 0,
            dim_level_last=devices.last_dim_value(device_id),
        )


class GroupModel(BaseModel):
    """Pydantic model for a device group"""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., alias="ID")
    name: str = Field(..., alias="Name")
    devices: List[int] = Field(default_factory=list, alias="Devices")

    @field_validator("name")
    @classmethod
    def name_fits_config_line(cls, value: str) -> str:
        if '"' in value:
            raise ValueError("group name may not contain '\"'")
        if "\n" in value or "\r" in value:
            raise ValueError("group name may not contain line breaks")
        return value
