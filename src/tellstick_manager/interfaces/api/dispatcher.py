"""
Path-segment router for the REST API.

Every routing decision consumes one '/'-delimited segment of the request path
with shift_path() and hands the remainder to the next handler. Handlers raise
HTTPException for every non-success outcome; FastAPI renders it as
{"detail": "<text>"}.
"""
import json
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from fastapi import HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError

from ...devices.library import MAX_DIM_LEVEL, MIN_DIM_LEVEL, DeviceLibrary, check_parameters
from ...exceptions import (
    GroupExistsError,
    GroupNotFoundError,
    NoSuchDeviceError,
    TellstickManagerError,
    UnknownParameterError,
    UnsupportedActionError,
)
from ...grouping.group_manager import GroupManager
from ...grouping.models import Group
from ...models.device_schema import DeviceConfig, DeviceStatus, GroupModel
from ...utils.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_INTEGER = re.compile(r"[+-]?[0-9]+")


def shift_path(path: str) -> Tuple[str, str]:
    """
    Split off the first segment of a path.

    The path is cleaned of relative components first. head never contains a
    slash and tail is always rooted, without a trailing slash.

    >>> shift_path("/devices/3/on/")
    ('devices', '/3/on')
    >>> shift_path("/")
    ('', '/')
    """
    cleaned = posixpath.normpath("/" + path.lstrip("/"))
    head, _, tail = cleaned[1:].partition("/")
    return head, "/" + tail


def parse_int(segment: str) -> Optional[int]:
    """Parse a decimal path segment, returning None if it is not one."""
    if not _INTEGER.fullmatch(segment):
        return None
    return int(segment)


@dataclass
class ApiRequest:
    method: str
    path: str
    body: bytes = b""


class RestDispatcher:
    """
    Routes REST requests to a device backend and a group manager.

    The dispatcher is stateless; all state lives in the backend and the group
    manager, which guard it themselves. dispatch() may therefore be called
    from several threads at once.
    """

    def __init__(
        self,
        devices: DeviceLibrary,
        groups: GroupManager,
        on_shutdown: Optional[Callable[[], None]] = None
    ):
        self.devices = devices
        self.groups = groups
        self.on_shutdown = on_shutdown

    def dispatch(self, method: str, path: str, body: bytes = b"") -> Response:
        """Handle one request and return the response to send."""
        request = ApiRequest(method=method.upper(), path=path, body=body)
        head, tail = shift_path(path)
        if head == "devices":
            return self._handle_devices(request, tail)
        if head == "groups":
            return self._handle_groups(request, tail)
        if head == "shutdown" and tail == "/":
            self._require(request, "POST")
            return self._shutdown()
        raise self._not_found(request)

    # Helpers

    @staticmethod
    def _not_found(request: ApiRequest) -> HTTPException:
        return HTTPException(
            status_code=404,
            detail=f"This is not a valid path: {request.path} or method {request.method}!"
        )

    @staticmethod
    def _require(request: ApiRequest, *methods: str) -> None:
        if request.method not in methods:
            raise HTTPException(
                status_code=405,
                detail=f"Method {request.method} is not allowed for path {request.path}"
            )

    @staticmethod
    def _json(content: Any) -> JSONResponse:
        return JSONResponse(content=content)

    @staticmethod
    def _read_model(request: ApiRequest, model: Type[ModelT]) -> ModelT:
        try:
            return model.model_validate(json.loads(request.body or b"null"))
        except (ValueError, ValidationError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid request body: {str(e)}")

    @staticmethod
    def _parse_id(segment: str, what: str) -> int:
        value = parse_int(segment)
        if value is None:
            raise HTTPException(status_code=400, detail=f"Invalid {what} id '{segment}'")
        return value

    @staticmethod
    def _parse_dim_level(request: ApiRequest, tail: str) -> int:
        segment, rest = shift_path(tail)
        if not segment or rest != "/":
            raise RestDispatcher._not_found(request)
        level = parse_int(segment)
        if level is None:
            raise HTTPException(status_code=400, detail=f"Dim level '{segment}' is not an integer")
        if not MIN_DIM_LEVEL <= level <= MAX_DIM_LEVEL:
            raise HTTPException(
                status_code=400,
                detail=f"Dim level {level} is outside {MIN_DIM_LEVEL}-{MAX_DIM_LEVEL}"
            )
        return level

    @staticmethod
    def _call(func: Callable[..., Any], *args: Any) -> Any:
        """Run a backend call, translating its errors to HTTP errors."""
        try:
            return func(*args)
        except UnknownParameterError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NoSuchDeviceError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except UnsupportedActionError as e:
            raise HTTPException(status_code=405, detail=str(e))
        except TellstickManagerError as e:
            logger.error(f"API request failed: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

    def _device_ids(self):
        return self._call(self.devices.get_device_ids)

    def _shutdown(self) -> Response:
        if self.on_shutdown is None:
            raise HTTPException(status_code=503, detail="Shutdown is not available")
        logger.info("API request: Shutdown requested")
        self.on_shutdown()
        return Response(status_code=200)

    # devices/*

    def _handle_devices(self, request: ApiRequest, path: str) -> Response:
        head, tail = shift_path(path)
        if head == "":
            self._require(request, "GET")
            return self._json([
                DeviceStatus.from_library(self.devices, device_id).model_dump(by_alias=True)
                for device_id in self._device_ids()
            ])
        if head == "config":
            if tail != "/":
                raise self._not_found(request)
            self._require(request, "GET", "POST")
            if request.method == "GET":
                return self._json([
                    DeviceConfig.from_library(self.devices, device_id).model_dump(by_alias=True)
                    for device_id in self._device_ids()
                ])
            return self._create_device(request)
        device_id = self._parse_id(head, "device")
        if not self._call(self.devices.has_device, device_id):
            raise HTTPException(status_code=404, detail=f"Device with id {device_id} does not exist")
        return self._handle_device_id(request, device_id, tail)

    def _create_device(self, request: ApiRequest) -> Response:
        config = self._read_model(request, DeviceConfig)
        self._call(check_parameters, config.parameters)
        device_id = self._call(self.devices.new_device)
        try:
            self._call(config.apply_to, self.devices, device_id)
        except HTTPException:
            try:
                self.devices.remove_device(device_id)
            except TellstickManagerError as e:
                logger.error(f"Unable to remove half-configured device {device_id}: {str(e)}")
            raise
        logger.info(f"API request successful: Created device {device_id} '{config.name}'")
        return self._json(DeviceConfig.from_library(self.devices, device_id).model_dump(by_alias=True))

    def _handle_device_id(self, request: ApiRequest, device_id: int, path: str) -> Response:
        head, tail = shift_path(path)
        if head == "":
            self._require(request, "GET")
            return self._json(DeviceStatus.from_library(self.devices, device_id).model_dump(by_alias=True))
        if head == "config" and tail == "/":
            return self._handle_device_config(request, device_id)
        if head in ("on", "off", "learn") and tail == "/":
            self._require(request, "POST")
            return self._device_action(device_id, head)
        if head == "dim":
            self._require(request, "POST")
            level = self._parse_dim_level(request, tail)
            if not self.devices.supports_dim(device_id):
                raise HTTPException(
                    status_code=405, detail=f"Devices with id {device_id} don't support dim"
                )
            self._call(self.devices.dim, device_id, level)
            return Response(status_code=200)
        raise self._not_found(request)

    def _handle_device_config(self, request: ApiRequest, device_id: int) -> Response:
        self._require(request, "GET", "PUT", "DELETE")
        if request.method == "PUT":
            config = self._read_model(request, DeviceConfig)
            self._call(check_parameters, config.parameters)
            self._call(config.apply_to, self.devices, device_id)
            logger.info(f"API request successful: Updated config of device {device_id}")
        elif request.method == "DELETE":
            self._call(self.devices.remove_device, device_id)
            logger.info(f"API request successful: Removed device {device_id}")
            return Response(status_code=200)
        return self._json(DeviceConfig.from_library(self.devices, device_id).model_dump(by_alias=True))

    def _device_action(self, device_id: int, action: str) -> Response:
        if action == "learn":
            if not self.devices.supports_learn(device_id):
                raise HTTPException(
                    status_code=405, detail=f"Devices with id {device_id} don't support learn"
                )
            self._call(self.devices.learn, device_id)
        else:
            if not self.devices.supports_on_off(device_id):
                raise HTTPException(
                    status_code=405, detail=f"Devices with id {device_id} don't support on/off"
                )
            if action == "on":
                self._call(self.devices.turn_on, device_id)
            else:
                self._call(self.devices.turn_off, device_id)
        return Response(status_code=200)

    # groups/*

    def _handle_groups(self, request: ApiRequest, path: str) -> Response:
        head, tail = shift_path(path)
        if head == "":
            self._require(request, "GET", "POST")
            if request.method == "POST":
                return self._create_group(request)
            return self._json([self._group_json(group) for group in self.groups.list_groups()])
        group_id = self._parse_id(head, "group")
        group = self.groups.get(group_id)
        if group is None:
            raise HTTPException(status_code=404, detail=f"Group with id {group_id} does not exist")
        return self._handle_group_id(request, group, tail)

    @staticmethod
    def _group_json(group: Group) -> dict:
        return GroupModel(id=group.id, name=group.name, devices=group.device_ids).model_dump(by_alias=True)

    def _create_group(self, request: ApiRequest) -> Response:
        model = self._read_model(request, GroupModel)
        group = Group(id=model.id, name=model.name, device_ids=list(model.devices))
        try:
            self.groups.add(group)
        except GroupExistsError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return self._json(self._group_json(group))

    def _handle_group_id(self, request: ApiRequest, group: Group, path: str) -> Response:
        head, tail = shift_path(path)
        try:
            if head == "":
                self._require(request, "GET", "DELETE")
                if request.method == "DELETE":
                    self.groups.remove(group.id)
                    return Response(status_code=200)
                return self._json(self._group_json(group))
            if head in ("on", "off") and tail == "/":
                self._require(request, "POST")
                if head == "on":
                    self.groups.turn_on(group.id)
                else:
                    self.groups.turn_off(group.id)
                return Response(status_code=200)
            if head == "dim":
                self._require(request, "POST")
                self.groups.dim(group.id, self._parse_dim_level(request, tail))
                return Response(status_code=200)
        except GroupNotFoundError as e:
            # Removed by a concurrent request
            raise HTTPException(status_code=404, detail=str(e))
        raise self._not_found(request)
