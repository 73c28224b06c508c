import os
import sys
import argparse
import threading
from configparser import ConfigParser
from typing import Optional

import uvicorn

from .dispatcher import RestDispatcher
from .main import create_app
from ...devices.library import DeviceLibrary
from ...devices.mock import MockDeviceLibrary
from ...devices.tellstick import TellstickDeviceLibrary
from ...exceptions import TellstickManagerError
from ...grouping.group_manager import GroupManager
from ...native.bridge import get_bridge
from ...native.telldus_core import TelldusCore
from ...utils.logging import get_logger
from ...utils.logging_config import setup_logging

logger = get_logger(__name__)

BACKENDS = ("tellstick", "mock")


class ApiServer:
    """
    Runs the REST API on a uvicorn server.

    Shutdown is cooperative: stop() asks uvicorn to exit, which stops accepting
    connections and lets in-flight requests finish. The stopped event is set
    once the server has fully stopped.
    """

    def __init__(
        self,
        devices: DeviceLibrary,
        groups: GroupManager,
        host: str = "0.0.0.0",
        port: int = 8000,
        log_level: str = "info"
    ):
        self.host = host
        self.port = port
        self.dispatcher = RestDispatcher(devices, groups, on_shutdown=self.stop)
        self.app = create_app(self.dispatcher)
        self.server = uvicorn.Server(uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            # Leave handlers to our own logging configuration
            log_config=None,
            access_log=True
        ))
        self.stopped = threading.Event()

    @property
    def started(self) -> bool:
        return self.server.started

    def _run(self) -> None:
        logger.info(f"Starting Tellstick Device Manager API on {self.host}:{self.port}")
        try:
            self.server.run()
        finally:
            logger.info("API server stopped")
            self.stopped.set()

    def start(self) -> threading.Event:
        """
        Start the server in a background thread. Non-blocking.

        Returns:
            threading.Event: Set when the server has stopped
        """
        thread = threading.Thread(target=self._run, name="tellstick-api", daemon=True)
        thread.start()
        return self.stopped

    def serve_forever(self) -> None:
        """Run the server in the calling thread until it is stopped."""
        self._run()

    def stop(self) -> None:
        logger.info("API server shutting down")
        self.server.should_exit = True


def parse_args(argv=None):
    """Parse command line arguments for the API server"""
    parser = argparse.ArgumentParser(description="Tellstick Device Manager API Server")
    parser.add_argument("--host", help="Host to bind the server to")
    parser.add_argument("--port", type=int, help="Port to bind the server to")
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--log-level",
                        choices=["debug", "info", "warning", "error", "critical"],
                        help="Logging level")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory mock backend")
    return parser.parse_args(argv)


def load_config(config_file: Optional[str] = None) -> ConfigParser:
    """Load configuration from file, on top of the built-in defaults"""
    config = ConfigParser()

    default_config = {
        "server": {
            "host": "0.0.0.0",
            "port": "8000",
            "log_level": "info",
        },
        "devices": {
            "backend": "tellstick",
            # Empty means the platform default or TELLSTICK_LIBRARY_PATH
            "library_path": "",
        },
        "groups": {
            "file": "",
        },
    }

    for section, options in default_config.items():
        if not config.has_section(section):
            config.add_section(section)
        for option, value in options.items():
            config.set(section, option, value)

    if config_file:
        if os.path.exists(config_file):
            config.read(config_file)
        else:
            logger.warning(f"Config file {config_file} not found, using defaults")

    return config


def create_device_library(backend: str, library_path: Optional[str] = None) -> DeviceLibrary:
    """
    Create the configured device backend.

    Raises:
        ValueError: If the backend name is unknown
        LibraryUnavailableError: If the tellstick backend cannot load its library
    """
    if backend == "mock":
        logger.warning("Using the mock device backend, no hardware will be controlled")
        return MockDeviceLibrary()
    if backend == "tellstick":
        return TellstickDeviceLibrary(TelldusCore(get_bridge(library_path or None)))
    raise ValueError(f"Unknown device backend '{backend}', expected one of {', '.join(BACKENDS)}")


def build_server(config: ConfigParser) -> ApiServer:
    """Create backend, groups and server from configuration"""
    devices = create_device_library(
        config.get("devices", "backend"),
        config.get("devices", "library_path")
    )
    groups = GroupManager(devices, groups_file=config.get("groups", "file") or None)
    return ApiServer(
        devices,
        groups,
        host=config.get("server", "host"),
        port=config.getint("server", "port"),
        log_level=config.get("server", "log_level")
    )


def run_server(argv=None):
    """Run the API server"""
    args = parse_args(argv)
    config = load_config(args.config)

    # Command line arguments win over the config file
    if args.host:
        config.set("server", "host", args.host)
    if args.port:
        config.set("server", "port", str(args.port))
    if args.log_level:
        config.set("server", "log_level", args.log_level)
    if args.mock:
        config.set("devices", "backend", "mock")

    setup_logging(config.get("server", "log_level"))

    try:
        server = build_server(config)
    except (TellstickManagerError, ValueError, OSError) as e:
        logger.error(f"Error starting API server: {str(e)}")
        sys.exit(1)

    server.serve_forever()


if __name__ == "__main__":
    run_server()
