#!/usr/bin/env python
"""Test cases for the Telldus Core binding bridge."""

import ctypes
import os
import threading
import unittest
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

# Add the src directory to the Python path
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from tellstick_manager.exceptions import LibraryUnavailableError, SymbolResolutionError
from tellstick_manager.native import bridge as bridge_module
from tellstick_manager.native.bridge import (
    LIBRARY_PATH_ENV,
    NativeBridge,
    default_library_path,
)
from tellstick_manager.native.telldus_core import TelldusCore


class FakeFunction:
    """Stands in for a ctypes function pointer."""

    def __init__(self, impl):
        self.impl = impl
        self.restype = None
        self.argtypes = None

    def __call__(self, *args):
        return self.impl(*args)


class FakeLibrary:
    """Stands in for a loaded shared library, counting symbol lookups."""

    def __init__(self, functions):
        self.functions = functions
        self.lookups = Counter()
        self._lock = threading.Lock()

    def __getitem__(self, name):
        with self._lock:
            self.lookups[name] += 1
        if name not in self.functions:
            raise AttributeError(f"function '{name}' not found")
        return FakeFunction(self.functions[name])


class TestNativeBridge(unittest.TestCase):
    """Test symbol resolution and string handling of NativeBridge."""

    def setUp(self):
        self.env = mock.patch.dict(os.environ)
        self.env.start()
        os.environ.pop(LIBRARY_PATH_ENV, None)

        self.released = []
        # Buffers must stay alive while the bridge reads them
        self.name_buffer = ctypes.create_string_buffer(b"Lamp")
        self.bad_buffer = ctypes.create_string_buffer(b"\xffab")
        self.library = FakeLibrary({
            "tdGetNumberOfDevices": lambda: 3,
            "tdGetName": lambda device_id: ctypes.addressof(self.name_buffer) if device_id == 1 else None,
            "tdGetErrorString": lambda: ctypes.addressof(self.bad_buffer),
            "tdReleaseString": self.released.append,
            "tdTurnOn": lambda device_id: 0 if device_id == 1 else -3,
            "tdDim": lambda device_id, level: level,
            "tdSetName": lambda device_id, name: name == b"K\xc3\xb6k",
            "tdSetDeviceParameter": lambda device_id, name, value: (name, value) == (b"house", b"A"),
            "tdGetDeviceParameter": lambda device_id, name, default: ctypes.addressof(self.name_buffer),
            "tdRemoveDevice": lambda device_id: device_id == 4,
            "tdLength": lambda value: len(value),
        })
        self.loaded_paths = []

        def loader(path):
            self.loaded_paths.append(path)
            return self.library

        self.bridge = NativeBridge("libfake.so", loader=loader)

    def tearDown(self):
        self.env.stop()

    def test_nothing_loaded_until_first_call(self):
        self.assertEqual(self.loaded_paths, [])
        self.assertEqual(self.bridge.call_ri("tdGetNumberOfDevices"), 3)
        self.assertEqual(self.loaded_paths, ["libfake.so"])

    def test_library_loaded_once(self):
        self.assertTrue(self.bridge.is_available)
        self.assertTrue(self.bridge.load())
        self.bridge.call_ri("tdGetNumberOfDevices")
        self.assertEqual(self.loaded_paths, ["libfake.so"])
        self.assertIsNone(self.bridge.error_reason)

    def test_symbol_resolved_once(self):
        for _ in range(3):
            self.bridge.call_ri("tdGetNumberOfDevices")
        self.assertEqual(self.library.lookups["tdGetNumberOfDevices"], 1)

    def test_symbol_resolved_once_under_concurrency(self):
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: self.bridge.call_ri_pi("tdTurnOn", 1), range(64)))
        self.assertEqual(results, [0] * 64)
        self.assertEqual(self.library.lookups["tdTurnOn"], 1)

    def test_signature_configured(self):
        self.bridge.call_ri_pii("tdDim", 1, 10)
        function = self.bridge._symbols["tdDim"]
        self.assertIs(function.restype, ctypes.c_int)
        self.assertEqual(function.argtypes, [ctypes.c_int, ctypes.c_int])

    def test_int_adapters(self):
        self.assertEqual(self.bridge.call_ri_pi("tdTurnOn", 2), -3)
        self.assertEqual(self.bridge.call_ri_pii("tdDim", 1, 200), 200)
        self.assertEqual(self.bridge.call_ri_ps("tdLength", "héllo"), 6)

    def test_bool_adapters(self):
        self.assertTrue(self.bridge.call_rb_pi("tdRemoveDevice", 4))
        self.assertFalse(self.bridge.call_rb_pi("tdRemoveDevice", 5))
        self.assertTrue(self.bridge.call_rb_pis("tdSetName", 1, "Kök"))
        self.assertTrue(self.bridge.call_rb_piss("tdSetDeviceParameter", 1, "house", "A"))
        self.assertFalse(self.bridge.call_rb_piss("tdSetDeviceParameter", 1, "house", "B"))

    def test_string_is_copied_then_released(self):
        self.assertEqual(self.bridge.call_rs_pi("tdGetName", 1), "Lamp")
        self.assertEqual(self.released, [ctypes.addressof(self.name_buffer)])

        self.assertEqual(self.bridge.call_rs_piss("tdGetDeviceParameter", 1, "house", ""), "Lamp")
        self.assertEqual(len(self.released), 2)

    def test_null_string_not_released(self):
        self.assertEqual(self.bridge.call_rs_pi("tdGetName", 2), "")
        self.assertEqual(self.released, [])

    def test_invalid_utf8_is_replaced(self):
        self.assertEqual(self.bridge.call_rs("tdGetErrorString"), "\ufffdab")
        self.assertEqual(self.released, [ctypes.addressof(self.bad_buffer)])

    def test_missing_symbol(self):
        with self.assertRaises(SymbolResolutionError) as ctx:
            self.bridge.call_ri("tdNoSuchFunction")
        self.assertIn("tdNoSuchFunction", str(ctx.exception))
        self.assertNotIn("tdNoSuchFunction", self.bridge._symbols)

    def test_library_unavailable(self):
        attempts = []

        def failing_loader(path):
            attempts.append(path)
            raise OSError(f"{path}: cannot open shared object file")

        bridge = NativeBridge("libmissing.so", loader=failing_loader)
        self.assertFalse(bridge.is_available)
        self.assertIn("libmissing.so", bridge.error_reason)
        with self.assertRaises(LibraryUnavailableError) as ctx:
            bridge.call_ri("tdGetNumberOfDevices")
        self.assertIn("tdGetNumberOfDevices", str(ctx.exception))
        with self.assertRaises(LibraryUnavailableError):
            bridge.call_rs_pi("tdGetName", 1)
        self.assertEqual(attempts, ["libmissing.so"])


class TestLibraryPath(unittest.TestCase):
    """Test selection of the platform library."""

    def setUp(self):
        self.env = mock.patch.dict(os.environ)
        self.env.start()
        os.environ.pop(LIBRARY_PATH_ENV, None)

    def tearDown(self):
        self.env.stop()

    def test_environment_override(self):
        os.environ[LIBRARY_PATH_ENV] = "/opt/telldus/lib/libtelldus-core.so.2"
        self.assertEqual(default_library_path(), "/opt/telldus/lib/libtelldus-core.so.2")

    def test_platform_defaults(self):
        with mock.patch.object(bridge_module.sys, "platform", "linux"):
            self.assertEqual(default_library_path(), "libtelldus-core.so")
        with mock.patch.object(bridge_module.sys, "platform", "win32"):
            self.assertEqual(default_library_path(), "TelldusCore.dll")
        with mock.patch.object(bridge_module.sys, "platform", "darwin"):
            self.assertTrue(default_library_path().endswith("TelldusCore.framework/TelldusCore"))

    def test_bridge_uses_default_path(self):
        os.environ[LIBRARY_PATH_ENV] = "libfromenv.so"
        self.assertEqual(NativeBridge(loader=mock.Mock()).library_path, "libfromenv.so")

    def test_environment_beats_configured_path(self):
        self.assertEqual(NativeBridge("libconfigured.so", loader=mock.Mock()).library_path, "libconfigured.so")
        os.environ[LIBRARY_PATH_ENV] = "libfromenv.so"
        self.assertEqual(NativeBridge("libconfigured.so", loader=mock.Mock()).library_path, "libfromenv.so")


class TestTelldusCore(unittest.TestCase):
    """Test that each entry point forwards to the matching adapter."""

    def setUp(self):
        self.bridge = mock.MagicMock(spec=NativeBridge)
        self.core = TelldusCore(self.bridge)

    def test_forwarding(self):
        self.core.turn_on(3)
        self.bridge.call_ri_pi.assert_called_once_with("tdTurnOn", 3)

        self.core.dim(3, 50)
        self.bridge.call_ri_pii.assert_called_once_with("tdDim", 3, 50)

        self.core.get_name(3)
        self.bridge.call_rs_pi.assert_called_once_with("tdGetName", 3)

        self.core.set_device_parameter(3, "house", "A")
        self.bridge.call_rb_piss.assert_called_once_with("tdSetDeviceParameter", 3, "house", "A")

        self.core.get_device_parameter(3, "unit", "")
        self.bridge.call_rs_piss.assert_called_once_with("tdGetDeviceParameter", 3, "unit", "")

        self.core.remove_device(3)
        self.bridge.call_rb_pi.assert_called_once_with("tdRemoveDevice", 3)

        self.core.get_error_string()
        self.bridge.call_rs.assert_called_once_with("tdGetErrorString")

        self.core.add_device()
        self.bridge.call_ri.assert_called_once_with("tdAddDevice")

    def test_availability_comes_from_bridge(self):
        self.bridge.is_available = False
        self.bridge.error_reason = "missing"
        self.assertFalse(self.core.is_available)
        self.assertEqual(self.core.error_reason, "missing")


if __name__ == "__main__":
    unittest.main()
