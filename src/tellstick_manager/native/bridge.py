"""
Binding bridge to the Telldus Core shared library.

The library is loaded at most once per process, on first use. Entry points are
resolved lazily by name and cached for the rest of the process lifetime. Each
call shape the Telldus API needs has its own typed adapter, named after the C
signature it forwards to:

    call_ri        int f(void)
    call_rs        char *f(void)
    call_ri_pi     int f(int)
    call_ri_pii    int f(int, int)
    call_ri_ps     int f(const char *)
    call_rb_pi     bool f(int)
    call_rb_pis    bool f(int, const char *)
    call_rb_piss   bool f(int, const char *, const char *)
    call_rs_pi     char *f(int)
    call_rs_piss   char *f(int, const char *, const char *)

Strings returned by the library are copied and then handed back to
``tdReleaseString``.
"""
import ctypes
import ctypes.util
import os
import sys
import threading
from typing import Any, Callable, Dict, Optional, Sequence

from ..exceptions import LibraryUnavailableError, SymbolResolutionError
from ..utils.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)

LIBRARY_PATH_ENV = "TELLSTICK_LIBRARY_PATH"
RELEASE_STRING_SYMBOL = "tdReleaseString"
STRING_ENCODING = "utf-8"

LINUX_LIBRARY = "libtelldus-core.so"
WINDOWS_LIBRARY = "TelldusCore.dll"
MACOS_LIBRARY = "/Library/Frameworks/TelldusCore.framework/TelldusCore"


def default_library_path() -> str:
    """
    Get the shared library name for the running platform.

    The TELLSTICK_LIBRARY_PATH environment variable overrides the platform default.

    Returns:
        Path or soname passed to the dynamic loader
    """
    override = os.environ.get(LIBRARY_PATH_ENV)
    if override:
        return override
    if sys.platform == "win32":
        return WINDOWS_LIBRARY
    if sys.platform == "darwin":
        return MACOS_LIBRARY
    return LINUX_LIBRARY


def load_shared_library(path: str) -> Any:
    """
    Open a shared library with the calling convention Telldus uses on the platform.

    Raises:
        OSError: If the library cannot be loaded
    """
    if sys.platform == "win32":
        # TelldusCore.dll exports WINAPI (stdcall) functions
        return ctypes.WinDLL(path)
    try:
        return ctypes.CDLL(path)
    except OSError:
        found = ctypes.util.find_library("telldus-core")
        if not found or found == path:
            raise
        logger.debug(f"Falling back to {found} for Telldus Core")
        return ctypes.CDLL(found)


class NativeBridge:
    """
    Call-forwarding layer over the Telldus Core shared library.

    The bridge owns no device state. Its only mutable state is the load status
    and the symbol cache, both populated once and never torn down.
    """

    def __init__(
        self,
        library_path: Optional[str] = None,
        loader: Optional[Callable[[str], Any]] = None
    ):
        """
        Initialize the bridge. Nothing is loaded until the first call.

        Args:
            library_path: Library to open. TELLSTICK_LIBRARY_PATH overrides it and
                the platform default is used when neither is set.
            loader: Function opening the library, mainly for tests.
        """
        self.library_path = os.environ.get(LIBRARY_PATH_ENV) or library_path or default_library_path()
        self._loader = loader or load_shared_library
        self._lock = threading.Lock()
        self._load_attempted = False
        self._handle: Any = None
        self._error_reason: Optional[str] = None
        self._symbols: Dict[str, Any] = {}

    def load(self) -> bool:
        """
        Load the library if that has not been attempted yet.

        Returns:
            bool: True if the library is available
        """
        with self._lock:
            if not self._load_attempted:
                self._load_attempted = True
                try:
                    self._handle = self._loader(self.library_path)
                    logger.info(f"Loaded Telldus Core library {self.library_path}")
                except OSError as e:
                    self._error_reason = f"Unable to load library {self.library_path}. Reason: {e}"
                    logger.error(self._error_reason)
            return self._handle is not None

    @property
    def is_available(self) -> bool:
        return self.load()

    @property
    def error_reason(self) -> Optional[str]:
        """Why loading failed, or None if it succeeded or was not attempted."""
        return self._error_reason

    def _symbol(self, name: str, restype: Any, argtypes: Sequence[Any]) -> Any:
        """
        Resolve an entry point, configuring its signature on first resolution.

        Raises:
            LibraryUnavailableError: If the library failed to load
            SymbolResolutionError: If the library lacks the entry point
        """
        function = self._symbols.get(name)
        if function is not None:
            return function

        if not self.load():
            raise LibraryUnavailableError(
                f"Tried to call {name}, but Telldus Core is not available: {self._error_reason}"
            )

        with self._lock:
            function = self._symbols.get(name)
            if function is None:
                try:
                    function = self._handle[name]
                except (AttributeError, KeyError) as e:
                    raise SymbolResolutionError(
                        f"Error resolving Telldus Core symbol {name!r}: {e}"
                    ) from e
                function.restype = restype
                function.argtypes = list(argtypes)
                self._symbols[name] = function
                logger.debug(f"Resolved Telldus Core symbol {name}")
        return function

    def _release_string(self, pointer: int) -> None:
        release = self._symbol(RELEASE_STRING_SYMBOL, None, [ctypes.c_void_p])
        release(pointer)

    def _take_string(self, pointer: Optional[int]) -> str:
        # Copy first, release afterwards, even if decoding fails
        if not pointer:
            return ""
        try:
            return ctypes.string_at(pointer).decode(STRING_ENCODING, errors="replace")
        finally:
            self._release_string(pointer)

    @staticmethod
    def _encode(value: str) -> bytes:
        return value.encode(STRING_ENCODING)

    def call_ri(self, name: str) -> int:
        return self._symbol(name, ctypes.c_int, [])()

    def call_rs(self, name: str) -> str:
        function = self._symbol(name, ctypes.c_void_p, [])
        return self._take_string(function())

    def call_ri_pi(self, name: str, i: int) -> int:
        return self._symbol(name, ctypes.c_int, [ctypes.c_int])(i)

    def call_ri_pii(self, name: str, i1: int, i2: int) -> int:
        return self._symbol(name, ctypes.c_int, [ctypes.c_int, ctypes.c_int])(i1, i2)

    def call_ri_ps(self, name: str, s: str) -> int:
        return self._symbol(name, ctypes.c_int, [ctypes.c_char_p])(self._encode(s))

    def call_rb_pi(self, name: str, i: int) -> bool:
        return bool(self._symbol(name, ctypes.c_bool, [ctypes.c_int])(i))

    def call_rb_pis(self, name: str, i: int, s: str) -> bool:
        function = self._symbol(name, ctypes.c_bool, [ctypes.c_int, ctypes.c_char_p])
        return bool(function(i, self._encode(s)))

    def call_rb_piss(self, name: str, i: int, s1: str, s2: str) -> bool:
        function = self._symbol(
            name, ctypes.c_bool, [ctypes.c_int, ctypes.c_char_p, ctypes.c_char_p]
        )
        return bool(function(i, self._encode(s1), self._encode(s2)))

    def call_rs_pi(self, name: str, i: int) -> str:
        function = self._symbol(name, ctypes.c_void_p, [ctypes.c_int])
        return self._take_string(function(i))

    def call_rs_piss(self, name: str, i: int, s1: str, s2: str) -> str:
        function = self._symbol(
            name, ctypes.c_void_p, [ctypes.c_int, ctypes.c_char_p, ctypes.c_char_p]
        )
        return self._take_string(function(i, self._encode(s1), self._encode(s2)))


_bridge: Optional[NativeBridge] = None
_bridge_lock = threading.Lock()


def get_bridge(library_path: Optional[str] = None) -> NativeBridge:
    """
    Get the process-wide bridge, creating it on first use.

    Args:
        library_path: Library to open. Only honoured by the first call.
    """
    global _bridge
    with _bridge_lock:
        if _bridge is None:
            _bridge = NativeBridge(library_path)
        elif library_path and library_path != _bridge.library_path:
            logger.warning(
                f"Ignoring library path {library_path}, bridge already uses {_bridge.library_path}"
            )
        return _bridge
