"""Transports reaching the render backend.

The transport is chosen once at startup from configuration; everything above
this package only sees BaseTransport.
"""

from __future__ import annotations

from ..config.settings import TRANSPORT_HTTP, TRANSPORT_NATIVE, Config
from .base import BaseTransport
from .bridge import Bridge, InProcessBridge, SubprocessBridge
from .dialogs import DialogProvider, PresetDialogs, TkDialogs
from .http_transport import HttpTransport, MultipartBody
from .native_transport import NativeTransport


def build_transport(config: type[Config] | Config) -> BaseTransport:
    """Create the transport selected by configuration.

    Args:
        config: Configuration class or instance

    Returns:
        Transport instance

    Raises:
        ValueError: If the configured transport is unknown
    """
    kind = config.TIMELAPSE_TRANSPORT
    if kind == TRANSPORT_HTTP:
        return HttpTransport(config.TIMELAPSE_API_URL, timeout=config.TIMELAPSE_REQUEST_TIMEOUT)
    if kind == TRANSPORT_NATIVE:
        return NativeTransport(SubprocessBridge(config.TIMELAPSE_BACKEND_COMMAND), TkDialogs())
    raise ValueError(f"Unsupported transport: {kind}")


__all__ = [
    "BaseTransport",
    "Bridge",
    "DialogProvider",
    "HttpTransport",
    "InProcessBridge",
    "MultipartBody",
    "NativeTransport",
    "PresetDialogs",
    "SubprocessBridge",
    "TkDialogs",
    "build_transport",
]
