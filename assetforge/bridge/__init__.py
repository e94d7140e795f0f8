"""Callback bridge between the build and its child processes."""

from assetforge.bridge.callbacks import AssetResolver
from assetforge.bridge.ipc import SOCKET_ENV, IpcServer, ServerState, request

__all__ = ["AssetResolver", "IpcServer", "SOCKET_ENV", "ServerState", "request"]
