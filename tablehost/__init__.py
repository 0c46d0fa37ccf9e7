"""Room host package: wraps the hold'em engine with rooms, bots and networking."""

from .registry import RoomError, RoomRegistry
from .server import HostServer

__all__ = ["HostServer", "RoomError", "RoomRegistry"]
