from .app import PinboardClient
from .errors import CorruptLocalData, NotFound, PinSyncError, RemoteError

__all__ = ["PinboardClient", "PinSyncError", "RemoteError", "NotFound", "CorruptLocalData"]
