"""
Error types raised by the sync pipeline.

Every pipeline stage raises a subclass of SyncError so the loop can catch
one type at the iteration boundary and keep running.
"""


class SyncError(Exception):
    """Base class for recoverable pipeline failures"""


class WatchError(SyncError):
    """The media source could not be queried or returned something unusable"""


class FetchError(SyncError):
    """Artwork could not be retrieved (network, HTTP status, timeout, missing file)"""


class DecodeError(SyncError):
    """Artwork bytes are not a supported image"""


class QuantizationError(SyncError):
    """No palette could be produced from the image"""


class ConfigIOError(SyncError):
    """The cava config could not be read or written"""


class SignalError(SyncError):
    """The reload signal could not be delivered"""
