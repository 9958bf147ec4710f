"""Exceptions raised inside the upgrade orchestrator.

None of these cross the UploadStateMachine boundary; they are translated
into state + message there.
"""

from typing import Optional


class UpgradeError(Exception):
    """Base class for upgrade failures."""


class DeviceResponseError(UpgradeError):
    """Device answered with something other than a JSON ack envelope."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class ChunkTransferError(UpgradeError):
    """A chunk was rejected or could not be delivered."""

    def __init__(self, offset: int, code: Optional[int] = None, message: Optional[str] = None):
        self.offset = offset
        self.code = code
        self.message = message
        super().__init__(f"Chunk at offset {offset} failed: code={code}, message={message}")


class TransferCancelled(UpgradeError):
    """Transfer stopped at a chunk boundary on operator request."""

    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(f"Transfer cancelled before offset {offset}")
