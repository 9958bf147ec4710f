"""Data models for a single firmware transfer session."""

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pendant_upgrader.models.status import TargetId

# Protocol constant shared with the device firmware receive buffer.
CHUNK_SIZE = 4096


def percent_of(done: int, total: int) -> int:
    """Percentage rounded half-up; an empty total counts as complete."""
    if total <= 0:
        return 100
    return int(math.floor(done / total * 100 + 0.5))


class TransferRequest(BaseModel):
    """Begin-transfer parameters.

    Created when a file is selected and validated; immutable once the
    transfer starts.
    """

    model_config = ConfigDict(frozen=True)

    target: TargetId = Field(TargetId.CONTROLLER, description="Unit being upgraded")
    name: str = Field(..., min_length=1, description="Firmware file name")
    total_size: int = Field(..., ge=0, description="Image size in bytes")


class ChunkJob(BaseModel):
    """One bounded slice of the image, discarded once acknowledged."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(..., ge=0)
    payload: bytes = Field(..., max_length=CHUNK_SIZE)
    total_size: int = Field(..., ge=0)

    @model_validator(mode="after")
    def within_image(self) -> "ChunkJob":
        """Reject chunks that extend past the end of the image."""
        if self.offset + len(self.payload) > self.total_size:
            raise ValueError(
                f"Chunk [{self.offset}, {self.offset + len(self.payload)}) "
                f"exceeds image size {self.total_size}"
            )
        return self

    @property
    def end(self) -> int:
        return self.offset + len(self.payload)


class TransferProgress(BaseModel):
    """Derived progress, recomputed after every acknowledged chunk."""

    bytes_sent: int = Field(0, ge=0)
    total_size: int = Field(0, ge=0)

    @property
    def percent(self) -> int:
        return percent_of(self.bytes_sent, self.total_size)


class ReconnectAttemptCounter(BaseModel):
    """Attempt budget for one reconnect supervision session."""

    attempts: int = Field(0, ge=0)
    max_attempts: int = Field(60, gt=0)
    interval_ms: int = Field(2000, ge=0)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0
