"""Pydantic models for device responses and the console HTTP API."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from pendant_upgrader.models.status import UploadState

T = TypeVar("T")


class ApiError(BaseModel):
    """Error object carried by a negative acknowledgment."""

    code: int = Field(..., description="Device error code (e.g. 1001, 2001)")
    message: str = Field("", description="Device-supplied description")


class Ack(BaseModel, Generic[T]):
    """Device response envelope.

    Example:
        {"ack": false, "error": {"code": 1001, "message": "Unsupported target"}}
    """

    ack: bool = Field(..., description="True when the device accepted the request")
    data: Optional[T] = Field(None, description="Optional response payload")
    error: Optional[ApiError] = Field(None, description="Present when ack is false")

    @property
    def error_code(self) -> Optional[int]:
        return self.error.code if self.error else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class UploadAckData(BaseModel):
    """Payload of a positive upload acknowledgment."""

    offset: int = Field(..., ge=0, description="Offset the chunk was written at")
    written: int = Field(..., ge=0, description="Bytes written by the device")


class UpgradeStatus(BaseModel):
    """Snapshot of the orchestrator for the presentation layer."""

    state: UploadState = Field(..., description="Current lifecycle state")
    progress: int = Field(..., ge=0, le=100, description="Upload percentage (0-100)")
    message: Optional[str] = Field(None, description="Localized progress text for the state")
    error: Optional[str] = Field(None, description="Localized error message, if any")
    selected_file: Optional[str] = Field(None, description="Selected image name")
    selected_size: Optional[int] = Field(None, description="Selected image size in bytes")
    session_reset: bool = Field(
        False, description="Device came back after reboot; host should reinitialize"
    )
    current_version: Optional[str] = Field(None, description="Firmware version on device")


class SuccessResponse(BaseModel):
    """Success envelope for console endpoints.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[Any] = Field(None, description="Optional response data")


class ErrorResponse(BaseModel):
    """Error envelope for console endpoints."""

    code: int = Field(..., description="Application-level error code (400/409)")
    msg: str = Field(..., description="Error message")
    state: Optional[UploadState] = Field(None, description="Current lifecycle state")
