"""Status enums for the firmware upgrade orchestrator."""

from enum import Enum


class UploadState(str, Enum):
    """Upgrade lifecycle states.

    State transitions:
    idle → uploading → success → rebooting → reconnecting → idle
      ↑        ↓                                   ↓
      └──── failed (reported as idle + error) ←────┘
    """

    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    REBOOTING = "rebooting"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class TargetId(str, Enum):
    """Upgradeable units known to the device firmware."""

    CONTROLLER = "controller"


class ReconnectOutcome(str, Enum):
    """How a reconnect supervision session ended."""

    RECONNECTED = "reconnected"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
