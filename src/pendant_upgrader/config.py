"""Runtime settings read from the environment."""

import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # Base URL of the pendant's embedded webserver
    device_url: str = os.getenv("PENDANT_DEVICE_URL", "http://192.168.1.100")
    http_timeout: float = float(os.getenv("PENDANT_HTTP_TIMEOUT", "10.0"))
    reboot_settle_ms: int = int(os.getenv("PENDANT_REBOOT_SETTLE_MS", "3000"))
    reconnect_interval_ms: int = int(os.getenv("PENDANT_RECONNECT_INTERVAL_MS", "2000"))
    # 60 attempts at 2 s is roughly two minutes of recovery budget
    reconnect_max_attempts: int = int(os.getenv("PENDANT_RECONNECT_MAX_ATTEMPTS", "60"))
    lang: str = os.getenv("PENDANT_LANG", "en")
    log_file: str = os.getenv("PENDANT_LOG_FILE", "./logs/pendant-upgrader.log")
    log_level: str = os.getenv("PENDANT_LOG_LEVEL", "INFO")
    # One line per liveness attempt; raise to WARNING to quiet long recoveries
    reconnect_log_level: Optional[str] = os.getenv("PENDANT_RECONNECT_LOG_LEVEL")
    # .rbl image selected at startup, if set
    firmware_path: Optional[str] = os.getenv("PENDANT_FIRMWARE")
    host: str = os.getenv("PENDANT_HOST", "0.0.0.0")
    port: int = int(os.getenv("PENDANT_PORT", "12316"))


settings = Settings()
