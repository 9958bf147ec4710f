"""FastAPI application for the pendant firmware upgrade console."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError
import uvicorn

from pendant_upgrader.config import settings
from pendant_upgrader.utils.logging import setup_logger
from pendant_upgrader.models.firmware import FirmwareFile
from pendant_upgrader.services.messages import MessageCatalog
from pendant_upgrader.services.state_machine import UploadStateMachine
from pendant_upgrader.services.transfer_client import TransferClient
from pendant_upgrader.api.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Initialize logger
    - Create the device TransferClient and the UploadStateMachine
    - Read the firmware version currently on the device
    - Preselect the image named by PENDANT_FIRMWARE, if any

    Shutdown:
    - Tear down any pending recovery supervision
    - Close the HTTP client
    """
    component_levels = {}
    if settings.reconnect_log_level:
        component_levels["reconnect"] = settings.reconnect_log_level
    logger = setup_logger(
        "pendant_upgrader",
        settings.log_file,
        level=settings.log_level,
        component_levels=component_levels,
    )
    logger.info(f"Pendant upgrader starting up, device={settings.device_url}")

    client = TransferClient(device_url=settings.device_url, timeout=settings.http_timeout)
    machine = UploadStateMachine(
        client,
        messages=MessageCatalog(settings.lang),
        reboot_settle_ms=settings.reboot_settle_ms,
        reconnect_interval_ms=settings.reconnect_interval_ms,
        reconnect_max_attempts=settings.reconnect_max_attempts,
        on_session_reset=lambda: logger.info("Device session reset, clients should reload"),
    )
    app.state.state_machine = machine

    version = await machine.refresh_current_version()
    if version:
        logger.info(f"Device firmware version: {version}")

    if settings.firmware_path:
        try:
            machine.select_file(await FirmwareFile.from_path(settings.firmware_path))
        except (OSError, ValidationError) as e:
            logger.error(f"Could not preload firmware {settings.firmware_path}: {e}")

    logger.info(f"Pendant upgrader ready on port {settings.port}")

    yield

    logger.info("Pendant upgrader shutting down...")
    await machine.teardown()
    await client.aclose()


app = FastAPI(
    title="Pendant Firmware Upgrader",
    description="Firmware upload and reboot recovery for teaching pendant controllers",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "pendant-upgrader", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
