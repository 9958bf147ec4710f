"""API route handlers for the firmware upgrade console."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from pendant_upgrader.api.models import ErrorResponse, SuccessResponse
from pendant_upgrader.models.firmware import FirmwareFile
from pendant_upgrader.models.status import UploadState
from pendant_upgrader.services.state_machine import UploadStateMachine

router = APIRouter(prefix="/api/v1.0/firmware")
logger = logging.getLogger("pendant_upgrader.routes")


def get_state_machine(request: Request) -> UploadStateMachine:
    """Return the process-wide state machine created in the lifespan."""
    return request.app.state.state_machine


def _error(code: int, key: str, machine: UploadStateMachine) -> JSONResponse:
    """HTTP status is always 200, real status in 'code' field.

    key is looked up in the machine's message catalog.
    """
    body = ErrorResponse(code=code, msg=machine.messages.t(key), state=machine.state)
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


def _ok(data=None) -> JSONResponse:
    body = SuccessResponse(data=data)
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


@router.get("/status")
async def get_status(machine: UploadStateMachine = Depends(get_state_machine)):
    """GET /api/v1.0/firmware/status - Current lifecycle snapshot.

    Response format:
        {
            "code": 200,
            "msg": "success",
            "data": {
                "state": "uploading",
                "progress": 45,
                "message": "Uploading firmware...",
                "error": null,
                "selected_file": "pendant-1.2.0.rbl",
                "selected_size": 10000,
                "session_reset": false,
                "current_version": "1.0.0"
            }
        }
    """
    return _ok(machine.status().model_dump(mode="json"))


@router.post("/file")
async def post_file(
    request: Request,
    name: str = Query(..., description="Firmware file name"),
    machine: UploadStateMachine = Depends(get_state_machine),
):
    """POST /api/v1.0/firmware/file?name=... - Select an image (raw body)."""
    if machine.busy:
        return _error(409, "firmware.busy", machine)

    data = await request.body()
    if not data:
        return _error(400, "firmware.emptyFile", machine)
    try:
        file = FirmwareFile(name=name, data=data)
    except ValidationError as e:
        logger.warning(f"Rejected firmware file '{name}': {e.errors()[0]['msg']}")
        return _error(400, "firmware.invalidFile", machine)

    if not machine.select_file(file):
        return _error(409, "firmware.busy", machine)
    return _ok({"name": file.name, "size": file.size})


@router.post("/upload")
async def post_upload(
    background_tasks: BackgroundTasks,
    machine: UploadStateMachine = Depends(get_state_machine),
):
    """POST /api/v1.0/firmware/upload - Start the transfer in the background."""
    if machine.busy:
        return _error(409, "firmware.busy", machine)
    if machine.selected_file is None:
        return _error(400, "firmware.noFile", machine)

    background_tasks.add_task(machine.start_upload)
    return _ok()


@router.post("/cancel")
async def post_cancel(machine: UploadStateMachine = Depends(get_state_machine)):
    """POST /api/v1.0/firmware/cancel - Stop the transfer at the next chunk."""
    if not machine.cancel_upload():
        return _error(409, "firmware.noUpload", machine)
    return _ok()


@router.post("/reboot")
async def post_reboot(machine: UploadStateMachine = Depends(get_state_machine)):
    """POST /api/v1.0/firmware/reboot - Confirm reboot after a successful write."""
    if machine.state != UploadState.SUCCESS:
        return _error(409, "firmware.notWritten", machine)
    await machine.confirm_reboot()
    return _ok()


@router.post("/teardown")
async def post_teardown(machine: UploadStateMachine = Depends(get_state_machine)):
    """POST /api/v1.0/firmware/teardown - Stop recovery supervision silently."""
    await machine.teardown()
    return _ok()
