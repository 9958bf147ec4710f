"""In-process mock pendant webserver for integration tests.

The FastAPI app mimics the device firmware endpoints; OfflineAwareTransport
wraps httpx.ASGITransport so tests can take the device off the network
while it "reboots".
"""

import logging

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from pendant_upgrader.services.transfer_client import TransferClient

logger = logging.getLogger("mock-pendant")


class MockPendant:
    """Device-side state: received image plus reboot/offline behaviour."""

    def __init__(self):
        self.image = bytearray()
        self.expected_size = 0
        self.name = ""
        self.upload_offsets = []
        self.reboots = 0
        self.offline_requests = 0
        self.fail_write_at = None
        self.session_valid = True
        self.firmware_version = "1.0.0"

    def go_offline(self, requests: int) -> None:
        """Refuse the next N connections."""
        self.offline_requests = requests


def create_pendant_app(pendant: MockPendant) -> FastAPI:
    app = FastAPI(title="Mock Pendant")

    def fail(code: int, message: str) -> JSONResponse:
        return JSONResponse({"ack": False, "error": {"code": code, "message": message}})

    @app.post("/api/firmware/begin")
    async def begin(request: Request):
        body = await request.json()
        if body.get("target") != "controller":
            return fail(1001, "Unsupported target")
        pendant.name = body.get("name", "")
        pendant.expected_size = int(body.get("size", 0))
        pendant.image = bytearray()
        pendant.upload_offsets = []
        return {"ack": True}

    @app.post("/api/firmware/upload")
    async def upload(request: Request, offset: int = Query(-1)):
        if offset < 0:
            return fail(1001, "Invalid offset")
        if pendant.fail_write_at is not None and offset == pendant.fail_write_at:
            return fail(2001, "Flash write failed")
        data = await request.body()
        if offset != len(pendant.image):
            return fail(1002, "Out of order chunk")
        pendant.image.extend(data)
        pendant.upload_offsets.append(offset)
        return {"ack": True, "data": {"offset": offset, "written": len(data)}}

    @app.post("/api/reboot")
    async def reboot():
        pendant.reboots += 1
        pendant.session_valid = False
        return {"ack": True}

    @app.get("/api/dashboard")
    async def dashboard():
        if not pendant.session_valid:
            return JSONResponse({"ack": False}, status_code=401)
        return {"ack": True, "data": {"device": {"firmware": pendant.firmware_version}}}

    @app.get("/api/settings")
    async def settings():
        return {"ack": True, "data": {"ver": {"firmware": pendant.firmware_version}}}

    return app


class OfflineAwareTransport(httpx.AsyncBaseTransport):
    """ASGI transport that raises ConnectError while the pendant is offline."""

    def __init__(self, pendant: MockPendant, app: FastAPI):
        self.pendant = pendant
        self.inner = httpx.ASGITransport(app=app)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.pendant.offline_requests > 0:
            self.pendant.offline_requests -= 1
            logger.info(f"Refusing {request.method} {request.url.path}: device offline")
            raise httpx.ConnectError("Connection refused", request=request)
        return await self.inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self.inner.aclose()


@pytest.fixture
def pendant():
    return MockPendant()


@pytest_asyncio.fixture
async def transfer_client(pendant):
    transport = OfflineAwareTransport(pendant, create_pendant_app(pendant))
    http = httpx.AsyncClient(transport=transport, base_url="http://pendant")
    client = TransferClient(device_url="http://pendant", client=http)
    yield client
    await client.aclose()
