"""HTTP client for the pendant's firmware and system endpoints."""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from pendant_upgrader.api.models import Ack, UploadAckData
from pendant_upgrader.errors import DeviceResponseError
from pendant_upgrader.models.transfer import TransferRequest


class TransferClient:
    """Thin RPC wrapper around the device webserver.

    No retries and no session handling; the session cookie lives in the
    shared httpx client.
    """

    def __init__(
        self,
        device_url: str = "http://192.168.1.100",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize transfer client.

        Args:
            device_url: Base URL of the device webserver
            timeout: Per-request timeout in seconds
            client: Pre-configured AsyncClient (created if None)
        """
        self.logger = logging.getLogger("pendant_upgrader.transfer_client")
        self.device_url = device_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.device_url, timeout=timeout)

    async def begin_transfer(self, request: TransferRequest) -> Ack[Dict[str, Any]]:
        """POST /api/firmware/begin - announce an image and erase the slot."""
        self.logger.info(
            f"Begin transfer: target={request.target.value}, name={request.name}, "
            f"size={request.total_size} bytes"
        )
        response = await self._client.post(
            "/api/firmware/begin",
            json={
                "target": request.target.value,
                "name": request.name,
                "size": request.total_size,
            },
        )
        return self._parse_ack(response, Ack[Dict[str, Any]])

    async def upload_chunk(self, offset: int, data: bytes) -> Ack[UploadAckData]:
        """POST /api/firmware/upload?offset=N - write one chunk."""
        response = await self._client.post(
            "/api/firmware/upload",
            params={"offset": offset},
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        return self._parse_ack(response, Ack[UploadAckData])

    async def request_reboot(self) -> Ack[Dict[str, Any]]:
        """POST /api/reboot."""
        self.logger.info("Requesting device reboot")
        response = await self._client.post("/api/reboot")
        return self._parse_ack(response, Ack[Dict[str, Any]])

    async def probe_liveness(self) -> None:
        """GET /api/dashboard and discard the result.

        Any HTTP response, including 401, means the device is serving again.

        Raises:
            httpx.TransportError: If the device did not answer at all
        """
        response = await self._client.get("/api/dashboard")
        self.logger.debug(f"Liveness probe answered: HTTP {response.status_code}")

    async def get_firmware_version(self) -> Optional[str]:
        """GET /api/settings and return ver.firmware, if reported."""
        response = await self._client.get("/api/settings")
        ack = self._parse_ack(response, Ack[Dict[str, Any]])
        if not ack.ack or not ack.data:
            return None
        return (ack.data.get("ver") or {}).get("firmware")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TransferClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _parse_ack(self, response: httpx.Response, model):
        if response.status_code == 401:
            raise DeviceResponseError(401, "Unauthorized")
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DeviceResponseError(
                response.status_code, f"Malformed ack envelope: {e}"
            ) from e
