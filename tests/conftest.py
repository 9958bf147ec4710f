"""Global pytest fixtures and configuration."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pendant_upgrader.api.models import Ack, UploadAckData  # noqa: E402
from pendant_upgrader.models.firmware import FirmwareFile  # noqa: E402


@pytest.fixture
def firmware_file():
    """10,000-byte image: three chunks of 4096, 4096 and 1808 bytes."""
    return FirmwareFile(name="pendant-1.2.0.rbl", data=bytes(i % 251 for i in range(10_000)))


@pytest.fixture
def mock_client():
    """TransferClient double whose device accepts everything."""
    client = MagicMock()

    async def upload_chunk(offset, data):
        return Ack(ack=True, data=UploadAckData(offset=offset, written=len(data)))

    client.begin_transfer = AsyncMock(return_value=Ack(ack=True))
    client.upload_chunk = AsyncMock(side_effect=upload_chunk)
    client.request_reboot = AsyncMock(return_value=Ack(ack=True))
    client.probe_liveness = AsyncMock(return_value=None)
    client.get_firmware_version = AsyncMock(return_value="1.0.0")
    client.aclose = AsyncMock()
    return client
