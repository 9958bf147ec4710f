"""Integration tests for console API routes (routes.py + main.py)."""

from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pendant_upgrader.api.models import Ack
from pendant_upgrader.config import settings


@contextmanager
def _started_app(mock_client, firmware_path=None):
    """TestClient whose lifespan talks to the mocked TransferClient."""
    from pendant_upgrader.main import app

    with patch("pendant_upgrader.main.setup_logger", return_value=MagicMock()), \
         patch("pendant_upgrader.main.TransferClient", return_value=mock_client), \
         patch.object(settings, "firmware_path", firmware_path):
        with TestClient(app, raise_server_exceptions=True) as c:
            yield c


@pytest.fixture
def client(mock_client):
    with _started_app(mock_client) as c:
        yield c


def _upload_file(client, name="pendant-1.2.0.rbl", data=b"\x01" * 10_000):
    return client.post(
        "/api/v1.0/firmware/file",
        params={"name": name},
        content=data,
        headers={"Content-Type": "application/octet-stream"},
    )


@pytest.mark.unit
class TestFirmwareRoutes:

    def test_root_health(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_status_after_startup(self, client):
        body = client.get("/api/v1.0/firmware/status").json()

        assert body["code"] == 200
        assert body["data"]["state"] == "idle"
        assert body["data"]["progress"] == 0
        assert body["data"]["current_version"] == "1.0.0"

    def test_select_file(self, client):
        body = _upload_file(client).json()

        assert body == {"code": 200, "msg": "success", "data": {"name": "pendant-1.2.0.rbl", "size": 10_000}}
        status = client.get("/api/v1.0/firmware/status").json()["data"]
        assert status["selected_file"] == "pendant-1.2.0.rbl"
        assert status["selected_size"] == 10_000

    def test_select_empty_file_rejected(self, client):
        body = _upload_file(client, data=b"").json()

        assert body["code"] == 400
        assert body["msg"] == "Firmware file is empty"

    def test_select_invalid_name_rejected(self, client):
        body = _upload_file(client, name="dir/fw.rbl").json()

        assert body["code"] == 400
        assert body["state"] == "idle"

    def test_select_non_rbl_file_rejected(self, client):
        body = _upload_file(client, name="evil.exe").json()

        assert body["code"] == 400
        assert body["msg"] == "Invalid firmware file, please select an .rbl package"
        assert client.get("/api/v1.0/firmware/status").json()["data"]["selected_file"] is None

    def test_upload_without_file(self, client):
        body = client.post("/api/v1.0/firmware/upload").json()

        assert body["code"] == 400
        assert body["msg"] == "Please select a firmware file first"

    def test_upload_runs_to_success(self, client, mock_client):
        _upload_file(client)

        body = client.post("/api/v1.0/firmware/upload").json()

        assert body["code"] == 200
        status = client.get("/api/v1.0/firmware/status").json()["data"]
        assert status["state"] == "success"
        assert status["progress"] == 100
        assert status["message"] == "Firmware has been written, restart required to take effect"
        assert status["selected_file"] is None
        assert mock_client.upload_chunk.await_count == 3

    def test_upload_rejected_by_device(self, client, mock_client):
        mock_client.begin_transfer.return_value = Ack.model_validate(
            {"ack": False, "error": {"code": 1001, "message": "Unsupported target"}}
        )
        _upload_file(client)

        client.post("/api/v1.0/firmware/upload")

        status = client.get("/api/v1.0/firmware/status").json()["data"]
        assert status["state"] == "idle"
        assert status["error"] == "Invalid parameter"

    def test_reboot_requires_success(self, client):
        body = client.post("/api/v1.0/firmware/reboot").json()

        assert body["code"] == 409
        assert body["state"] == "idle"
        assert body["msg"] == "Firmware has not been written yet, restart not allowed"

    def test_reboot_then_teardown(self, client, mock_client):
        _upload_file(client)
        client.post("/api/v1.0/firmware/upload")

        body = client.post("/api/v1.0/firmware/reboot").json()

        assert body["code"] == 200
        status = client.get("/api/v1.0/firmware/status").json()["data"]
        assert status["state"] == "rebooting"
        assert status["message"] == "Device is restarting, please wait..."
        mock_client.request_reboot.assert_awaited_once()

        assert client.post("/api/v1.0/firmware/teardown").json()["code"] == 200
        status = client.get("/api/v1.0/firmware/status").json()["data"]
        assert status["state"] == "idle"
        assert status["error"] is None
        mock_client.probe_liveness.assert_not_awaited()

    def test_file_selection_blocked_after_upload(self, client):
        _upload_file(client)
        client.post("/api/v1.0/firmware/upload")

        body = _upload_file(client, name="other.rbl").json()

        assert body["code"] == 409
        assert body["state"] == "success"
        assert body["msg"] == "Another firmware operation is in progress"

    def test_cancel_without_upload(self, client):
        body = client.post("/api/v1.0/firmware/cancel").json()

        assert body["code"] == 409
        assert body["msg"] == "No firmware upload in progress"

    def test_idle_status_has_no_message(self, client):
        assert client.get("/api/v1.0/firmware/status").json()["data"]["message"] is None


@pytest.mark.unit
class TestFirmwarePreload:
    """Image named by PENDANT_FIRMWARE is selected during startup."""

    def test_preloaded_file_is_selected(self, tmp_path, mock_client):
        image = tmp_path / "pendant-2.0.0.rbl"
        image.write_bytes(b"\x02" * 5000)

        with _started_app(mock_client, firmware_path=str(image)) as client:
            status = client.get("/api/v1.0/firmware/status").json()["data"]

        assert status["selected_file"] == "pendant-2.0.0.rbl"
        assert status["selected_size"] == 5000

    def test_missing_file_leaves_nothing_selected(self, tmp_path, mock_client):
        with _started_app(mock_client, firmware_path=str(tmp_path / "absent.rbl")) as client:
            status = client.get("/api/v1.0/firmware/status").json()["data"]

        assert status["state"] == "idle"
        assert status["selected_file"] is None

    def test_non_rbl_file_is_not_selected(self, tmp_path, mock_client):
        image = tmp_path / "pendant.bin"
        image.write_bytes(b"\x02" * 16)

        with _started_app(mock_client, firmware_path=str(image)) as client:
            status = client.get("/api/v1.0/firmware/status").json()["data"]

        assert status["selected_file"] is None
