"""Upload lifecycle owner: transfer, reboot and recovery supervision."""

import asyncio
import logging
from typing import Callable, Optional

import httpx

from pendant_upgrader.api.models import UpgradeStatus
from pendant_upgrader.errors import ChunkTransferError, TransferCancelled
from pendant_upgrader.models.firmware import FirmwareFile
from pendant_upgrader.models.status import ReconnectOutcome, TargetId, UploadState
from pendant_upgrader.models.transfer import TransferRequest
from pendant_upgrader.services.chunk_scheduler import ChunkScheduler
from pendant_upgrader.services.messages import MessageCatalog
from pendant_upgrader.services.reconnect import ReconnectSupervisor
from pendant_upgrader.services.transfer_client import TransferClient


# Progress text shown while a state lasts; idle shows nothing
STATE_MESSAGE_KEYS = {
    UploadState.UPLOADING: "firmware.uploading",
    UploadState.SUCCESS: "firmware.written",
    UploadState.REBOOTING: "firmware.rebooting",
    UploadState.RECONNECTING: "firmware.reconnecting",
}


class UploadStateMachine:
    """Sole writer of the upgrade lifecycle state.

    State transitions:
    idle → uploading → success → rebooting → reconnecting → idle (session reset)
              ↓                                   ↓
            idle + error                       idle + error (exhausted)

    Public operations never raise; every failure ends as a state plus a
    localized message so the console stays usable after device-side errors.
    """

    def __init__(
        self,
        client: TransferClient,
        messages: Optional[MessageCatalog] = None,
        target: TargetId = TargetId.CONTROLLER,
        scheduler: Optional[ChunkScheduler] = None,
        reboot_settle_ms: int = 3000,
        reconnect_interval_ms: int = 2000,
        reconnect_max_attempts: int = 60,
        on_session_reset: Optional[Callable[[], None]] = None,
        on_state_change: Optional[Callable[[UploadState], None]] = None,
    ):
        """Initialize state machine.

        Args:
            client: TransferClient bound to the device
            messages: Error/status message catalog (English if None)
            target: Unit being upgraded
            scheduler: ChunkScheduler (default 4096-byte chunks if None)
            reboot_settle_ms: Wait between reboot request and first probe
            reconnect_interval_ms: Spacing between liveness probes
            reconnect_max_attempts: Probe budget before giving up
            on_session_reset: Called once the rebooted device answers again
            on_state_change: Called on every lifecycle transition
        """
        self.logger = logging.getLogger("pendant_upgrader.state_machine")
        self.client = client
        self.messages = messages or MessageCatalog()
        self.target = target
        self.scheduler = scheduler or ChunkScheduler()
        self.reboot_settle_ms = reboot_settle_ms
        self.reconnect_interval_ms = reconnect_interval_ms
        self.reconnect_max_attempts = reconnect_max_attempts
        self.on_session_reset = on_session_reset
        self.on_state_change = on_state_change

        self.state: UploadState = UploadState.IDLE
        self.progress: int = 0
        self.error_message: Optional[str] = None
        self.selected_file: Optional[FirmwareFile] = None
        self.session_reset: bool = False
        self.current_version: Optional[str] = None

        self._session_lock = asyncio.Lock()
        self._cancel_event: Optional[asyncio.Event] = None
        self._recovery_task: Optional[asyncio.Task] = None
        self._supervisor: Optional[ReconnectSupervisor] = None
        self._teardown_count = 0

    def status(self) -> UpgradeStatus:
        key = STATE_MESSAGE_KEYS.get(self.state)
        return UpgradeStatus(
            state=self.state,
            progress=self.progress,
            message=self.messages.t(key) if key else None,
            error=self.error_message,
            selected_file=self.selected_file.name if self.selected_file else None,
            selected_size=self.selected_file.size if self.selected_file else None,
            session_reset=self.session_reset,
            current_version=self.current_version,
        )

    @property
    def busy(self) -> bool:
        return self._session_lock.locked() or self.state != UploadState.IDLE

    def select_file(self, file: FirmwareFile) -> bool:
        """Select the image for the next upload; only allowed while idle."""
        if self.busy:
            self.logger.warning(f"Ignoring file selection while {self.state.value}")
            return False
        self.selected_file = file
        self.error_message = None
        self.session_reset = False
        self.logger.info(f"Selected firmware file: {file.name} ({file.size} bytes)")
        return True

    async def start_upload(self) -> bool:
        """Announce the selected image and transfer it in chunks.

        Returns:
            True if the image was fully written (state is success)
        """
        if self.busy:
            self.logger.warning(f"Upload rejected, session busy: {self.state.value}")
            return False
        if self.selected_file is None:
            self.error_message = self.messages.t("firmware.noFile")
            self.logger.warning("Upload rejected, no file selected")
            return False

        async with self._session_lock:
            file = self.selected_file
            self._cancel_event = asyncio.Event()
            self.progress = 0
            self.error_message = None
            self.session_reset = False
            self._set_state(UploadState.UPLOADING)

            try:
                request = TransferRequest(target=self.target, name=file.name, total_size=file.size)
                begin = await self.client.begin_transfer(request)
                if not begin.ack:
                    self.logger.error(
                        f"Begin transfer rejected: code={begin.error_code}, "
                        f"message={begin.error_message}"
                    )
                    self._fail(
                        self.messages.resolve_error_message(begin.error_code, begin.error_message)
                    )
                    return False

                await self.scheduler.run(
                    file.data,
                    self.client.upload_chunk,
                    on_progress=self._set_progress,
                    cancel_event=self._cancel_event,
                )
            except TransferCancelled as e:
                self.logger.info(f"Upload cancelled at offset {e.offset}")
                self._fail(self.messages.t("firmware.cancelled"))
                return False
            except ChunkTransferError as e:
                self.logger.error(f"Upload aborted at offset {e.offset}: {e}")
                if isinstance(e.__cause__, httpx.TransportError):
                    self._fail(self.messages.t("error.networkError"))
                else:
                    self._fail(self.messages.resolve_error_message(e.code, e.message))
                return False
            except httpx.TransportError as e:
                self.logger.error(f"Begin transfer failed: {e!r}")
                self._fail(self.messages.t("error.networkError"))
                return False
            except Exception as e:
                self.logger.error(f"Upload failed: {e}", exc_info=True)
                self._fail(self.messages.resolve_error_message(None, str(e)))
                return False
            finally:
                self._cancel_event = None

            self.progress = 100
            self.selected_file = None
            self._set_state(UploadState.SUCCESS)
            self.logger.info(f"Firmware {file.name} written, awaiting reboot confirmation")
            return True

    def cancel_upload(self) -> bool:
        """Stop the running transfer at the next chunk boundary."""
        if self._cancel_event is None:
            return False
        self.logger.info("Upload cancellation requested")
        self._cancel_event.set()
        return True

    async def confirm_reboot(self) -> bool:
        """Request a reboot and schedule recovery supervision.

        The reboot call's outcome is ignored: a device that is going down may
        drop the connection before answering.
        """
        if self.state != UploadState.SUCCESS:
            self.logger.warning(f"Reboot rejected in state {self.state.value}")
            return False

        self.error_message = None
        self._set_state(UploadState.REBOOTING)
        teardown_count = self._teardown_count
        try:
            ack = await self.client.request_reboot()
            if not ack.ack:
                self.logger.warning(
                    f"Reboot not acknowledged (code={ack.error_code}), continuing recovery"
                )
        except Exception as e:
            self.logger.warning(f"Reboot request failed ({e!r}), device likely rebooting")

        if teardown_count != self._teardown_count:
            return False
        self._recovery_task = asyncio.create_task(self._recover(), name="reboot-recovery")
        return True

    async def wait_for_recovery(self) -> None:
        """Wait until settle + reconnect supervision has finished."""
        task = self._recovery_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def teardown(self) -> None:
        """Cancel pending recovery work; no resolution fires afterwards."""
        self._teardown_count += 1
        if self._supervisor is not None:
            self._supervisor.cancel()
        task = self._recovery_task
        if task is not None and not task.done():
            task.cancel()
            await self.wait_for_recovery()
            self.logger.info("Recovery supervision torn down")
        if self.state in (UploadState.REBOOTING, UploadState.RECONNECTING):
            self._set_state(UploadState.IDLE)
        self._recovery_task = None
        self._supervisor = None

    async def refresh_current_version(self) -> Optional[str]:
        """Fetch the firmware version reported by the device settings."""
        try:
            self.current_version = await self.client.get_firmware_version()
        except Exception as e:
            self.logger.warning(f"Could not read current firmware version: {e}")
        return self.current_version

    async def _recover(self) -> None:
        await asyncio.sleep(self.reboot_settle_ms / 1000.0)
        self._set_state(UploadState.RECONNECTING)
        self._supervisor = ReconnectSupervisor(
            probe=self.client.probe_liveness,
            on_resolved=self._on_reconnect_resolved,
            interval_ms=self.reconnect_interval_ms,
            max_attempts=self.reconnect_max_attempts,
        )
        self._supervisor.start()
        await self._supervisor.wait()

    def _on_reconnect_resolved(self, outcome: ReconnectOutcome) -> None:
        if outcome == ReconnectOutcome.RECONNECTED:
            self.progress = 0
            self.session_reset = True
            self._set_state(UploadState.IDLE)
            self.logger.info("Device back online, signalling session reset")
            if self.on_session_reset is not None:
                try:
                    self.on_session_reset()
                except Exception as e:
                    self.logger.error(f"Session reset handler failed: {e}", exc_info=True)
        elif outcome == ReconnectOutcome.EXHAUSTED:
            self._fail(self.messages.t("firmware.reconnectFailed"))

    def _set_progress(self, percent: int) -> None:
        self.progress = max(self.progress, percent)

    def _fail(self, message: str) -> None:
        self.error_message = message
        self.progress = 0
        self._set_state(UploadState.FAILED)
        self._set_state(UploadState.IDLE)

    def _set_state(self, state: UploadState) -> None:
        previous = self.state
        self.state = state
        self.logger.debug(f"State: {previous.value} -> {state.value}")
        if self.on_state_change is not None:
            try:
                self.on_state_change(state)
            except Exception as e:
                self.logger.error(f"State change handler failed: {e}", exc_info=True)
