"""Sequential chunked delivery of a firmware image."""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Iterator, Optional

from pendant_upgrader.api.models import Ack
from pendant_upgrader.errors import ChunkTransferError, TransferCancelled
from pendant_upgrader.models.transfer import CHUNK_SIZE, ChunkJob, TransferProgress, percent_of

SendFn = Callable[[int, bytes], Awaitable[Ack]]
ProgressFn = Callable[[int], None]


def iter_chunks(payload: bytes, chunk_size: int = CHUNK_SIZE) -> Iterator[ChunkJob]:
    """Partition payload into ascending, gap-free chunks of at most chunk_size."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    total_size = len(payload)
    total_chunks = math.ceil(total_size / chunk_size)
    for i in range(total_chunks):
        start = i * chunk_size
        end = min(start + chunk_size, total_size)
        yield ChunkJob(offset=start, payload=payload[start:end], total_size=total_size)


class ChunkScheduler:
    """Drives chunks through a send callback, one outstanding at a time."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.logger = logging.getLogger("pendant_upgrader.chunk_scheduler")
        self.chunk_size = chunk_size

    async def run(
        self,
        payload: bytes,
        send: SendFn,
        on_progress: Optional[ProgressFn] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TransferProgress:
        """Send every chunk of payload in ascending offset order.

        Args:
            payload: Complete firmware image
            send: Coroutine function (offset, chunk) -> Ack
            on_progress: Called with the chunk-count percentage after each ack
            cancel_event: Checked between chunks; the in-flight chunk always
                completes

        Returns:
            Final TransferProgress

        Raises:
            ChunkTransferError: On the first transport error or negative ack
            TransferCancelled: If cancel_event was set between chunks
        """
        total_size = len(payload)
        total_chunks = math.ceil(total_size / self.chunk_size)
        progress = TransferProgress(bytes_sent=0, total_size=total_size)
        self.logger.info(f"Scheduling {total_chunks} chunks for {total_size} bytes")

        for i, job in enumerate(iter_chunks(payload, self.chunk_size)):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.warning(f"Transfer cancelled before offset {job.offset}")
                raise TransferCancelled(job.offset)

            try:
                ack = await send(job.offset, job.payload)
            except Exception as e:
                self.logger.error(f"Chunk send failed at offset {job.offset}: {e}")
                raise ChunkTransferError(job.offset, message=str(e)) from e

            if not ack.ack:
                self.logger.error(
                    f"Chunk rejected at offset {job.offset}: "
                    f"code={ack.error_code}, message={ack.error_message}"
                )
                raise ChunkTransferError(job.offset, ack.error_code, ack.error_message)

            progress = TransferProgress(bytes_sent=job.end, total_size=total_size)
            percent = percent_of(i + 1, total_chunks)
            self.logger.debug(
                f"Chunk {i + 1}/{total_chunks} acknowledged "
                f"({progress.bytes_sent}/{total_size} bytes, {percent}%)"
            )
            if on_progress is not None:
                on_progress(percent)

        if total_chunks == 0 and on_progress is not None:
            on_progress(100)

        self.logger.info(f"Transfer complete: {total_size} bytes in {total_chunks} chunks")
        return progress
