"""Multipart upload session controller.

A MultipartSession turns a sequence of write() calls into an S3-style
multipart upload:

    OPEN --finish()--> FINISHING --complete ok--> COMPLETED
      |                    |
      +----- failure ------+-------------------> ABORTED

Lifecycle:
    - The upload is initiated lazily on the first write()/finish(), or
      eagerly by start() / ``async with``.
    - Written bytes are coalesced by a PartBuffer into parts of exactly
      ``part_size`` bytes. Each part is numbered when it is cut and uploaded
      by its own asyncio task, with at most ``concurrency`` tasks in flight.
    - finish() dispatches the remainder as the final (possibly short) part,
      waits for every in-flight upload, and commits the parts in ascending
      order.
    - Any failure halts further dispatch, aborts the upload on the service
      and is re-raised to the caller. If the abort itself fails, the abort
      error is attached to the original error as ``abort_error`` and the
      server-side upload may be left orphaned (bucket lifecycle rules are
      the only cleanup in that case).

An empty stream is committed as a single zero-length part numbered 1; S3
rejects completion with an empty part list but accepts one short part.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import warnings

from s3mpu import metrics
from s3mpu.buffer import PartBuffer
from s3mpu.checksum import checksum_of
from s3mpu.client import StorageClient
from s3mpu.config import UploadConfig
from s3mpu.errors import (
    IncompletePartSequence,
    InvalidState,
    PartLimitExceeded,
)
from s3mpu.models import (
    MAX_PART_SIZE,
    MAX_PARTS,
    MIN_PART_SIZE,
    CompletedUpload,
    Part,
    UploadHandle,
)
from s3mpu.uploader import PartUploader

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    OPEN = "open"
    FINISHING = "finishing"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TERMINAL = (SessionState.COMPLETED, SessionState.ABORTED)


class MultipartSession:
    """Streams written bytes into one multipart upload.

    Attributes:
        client: The storage client.
        bucket: Target bucket (immutable).
        key: Target object key (immutable).
        part_size: Size at which non-final parts are cut.
        concurrency: Maximum number of part uploads in flight, or None for
            no limit.
        upload_id: Identifier of the initiated upload, None before start().
        state: Current SessionState.
        next_part_number: Number the next dispatched part will receive.
    """

    def __init__(
        self,
        client: StorageClient,
        bucket: str,
        key: str,
        part_size: int = MIN_PART_SIZE,
        concurrency: int | None = 4,
        enforce_part_size_limits: bool = True,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Create a session; nothing is sent to the service yet.

        Args:
            client: Storage client implementing the multipart operations.
            bucket: Target bucket.
            key: Target object key.
            part_size: Part size in bytes (5 MiB to 5 GiB).
            concurrency: In-flight upload limit (>= 1), or None for no limit.
            enforce_part_size_limits: When False, any positive part_size is
                accepted (S3 emulators, tests).
            content_type: Content-Type stored with the final object.
            metadata: User metadata stored with the final object.

        Raises:
            ValueError: If part_size or concurrency is out of range.
        """
        if enforce_part_size_limits and not MIN_PART_SIZE <= part_size <= MAX_PART_SIZE:
            raise ValueError(
                f"part_size must be between {MIN_PART_SIZE} and {MAX_PART_SIZE}, got {part_size}"
            )
        if concurrency is not None and concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.client = client
        self.bucket = bucket
        self.key = key
        self.part_size = part_size
        self.concurrency = concurrency
        self.content_type = content_type
        self.metadata = metadata
        self.upload_id: str | None = None
        self.state = SessionState.OPEN
        self.next_part_number = 1

        self._buffer = PartBuffer(part_size)
        self._uploader = PartUploader(client)
        self._slots = asyncio.Semaphore(concurrency) if concurrency is not None else None
        self._tasks: set[asyncio.Task] = set()
        self._etags: dict[int, str] = {}
        self._error: BaseException | None = None
        self._size = 0

    @classmethod
    def from_config(
        cls, client: StorageClient, bucket: str, key: str, config: UploadConfig, **kwargs
    ) -> MultipartSession:
        """Create a session from an UploadConfig."""
        return cls(
            client,
            bucket,
            key,
            part_size=config.part_size,
            concurrency=config.concurrency,
            enforce_part_size_limits=config.enforce_part_size_limits,
            **kwargs,
        )

    def __repr__(self) -> str:
        return (
            f"<MultipartSession {self.bucket}/{self.key} "
            f"upload_id={self.upload_id} state={self.state.value}>"
        )

    @property
    def handle(self) -> UploadHandle:
        if self.upload_id is None:
            raise InvalidState("Multipart upload has not been initiated")
        return UploadHandle(bucket=self.bucket, key=self.key, upload_id=self.upload_id)

    @property
    def completed_parts(self) -> list[tuple[int, str]]:
        """``(part_number, etag)`` pairs of successfully uploaded parts, by number."""
        return [(number, self._etags[number]) for number in sorted(self._etags)]

    @property
    def bytes_written(self) -> int:
        return self._size

    def _log_extra(self, **fields) -> dict:
        extra = {"bucket": self.bucket, "key": self.key, "upload_id": self.upload_id}
        extra.update(fields)
        return extra

    def _check_open(self, operation: str) -> None:
        if self.state is not SessionState.OPEN:
            raise InvalidState(f"Cannot {operation}: session is {self.state.value}")

    def _raise_if_failed(self) -> None:
        if self._error is not None:
            raise self._error

    # -- lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Initiate the multipart upload if that has not happened yet.

        Raises:
            InvalidState: If the session is no longer open.
            TransportError: If the service could not be reached.
            ServiceError: If the service refused to create the upload.
        """
        self._check_open("start")
        if self.upload_id is not None:
            return
        try:
            self.upload_id = await self.client.create_multipart_upload(
                self.bucket, self.key, content_type=self.content_type, metadata=self.metadata
            )
        except BaseException:
            # Nothing exists server-side, so there is nothing to abort.
            self.state = SessionState.ABORTED
            metrics.record_session("aborted")
            raise
        logger.info(
            "Initiated multipart upload %s for %s/%s",
            self.upload_id,
            self.bucket,
            self.key,
            extra=self._log_extra(),
        )

    async def write(self, chunk: bytes | bytearray | memoryview) -> None:
        """Append bytes to the object, uploading every part that fills up.

        May wait for an upload slot when ``concurrency`` parts are already in
        flight.

        Raises:
            InvalidState: If the session is not open.
            TransportError, ServiceError: If a part upload failed; the
                session has been aborted.
        """
        self._check_open("write")
        try:
            if self.upload_id is None:
                await self.start()
            self._raise_if_failed()
            self._size += self._buffer.push(chunk)
            for data in self._buffer.drain_ready():
                await self._dispatch(data)
        except BaseException as exc:
            await self.abort_on_error(exc)
            raise

    async def finish(self) -> CompletedUpload:
        """Upload the remaining bytes and commit the object.

        Returns:
            Reference to the committed object.

        Raises:
            InvalidState: If the session is not open.
            TransportError, ServiceError: If an upload or the completion
                failed; the session has been aborted.
            IncompletePartSequence: If the uploaded parts do not form a
                gap-free sequence (internal error); the session has been
                aborted.
        """
        self._check_open("finish")
        try:
            if self.upload_id is None:
                await self.start()
            self._raise_if_failed()
            self.state = SessionState.FINISHING
            remainder = self._buffer.flush_remainder()
            if remainder or self.next_part_number == 1:
                await self._dispatch(remainder)
            await self._join()
            self._raise_if_failed()
            parts = self._verify_sequence()
            result = await self.client.complete_multipart_upload(
                self.bucket, self.key, self.upload_id, parts
            )
        except BaseException as exc:
            await self.abort_on_error(exc)
            raise

        self.state = SessionState.COMPLETED
        metrics.record_session("completed")
        logger.info(
            "Completed multipart upload %s: %d parts, %d bytes",
            self.upload_id,
            len(parts),
            self._size,
            extra=self._log_extra(),
        )
        return dataclasses.replace(result, part_count=len(parts), size=self._size)

    async def abort(self) -> None:
        """Cancel in-flight uploads and abort the upload on the service.

        The session is ABORTED even if the abort call fails; in that case
        the error is raised and the server-side upload may be orphaned.
        Aborting an already aborted session is a no-op.

        Raises:
            InvalidState: If the session already completed.
        """
        if self.state is SessionState.ABORTED:
            return
        if self.state is SessionState.COMPLETED:
            raise InvalidState("Cannot abort: session is completed")

        await self._cancel_inflight()
        self.state = SessionState.ABORTED
        metrics.record_session("aborted")
        if self.upload_id is None:
            return

        logger.warning(
            "Aborting multipart upload %s for %s/%s",
            self.upload_id,
            self.bucket,
            self.key,
            extra=self._log_extra(),
        )
        await self.client.abort_multipart_upload(self.bucket, self.key, self.upload_id)

    async def __aenter__(self) -> MultipartSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self.state in _TERMINAL:
            return False
        if exc is not None:
            await self.abort_on_error(exc)
        else:
            logger.warning(
                "Session for %s/%s closed without finish(); aborting",
                self.bucket,
                self.key,
                extra=self._log_extra(),
            )
            await self.abort()
        return False

    def __del__(self) -> None:
        state = getattr(self, "state", None)
        upload_id = getattr(self, "upload_id", None)
        if upload_id is not None and state in (SessionState.OPEN, SessionState.FINISHING):
            warnings.warn(
                f"Multipart upload {upload_id} was never finished or aborted",
                ResourceWarning,
                source=self,
            )
            logger.warning(
                "Multipart upload %s for %s/%s leaked without finish() or abort()",
                upload_id,
                self.bucket,
                self.key,
            )

    # -- internals -------------------------------------------------------------

    async def _dispatch(self, data: bytes) -> None:
        """Number a part and start its upload task."""
        if self.next_part_number > MAX_PARTS:
            raise PartLimitExceeded(MAX_PARTS)
        if self._slots is not None:
            await self._slots.acquire()
        if self._error is not None:
            # A part failed while we waited for the slot.
            if self._slots is not None:
                self._slots.release()
            raise self._error

        number = self.next_part_number
        self.next_part_number += 1
        part = Part(number=number, data=data, checksum=checksum_of(data))

        task = asyncio.create_task(self._upload(part), name=f"s3mpu-part-{number}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _upload(self, part: Part) -> None:
        try:
            part.etag = await self._uploader.upload(
                self.handle, part.number, part.data, part.checksum
            )
        except Exception as exc:
            if self._error is None:
                self._error = exc
            logger.warning(
                "Upload of part %d failed: %s",
                part.number,
                exc,
                extra=self._log_extra(part_number=part.number),
            )
        else:
            self._etags[part.number] = part.etag
            metrics.record_part(part.size)
        finally:
            if self._slots is not None:
                self._slots.release()

    async def _join(self) -> None:
        """Wait for every in-flight part upload."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _cancel_inflight(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _verify_sequence(self) -> list[tuple[int, str]]:
        expected = list(range(1, self.next_part_number))
        if sorted(self._etags) != expected:
            raise IncompletePartSequence(
                f"Uploaded parts {sorted(self._etags)} do not match dispatched parts 1..{len(expected)}"
            )
        return [(number, self._etags[number]) for number in expected]

    async def abort_on_error(self, exc: BaseException) -> None:
        """Best-effort abort after ``exc`` interrupted the upload.

        Does nothing if the session already reached a terminal state. A
        failing abort is logged and attached to ``exc`` as ``abort_error``
        instead of being raised, so ``exc`` stays the error the caller sees.
        """
        if self.state in _TERMINAL:
            return
        try:
            await self.abort()
        except Exception as abort_exc:
            logger.error(
                "Failed to abort multipart upload %s; it may be orphaned on the service: %s",
                self.upload_id,
                abort_exc,
                extra=self._log_extra(),
            )
            exc.abort_error = abort_exc
