"""Adapters that feed a byte stream into a multipart upload session.

StreamSink works with anything that yields bytes, synchronously or
asynchronously, for example a FastAPI/Starlette ``request.stream()``, an
httpx ``response.aiter_bytes()``, an aiobotocore ``StreamingBody`` iterator,
or a plain list of chunks.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable

from s3mpu.client import StorageClient
from s3mpu.config import UploadConfig
from s3mpu.models import CompletedUpload
from s3mpu.session import MultipartSession


class StreamSink:
    """Consumes a byte stream into a MultipartSession.

    Every chunk is passed to write(); end of stream calls finish(). If the
    stream raises, or the consuming task is cancelled, the session is aborted
    and the error re-raised.
    """

    def __init__(self, session: MultipartSession) -> None:
        self.session = session

    async def consume(
        self, stream: AsyncIterable[bytes] | Iterable[bytes]
    ) -> CompletedUpload:
        """Upload the entire stream and commit the object.

        Returns:
            Reference to the committed object.
        """
        try:
            if isinstance(stream, AsyncIterable):
                async for chunk in stream:
                    await self.session.write(chunk)
            else:
                for chunk in stream:
                    await self.session.write(chunk)
        except BaseException as exc:
            # Errors raised by write() have already aborted the session.
            await self.session.abort_on_error(exc)
            raise
        return await self.session.finish()


async def upload_stream(
    client: StorageClient,
    bucket: str,
    key: str,
    stream: AsyncIterable[bytes] | Iterable[bytes],
    config: UploadConfig | None = None,
    **kwargs,
) -> CompletedUpload:
    """Upload a byte stream of unknown length as one object.

    Args:
        client: Storage client implementing the multipart operations.
        bucket: Target bucket.
        key: Target object key.
        stream: Sync or async iterable of byte chunks.
        config: Session tuning; defaults to UploadConfig().
        **kwargs: Passed to MultipartSession (content_type, metadata).

    Returns:
        Reference to the committed object.
    """
    session = MultipartSession.from_config(
        client, bucket, key, config or UploadConfig(), **kwargs
    )
    return await StreamSink(session).consume(stream)
