"""Storage service client used by multipart upload sessions.

StorageClient is the narrow protocol the session controller depends on:
the four multipart RPCs and nothing else. AioBotocoreStorageClient
implements it on top of aiobotocore and translates botocore failures into
the s3-mpu error taxonomy:

    ClientError                        -> ServiceError
    connection / HTTP / timeout errors -> TransportError

Credentials are resolved via the standard AWS credential chain
(env vars, ~/.aws/credentials, IAM role, etc.) unless explicit keys are
configured.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from aiobotocore.session import AioSession
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from s3mpu.config import ClientConfig
from s3mpu.errors import MultipartError, ServiceError, TransportError
from s3mpu.models import CompletedUpload

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Protocol for the multipart operations of an S3-style service."""

    async def create_multipart_upload(
        self,
        bucket: str,
        key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Initiate a multipart upload.

        Returns:
            The upload ID assigned by the service.
        """
        ...

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
        content_md5: str,
    ) -> str:
        """Upload one part.

        Args:
            content_md5: Base64 MD5 of ``body`` for the Content-MD5 header.

        Returns:
            The part's ETag.
        """
        ...

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> CompletedUpload:
        """Commit the upload from ``(part_number, etag)`` pairs in ascending order."""
        ...

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        """Abort the upload and release its stored parts."""
        ...


def translate_error(exc: BaseException) -> MultipartError | None:
    """Map a botocore/network exception to a MultipartError.

    Returns:
        The translated error, or None if the exception is not a storage
        service failure.
    """
    if isinstance(exc, MultipartError):
        return exc
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        meta = exc.response.get("ResponseMetadata", {})
        return ServiceError(
            service_code=error.get("Code", "Unknown"),
            message=error.get("Message", str(exc)),
            http_status=meta.get("HTTPStatusCode"),
        )
    if isinstance(exc, (HTTPClientError, BotoConnectionError, OSError, asyncio.TimeoutError)):
        return TransportError(str(exc) or type(exc).__name__)
    return None


class AioBotocoreStorageClient:
    """StorageClient backed by an aiobotocore S3 client.

    Use ``async with`` or call init()/close() explicitly.

    Attributes:
        config: Connection settings for the S3 endpoint.
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig()
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def __aenter__(self) -> AioBotocoreStorageClient:
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def init(self) -> None:
        """Create the aiobotocore S3 client; a no-op if it already exists."""
        if self._client is not None:
            return
        client_kwargs: dict[str, Any] = {"region_name": self.config.region}
        if self.config.endpoint_url:
            client_kwargs["endpoint_url"] = self.config.endpoint_url
        boto_kwargs: dict[str, Any] = {
            "retries": {"max_attempts": self.config.max_attempts, "mode": "standard"},
        }
        if self.config.use_path_style:
            boto_kwargs["s3"] = {"addressing_style": "path"}
        client_kwargs["config"] = BotoConfig(**boto_kwargs)

        if self.config.access_key_id and self.config.secret_access_key:
            session = AioSession()
            session.set_credentials(self.config.access_key_id, self.config.secret_access_key)
            self._session = session
        self._client_ctx = self._session.create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        logger.info(
            "S3 client initialized: region=%s endpoint=%s",
            self.config.region,
            self.config.endpoint_url or "default",
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        """Invoke an S3 operation, translating failures.

        Raises:
            ServiceError: If the service rejected the request.
            TransportError: If the service could not be reached.
        """
        if self._client is None:
            raise RuntimeError("S3 client is not initialized; call init() first")
        try:
            return await getattr(self._client, operation)(**kwargs)
        except Exception as exc:
            translated = translate_error(exc)
            if translated is None:
                raise
            raise translated from exc

    async def create_multipart_upload(
        self,
        bucket: str,
        key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            kwargs["ContentType"] = content_type
        if metadata:
            kwargs["Metadata"] = metadata
        resp = await self._call("create_multipart_upload", **kwargs)
        upload_id = resp.get("UploadId")
        if not upload_id:
            raise ServiceError("MissingUploadId", "Service returned no UploadId")
        return upload_id

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
        content_md5: str,
    ) -> str:
        resp = await self._call(
            "upload_part",
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
            ContentLength=len(body),
            ContentMD5=content_md5,
        )
        etag = resp.get("ETag")
        if not etag:
            raise ServiceError("MissingETag", f"Service returned no ETag for part {part_number}")
        return etag

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> CompletedUpload:
        resp = await self._call(
            "complete_multipart_upload",
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [{"PartNumber": number, "ETag": etag} for number, etag in parts]
            },
        )
        return CompletedUpload(
            bucket=resp.get("Bucket", bucket),
            key=resp.get("Key", key),
            upload_id=upload_id,
            etag=resp.get("ETag", "").strip('"'),
            location=resp.get("Location"),
            version_id=resp.get("VersionId"),
            part_count=len(parts),
        )

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        await self._call(
            "abort_multipart_upload", Bucket=bucket, Key=key, UploadId=upload_id
        )
