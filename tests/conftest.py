"""Shared pytest fixtures for s3-mpu tests.

FakeStorageClient is an in-memory stand-in for an S3 multipart endpoint.
It records every call in order, verifies the Content-MD5 of each part the
way S3 does, and supports per-part failure and delay injection so that
session tests can exercise abort paths and out-of-order completion without
network access.
"""

import asyncio
import base64
import hashlib

import pytest

from s3mpu.errors import ServiceError
from s3mpu.models import CompletedUpload
from s3mpu.session import MultipartSession


class FakeStorageClient:
    """In-memory StorageClient with failure injection.

    Attributes:
        calls: Every call in order, as tuples starting with the operation name.
        uploads: Open uploads by upload ID.
        objects: Committed objects by (bucket, key).
        fail_create, fail_complete, fail_abort: Exceptions to raise from the
            corresponding operation.
        fail_part: Exceptions to raise per part number.
        part_delay: Seconds to sleep per part number before responding.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.uploads: dict[str, dict] = {}
        self.objects: dict[tuple[str, str], bytes] = {}
        self.completed_parts: dict[int, bytes] = {}
        self.fail_create: Exception | None = None
        self.fail_complete: Exception | None = None
        self.fail_abort: Exception | None = None
        self.fail_part: dict[int, Exception] = {}
        self.part_delay: dict[int, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 1

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    def uploaded_part_numbers(self) -> list[int]:
        return [call[1] for call in self.calls if call[0] == "upload_part"]

    async def create_multipart_upload(self, bucket, key, content_type=None, metadata=None):
        self.calls.append(("create", bucket, key, content_type, metadata))
        if self.fail_create is not None:
            raise self.fail_create
        upload_id = f"upload-{self._next_id}"
        self._next_id += 1
        self.uploads[upload_id] = {"bucket": bucket, "key": key, "parts": {}}
        return upload_id

    async def upload_part(self, bucket, key, upload_id, part_number, body, content_md5):
        self.calls.append(("upload_part", part_number, len(body)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.part_delay.get(part_number, 0))
            if part_number in self.fail_part:
                raise self.fail_part[part_number]
            digest = hashlib.md5(body).digest()
            if content_md5 != base64.b64encode(digest).decode():
                raise ServiceError("BadDigest", "Content-MD5 mismatch", 400)
            etag = f'"{digest.hex()}"'
            self.uploads[upload_id]["parts"][part_number] = (etag, bytes(body))
            return etag
        finally:
            self.in_flight -= 1

    async def complete_multipart_upload(self, bucket, key, upload_id, parts):
        self.calls.append(("complete", [number for number, _ in parts]))
        if self.fail_complete is not None:
            raise self.fail_complete
        if not parts:
            raise ServiceError("MalformedXML", "No parts", 400)
        numbers = [number for number, _ in parts]
        if numbers != sorted(numbers):
            raise ServiceError("InvalidPartOrder", "Parts not ascending", 400)
        upload = self.uploads.pop(upload_id)
        for number, etag in parts:
            if upload["parts"].get(number, (None,))[0] != etag:
                raise ServiceError("InvalidPart", f"Unknown part {number}", 400)
        data = b"".join(upload["parts"][number][1] for number in numbers)
        self.objects[(bucket, key)] = data
        self.completed_parts = {number: upload["parts"][number][1] for number in numbers}
        return CompletedUpload(
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            etag=f"{hashlib.md5(data).hexdigest()}-{len(parts)}",
        )

    async def abort_multipart_upload(self, bucket, key, upload_id):
        self.calls.append(("abort", upload_id))
        if self.fail_abort is not None:
            raise self.fail_abort
        self.uploads.pop(upload_id, None)


@pytest.fixture
def storage() -> FakeStorageClient:
    """A fresh in-memory storage client per test."""
    return FakeStorageClient()


@pytest.fixture
def make_session(storage):
    """Factory for sessions against the fake storage with small parts allowed."""

    def _make(part_size: int = 4, concurrency: int | None = 4, **kwargs) -> MultipartSession:
        return MultipartSession(
            storage,
            "test-bucket",
            "test-key",
            part_size=part_size,
            concurrency=concurrency,
            enforce_part_size_limits=False,
            **kwargs,
        )

    return _make

