"""Data model types for s3-mpu.

These dataclasses describe the parts of a multipart upload, the handle that
identifies an in-progress upload on the storage service, and the object
reference returned once an upload is committed.
"""

from __future__ import annotations

from dataclasses import dataclass

from s3mpu.checksum import Checksum

# https://docs.aws.amazon.com/AmazonS3/latest/userguide/qfacts.html
MIN_PART_SIZE = 5 * 1024 * 1024
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024
MAX_PARTS = 10_000


@dataclass(frozen=True)
class UploadHandle:
    """Location and identity of an initiated multipart upload.

    Attributes:
        bucket: The target bucket name.
        key: The target object key.
        upload_id: The upload identifier returned at initiation.
    """

    bucket: str
    key: str
    upload_id: str


@dataclass
class Part:
    """A numbered chunk of the object's bytes.

    Attributes:
        number: 1-based part number, assigned when the part is cut.
        data: The part's bytes.
        checksum: MD5 checksum computed over exactly ``data``.
        etag: ETag returned by the service; None until the upload succeeds.
    """

    number: int
    data: bytes
    checksum: Checksum
    etag: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CompletedUpload:
    """Reference to an object committed by complete-multipart-upload.

    Attributes:
        bucket: The bucket name.
        key: The object key.
        upload_id: The upload identifier that was committed.
        etag: The multipart ETag of the object (quotes stripped).
        location: Object URL reported by the service, if any.
        version_id: Object version, when the bucket is versioned.
        part_count: Number of parts committed.
        size: Total object size in bytes.
    """

    bucket: str
    key: str
    upload_id: str
    etag: str = ""
    location: str | None = None
    version_id: str | None = None
    part_count: int = 0
    size: int = 0
