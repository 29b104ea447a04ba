"""s3-mpu: stream bytes of unknown length into an S3 multipart upload."""

from s3mpu.buffer import PartBuffer
from s3mpu.checksum import Checksum, ChecksumAccumulator
from s3mpu.client import AioBotocoreStorageClient, StorageClient
from s3mpu.config import S3MpuConfig, UploadConfig, load_config
from s3mpu.errors import (
    IncompletePartSequence,
    InvalidState,
    MultipartError,
    PartLimitExceeded,
    ServiceError,
    TransportError,
)
from s3mpu.models import MAX_PART_SIZE, MAX_PARTS, MIN_PART_SIZE, CompletedUpload
from s3mpu.session import MultipartSession, SessionState
from s3mpu.sink import StreamSink, upload_stream

__version__ = "0.2.0"

__all__ = [
    "AioBotocoreStorageClient",
    "Checksum",
    "ChecksumAccumulator",
    "CompletedUpload",
    "IncompletePartSequence",
    "InvalidState",
    "MAX_PARTS",
    "MAX_PART_SIZE",
    "MIN_PART_SIZE",
    "MultipartError",
    "MultipartSession",
    "PartBuffer",
    "PartLimitExceeded",
    "S3MpuConfig",
    "ServiceError",
    "SessionState",
    "StorageClient",
    "StreamSink",
    "TransportError",
    "UploadConfig",
    "load_config",
    "upload_stream",
]
