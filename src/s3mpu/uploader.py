"""Single-part upload against the storage service."""

import logging

from s3mpu.checksum import Checksum
from s3mpu.client import StorageClient
from s3mpu.models import UploadHandle

logger = logging.getLogger(__name__)


class PartUploader:
    """Uploads one numbered part per call and returns its ETag.

    No retries happen here; retry policy belongs to the storage client
    (botocore's retry configuration) or to the embedding application.

    Attributes:
        client: The storage client used for upload-part calls.
    """

    def __init__(self, client: StorageClient) -> None:
        self.client = client

    async def upload(
        self,
        handle: UploadHandle,
        part_number: int,
        data: bytes,
        checksum: Checksum,
    ) -> str:
        """Upload ``data`` as part ``part_number`` of ``handle``.

        Args:
            handle: The initiated upload.
            part_number: 1-based part number.
            data: The part's bytes.
            checksum: MD5 checksum of ``data``.

        Returns:
            The ETag the service assigned to the part.

        Raises:
            TransportError: If the service could not be reached.
            ServiceError: If the service rejected the part.
        """
        logger.debug(
            "Uploading part %d (%d bytes) of %s",
            part_number,
            len(data),
            handle.upload_id,
            extra={"upload_id": handle.upload_id, "part_number": part_number},
        )
        return await self.client.upload_part(
            handle.bucket,
            handle.key,
            handle.upload_id,
            part_number,
            data,
            checksum.b64,
        )
