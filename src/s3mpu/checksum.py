"""Incremental Content-MD5 computation for multipart parts."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass

from s3mpu.errors import InvalidState


@dataclass(frozen=True)
class Checksum:
    """Final digest of a part.

    Attributes:
        digest: The raw 16-byte MD5 digest.
        b64: Base64 form of ``digest``, as sent in the Content-MD5 header.
    """

    digest: bytes
    b64: str

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()


class ChecksumAccumulator:
    """Running MD5 over the bytes of a single part."""

    def __init__(self) -> None:
        self._md5 = hashlib.md5()
        self._finalized = False

    def update(self, data: bytes | bytearray | memoryview) -> None:
        """Feed more bytes into the running digest.

        Raises:
            InvalidState: If the accumulator was already finalized.
        """
        if self._finalized:
            raise InvalidState("Checksum accumulator already finalized")
        self._md5.update(data)

    def finalize(self) -> Checksum:
        """Consume the accumulator and return the final checksum.

        Raises:
            InvalidState: If the accumulator was already finalized.
        """
        if self._finalized:
            raise InvalidState("Checksum accumulator already finalized")
        self._finalized = True
        digest = self._md5.digest()
        return Checksum(digest=digest, b64=base64.b64encode(digest).decode("ascii"))


def checksum_of(data: bytes) -> Checksum:
    """Compute the checksum of a complete byte string."""
    acc = ChecksumAccumulator()
    acc.update(data)
    return acc.finalize()
