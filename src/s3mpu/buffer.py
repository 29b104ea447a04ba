"""Byte accumulator that cuts an incoming stream into fixed-size parts."""

from collections.abc import Iterator


class PartBuffer:
    """Coalesces arbitrarily sized chunks into parts of ``part_size`` bytes.

    Chunks are appended with push(). Complete parts are taken out with
    drain_ready(), which removes them in FIFO order and leaves anything
    shorter than ``part_size`` buffered. At end of stream flush_remainder()
    hands back whatever is left, regardless of size.

    Attributes:
        part_size: Size at which a part is cut.
    """

    def __init__(self, part_size: int) -> None:
        if part_size <= 0:
            raise ValueError(f"part_size must be positive, got {part_size}")
        self.part_size = part_size
        self._pending = bytearray()

    def __len__(self) -> int:
        return len(self._pending)

    def push(self, chunk: bytes | bytearray | memoryview) -> int:
        """Append a chunk to the pending bytes.

        Returns:
            The number of bytes appended. For a memoryview this is its
            ``nbytes``, not its item count.
        """
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise TypeError(f"expected a bytes-like chunk, got {type(chunk).__name__}")
        view = memoryview(chunk).cast("B")
        self._pending += view
        return view.nbytes

    def drain_ready(self) -> Iterator[bytes]:
        """Yield every complete part currently buffered.

        Each yielded part is exactly ``part_size`` bytes and is removed from
        the buffer before it is yielded.
        """
        while len(self._pending) >= self.part_size:
            part = bytes(self._pending[: self.part_size])
            del self._pending[: self.part_size]
            yield part

    def flush_remainder(self) -> bytes:
        """Return all remaining bytes (possibly empty) and clear the buffer."""
        remainder = bytes(self._pending)
        self._pending.clear()
        return remainder
