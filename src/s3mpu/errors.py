"""Error definitions for s3-mpu multipart upload sessions."""


class MultipartError(Exception):
    """Base error for multipart upload failures.

    Attributes:
        code: Short machine-readable error code (e.g. "TransportError").
        message: Human-readable error description.
        abort_error: Secondary error raised by the best-effort abort that
            followed this failure, if that abort itself failed.
    """

    def __init__(self, code: str, message: str) -> None:
        """Initialize the multipart error.

        Args:
            code: Error code.
            message: Error description.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.abort_error: BaseException | None = None


class TransportError(MultipartError):
    """Network-level failure talking to the storage service."""

    def __init__(self, message: str = "Could not reach the storage service") -> None:
        super().__init__(code="TransportError", message=message)


class ServiceError(MultipartError):
    """The storage service rejected the request.

    Attributes:
        service_code: The S3 error code string (e.g. "NoSuchUpload", "AccessDenied").
        http_status: The HTTP status code of the rejection, if known.
    """

    def __init__(
        self,
        service_code: str,
        message: str = "The storage service rejected the request",
        http_status: int | None = None,
    ) -> None:
        super().__init__(code="ServiceError", message=message)
        self.service_code = service_code
        self.http_status = http_status


class InvalidState(MultipartError):
    """The operation is not permitted in the session's current state."""

    def __init__(self, message: str = "Invalid session state") -> None:
        super().__init__(code="InvalidState", message=message)


class IncompletePartSequence(MultipartError):
    """Completion was attempted with gaps or disorder in the part numbers."""

    def __init__(
        self, message: str = "Part numbers are not a gap-free ascending sequence"
    ) -> None:
        super().__init__(code="IncompletePartSequence", message=message)


class PartLimitExceeded(MultipartError):
    """The upload needs more parts than the service allows."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            code="PartLimitExceeded",
            message=f"A multipart upload may not have more than {limit} parts",
        )
        self.limit = limit
