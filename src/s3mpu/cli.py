"""CLI entry point for s3-mpu."""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

from s3mpu.client import AioBotocoreStorageClient
from s3mpu.config import S3MpuConfig, load_config
from s3mpu.errors import MultipartError
from s3mpu.logging_config import configure_logging
from s3mpu.models import CompletedUpload
from s3mpu.sink import upload_stream

# Read size for the source file; parts are assembled from these chunks.
_READ_SIZE = 1024 * 1024

logger = logging.getLogger("s3mpu")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="s3-mpu",
        description="Stream a file or stdin into an S3 multipart upload",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default="-",
        help="File to upload, or '-' for stdin (default: -)",
    )
    parser.add_argument("--bucket", required=True, help="Target bucket")
    parser.add_argument("--key", required=True, help="Target object key")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--part-size",
        type=int,
        default=None,
        help="Part size in bytes (overrides config, default: 5 MiB)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum part uploads in flight (overrides config, default: 4)",
    )
    parser.add_argument(
        "--endpoint-url",
        type=str,
        default=None,
        help="S3 endpoint URL (overrides config)",
    )
    parser.add_argument(
        "--content-type",
        type=str,
        default=None,
        help="Content-Type of the uploaded object",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    return parser.parse_args(argv)


async def read_chunks(fh: BinaryIO, size: int = _READ_SIZE) -> AsyncIterator[bytes]:
    """Yield chunks of ``fh`` without blocking the event loop."""
    while True:
        chunk = await asyncio.to_thread(fh.read, size)
        if not chunk:
            break
        yield chunk


async def run(config: S3MpuConfig, args: argparse.Namespace) -> CompletedUpload:
    """Upload ``args.source`` with the given configuration."""
    async with AioBotocoreStorageClient(config.client) as client:
        if args.source == "-":
            return await upload_stream(
                client,
                args.bucket,
                args.key,
                read_chunks(sys.stdin.buffer),
                config.upload,
                content_type=args.content_type,
            )
        with open(args.source, "rb") as fh:
            return await upload_stream(
                client,
                args.bucket,
                args.key,
                read_chunks(fh),
                config.upload,
                content_type=args.content_type,
            )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the s3-mpu CLI.

    Loads configuration, applies CLI overrides, uploads the source and
    prints the committed object reference as JSON on stdout.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = load_config(args.config) if args.config else S3MpuConfig()
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    # Apply CLI overrides
    if args.part_size is not None:
        config.upload.part_size = args.part_size
    if args.concurrency is not None:
        config.upload.concurrency = args.concurrency
    if args.endpoint_url is not None:
        config.client.endpoint_url = args.endpoint_url
    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format

    configure_logging(level=config.logging.level, fmt=config.logging.format)

    try:
        result = asyncio.run(run(config, args))
    except (MultipartError, ValueError, OSError) as exc:
        logger.error("Upload to %s/%s failed: %s", args.bucket, args.key, exc)
        abort_error = getattr(exc, "abort_error", None)
        if abort_error is not None:
            logger.error("Abort also failed, the upload may be orphaned: %s", abort_error)
        sys.exit(1)

    print(json.dumps(dataclasses.asdict(result)))


if __name__ == "__main__":
    main()
