"""
s3-mpu E2E Test Configuration

Tests run against any S3-compatible endpoint (AWS, localstack, minio).
They are skipped unless the endpoint and an existing bucket are configured:

    S3MPU_ENDPOINT=http://localhost:4566
    S3MPU_BUCKET=s3-mpu-e2e
    AWS_ACCESS_KEY_ID=test
    AWS_SECRET_ACCESS_KEY=test
    S3MPU_REGION=us-east-1
"""

import os
import uuid

import boto3
import pytest
from botocore.config import Config

from s3mpu.client import AioBotocoreStorageClient
from s3mpu.config import ClientConfig

ENDPOINT = os.environ.get("S3MPU_ENDPOINT", "")
BUCKET = os.environ.get("S3MPU_BUCKET", "")
REGION = os.environ.get("S3MPU_REGION", "us-east-1")


def pytest_collection_modifyitems(config, items):
    skip = pytest.mark.skip(reason="S3MPU_ENDPOINT and S3MPU_BUCKET not set")
    for item in items:
        if "e2e" in item.nodeid.split("/"):
            item.add_marker(pytest.mark.e2e)
            if not (ENDPOINT and BUCKET):
                item.add_marker(skip)


@pytest.fixture(scope="session")
def bucket():
    return BUCKET


@pytest.fixture(scope="session")
def s3_client():
    """Create a boto3 S3 client for verifying uploads."""
    return boto3.client(
        "s3",
        endpoint_url=ENDPOINT,
        region_name=REGION,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 1, "mode": "standard"},
        ),
    )


@pytest.fixture()
async def storage_client():
    """An initialized aiobotocore storage client, closed after the test."""
    config = ClientConfig(region=REGION, endpoint_url=ENDPOINT, use_path_style=True)
    async with AioBotocoreStorageClient(config) as client:
        yield client


@pytest.fixture()
def object_key(s3_client, bucket):
    """Generate a unique object key, deleting the object afterwards."""
    key = f"s3mpu-e2e/{uuid.uuid4()}"
    yield key
    try:
        s3_client.delete_object(Bucket=bucket, Key=key)
    except Exception:
        pass  # Best-effort cleanup
