"""S3-compatible object storage for generated export documents.

Provides boto3 client creation, write-once uploads, signed download URLs
and bucket validation for S3, Cloudflare R2 or MinIO.
"""

from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from loguru import logger


class StorageObjectExistsError(FileExistsError):
    """Raised when an upload would overwrite an existing object."""


class ExportStorage(Protocol):
    """Blob storage used by the export processor."""

    def upload(self, key: str, body: bytes, content_type: str) -> int:
        """Store ``body`` at ``key`` without overwriting; return the stored size."""
        ...

    def signed_url(self, key: str, expires_in: int) -> str:
        """Return a time-limited download URL for ``key``."""
        ...


def create_storage_client(
    *,
    endpoint_url: str | None = None,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
    region_name: str = "auto",
) -> Any:
    """Create a boto3 S3 client.

    Checksums are only computed when required, which R2 and MinIO need
    with boto3 v1.36.0+.

    Args:
        endpoint_url: Custom S3-compatible endpoint; AWS when None.
        access_key_id: Access key (falls back to the boto3 credential chain).
        secret_access_key: Secret key.
        region_name: Region name.

    Returns:
        Configured boto3 S3 client.
    """
    config = Config(
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        region_name=region_name,
        config=config,
    )


def object_exists(client: Any, bucket: str, key: str) -> bool:
    """Return True if an object exists at ``key``."""
    try:
        client.head_object(Bucket=bucket, Key=key)
    except ClientError as exc:
        if exc.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
            return False
        raise
    return True


def upload_bytes(
    client: Any,
    bucket: str,
    key: str,
    body: bytes,
    content_type: str,
) -> int:
    """Upload an in-memory document, refusing to replace an existing object.

    Args:
        client: boto3 S3 client.
        bucket: Bucket name.
        key: S3 object key.
        body: Document bytes.
        content_type: MIME type stored with the object.

    Returns:
        Size of the stored object in bytes.

    Raises:
        StorageObjectExistsError: If ``key`` already holds an object.
        ClientError: On any other storage failure.
    """
    if object_exists(client, bucket, key):
        msg = f"Object already exists at s3://{bucket}/{key}"
        raise StorageObjectExistsError(msg)

    logger.info("Uploading {} bytes to s3://{}/{}", len(body), bucket, key)
    client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
    return len(body)


def generate_signed_url(client: Any, bucket: str, key: str, expires_in: int = 3600) -> str:
    """Create a presigned GET URL for ``key`` valid for ``expires_in`` seconds."""
    return client.generate_presigned_url(
        "get_object",
        Params={"Bucket": bucket, "Key": key},
        ExpiresIn=expires_in,
    )


def validate_config(client: Any, bucket: str) -> None:
    """Verify bucket access.

    Args:
        client: boto3 S3 client.
        bucket: Bucket name to validate.

    Raises:
        ClientError: If the bucket doesn't exist or credentials are invalid.
    """
    try:
        client.head_bucket(Bucket=bucket)
        logger.debug("Bucket s3://{} is accessible", bucket)
    except ClientError as exc:
        error_code = exc.response["Error"]["Code"]
        if error_code == "404":
            msg = f"Bucket '{bucket}' not found. Verify EXPORT_BUCKET is correct."
            raise ClientError(exc.response, "HeadBucket") from ValueError(msg)
        if error_code in ("403", "401"):
            msg = f"Access denied to bucket '{bucket}'. Verify storage credentials."
            raise ClientError(exc.response, "HeadBucket") from PermissionError(msg)
        raise


class S3ExportStorage:
    """``ExportStorage`` backed by an S3-compatible bucket."""

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def upload(self, key: str, body: bytes, content_type: str) -> int:
        return upload_bytes(self.client, self.bucket, key, body, content_type)

    def signed_url(self, key: str, expires_in: int) -> str:
        return generate_signed_url(self.client, self.bucket, key, expires_in)
