"""Storage library — public API for export document storage."""

from sis_api.lib.storage.s3 import (
    ExportStorage,
    S3ExportStorage,
    StorageObjectExistsError,
    create_storage_client,
    generate_signed_url,
    object_exists,
    upload_bytes,
    validate_config,
)

__all__ = [
    "ExportStorage",
    "S3ExportStorage",
    "StorageObjectExistsError",
    "create_storage_client",
    "generate_signed_url",
    "object_exists",
    "upload_bytes",
    "validate_config",
]
