"""
S3 adapter: ObjectStore over a boto3 S3 client.

- put / get / delete of offloaded payloads, keyed by (bucket, key)
- Multipart upload above 8 MiB, aborted on failure
- Retries transient server/network errors with exponential backoff + jitter
- Maps S3 error codes to FileNotFoundError / PermissionError / ValueError
- Runs blocking boto3 calls in a worker thread
"""

from __future__ import annotations

import asyncio
import io
import random
import time
from typing import Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .logging import get_logger


MULTIPART_THRESHOLD = 8 * 1024 * 1024   # 8 MiB
PART_SIZE = 16 * 1024 * 1024            # 16 MiB
CONTENT_TYPE = "application/octet-stream"


# ============================================================================
# S3 OBJECT STORE
# ============================================================================

class S3ObjectStore:
    """
    ObjectStore backed by boto3.

    Args:
        s3_client: boto3 S3 client (if None, creates one lazily)
        region: AWS region (used if creating the client)
        endpoint_url: custom endpoint (MinIO/LocalStack/R2)
        max_retries: attempts for transient errors
        logger: StructuredLogger instance
    """

    def __init__(
        self,
        s3_client=None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        max_retries: int = 3,
        logger=None,
    ):
        self._s3 = s3_client
        self._region = region
        self._endpoint_url = endpoint_url
        self.max_retries = max_retries
        self.logger = logger or get_logger("sqs_extended.io_storage")
        self._transient_codes = {
            "500", "503", "RequestTimeout", "SlowDown",
            "InternalError", "ServiceUnavailable",
        }
        self._network_exceptions = (
            EndpointConnectionError, ReadTimeoutError,
            ConnectionClosedError, ConnectTimeoutError,
        )

    @property
    def s3(self):
        """Lazy-load S3 client."""
        if self._s3 is None:
            self._s3 = boto3.client(
                "s3",
                region_name=self._region,
                endpoint_url=self._endpoint_url,
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._s3

    # ------------------------------------------------------------------------
    # OBJECTSTORE API
    # ------------------------------------------------------------------------

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        await asyncio.to_thread(self.put_bytes, bucket, key, data)

    async def get(self, bucket: str, key: str) -> bytes:
        return await asyncio.to_thread(self.get_bytes, bucket, key)

    async def delete(self, bucket: str, key: str) -> None:
        await asyncio.to_thread(self.delete_object, bucket, key)

    # ------------------------------------------------------------------------
    # BLOCKING OPERATIONS
    # ------------------------------------------------------------------------

    def put_bytes(self, bucket: str, key: str, data: bytes) -> None:
        """Upload bytes (single-part below 8 MiB, multipart above)."""
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("put_bytes() expects bytes or bytearray")

        uri = f"s3://{bucket}/{key}"
        self.logger.debug("Uploading object", {"uri": uri, "size": len(data)})

        def _upload() -> None:
            if len(data) < MULTIPART_THRESHOLD:
                self.s3.put_object(Bucket=bucket, Key=key, Body=bytes(data), ContentType=CONTENT_TYPE)
            else:
                self._multipart_upload(bucket, key, bytes(data))

        self._with_retries("PUT", uri, _upload)

    def get_bytes(self, bucket: str, key: str, *, chunk_size: int = 15 * 1024 * 1024) -> bytes:
        """Download an object fully into memory."""
        uri = f"s3://{bucket}/{key}"

        def _download() -> bytes:
            resp = self.s3.get_object(Bucket=bucket, Key=key)
            body = resp["Body"]
            try:
                return b"".join(chunk for chunk in body.iter_chunks(chunk_size=chunk_size) if chunk)
            finally:
                body.close()

        return self._with_retries("GET", uri, _download)

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete object (idempotent for missing keys)."""
        uri = f"s3://{bucket}/{key}"

        def _delete() -> None:
            try:
                self.s3.delete_object(Bucket=bucket, Key=key)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "")
                if code in ("404", "NoSuchKey", "NotFound"):
                    return
                raise

        self._with_retries("DELETE", uri, _delete)

    # ------------------------------------------------------------------------
    # PRIVATE HELPERS
    # ------------------------------------------------------------------------

    def _with_retries(self, op: str, uri: str, func: Callable):
        for attempt in range(self.max_retries):
            try:
                return func()
            except ClientError as e:
                if not self._should_retry(e, attempt):
                    self.logger.error(f"{op} failed: {uri}", {"error": str(e), "attempt": attempt + 1})
                    self._raise_mapped_error(e, uri)
                self.logger.warning(f"{op} retry {attempt + 1}/{self.max_retries}", {"uri": uri})
                time.sleep(self._backoff(attempt))
            except self._network_exceptions:
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Network error on {op} (retry {attempt + 1})", {"uri": uri})
                    time.sleep(self._backoff(attempt))
                    continue
                raise

        raise RuntimeError(f"Failed to {op} after {self.max_retries} attempts: {uri}")

    def _multipart_upload(self, bucket: str, key: str, data: bytes) -> None:
        """Execute multipart upload for large payloads."""
        create_resp = self.s3.create_multipart_upload(Bucket=bucket, Key=key, ContentType=CONTENT_TYPE)
        upload_id = create_resp["UploadId"]

        try:
            parts = []
            stream = io.BytesIO(data)
            part_number = 1

            while True:
                chunk = stream.read(PART_SIZE)
                if not chunk:
                    break
                up = self.s3.upload_part(
                    Bucket=bucket, Key=key,
                    PartNumber=part_number, UploadId=upload_id,
                    Body=chunk,
                )
                parts.append({"ETag": up["ETag"], "PartNumber": part_number})
                part_number += 1

            self.s3.complete_multipart_upload(
                Bucket=bucket, Key=key, UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except Exception:
            self._abort_multipart_silent(bucket, key, upload_id)
            raise

    def _should_retry(self, error: ClientError, attempt: int) -> bool:
        """Check if error is transient and we have retries left."""
        code = error.response.get("Error", {}).get("Code", "")
        return code in self._transient_codes and attempt < self.max_retries - 1

    def _raise_mapped_error(self, error: ClientError, uri: str) -> None:
        """Map ClientError to Python exceptions."""
        code = error.response.get("Error", {}).get("Code", "")

        if code in ("404", "NotFound", "NoSuchKey"):
            raise FileNotFoundError(f"Object not found: {uri}") from error
        if code == "NoSuchBucket":
            raise FileNotFoundError(f"Bucket not found: {uri}") from error
        if code in ("AccessDenied", "403"):
            raise PermissionError(f"Access denied: {uri}") from error
        if code in ("PermanentRedirect", "AuthorizationHeaderMalformed"):
            raise ValueError(f"Wrong region/endpoint for {uri}: {code}") from error

        raise error

    @staticmethod
    def _backoff(attempt: int) -> float:
        """Exponential backoff with jitter."""
        return (2 ** attempt) + random.uniform(0, 0.25)

    def _abort_multipart_silent(self, bucket: str, key: str, upload_id: str) -> None:
        """Abort multipart upload; the original upload error is what gets raised."""
        try:
            self.s3.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
        except (ClientError, *self._network_exceptions) as e:
            self.logger.warning("Failed to abort multipart upload", {
                "uri": f"s3://{bucket}/{key}", "error": str(e),
            })


__all__ = ["S3ObjectStore"]
