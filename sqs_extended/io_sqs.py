"""
SQS adapter: QueueService over a boto3 SQS client.

- Lazily creates a boto3 client tuned for long-polling
- Retries transient failures (throttling, 5xx, network) with backoff + jitter
- Splits batch calls into chunks of 10 and merges Successful/Failed
- Runs blocking boto3 calls in a worker thread so the event loop stays free
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .constants import SQS_MAX_BATCH_ENTRIES
from .logging import get_logger
from .sizing import message_size


# ============================================================================
# CONSTANTS
# ============================================================================

RETRIABLE_ERROR_CODES = {
    "Throttling", "ThrottlingException", "ServiceUnavailable",
    "RequestThrottled", "InternalError", "InternalFailure",
    "ProvisionedThroughputExceededException", "RequestTimeout",
    "500", "502", "503", "504",
}
SQS_MAX_BODY_BYTES = 256 * 1024
SQS_MAX_VISIBILITY = 43_200  # 12h hard SQS limit


# ============================================================================
# SQS QUEUE SERVICE
# ============================================================================

class SQSQueueService:
    """
    QueueService backed by boto3.

    Args:
        sqs_client: boto3 SQS client (if None, creates one lazily)
        region: AWS region (used if creating the client)
        endpoint_url: custom endpoint (LocalStack/ElasticMQ)
        max_retries: attempts for transient errors
        logger: StructuredLogger instance
    """

    def __init__(
        self,
        sqs_client=None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        max_retries: int = 5,
        logger=None,
    ):
        self._sqs = sqs_client
        self._region = region
        self._endpoint_url = endpoint_url
        self.max_retries = max_retries
        self.logger = logger or get_logger("sqs_extended.io_sqs")

    @property
    def sqs(self):
        """Lazy-load SQS client with long-polling config."""
        if self._sqs is None:
            self._sqs = boto3.client(
                "sqs",
                region_name=self._region,
                endpoint_url=self._endpoint_url,
                config=Config(
                    retries={"max_attempts": 6, "mode": "standard"},
                    read_timeout=70,     # > 20s long-poll
                    connect_timeout=3,
                ),
            )
        return self._sqs

    # ------------------------------------------------------------------------
    # SINGLE-MESSAGE OPERATIONS
    # ------------------------------------------------------------------------

    async def send_message(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._ensure_size_ok(params)
        self._ensure_fifo_group(params.get("QueueUrl", ""), params)
        return await self._call(self.sqs.send_message, params)

    async def receive_message(self, params: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._call(self.sqs.receive_message, params)
        messages = resp.get("Messages") or []
        if messages:
            self.logger.info(f"Received {len(messages)} message(s)", {"queue_url": params.get("QueueUrl")})
        return resp

    async def delete_message(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._ensure_receipt_handle("delete_message", params)
        return await self._call(self.sqs.delete_message, params)

    async def change_message_visibility(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._ensure_receipt_handle("change_message_visibility", params)
        timeout = params.get("VisibilityTimeout")
        if not isinstance(timeout, int) or timeout < 0:
            raise ValueError("change_message_visibility: VisibilityTimeout must be non-negative int")
        params = dict(params, VisibilityTimeout=min(timeout, SQS_MAX_VISIBILITY))
        return await self._call(self.sqs.change_message_visibility, params)

    # ------------------------------------------------------------------------
    # BATCH OPERATIONS
    # ------------------------------------------------------------------------

    async def send_message_batch(self, params: Dict[str, Any]) -> Dict[str, Any]:
        queue_url = params.get("QueueUrl", "")
        for entry in params.get("Entries") or []:
            self._ensure_size_ok(entry)
            self._ensure_fifo_group(queue_url, entry)
        return await self._call_batched(self.sqs.send_message_batch, params)

    async def delete_message_batch(self, params: Dict[str, Any]) -> Dict[str, Any]:
        for entry in params.get("Entries") or []:
            self._ensure_receipt_handle("delete_message_batch", entry)
        return await self._call_batched(self.sqs.delete_message_batch, params)

    async def change_message_visibility_batch(self, params: Dict[str, Any]) -> Dict[str, Any]:
        for entry in params.get("Entries") or []:
            self._ensure_receipt_handle("change_message_visibility_batch", entry)
        return await self._call_batched(self.sqs.change_message_visibility_batch, params)

    async def _call_batched(self, func: Callable, params: Dict[str, Any]) -> Dict[str, Any]:
        """Issue the batch in chunks of 10 and merge the results."""
        entries: List[Dict[str, Any]] = list(params.get("Entries") or [])
        if len(entries) <= SQS_MAX_BATCH_ENTRIES:
            return await self._call(func, params)

        merged: Dict[str, Any] = {"Successful": [], "Failed": []}
        for start in range(0, len(entries), SQS_MAX_BATCH_ENTRIES):
            chunk = dict(params, Entries=entries[start:start + SQS_MAX_BATCH_ENTRIES])
            resp = await self._call(func, chunk)
            merged["Successful"].extend(resp.get("Successful", []))
            merged["Failed"].extend(resp.get("Failed", []))

        if merged["Failed"]:
            self.logger.warning("Batch had failed entries", {
                "queue_url": params.get("QueueUrl"),
                "failed": [f.get("Id") for f in merged["Failed"]],
            })
        return merged

    # ------------------------------------------------------------------------
    # PRIVATE HELPERS
    # ------------------------------------------------------------------------

    async def _call(self, func: Callable, params: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._retry, func, **params)

    def _retry(self, func: Callable, *args, **kwargs):
        """Retry a boto3 call with exponential backoff on retriable errors."""
        delay = 0.25
        for attempt in range(1, self.max_retries + 1):
            try:
                return func(*args, **kwargs)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "")
                if code in RETRIABLE_ERROR_CODES and attempt < self.max_retries:
                    self.logger.warning(f"SQS retry {attempt}/{self.max_retries}", {"code": code})
                    time.sleep(delay + random.uniform(0, 0.25))
                    delay = min(delay * 2, 5.0)
                    continue
                raise
            except BotoCoreError as e:
                if attempt < self.max_retries:
                    self.logger.warning(f"SQS network retry {attempt}/{self.max_retries}", {"error": str(e)})
                    time.sleep(delay + random.uniform(0, 0.25))
                    delay = min(delay * 2, 5.0)
                    continue
                raise
        raise RuntimeError(f"Failed after {self.max_retries} attempts")

    @staticmethod
    def _is_fifo_queue(queue_url: str) -> bool:
        """Detect FIFO queue by URL suffix."""
        return queue_url.lower().endswith(".fifo")

    def _ensure_fifo_group(self, queue_url: str, params: Dict[str, Any]) -> None:
        if self._is_fifo_queue(queue_url) and not params.get("MessageGroupId"):
            raise ValueError(f"FIFO queue requires MessageGroupId: {queue_url}")

    @staticmethod
    def _ensure_size_ok(params: Dict[str, Any]) -> None:
        """Guard against SQS 256 KB hard limit."""
        if message_size(params) > SQS_MAX_BODY_BYTES:
            raise ValueError("SQS message > 256KB; offloading threshold is set above the SQS limit")

    @staticmethod
    def _ensure_receipt_handle(operation: str, params: Dict[str, Any]) -> None:
        handle = params.get("ReceiptHandle")
        if not isinstance(handle, str) or not handle.strip():
            raise ValueError(f"{operation}: ReceiptHandle required")


__all__ = ["SQSQueueService", "RETRIABLE_ERROR_CODES", "SQS_MAX_BODY_BYTES"]
