"""
Extended SQS client: transparent S3 offloading of large message bodies.

Operations mirror the SQS API and take the same keyword arguments as boto3:

    client = ExtendedSQSClient(queue, store, bucket_name="my-offload-bucket")
    await client.send_message(QueueUrl=url, MessageBody=big_text)
    resp = await client.receive_message(QueueUrl=url, MaxNumberOfMessages=10)
    for msg in resp.get("Messages", []):
        await client.delete_message(QueueUrl=url, ReceiptHandle=msg["ReceiptHandle"])

Consistency between queue and store comes from call ordering only:
- send: the object is written before the queue send starts
- delete: the object is deleted before the queue entry
The client holds no state between calls beyond its configuration and never
retries; every collaborator failure surfaces as StorageError or QueueError.
"""

from __future__ import annotations

import asyncio
import functools
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .config import ExtendedClientConfig
from .constants import COMPATIBILITY_ATTRIBUTE_NAMES, DEFAULT_MESSAGE_SIZE_THRESHOLD, RESERVED_ATTRIBUTE_NAME
from .contracts import LoggerProto, ObjectStore, QueueRequest, QueueResponse, QueueService
from .exceptions import ConfigurationError, ExtendedClientError, QueueError, StorageError
from .logging import get_logger
from .pointer import (
    StoragePointer,
    decode_attribute,
    decode_message_pointer,
    embed_in_token,
    encode_attribute,
    extract_from_token,
    strip_token,
)
from .transforms import (
    ReceiveTransform,
    SendTransform,
    default_receive_transform,
    default_send_transform,
)


# ============================================================================
# TYPES
# ============================================================================

# (rewritten request, pointer to store under or None, content to store)
PreparedSend = Tuple[QueueRequest, Optional[StoragePointer], Any]


def _to_bytes(content: Any) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode("utf-8")
    raise TypeError(f"Offloaded content must be str or bytes, got {type(content).__name__}")


# ============================================================================
# CLIENT
# ============================================================================

class ExtendedSQSClient:
    """
    Wraps a QueueService and an ObjectStore.

    Args:
        queue: QueueService implementation (e.g. io_sqs.SQSQueueService)
        store: ObjectStore implementation (e.g. io_storage.S3ObjectStore)
        bucket_name: bucket for new offloaded payloads; required to send
        message_size_threshold: bytes above which the default transform offloads
        always_offload: offload every message regardless of size
        send_transform / receive_transform: replace the default transforms
        reserved_attribute_name: pointer attribute written on send
        legacy_attribute_names: extra pointer attribute names accepted on read
        compatibility_mode: also read JSON body pointers signalled by the
            ExtendedPayloadSize / SQSLargePayloadSize attributes
        logger: StructuredLogger (default: get_logger("sqs_extended.client"))
    """

    def __init__(
        self,
        queue: QueueService,
        store: ObjectStore,
        *,
        bucket_name: Optional[str] = None,
        message_size_threshold: int = DEFAULT_MESSAGE_SIZE_THRESHOLD,
        always_offload: bool = False,
        send_transform: Optional[SendTransform] = None,
        receive_transform: Optional[ReceiveTransform] = None,
        reserved_attribute_name: str = RESERVED_ATTRIBUTE_NAME,
        legacy_attribute_names: Sequence[str] = (),
        compatibility_mode: bool = False,
        logger: Optional[LoggerProto] = None,
    ):
        self.queue = queue
        self.store = store
        self.bucket_name = bucket_name
        self.message_size_threshold = message_size_threshold
        self.always_offload = always_offload
        self.send_transform = send_transform or functools.partial(
            default_send_transform,
            always_offload=always_offload,
            threshold=message_size_threshold,
        )
        self.receive_transform = receive_transform or default_receive_transform
        self.reserved_attribute_name = reserved_attribute_name
        self.legacy_attribute_names = tuple(legacy_attribute_names)
        self.compatibility_mode = compatibility_mode
        self.logger = logger or get_logger("sqs_extended.client")

    @classmethod
    def from_config(
        cls,
        queue: QueueService,
        store: ObjectStore,
        config: ExtendedClientConfig,
        **overrides: Any,
    ) -> "ExtendedSQSClient":
        """Build a client from a loaded ExtendedClientConfig."""
        kwargs: Dict[str, Any] = {
            "bucket_name": config.storage.bucket,
            "message_size_threshold": config.offload.message_size_threshold,
            "always_offload": config.offload.always_offload,
            "reserved_attribute_name": config.offload.reserved_attribute_name,
            "legacy_attribute_names": config.offload.legacy_attribute_names,
            "compatibility_mode": config.offload.compatibility_mode,
        }
        kwargs.update(overrides)
        return cls(queue, store, **kwargs)

    # ------------------------------------------------------------------------
    # ATTRIBUTE NAMES
    # ------------------------------------------------------------------------

    @property
    def pointer_attribute_names(self) -> Tuple[str, ...]:
        """Pointer attribute names in lookup priority order."""
        return (self.reserved_attribute_name, *self.legacy_attribute_names)

    def receive_attribute_names(self) -> Tuple[str, ...]:
        """Attribute names every receive must request."""
        names = self.pointer_attribute_names
        if self.compatibility_mode:
            names = names + COMPATIBILITY_ATTRIBUTE_NAMES
        return names

    # ------------------------------------------------------------------------
    # SEND
    # ------------------------------------------------------------------------

    async def send_message(self, **params: Any) -> QueueResponse:
        """
        Send one message, offloading its body to S3 when the send transform
        says so. The object write completes before the queue send starts.

        Raises:
            ConfigurationError: no bucket_name configured
            StorageError: object write failed (queue never called)
            QueueError: queue send failed (the stored object is left behind)
        """
        self._require_bucket()
        send_params, pointer, content = self._prepare_send(params)

        if pointer is not None:
            await self._store_content(pointer, content)

        return await self._call_queue("send_message", send_params)

    async def send_message_batch(self, **params: Any) -> QueueResponse:
        """
        Send a batch. Each entry is decided independently; every required
        object write runs concurrently and all must succeed before the single
        queue batch call.
        """
        self._require_bucket()
        prepared = [self._prepare_send(entry) for entry in params.get("Entries") or []]

        batch_params = dict(params)
        batch_params["Entries"] = [entry for entry, _, _ in prepared]

        writes = [
            self._store_content(pointer, content)
            for _, pointer, content in prepared
            if pointer is not None
        ]
        if writes:
            await asyncio.gather(*writes)

        return await self._call_queue("send_message_batch", batch_params)

    def _prepare_send(self, params: QueueRequest) -> PreparedSend:
        """Apply the send transform and attach a pointer if needed."""
        send_params = dict(params)
        result = self.send_transform(send_params)
        attributes = dict(send_params.get("MessageAttributes") or {})

        # Caller already stored the content and supplied the pointer
        existing = decode_attribute(attributes, self.pointer_attribute_names)
        if existing is not None:
            send_params["MessageBody"] = (
                result.message_body if result.message_body is not None else existing.key
            )
            self.logger.debug("Pointer attribute supplied by caller; skipping offload", {
                "bucket": existing.bucket,
                "key": existing.key,
            })
            return send_params, None, None

        if result.offloaded_content is None:
            if result.message_body is not None:
                send_params["MessageBody"] = result.message_body
            return send_params, None, None

        pointer = StoragePointer(key=str(uuid.uuid4()), bucket=self.bucket_name)
        attributes[self.reserved_attribute_name] = encode_attribute(pointer)
        send_params["MessageAttributes"] = attributes
        send_params["MessageBody"] = (
            result.message_body if result.message_body is not None else pointer.key
        )
        self.logger.debug("Offloading message body", {"bucket": pointer.bucket, "key": pointer.key})
        return send_params, pointer, result.offloaded_content

    # ------------------------------------------------------------------------
    # RECEIVE
    # ------------------------------------------------------------------------

    async def receive_message(self, **params: Any) -> QueueResponse:
        """
        Receive messages, fetching offloaded bodies from S3.

        Offloaded messages come back with the original body and a receipt
        handle that carries the pointer, so delete_message can clean up the
        object later. A failed fetch fails the whole call.
        """
        names: List[str] = list(params.get("MessageAttributeNames") or [])
        for name in self.receive_attribute_names():
            if name not in names:
                names.append(name)

        receive_params = dict(params)
        receive_params["MessageAttributeNames"] = names

        response = await self._call_queue("receive_message", receive_params)
        messages = (response or {}).get("Messages")
        if not messages:
            return response

        processed = await asyncio.gather(*(self._process_received(m) for m in messages))
        out = dict(response)
        out["Messages"] = list(processed)
        return out

    async def _process_received(self, message: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(message)
        body, pointer = await self.resolve_message(out)
        out["Body"] = body
        if pointer is not None:
            out["ReceiptHandle"] = embed_in_token(pointer.bucket, pointer.key, out.get("ReceiptHandle", ""))
        return out

    async def resolve_message(self, message: Dict[str, Any]) -> Tuple[Any, Optional[StoragePointer]]:
        """
        Logical body of a received message (SDK or event-record shape) and
        the pointer it was fetched through, if any. Does not modify ``message``.
        """
        pointer = decode_message_pointer(
            message,
            attribute_names=self.pointer_attribute_names,
            compatibility_mode=self.compatibility_mode,
        )
        if pointer is None:
            return self.receive_transform(message, None), None

        pointer = self._resolve_bucket(pointer)
        content = await self._fetch_content(pointer)
        return self.receive_transform(message, content), pointer

    # ------------------------------------------------------------------------
    # DELETE
    # ------------------------------------------------------------------------

    async def delete_message(self, **params: Any) -> QueueResponse:
        """
        Delete a message and its offloaded body.

        The object is deleted first: a failure between the two calls leaves
        an orphaned object rather than a queue entry pointing at nothing.
        """
        delete_params, pointer = self._prepare_delete(params)
        if pointer is not None:
            await self._delete_content(pointer)
        return await self._call_queue("delete_message", delete_params)

    async def delete_message_batch(self, **params: Any) -> QueueResponse:
        """
        Delete a batch. All object deletes run concurrently and must succeed
        before the queue batch delete; objects already deleted when a sibling
        fails are not restored.
        """
        prepared = [self._prepare_delete(entry) for entry in params.get("Entries") or []]

        batch_params = dict(params)
        batch_params["Entries"] = [entry for entry, _ in prepared]

        deletes = [self._delete_content(pointer) for _, pointer in prepared if pointer is not None]
        if deletes:
            await asyncio.gather(*deletes)

        return await self._call_queue("delete_message_batch", batch_params)

    def _prepare_delete(self, params: QueueRequest) -> Tuple[QueueRequest, Optional[StoragePointer]]:
        out = dict(params)
        handle = out.get("ReceiptHandle")
        if not isinstance(handle, str):
            return out, None

        bucket, key = extract_from_token(handle)
        out["ReceiptHandle"] = strip_token(handle)
        if not key:
            return out, None
        return out, self._resolve_bucket(StoragePointer(key=key, bucket=bucket))

    # ------------------------------------------------------------------------
    # VISIBILITY
    # ------------------------------------------------------------------------

    async def change_message_visibility(self, **params: Any) -> QueueResponse:
        """Forward with the original receipt handle; S3 is not touched."""
        return await self._call_queue("change_message_visibility", self._strip_params(params))

    async def change_message_visibility_batch(self, **params: Any) -> QueueResponse:
        batch_params = dict(params)
        batch_params["Entries"] = [self._strip_params(e) for e in params.get("Entries") or []]
        return await self._call_queue("change_message_visibility_batch", batch_params)

    @staticmethod
    def _strip_params(params: QueueRequest) -> QueueRequest:
        out = dict(params)
        if isinstance(out.get("ReceiptHandle"), str):
            out["ReceiptHandle"] = strip_token(out["ReceiptHandle"])
        return out

    # ------------------------------------------------------------------------
    # COLLABORATOR CALLS
    # ------------------------------------------------------------------------

    def _require_bucket(self) -> None:
        if not self.bucket_name:
            raise ConfigurationError("bucket_name is required for sending messages")

    def _resolve_bucket(self, pointer: StoragePointer) -> StoragePointer:
        pointer = pointer.with_default_bucket(self.bucket_name)
        if not pointer.bucket:
            raise ConfigurationError(
                f"Pointer for key {pointer.key} has no bucket and no bucket_name is configured"
            )
        return pointer

    async def _store_content(self, pointer: StoragePointer, content: Any) -> None:
        data = _to_bytes(content)
        try:
            await self.store.put(pointer.bucket, pointer.key, data)
        except ExtendedClientError:
            raise
        except Exception as e:
            self.logger.error("Failed to store offloaded payload", {
                "bucket": pointer.bucket, "key": pointer.key, "error": str(e),
            })
            raise StorageError(
                f"put s3://{pointer.bucket}/{pointer.key} failed: {e}",
                operation="put", bucket=pointer.bucket, key=pointer.key,
            ) from e
        self.logger.info("Stored offloaded payload", {
            "bucket": pointer.bucket, "key": pointer.key, "size": len(data),
        })

    async def _fetch_content(self, pointer: StoragePointer) -> Union[str, bytes]:
        """Stored content as text, or as raw bytes when it is not valid UTF-8."""
        try:
            data = await self.store.get(pointer.bucket, pointer.key)
        except ExtendedClientError:
            raise
        except Exception as e:
            self.logger.error("Failed to fetch offloaded payload", {
                "bucket": pointer.bucket, "key": pointer.key, "error": str(e),
            })
            raise StorageError(
                f"get s3://{pointer.bucket}/{pointer.key} failed: {e}",
                operation="get", bucket=pointer.bucket, key=pointer.key,
            ) from e
        self.logger.info("Fetched offloaded payload", {
            "bucket": pointer.bucket, "key": pointer.key, "size": len(data),
        })
        if not isinstance(data, (bytes, bytearray)):
            return data
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return bytes(data)

    async def _delete_content(self, pointer: StoragePointer) -> None:
        try:
            await self.store.delete(pointer.bucket, pointer.key)
        except ExtendedClientError:
            raise
        except Exception as e:
            self.logger.error("Failed to delete offloaded payload", {
                "bucket": pointer.bucket, "key": pointer.key, "error": str(e),
            })
            raise StorageError(
                f"delete s3://{pointer.bucket}/{pointer.key} failed: {e}",
                operation="delete", bucket=pointer.bucket, key=pointer.key,
            ) from e
        self.logger.info("Deleted offloaded payload", {"bucket": pointer.bucket, "key": pointer.key})

    async def _call_queue(self, operation: str, params: QueueRequest) -> QueueResponse:
        try:
            return await getattr(self.queue, operation)(params)
        except ExtendedClientError:
            raise
        except Exception as e:
            log = self.logger.bind(queue_url=params.get("QueueUrl"), operation=operation)
            log.error("Queue call failed", {"error": str(e)})
            raise QueueError(f"{operation} failed: {e}", operation=operation) from e


__all__ = ["ExtendedSQSClient"]
