# sqs_extended/contracts.py
"""
Capability contracts.

The extended client only ever talks to a queue and an object store through
these two protocols. Concrete adapters live in io_sqs.py (boto3 SQS) and
io_storage.py (boto3 S3); tests plug in in-memory fakes.

Queue methods take and return boto3-shaped request/response dicts:
    await queue.send_message({"QueueUrl": url, "MessageBody": "..."})
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

# ---------------------------
# Public type aliases
# ---------------------------

QueueRequest = Dict[str, Any]     # boto3 request kwargs, e.g. {"QueueUrl": ..., "Entries": [...]}
QueueResponse = Dict[str, Any]    # boto3 response dict, passed back to the caller unchanged


# ---------------------------
# Capability protocols (duck-typed)
# ---------------------------

@runtime_checkable
class QueueService(Protocol):
    """Queue operations used by the extended client."""
    async def send_message(self, params: QueueRequest) -> QueueResponse: ...
    async def send_message_batch(self, params: QueueRequest) -> QueueResponse: ...
    async def receive_message(self, params: QueueRequest) -> QueueResponse: ...
    async def delete_message(self, params: QueueRequest) -> QueueResponse: ...
    async def delete_message_batch(self, params: QueueRequest) -> QueueResponse: ...
    async def change_message_visibility(self, params: QueueRequest) -> QueueResponse: ...
    async def change_message_visibility_batch(self, params: QueueRequest) -> QueueResponse: ...


@runtime_checkable
class ObjectStore(Protocol):
    """The three object-store primitives the client needs."""
    async def put(self, bucket: str, key: str, data: bytes) -> None: ...
    async def get(self, bucket: str, key: str) -> bytes: ...
    async def delete(self, bucket: str, key: str) -> None: ...


@runtime_checkable
class LoggerProto(Protocol):
    """Structured logger used everywhere."""
    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None) -> None: ...
    def warning(self, msg: str, extra: Optional[Dict[str, Any]] = None) -> None: ...
    def error(self, msg: Any, extra: Optional[Dict[str, Any]] = None) -> None: ...
    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None) -> None: ...
    def bind(self, **context: Any) -> "LoggerProto": ...


# ---------------------------
# Public API surface
# ---------------------------

__all__ = [
    "QueueRequest",
    "QueueResponse",
    "QueueService",
    "ObjectStore",
    "LoggerProto",
]
