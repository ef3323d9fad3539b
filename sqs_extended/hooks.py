from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Dict, List

from .client import ExtendedSQSClient
from .logging import get_logger
from .pointer import embed_in_token

_logger = get_logger("sqs_extended.hooks")


class RecordHook:
    """
    "Before processing" hook for batch consumers (Lambda SQS events).

    Rewrites every record in place before application code sees it:
      - body          -> logical body (offloaded content fetched from S3)
      - receiptHandle -> handle carrying the pointer, for a later delete

    Records are handled concurrently; any failure aborts the whole batch.
    """

    def __init__(self, client: ExtendedSQSClient):
        self.client = client

    async def before(self, event: Dict[str, Any]) -> Dict[str, Any]:
        records: List[Dict[str, Any]] = event.get("Records") or []
        await asyncio.gather(*(self._rewrite(record) for record in records))
        _logger.debug("Rewrote event records", {"count": len(records)})
        return event

    async def _rewrite(self, record: Dict[str, Any]) -> None:
        body, pointer = await self.client.resolve_message(record)
        record["body"] = body
        if pointer is not None:
            record["receiptHandle"] = embed_in_token(
                pointer.bucket, pointer.key, record.get("receiptHandle", "")
            )


def with_large_payloads(client: ExtendedSQSClient) -> Callable:
    """
    Decorate a handler(event, context) so records are rewritten first.

    Works for async handlers and for plain (blocking) Lambda handlers:

        @with_large_payloads(client)
        def handler(event, context):
            for record in event["Records"]:
                process(record["body"])
    """
    hook = RecordHook(client)

    def decorator(handler: Callable) -> Callable:
        if inspect.iscoroutinefunction(handler):
            @functools.wraps(handler)
            async def async_wrapper(event, context=None):
                await hook.before(event)
                return await handler(event, context)
            return async_wrapper

        @functools.wraps(handler)
        def wrapper(event, context=None):
            asyncio.run(hook.before(event))
            return handler(event, context)
        return wrapper

    return decorator


__all__ = ["RecordHook", "with_large_payloads"]
