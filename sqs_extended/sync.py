"""
Blocking calling convention over ExtendedSQSClient.

Each call runs the async operation to completion on a fresh event loop, so
it must not be used from inside a running loop (use the async client there).
Errors are the same classes the async client raises.

    client = BlockingExtendedSQSClient(create_client())
    client.send_message(QueueUrl=url, MessageBody=text)
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from .client import ExtendedSQSClient


class BlockingExtendedSQSClient:
    def __init__(self, client: ExtendedSQSClient):
        self.client = client

    def send_message(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.send_message(**params))

    def send_message_batch(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.send_message_batch(**params))

    def receive_message(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.receive_message(**params))

    def delete_message(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.delete_message(**params))

    def delete_message_batch(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.delete_message_batch(**params))

    def change_message_visibility(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.change_message_visibility(**params))

    def change_message_visibility_batch(self, **params: Any) -> Dict[str, Any]:
        return asyncio.run(self.client.change_message_visibility_batch(**params))


__all__ = ["BlockingExtendedSQSClient"]
