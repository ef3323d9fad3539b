"""
Shared fixtures: in-memory QueueService / ObjectStore fakes that record calls.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional, Tuple

import pytest

from sqs_extended.client import ExtendedSQSClient

QUEUE_URL = "https://sqs.eu-west-2.amazonaws.com/123456789012/test-queue"
BUCKET = "test-bucket"


class FakeObjectStore:
    """Dict-backed ObjectStore. ``fail`` maps an operation to an exception."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.fail: Dict[str, Exception] = {}
        self.fail_keys: Dict[str, Exception] = {}

    def _check(self, op: str, key: str) -> None:
        if op in self.fail:
            raise self.fail[op]
        if key in self.fail_keys:
            raise self.fail_keys[key]

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        self.calls.append(("put", bucket, key))
        self._check("put", key)
        self.objects[(bucket, key)] = data

    async def get(self, bucket: str, key: str) -> bytes:
        self.calls.append(("get", bucket, key))
        self._check("get", key)
        return self.objects[(bucket, key)]

    async def delete(self, bucket: str, key: str) -> None:
        self.calls.append(("delete", bucket, key))
        self._check("delete", key)
        self.objects.pop((bucket, key), None)

    def ops(self, op: str) -> List[Tuple[str, str, str]]:
        return [c for c in self.calls if c[0] == op]


class FakeQueueService:
    """
    In-memory SQS. Like SQS, receive only returns the message attributes
    whose names were requested (or all of them for "All").
    """

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.fail: Dict[str, Exception] = {}
        self._ids = itertools.count(1)

    def _record(self, operation: str, params: Dict[str, Any]) -> None:
        self.requests.append((operation, params))
        if operation in self.fail:
            raise self.fail[operation]

    def last(self, operation: str) -> Optional[Dict[str, Any]]:
        for op, params in reversed(self.requests):
            if op == operation:
                return params
        return None

    def _enqueue(self, body: str, attributes: Optional[Dict[str, Any]]) -> str:
        n = next(self._ids)
        message_id = f"msg-{n}"
        self.messages.append({
            "MessageId": message_id,
            "ReceiptHandle": f"handle-{n}",
            "Body": body,
            "MessageAttributes": dict(attributes or {}),
        })
        return message_id

    async def send_message(self, params):
        self._record("send_message", params)
        return {"MessageId": self._enqueue(params["MessageBody"], params.get("MessageAttributes"))}

    async def send_message_batch(self, params):
        self._record("send_message_batch", params)
        successful = [
            {"Id": e["Id"], "MessageId": self._enqueue(e["MessageBody"], e.get("MessageAttributes"))}
            for e in params["Entries"]
        ]
        return {"Successful": successful, "Failed": []}

    async def receive_message(self, params):
        self._record("receive_message", params)
        wanted = params.get("MessageAttributeNames") or []
        out = []
        for message in self.messages[: params.get("MaxNumberOfMessages", 1)]:
            copy = dict(message)
            attrs = {
                k: v for k, v in message["MessageAttributes"].items()
                if "All" in wanted or k in wanted
            }
            if attrs:
                copy["MessageAttributes"] = attrs
            else:
                copy.pop("MessageAttributes")
            out.append(copy)
        if not out:
            return {"ResponseMetadata": {"HTTPStatusCode": 200}}
        return {"Messages": out, "ResponseMetadata": {"HTTPStatusCode": 200}}

    async def delete_message(self, params):
        self._record("delete_message", params)
        self.messages = [m for m in self.messages if m["ReceiptHandle"] != params["ReceiptHandle"]]
        return {}

    async def delete_message_batch(self, params):
        self._record("delete_message_batch", params)
        handles = {e["ReceiptHandle"] for e in params["Entries"]}
        self.messages = [m for m in self.messages if m["ReceiptHandle"] not in handles]
        return {"Successful": [{"Id": e["Id"]} for e in params["Entries"]], "Failed": []}

    async def change_message_visibility(self, params):
        self._record("change_message_visibility", params)
        return {}

    async def change_message_visibility_batch(self, params):
        self._record("change_message_visibility_batch", params)
        return {"Successful": [{"Id": e["Id"]} for e in params["Entries"]], "Failed": []}


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def queue() -> FakeQueueService:
    return FakeQueueService()


@pytest.fixture
def client(queue, store) -> ExtendedSQSClient:
    return ExtendedSQSClient(queue, store, bucket_name=BUCKET)
