"""
Send / receive transforms.

A send transform splits an outgoing message into the queue body and the
content to offload. A receive transform rebuilds the application body from
the delivered message and the fetched content. Neither does I/O; the client
performs every network call.

Custom transforms are plain callables with the same signatures, e.g. to keep
a small JSON envelope in the queue and offload one field of it.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, NamedTuple, Optional

from .constants import DEFAULT_MESSAGE_SIZE_THRESHOLD
from .pointer import message_body
from .sizing import is_large


class SendTransformResult(NamedTuple):
    """
    message_body: queue body, or None to send the pointer key as the body.
    offloaded_content: content to store, or None to skip offloading.
    """
    message_body: Optional[str]
    offloaded_content: Optional[Any]


SendTransform = Callable[[Mapping[str, Any]], SendTransformResult]
ReceiveTransform = Callable[..., Any]


def default_send_transform(
    message: Mapping[str, Any],
    *,
    always_offload: bool = False,
    threshold: int = DEFAULT_MESSAGE_SIZE_THRESHOLD,
) -> SendTransformResult:
    """Offload the whole body when forced or when the message is large."""
    body = message.get("MessageBody")
    if always_offload or is_large(message, threshold):
        return SendTransformResult(message_body=None, offloaded_content=body)
    return SendTransformResult(message_body=body, offloaded_content=None)


def default_receive_transform(
    message: Mapping[str, Any],
    offloaded_content: Optional[Any] = None,
) -> Any:
    """Fetched content when there is some, else the delivered body."""
    if offloaded_content is not None:
        return offloaded_content
    return message_body(message)


__all__ = [
    "SendTransformResult",
    "SendTransform",
    "ReceiveTransform",
    "default_send_transform",
    "default_receive_transform",
]
