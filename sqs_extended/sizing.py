"""
Message size estimation.

SQS counts the body plus, for every message attribute, the attribute name,
its data type and its value against the 256 KiB limit. The estimate here
follows the same rule using UTF-8 byte counts.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .constants import DEFAULT_MESSAGE_SIZE_THRESHOLD


def _byte_len(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    return len(str(value).encode("utf-8"))


def _field(attr: Mapping[str, Any], name: str) -> Any:
    """Read an attribute field in SDK (StringValue) or event (stringValue) casing."""
    if name in attr:
        return attr[name]
    return attr.get(name[0].lower() + name[1:])


def attributes_size(attributes: Optional[Mapping[str, Dict[str, Any]]]) -> int:
    """Byte size of a message attribute map as SQS counts it."""
    if not attributes:
        return 0

    size = 0
    for name, attr in attributes.items():
        size += _byte_len(name)
        if not isinstance(attr, Mapping):
            continue
        size += _byte_len(_field(attr, "DataType"))
        string_value = _field(attr, "StringValue")
        if string_value is not None:
            size += _byte_len(string_value)
        else:
            size += _byte_len(_field(attr, "BinaryValue"))
    return size


def message_size(message: Mapping[str, Any]) -> int:
    """Body bytes plus attribute bytes for an outgoing message dict."""
    body = message.get("MessageBody")
    return attributes_size(message.get("MessageAttributes")) + _byte_len(body)


def is_large(message: Mapping[str, Any], threshold: int = DEFAULT_MESSAGE_SIZE_THRESHOLD) -> bool:
    """True iff the estimated size is strictly above ``threshold``."""
    return message_size(message) > threshold


__all__ = ["attributes_size", "message_size", "is_large"]
