"""
Pointer codec: where offloaded content lives and how that location travels.

Three encodings are handled here:
- the pointer attribute, StringValue "(<bucket>)<key>"
- the receipt handle, with bucket and key embedded between fixed markers
  ahead of the original handle
- the compatibility JSON body, {"s3BucketName": ..., "s3Key": ...}, used by
  the payload-offloading clients of the other SDK generation

Every function here is pure.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .constants import (
    COMPATIBILITY_ATTRIBUTE_NAMES,
    POINTER_BUCKET_FIELD,
    POINTER_CLASS_NAME,
    POINTER_KEY_FIELD,
    RESERVED_ATTRIBUTE_NAME,
    S3_BUCKET_NAME_MARKER,
    S3_KEY_MARKER,
)
from .exceptions import MalformedPointerError


# ============================================================================
# TYPES
# ============================================================================

@dataclass(frozen=True)
class StoragePointer:
    """Location of offloaded content. ``bucket`` may be None (use default)."""
    key: str
    bucket: Optional[str] = None

    def to_text(self) -> str:
        return f"({self.bucket or ''}){self.key}"

    def with_default_bucket(self, bucket: Optional[str]) -> "StoragePointer":
        if self.bucket:
            return self
        return StoragePointer(key=self.key, bucket=bucket)


# ============================================================================
# ATTRIBUTE FORM
# ============================================================================

def attribute_string_value(attr: Mapping[str, Any]) -> Optional[str]:
    """StringValue of an attribute in SDK or event-record casing."""
    if not isinstance(attr, Mapping):
        return None
    value = attr.get("StringValue")
    if value is None:
        value = attr.get("stringValue")
    return value


def message_attributes(message: Mapping[str, Any]) -> Dict[str, Any]:
    """Attribute map of a received message or event record (may be empty)."""
    attrs = message.get("MessageAttributes")
    if attrs is None:
        attrs = message.get("messageAttributes")
    return attrs or {}


def message_body(message: Mapping[str, Any]) -> Optional[str]:
    """Body of a received message (``Body``) or event record (``body``)."""
    if "Body" in message:
        return message["Body"]
    return message.get("body")


def encode_attribute(pointer: StoragePointer) -> Dict[str, str]:
    """Pointer attribute value for an outgoing message."""
    return {"DataType": "String", "StringValue": pointer.to_text()}


def parse_pointer_text(text: str) -> StoragePointer:
    """Parse "(<bucket>)<key>", splitting on the first ')'."""
    if not isinstance(text, str) or not text.startswith("("):
        raise MalformedPointerError(f"Invalid pointer value: {text!r}")
    close = text.find(")")
    if close < 0 or close == len(text) - 1:
        raise MalformedPointerError(f"Invalid pointer value: {text!r}")
    bucket = text[1:close] or None
    return StoragePointer(key=text[close + 1:], bucket=bucket)


def find_pointer_attribute(
    attributes: Mapping[str, Any],
    names: Iterable[str] = (RESERVED_ATTRIBUTE_NAME,),
) -> Optional[Tuple[str, Any]]:
    """(name, attribute) of the first pointer attribute present, by priority."""
    for name in names:
        if name in attributes and attributes[name] is not None:
            return name, attributes[name]
    return None


def decode_attribute(
    attributes: Optional[Mapping[str, Any]],
    names: Iterable[str] = (RESERVED_ATTRIBUTE_NAME,),
) -> Optional[StoragePointer]:
    """
    Read the pointer from an attribute map.

    ``names`` is the primary attribute name followed by any legacy aliases.
    Returns None when no pointer attribute is present.

    Raises:
        MalformedPointerError: attribute present without a string value,
            or with a value not shaped "(<bucket>)<key>".
    """
    if not attributes:
        return None
    found = find_pointer_attribute(attributes, names)
    if found is None:
        return None

    name, attr = found
    value = attribute_string_value(attr)
    if not value:
        raise MalformedPointerError(
            f"Invalid {name} message attribute: missing StringValue/stringValue"
        )
    return parse_pointer_text(value)


# ============================================================================
# COMPATIBILITY FORM (JSON body)
# ============================================================================

def decode_body_pointer(body: Optional[str]) -> StoragePointer:
    """
    Parse a JSON body pointer.

    Accepts a bare object or the two-element [POINTER_CLASS_NAME, {...}] array.
    """
    try:
        parsed = json.loads(body) if body is not None else None
    except (TypeError, ValueError) as e:
        raise MalformedPointerError(f"Body is not a JSON pointer: {e}") from e

    if isinstance(parsed, list):
        if len(parsed) != 2 or parsed[0] != POINTER_CLASS_NAME:
            raise MalformedPointerError(f"JSON pointer array must be [{POINTER_CLASS_NAME!r}, {{...}}]")
        parsed = parsed[1]

    if not isinstance(parsed, dict):
        raise MalformedPointerError("Body is not a JSON pointer object")

    bucket = parsed.get(POINTER_BUCKET_FIELD)
    key = parsed.get(POINTER_KEY_FIELD)
    if not isinstance(bucket, str) or not bucket or not isinstance(key, str) or not key:
        raise MalformedPointerError(
            f"JSON pointer requires {POINTER_BUCKET_FIELD!r} and {POINTER_KEY_FIELD!r}"
        )
    return StoragePointer(key=key, bucket=bucket)


def encode_body_pointer(pointer: StoragePointer) -> str:
    """JSON body pointer in the class-tagged array form the compatible clients write."""
    return json.dumps([
        POINTER_CLASS_NAME,
        {POINTER_BUCKET_FIELD: pointer.bucket, POINTER_KEY_FIELD: pointer.key},
    ])


def decode_message_pointer(
    message: Mapping[str, Any],
    *,
    attribute_names: Iterable[str] = (RESERVED_ATTRIBUTE_NAME,),
    compatibility_mode: bool = False,
) -> Optional[StoragePointer]:
    """
    Pointer carried by a received message, or None.

    Order: pointer attribute (primary name, then aliases), then, in
    compatibility mode, a JSON body signalled by one of the compatibility
    attributes.
    """
    attributes = message_attributes(message)
    pointer = decode_attribute(attributes, attribute_names)
    if pointer is not None or not compatibility_mode:
        return pointer

    for name in COMPATIBILITY_ATTRIBUTE_NAMES:
        if name in attributes:
            return decode_body_pointer(message_body(message))
    return None


# ============================================================================
# RECEIPT HANDLE FORM
# ============================================================================

def embed_in_token(bucket: str, key: str, token: str) -> str:
    """Prefix a receipt handle with the bucket and key between markers."""
    return (
        f"{S3_BUCKET_NAME_MARKER}{bucket}{S3_BUCKET_NAME_MARKER}"
        f"{S3_KEY_MARKER}{key}{S3_KEY_MARKER}{token}"
    )


def _between(token: str, marker: str) -> Optional[str]:
    first = token.find(marker)
    last = token.rfind(marker)
    if first < 0 or first == last:
        return None
    return token[first + len(marker):last]


def extract_from_token(token: str) -> Tuple[Optional[str], Optional[str]]:
    """(bucket, key) embedded in a receipt handle; None for each absent part."""
    return _between(token, S3_BUCKET_NAME_MARKER), _between(token, S3_KEY_MARKER)


def strip_token(token: str) -> str:
    """Original receipt handle: everything after the last key marker."""
    if _between(token, S3_KEY_MARKER) is None:
        return token
    return token[token.rfind(S3_KEY_MARKER) + len(S3_KEY_MARKER):]


__all__ = [
    "StoragePointer",
    "attribute_string_value",
    "message_attributes",
    "message_body",
    "encode_attribute",
    "parse_pointer_text",
    "find_pointer_attribute",
    "decode_attribute",
    "decode_body_pointer",
    "encode_body_pointer",
    "decode_message_pointer",
    "embed_in_token",
    "extract_from_token",
    "strip_token",
]
