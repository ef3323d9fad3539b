"""
constants.py
Wire-format constants shared by the codec, the client and the adapters.
These values must match byte-for-byte across every client that reads or
writes offloaded messages.
"""

from typing import Tuple


# ============================================================================
# SIZE LIMITS
# ============================================================================

DEFAULT_MESSAGE_SIZE_THRESHOLD = 262_144  # 256 KiB, SQS hard limit
SQS_MAX_BATCH_ENTRIES = 10


# ============================================================================
# POINTER ATTRIBUTES
# ============================================================================

# Attribute whose StringValue is "(<bucket>)<key>"
RESERVED_ATTRIBUTE_NAME = "S3MessageBodyKey"

# Attributes used by the payload-offloading clients of the other SDK
# generation. Their presence means the body is a JSON pointer.
EXTENDED_PAYLOAD_SIZE_ATTRIBUTE = "ExtendedPayloadSize"
LEGACY_PAYLOAD_SIZE_ATTRIBUTE = "SQSLargePayloadSize"
COMPATIBILITY_ATTRIBUTE_NAMES: Tuple[str, ...] = (
    EXTENDED_PAYLOAD_SIZE_ATTRIBUTE,
    LEGACY_PAYLOAD_SIZE_ATTRIBUTE,
)

# JSON body pointer shape in compatibility mode
POINTER_BUCKET_FIELD = "s3BucketName"
POINTER_KEY_FIELD = "s3Key"
POINTER_CLASS_NAME = "software.amazon.payloadoffloading.PayloadS3Pointer"


# ============================================================================
# RECEIPT HANDLE MARKERS
# ============================================================================

S3_BUCKET_NAME_MARKER = "-..s3BucketName..-"
S3_KEY_MARKER = "-..s3Key..-"


__all__ = [
    "DEFAULT_MESSAGE_SIZE_THRESHOLD",
    "SQS_MAX_BATCH_ENTRIES",
    "RESERVED_ATTRIBUTE_NAME",
    "EXTENDED_PAYLOAD_SIZE_ATTRIBUTE",
    "LEGACY_PAYLOAD_SIZE_ATTRIBUTE",
    "COMPATIBILITY_ATTRIBUTE_NAMES",
    "POINTER_BUCKET_FIELD",
    "POINTER_KEY_FIELD",
    "POINTER_CLASS_NAME",
    "S3_BUCKET_NAME_MARKER",
    "S3_KEY_MARKER",
]
