"""
sqs_extended: send, receive and delete SQS messages whose bodies exceed the
SQS size limit by offloading them to S3 behind a compact pointer.
"""

from .client import ExtendedSQSClient
from .config import ExtendedClientConfig, load_config
from .constants import DEFAULT_MESSAGE_SIZE_THRESHOLD, RESERVED_ATTRIBUTE_NAME
from .contracts import ObjectStore, QueueService
from .exceptions import (
    ConfigurationError,
    ExtendedClientError,
    MalformedPointerError,
    QueueError,
    StorageError,
)
from .factory import create_client
from .hooks import RecordHook, with_large_payloads
from .pointer import StoragePointer
from .sizing import is_large
from .sync import BlockingExtendedSQSClient
from .transforms import SendTransformResult, default_receive_transform, default_send_transform

__all__ = [
    "ExtendedSQSClient",
    "BlockingExtendedSQSClient",
    "create_client",
    "ExtendedClientConfig",
    "load_config",
    "QueueService",
    "ObjectStore",
    "RecordHook",
    "with_large_payloads",
    "StoragePointer",
    "SendTransformResult",
    "default_send_transform",
    "default_receive_transform",
    "is_large",
    "DEFAULT_MESSAGE_SIZE_THRESHOLD",
    "RESERVED_ATTRIBUTE_NAME",
    "ExtendedClientError",
    "ConfigurationError",
    "MalformedPointerError",
    "StorageError",
    "QueueError",
]
