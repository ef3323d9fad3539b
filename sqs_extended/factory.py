"""
Wiring: build an ExtendedSQSClient with the boto3 adapters from config.
"""

from __future__ import annotations

from typing import Any, Optional

from .client import ExtendedSQSClient
from .config import ExtendedClientConfig, load_config
from .io_sqs import SQSQueueService
from .io_storage import S3ObjectStore
from .logging import configure_logging, get_logger


def create_client(
    config: Optional[ExtendedClientConfig] = None,
    *,
    sqs_client=None,
    s3_client=None,
    **overrides: Any,
) -> ExtendedSQSClient:
    """
    Create a client backed by SQS and S3.

    Args:
        config: loaded config (default: load_config() from env/YAML)
        sqs_client / s3_client: pre-built boto3 clients (optional)
        **overrides: constructor arguments that win over config
            (e.g. send_transform=..., bucket_name=...)
    """
    config = config or load_config()
    configure_logging(config.logging.level)

    queue = SQSQueueService(
        sqs_client=sqs_client,
        region=config.queue.region,
        endpoint_url=config.queue.endpoint_url,
        max_retries=config.queue.max_retries,
    )
    store = S3ObjectStore(
        s3_client=s3_client,
        region=config.storage.region,
        endpoint_url=config.storage.endpoint_url,
        max_retries=config.storage.max_retries,
    )
    client = ExtendedSQSClient.from_config(queue, store, config, **overrides)
    get_logger("sqs_extended.factory").debug("Created extended client", {
        "bucket": client.bucket_name,
        "threshold": client.message_size_threshold,
        "compatibility_mode": client.compatibility_mode,
    })
    return client


__all__ = ["create_client"]
