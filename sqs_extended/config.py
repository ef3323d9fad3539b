"""
Configuration loader.
Merges built-in defaults, an optional YAML file and environment variables
into a typed config object.

Priority (highest to lowest):
1. Environment variables
2. YAML file (path argument, or $SQS_EXTENDED_CONFIG)
3. Defaults below

YAML layout:

    storage:
      bucket: my-offload-bucket
      region: eu-west-2
    queue:
      region: eu-west-2
    offload:
      message_size_threshold: 262144
      always_offload: false
      compatibility_mode: true
      legacy_attribute_names: [OldPointerKey]
    logging:
      level: INFO
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .constants import DEFAULT_MESSAGE_SIZE_THRESHOLD, RESERVED_ATTRIBUTE_NAME
from .exceptions import ConfigurationError


# ============================================================================
# CONFIG SCHEMA
# ============================================================================

@dataclass
class StorageConfig:
    """S3 settings for offloaded payloads"""
    bucket: Optional[str] = None  # required for send operations only
    region: Optional[str] = None
    endpoint_url: Optional[str] = None  # for MinIO/LocalStack
    max_retries: int = 3


@dataclass
class QueueConfig:
    """SQS client settings"""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    max_retries: int = 5


@dataclass
class OffloadConfig:
    """When and how payloads are offloaded"""
    message_size_threshold: int = DEFAULT_MESSAGE_SIZE_THRESHOLD
    always_offload: bool = False
    reserved_attribute_name: str = RESERVED_ATTRIBUTE_NAME
    legacy_attribute_names: List[str] = field(default_factory=list)
    compatibility_mode: bool = False


@dataclass
class LoggingConfig:
    """Logging settings"""
    level: str = "INFO"


@dataclass
class ExtendedClientConfig:
    """Complete configuration for the extended client and its adapters."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    offload: OffloadConfig = field(default_factory=OffloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ============================================================================
# ENVIRONMENT VARIABLE NAMES
# ============================================================================

CONFIG_PATH_ENV_VAR = "SQS_EXTENDED_CONFIG"

# env var -> (section, key)
ENV_VARS = {
    "SQS_EXTENDED_BUCKET": ("storage", "bucket"),
    "SQS_EXTENDED_S3_ENDPOINT_URL": ("storage", "endpoint_url"),
    "SQS_EXTENDED_SQS_ENDPOINT_URL": ("queue", "endpoint_url"),
    "SQS_EXTENDED_THRESHOLD": ("offload", "message_size_threshold"),
    "SQS_EXTENDED_ALWAYS_OFFLOAD": ("offload", "always_offload"),
    "SQS_EXTENDED_ATTRIBUTE_NAME": ("offload", "reserved_attribute_name"),
    "SQS_EXTENDED_LEGACY_ATTRIBUTE_NAMES": ("offload", "legacy_attribute_names"),
    "SQS_EXTENDED_COMPATIBILITY_MODE": ("offload", "compatibility_mode"),
    "LOG_LEVEL": ("logging", "level"),
}

# AWS_REGION applies to both clients unless a section sets its own
REGION_ENV_VAR = "AWS_REGION"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


# ============================================================================
# LOADING FUNCTIONS
# ============================================================================

def load_config(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExtendedClientConfig:
    """
    Main entry point.

    Args:
        path: YAML file (default: $SQS_EXTENDED_CONFIG, else none)
        env: environment mapping (default: os.environ)

    Raises:
        ConfigurationError if a value is invalid or the YAML is malformed
    """
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_PATH_ENV_VAR)

    file_cfg = load_yaml_file(path) if path else {}
    merged = merge_configs(file_cfg, load_env_vars(env))

    return ExtendedClientConfig(
        storage=parse_storage_config(merged.get("storage", {})),
        queue=parse_queue_config(merged.get("queue", {})),
        offload=parse_offload_config(merged.get("offload", {})),
        logging=parse_logging_config(merged.get("logging", {})),
    )


def load_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Nested config dict from the recognised environment variables."""
    out: Dict[str, Any] = {}
    for var, (section, key) in ENV_VARS.items():
        if var in env:
            out.setdefault(section, {})[key] = env[var]

    region = env.get(REGION_ENV_VAR)
    if region:
        for section in ("storage", "queue"):
            out.setdefault(section, {}).setdefault("region", region)
    return out


def load_yaml_file(filepath: str) -> Dict[str, Any]:
    """
    Parse a single YAML file.
    Returns {} if the file doesn't exist (not an error).
    """
    if not os.path.exists(filepath):
        return {}
    try:
        with open(filepath, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {filepath}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top-level YAML in {filepath} must be a mapping")
    return data


def merge_configs(*configs: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep merge config dicts; later ones override earlier ones.

    Example:
        merge_configs({"offload": {"always_offload": False}},
                      {"offload": {"always_offload": True}})
        # {"offload": {"always_offload": True}}
    """
    result: Dict[str, Any] = {}
    for cfg in configs:
        for key, value in (cfg or {}).items():
            if isinstance(value, Mapping) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            elif isinstance(value, Mapping):
                result[key] = merge_configs(value)
            else:
                result[key] = copy.deepcopy(value)
    return result


# ============================================================================
# SECTION PARSERS
# ============================================================================

def parse_storage_config(raw: Mapping[str, Any]) -> StorageConfig:
    _check_section("storage", raw)
    return StorageConfig(
        bucket=_optional_str(raw.get("bucket")),
        region=_optional_str(raw.get("region")),
        endpoint_url=_optional_str(raw.get("endpoint_url")),
        max_retries=_positive_int("storage.max_retries", raw.get("max_retries", 3)),
    )


def parse_queue_config(raw: Mapping[str, Any]) -> QueueConfig:
    _check_section("queue", raw)
    return QueueConfig(
        region=_optional_str(raw.get("region")),
        endpoint_url=_optional_str(raw.get("endpoint_url")),
        max_retries=_positive_int("queue.max_retries", raw.get("max_retries", 5)),
    )


def parse_offload_config(raw: Mapping[str, Any]) -> OffloadConfig:
    _check_section("offload", raw)
    name = _optional_str(raw.get("reserved_attribute_name")) or RESERVED_ATTRIBUTE_NAME
    return OffloadConfig(
        message_size_threshold=_positive_int(
            "offload.message_size_threshold",
            raw.get("message_size_threshold", DEFAULT_MESSAGE_SIZE_THRESHOLD),
        ),
        always_offload=_bool("offload.always_offload", raw.get("always_offload", False)),
        reserved_attribute_name=name,
        legacy_attribute_names=_str_list(
            "offload.legacy_attribute_names", raw.get("legacy_attribute_names", [])
        ),
        compatibility_mode=_bool("offload.compatibility_mode", raw.get("compatibility_mode", False)),
    )


def parse_logging_config(raw: Mapping[str, Any]) -> LoggingConfig:
    _check_section("logging", raw)
    level = str(raw.get("level", "INFO")).upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}: {level}")
    return LoggingConfig(level=level)


# ============================================================================
# HELPERS
# ============================================================================

def _check_section(name: str, raw: Any) -> None:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _positive_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer: {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive: {number}")
    return number


def _bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean: {value!r}")


def _str_list(name: str, value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    raise ConfigurationError(f"{name} must be a list or comma-separated string")


__all__ = [
    "StorageConfig",
    "QueueConfig",
    "OffloadConfig",
    "LoggingConfig",
    "ExtendedClientConfig",
    "load_config",
    "load_env_vars",
    "load_yaml_file",
    "merge_configs",
]
