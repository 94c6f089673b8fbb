"""
Configuration loading and validation for the HTTP error capture pipeline.

Settings come from the ``http_error_capture`` section of a JSON file.  String
values may contain ``${ENV_VAR:-default}`` placeholders; a ``.env`` file in
the working directory is loaded first so those variables can live there.
Every key has a default, so an empty section yields a working pipeline that
logs events instead of sending them to SQS.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from dotenv import load_dotenv

from .constants import (
    DEFAULT_APPLICATION_NAME,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CONFIG_SECTION,
    DEFAULT_EXCLUDE_PATHS,
    DEFAULT_MAX_BODY_SIZE,
    DEFAULT_POOL_SIZE,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    DEFAULT_SQS_REGION,
    DEFAULT_STATUS_CODES,
    DEFAULT_THREAD_NAME_PREFIX,
    SQS_MAX_BATCH_SIZE,
)


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


# ── Settings ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class CaptureSettings:
    """Which exchanges are captured and how much of them is kept.

    ``max_body_size`` is a character budget applied to the decoded body
    text, not a byte count.
    """

    status_codes: FrozenSet[int] = DEFAULT_STATUS_CODES
    exclude_paths: Tuple[str, ...] = DEFAULT_EXCLUDE_PATHS
    include_headers: bool = True
    include_request_body: bool = True
    include_response_body: bool = True
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureSettings":
        return cls(
            status_codes=frozenset(
                int(c) for c in data.get("status_codes", DEFAULT_STATUS_CODES)
            ),
            exclude_paths=tuple(data.get("exclude_paths", DEFAULT_EXCLUDE_PATHS)),
            include_headers=_as_bool(data.get("include_headers", True)),
            include_request_body=_as_bool(data.get("include_request_body", True)),
            include_response_body=_as_bool(data.get("include_response_body", True)),
            max_body_size=int(data.get("max_body_size", DEFAULT_MAX_BODY_SIZE)),
        )


@dataclass(frozen=True)
class SqsSettings:
    """Destination queue for the default publisher."""

    queue_url: str = ""
    region: str = DEFAULT_SQS_REGION
    batch_size: int = DEFAULT_BATCH_SIZE
    enabled: bool = True
    endpoint_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SqsSettings":
        batch_size = int(data.get("batch_size", DEFAULT_BATCH_SIZE))
        return cls(
            queue_url=data.get("queue_url", "") or "",
            region=data.get("region", DEFAULT_SQS_REGION) or DEFAULT_SQS_REGION,
            # SendMessageBatch rejects more than ten entries
            batch_size=max(1, min(batch_size, SQS_MAX_BATCH_SIZE)),
            enabled=_as_bool(data.get("enabled", True)),
            endpoint_url=data.get("endpoint_url") or None,
        )


@dataclass(frozen=True)
class AsyncSettings:
    """Sizing of the background dispatcher."""

    pool_size: int = DEFAULT_POOL_SIZE
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    thread_name_prefix: str = DEFAULT_THREAD_NAME_PREFIX
    shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AsyncSettings":
        return cls(
            pool_size=int(data.get("pool_size", DEFAULT_POOL_SIZE)),
            queue_capacity=int(data.get("queue_capacity", DEFAULT_QUEUE_CAPACITY)),
            thread_name_prefix=data.get("thread_name_prefix", DEFAULT_THREAD_NAME_PREFIX),
            shutdown_timeout_seconds=float(
                data.get("shutdown_timeout_seconds", DEFAULT_SHUTDOWN_TIMEOUT_SECONDS)
            ),
        )


@dataclass(frozen=True)
class HttpErrorCaptureSettings:
    """Root settings object handed to the service and its collaborators."""

    enabled: bool = True
    application_name: str = DEFAULT_APPLICATION_NAME
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    sqs: SqsSettings = field(default_factory=SqsSettings)
    async_: AsyncSettings = field(default_factory=AsyncSettings)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HttpErrorCaptureSettings":
        """Build settings from a config section, defaulting anything missing."""
        data = data or {}
        return cls(
            enabled=_as_bool(data.get("enabled", True)),
            application_name=data.get("application_name") or DEFAULT_APPLICATION_NAME,
            capture=CaptureSettings.from_dict(data.get("capture", {})),
            sqs=SqsSettings.from_dict(data.get("sqs", {})),
            async_=AsyncSettings.from_dict(data.get("async", {})),
        )


# ── Loading ──────────────────────────────────────────────────────


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from a JSON file and resolve ``${ENV_VAR:-default}``
    placeholders in all string values.

    Args:
        config_path: Path to the config file.

    Returns:
        Fully-resolved configuration dictionary.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    load_dotenv()
    full_path = Path(config_path)

    if not full_path.exists():
        raise ConfigError(f"Configuration file not found: {full_path}")

    try:
        with open(full_path, "r") as f:
            config = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {full_path}: {exc}") from exc

    if not isinstance(config, dict):
        raise ConfigError(f"Top-level JSON value in {full_path} must be an object")

    return _resolve(config)


def load_settings(config_path: str) -> HttpErrorCaptureSettings:
    """Load, validate and convert the ``http_error_capture`` section.

    Raises:
        ConfigError: If the file is unreadable or the section is invalid.
    """
    config = load_config(config_path)
    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))
    return HttpErrorCaptureSettings.from_dict(config.get(DEFAULT_CONFIG_SECTION, {}))


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate the ``http_error_capture`` section of a config dict.

    Returns:
        A list of human-readable error strings.  Empty means valid.
    """
    errors: List[str] = []
    section = config.get(DEFAULT_CONFIG_SECTION, {})
    if not isinstance(section, dict):
        return [f"Config section '{DEFAULT_CONFIG_SECTION}' must be an object"]

    capture = section.get("capture", {})
    for code in capture.get("status_codes", []):
        try:
            value = int(code)
        except (TypeError, ValueError):
            errors.append(f"capture.status_codes contains a non-integer value: {code!r}")
            continue
        if not 100 <= value <= 599:
            errors.append(f"capture.status_codes contains an invalid HTTP status: {value}")

    for prefix in capture.get("exclude_paths", []):
        if not isinstance(prefix, str) or not prefix:
            errors.append(f"capture.exclude_paths entries must be non-empty strings: {prefix!r}")

    errors.extend(_check_positive(capture, "max_body_size", "capture"))

    sqs = section.get("sqs", {})
    errors.extend(_check_positive(sqs, "batch_size", "sqs"))
    queue_url = sqs.get("queue_url", "")
    if isinstance(queue_url, str) and queue_url.startswith("${"):
        errors.append(f"sqs.queue_url is an unresolved placeholder: '{queue_url}'")

    async_section = section.get("async", {})
    errors.extend(_check_positive(async_section, "pool_size", "async"))
    errors.extend(_check_positive(async_section, "queue_capacity", "async"))

    return errors


# ── Private helpers ──────────────────────────────────────────────

_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _resolve(obj: Any) -> Any:
    """Recursively resolve ``${ENV_VAR:-default}`` in string values."""
    if isinstance(obj, str):
        return _PLACEHOLDER_RE.sub(_replace_match, obj)
    elif isinstance(obj, dict):
        return {k: _resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve(v) for v in obj]
    return obj


def _replace_match(m: re.Match) -> str:
    var = m.group(1)
    default = m.group(2) if m.group(2) is not None else ""
    return os.environ.get(var, default)


def _as_bool(value: Any) -> bool:
    # Placeholders always resolve to strings
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _check_positive(section: Dict[str, Any], key: str, prefix: str) -> List[str]:
    if key not in section:
        return []
    try:
        value = int(section[key])
    except (TypeError, ValueError):
        return [f"{prefix}.{key} must be an integer: {section[key]!r}"]
    if value <= 0:
        return [f"{prefix}.{key} must be positive: {value}"]
    return []
