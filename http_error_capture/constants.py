"""
Centralised constants for the HTTP error capture pipeline.

All defaults, header names and wire-format details live here so they can be
imported by any module without circular dependencies.
"""

# ── Version ──────────────────────────────────────────────────────
APP_VERSION = "0.1.0"
SERVICE_NAME_DEFAULT = "http-error-capture"
DEFAULT_APPLICATION_NAME = "unknown"
DEFAULT_CONFIG_SECTION = "http_error_capture"

# ── Capture defaults ─────────────────────────────────────────────
DEFAULT_STATUS_CODES = frozenset({400, 401, 403, 404, 500, 502, 503, 504})
DEFAULT_EXCLUDE_PATHS = ("/health", "/actuator", "/metrics")
DEFAULT_MAX_BODY_SIZE = 10240  # characters, not bytes

TRUNCATION_MARKER = "... [TRUNCATED]"

# Header names are compared lower-cased
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
        "proxy-authorization",
    }
)
HEADER_VALUE_SEPARATOR = ", "

FORWARDED_FOR_HEADER = "X-Forwarded-For"
REAL_IP_HEADER = "X-Real-IP"
USER_AGENT_HEADER = "User-Agent"

# ── Wire format ──────────────────────────────────────────────────
# yyyy-MM-dd'T'HH:mm:ss.SSS, milliseconds appended by the model
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# ── SQS ──────────────────────────────────────────────────────────
DEFAULT_SQS_REGION = "us-east-1"
DEFAULT_BATCH_SIZE = 10
SQS_MAX_BATCH_SIZE = 10  # hard limit of SendMessageBatch
HEALTH_CHECK_ATTRIBUTE = "QueueArn"

# ── Background dispatch ──────────────────────────────────────────
DEFAULT_POOL_SIZE = 2
DEFAULT_QUEUE_CAPACITY = 100
DEFAULT_THREAD_NAME_PREFIX = "http-error-"
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 5.0

# ── Logging ──────────────────────────────────────────────────────
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per log file
LOG_BACKUP_COUNT = 5
LOG_DIR_ENV_VAR = "HTTP_ERROR_CAPTURE_LOG_DIR"
