"""Shared loopback simulator constants used across the library, CLI and web app."""


class LoopbackConstants:
    """Single source of truth for simulator defaults."""

    # Connection string
    SCHEME = "loopback"
    SCHEME_SEPARATOR = "://"
    DEFAULT_URI = "loopback://echo"

    # Simulator defaults
    DEFAULT_CUSTOM_RESPONSE = "ok\n"
    DEFAULT_RESPONSE_DELAY_MS = 10

    # Lifecycle
    CLOSE_TIMEOUT_S = 1.0  # bounded join on close
    WORKER_THREAD_NAME = "LoopbackConnection-ResponseThread"

    # Device catalog
    MANUFACTURER = "UGS Testing"

    # Environment overrides (CLI + web app)
    ENV_URI = "LOOPBACK_URI"
    ENV_RESPONSE_DELAY_MS = "LOOPBACK_RESPONSE_DELAY_MS"
    ENV_WEB_PORT = "LOOPBACK_WEB_PORT"
    DEFAULT_CLI_URI = "loopback://grbl"
    DEFAULT_WEB_PORT = 8080
