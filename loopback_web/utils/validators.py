"""Request parameter parsing for the simulator API.

Every numeric parameter the API accepts is clamped into a range the simulator
can honour rather than rejected; only values that are not numbers at all are
errors.
"""

from typing import Any

# (min, max) per parameter; None means unbounded
RESPONSE_DELAY_MS = (0, None)
REPLY_TIMEOUT_S = (0.05, 30.0)
SETTLE_MS = (10, 1000)
WEB_PORT = (1, 65535)


def _clamp(value, bounds):
    low, high = bounds
    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high
    return value


def _number(value: Any, field: str, cast):
    # JSON true/false would otherwise pass as 1/0
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be a number") from exc


def response_delay_ms(value: Any, default: int) -> int:
    """Simulated processing delay in ms; negative values clamp to 0."""
    if value is None:
        return default
    return _clamp(_number(value, "delay_ms", int), RESPONSE_DELAY_MS)


def reply_timeout_s(value: Any, default: float = 2.0) -> float:
    """How long /api/send waits for the first response line."""
    if value is None:
        return default
    return _clamp(_number(value, "timeout", float), REPLY_TIMEOUT_S)


def settle_ms(value: Any, default: int = 120) -> int:
    """Quiet period that ends response collection."""
    if value is None:
        return default
    return _clamp(_number(value, "settle_ms", int), SETTLE_MS)


def web_port(value: Any, default: int) -> int:
    if value is None:
        return default
    return _clamp(_number(value, "port", int), WEB_PORT)


def flush_flag(value: Any, default: bool = True) -> bool:
    """Whether to drop unread simulator output before sending."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
