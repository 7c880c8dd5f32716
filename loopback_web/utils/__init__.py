"""Shared utilities"""

from .validators import response_delay_ms, reply_timeout_s, settle_ms, web_port, flush_flag
from .timestamps import iso_timestamp

__all__ = ['response_delay_ms', 'reply_timeout_s', 'settle_ms', 'web_port', 'flush_flag', 'iso_timestamp']
