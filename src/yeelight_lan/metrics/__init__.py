"""Metrics module."""

from . import registry
from .registry import (
    record_command_sent,
    record_decode_error,
    record_message_recv,
    start_metrics_server,
)

__all__ = [
    "record_command_sent",
    "record_decode_error",
    "record_message_recv",
    "registry",
    "start_metrics_server",
]
