"""Helpers for building, spawning and recording worker launches."""

from .command_builder import CommandBuilder
from .launch_log import CRASH_DUMP_HEADER, LOG_HEADER, LaunchLogFile, launch_log_name
from .launch_validator import LaunchValidator
from .output_capture import OutputRingBuffer
from .types import LaunchMode, LaunchResult, LaunchSpec, OutputStream

__all__ = [
    "CRASH_DUMP_HEADER",
    "CommandBuilder",
    "LOG_HEADER",
    "LaunchLogFile",
    "LaunchMode",
    "LaunchResult",
    "LaunchSpec",
    "LaunchValidator",
    "OutputRingBuffer",
    "OutputStream",
    "launch_log_name",
]
