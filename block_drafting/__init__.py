"""
block_drafting: drafting utilities for DXF drawings.

Measure lines, stamp numbered labels above block references and array blocks
along lines and polylines. The command-line entry point is main.py.
"""

from block_drafting.logging_config import (
    setup_logging,
    log_timing,
    timed,
    LogContext,
)

__version__ = "0.1.0"

__all__ = [
    "setup_logging",
    "log_timing",
    "timed",
    "LogContext",
]
