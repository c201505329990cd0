"""
Core Utilities Package

This package contains utility functions and helpers used throughout the client.

Modules:
    - time: Timestamp conversion and normalization utilities
    - parsing: Field access and exact-number parsing for raw exchange records
"""

from core.utils.time import to_utc_datetime
from core.utils.parsing import MalformedResponseError

__all__ = ["to_utc_datetime", "MalformedResponseError"]
