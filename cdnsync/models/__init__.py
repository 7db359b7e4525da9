"""
Data Models Layer.

Contains the validated configuration model and session statistics.
"""

from .config import SyncConfig
from .stats import SyncStats

__all__ = ["SyncConfig", "SyncStats"]
