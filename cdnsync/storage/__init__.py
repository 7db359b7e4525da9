"""
Persistence Layer.

This package manages the on-disk hash cache and the INI configuration file.
"""

from .config_manager import ConfigManager
from .hash_cache import CACHE_FILE_NAME, load_hashes, save_hashes

__all__ = ["CACHE_FILE_NAME", "ConfigManager", "load_hashes", "save_hashes"]
