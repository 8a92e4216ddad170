"""Configuration module for the roster sync job."""
from .settings import SyncConfig, load_settings

__all__ = ["SyncConfig", "load_settings"]
