"""
Core module initialization.
Exports configuration and logging utilities.
"""

from orderdesk.core.config import get_settings, Settings, EnvironmentMode

__all__ = ["get_settings", "Settings", "EnvironmentMode"]
