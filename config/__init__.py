"""Configuration module for loading and managing application settings"""
from typing import Dict, Any
from .lib.load_settings_conf import load_settings_conf, SettingsError, DEFAULTS
import os

__all__ = ['settings_conf', 'load_settings_conf', 'SettingsError', 'DEFAULTS']

# Directory holding settings.conf, defaults to the working directory
SETTINGS_DIR = os.environ.get('BEATLEASE_SETTINGS_DIR', '.')

try:
    settings_conf: Dict[str, Any] = load_settings_conf(SETTINGS_DIR)

except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please ensure settings.conf is properly configured.\n"
        "See settings.conf.example for the available settings."
    )
