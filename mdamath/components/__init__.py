"""
Supporting components for mdamath.

This module provides configuration handling shared by the models
and the command line interface.
"""

from mdamath.components.config import Config, ConfigManager
