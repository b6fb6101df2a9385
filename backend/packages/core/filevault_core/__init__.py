"""
FileVault Core Package.

This package contains the authentication subsystem, service classes,
and shared schemas for the FileVault application.
"""

__version__ = "0.1.0"

from .logging_config import get_logger, init_logging

__all__ = ["init_logging", "get_logger"]
