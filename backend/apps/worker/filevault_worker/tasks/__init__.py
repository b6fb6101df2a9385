"""
Task modules for background processing.

This package contains all background task implementations.
"""

from . import cleanup

__all__ = ["cleanup"]
