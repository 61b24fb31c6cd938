"""Sync mobile binding secrets with Unified Push Server variants."""

__version__ = "0.1.0"
