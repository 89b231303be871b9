"""
Utility modules for the catalog backend.
"""
from aws_catalog.utils.logging import setup_logging, get_logger

__all__ = ["setup_logging", "get_logger"]
