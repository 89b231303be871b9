"""
AWS Service Catalog: search ranking and comparison/export API.
"""
from aws_catalog.utils.logging import setup_logging

# Configured on import so every module logger has its handlers
setup_logging()
