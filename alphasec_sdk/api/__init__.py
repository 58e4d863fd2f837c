"""
REST API access for the AlphaSec exchange.
"""
from .client import ApiClient

__all__ = ["ApiClient"]
