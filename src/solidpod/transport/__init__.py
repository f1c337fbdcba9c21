"""
Transport layer for solidpod.

Raw HTTP transport plus the authenticated protocol request layer.
"""

from .base import HttpTransport, SUCCESS_STATUSES, is_success
from .client import SolidClient

__all__ = [
    "HttpTransport",
    "SUCCESS_STATUSES",
    "is_success",
    "SolidClient",
]
