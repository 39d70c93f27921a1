"""Utility functions and helpers."""

from enx_api.utils.logging import JSONFormatter, configure_json_logging
from enx_api.utils.sanitize import mask_email, sanitize_obj, sanitize_str

__all__ = [
    "JSONFormatter",
    "configure_json_logging",
    "mask_email",
    "sanitize_obj",
    "sanitize_str",
]
