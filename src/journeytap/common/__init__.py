"""
JourneyTap Common Utilities

Shared utilities and helpers used across JourneyTap modules.
"""

from .utils import TraceLoader, safe_json_parse, extract_partial_fields
from .url_utils import URLMatcher

__all__ = [
    'TraceLoader',
    'safe_json_parse',
    'extract_partial_fields',
    'URLMatcher'
]
