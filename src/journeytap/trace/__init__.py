"""
JourneyTap Trace Module

Ingestion of raw trace logs: format detection, normalization into
RawEvent records, and HTTP method resolution.
"""

from .normalizer import RawEvent, TraceFormatError, TextTraceParser, normalize_log, normalize_structured
from .method_resolver import resolve_method, is_mutating, HTTP_VERBS

__all__ = [
    'RawEvent',
    'TraceFormatError',
    'TextTraceParser',
    'normalize_log',
    'normalize_structured',
    'resolve_method',
    'is_mutating',
    'HTTP_VERBS',
]
