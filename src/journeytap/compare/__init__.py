"""
JourneyTap Compare Module

Decide whether two captures of the same journey behave the same.
"""

from .report import ComparisonReport, Difference, SemanticSummary, format_report
from .semantic import compare_semantic, extract_semantics, form_identifier, is_ignored, to_journey
from .steps import compare_steps

__all__ = [
    'ComparisonReport',
    'Difference',
    'SemanticSummary',
    'format_report',
    'compare_semantic',
    'extract_semantics',
    'form_identifier',
    'is_ignored',
    'to_journey',
    'compare_steps',
]
