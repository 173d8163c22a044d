"""
JourneyTap Playwright Generation Module

Convert distilled journeys to Playwright end-to-end tests.
"""

from .playwright_generator import PlaywrightGenerator, GenerationResult, sanitize_test_name
from .form_planner import FillEntry, FillPlan, build_fill_plan, field_match_score, reorder_form_steps
from .locators import LocatorBuilder, js_str

__all__ = [
    'PlaywrightGenerator',
    'GenerationResult',
    'sanitize_test_name',
    'FillEntry',
    'FillPlan',
    'build_fill_plan',
    'field_match_score',
    'reorder_form_steps',
    'LocatorBuilder',
    'js_str',
]
