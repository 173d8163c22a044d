"""
JourneyTap Distill Module

Turns normalized trace events into a Journey of Steps.

This module provides:
- The Step / Journey model and its JSON form
- Correlation-id grouping into steps
- Dialog resolution, held-modifier reconstruction and DataSource diffs
"""

from .models import (
    Target, ApiAwait, Navigation, Awaits, ModalResolution, Toast, Step, Journey,
    STARTUP, CLICK, DOUBLE_CLICK, CONTEXT_MENU, KEY_PRESS, TOAST,
)
from .distiller import StepDistiller, distill, collapse_double_clicks
from .modals import resolve_modals
from .modifiers import ModifierTimeline, apply_modifiers
from .datasource import DataSourceTracker, extract_snapshots, item_label

__all__ = [
    # Model
    'Target',
    'ApiAwait',
    'Navigation',
    'Awaits',
    'ModalResolution',
    'Toast',
    'Step',
    'Journey',
    'STARTUP',
    'CLICK',
    'DOUBLE_CLICK',
    'CONTEXT_MENU',
    'KEY_PRESS',
    'TOAST',

    # Distillation
    'StepDistiller',
    'distill',
    'collapse_double_clicks',
    'resolve_modals',
    'ModifierTimeline',
    'apply_modifiers',
    'DataSourceTracker',
    'extract_snapshots',
    'item_label',
]
