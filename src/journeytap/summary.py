"""
Journey summaries for the terminal.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .common import URLMatcher
from .distill.models import KEY_PRESS, Journey
from .compare.semantic import form_identifier


@dataclass
class JourneySummary:
    step_count: int
    event_count: Optional[int] = None
    apis: List[str] = field(default_factory=list)
    form_submits: List[str] = field(default_factory=list)
    journey_lines: List[str] = field(default_factory=list)


def summarize(journey: Journey, event_count: Optional[int] = None) -> JourneySummary:
    """
    Summarize a journey: step count, unique API calls and form submissions.

    Unlike the semantic comparison, startup calls are included here.
    """
    apis = []
    for step in journey.steps:
        for api in step.awaits.api:
            if not api.completed:
                continue
            signature = f"{api.method} {URLMatcher.endpoint_path(api.endpoint)}"
            if signature not in apis:
                apis.append(signature)

    return JourneySummary(
        step_count=len(journey.steps),
        event_count=event_count,
        apis=apis,
        form_submits=[form_identifier(s.form_data) for s in journey.steps if s.submits_form],
        journey_lines=[s.describe() for s in journey.steps if s.action != KEY_PRESS],
    )


def format_summary(summary: JourneySummary, show_journey: bool = False) -> str:
    lines = ['', '=== Trace Summary ===']
    if summary.event_count is not None:
        lines.append(f"Events: {summary.event_count}")
    lines.append(f"Steps: {summary.step_count}")

    if show_journey:
        lines.append('')
        lines.append('Journey:')
        lines.extend(f"  {i}. {line}" for i, line in enumerate(summary.journey_lines, 1))

    lines.append('')
    lines.append(f"API calls: {', '.join(summary.apis) if summary.apis else '(none)'}")
    if summary.form_submits:
        lines.append(f"Form submits: {len(summary.form_submits)} ({' → '.join(summary.form_submits)})")

    return '\n'.join(lines)
