"""
Comparison reports.

Both the semantic and the step-by-step comparator return a
ComparisonReport; `format_report` renders either for the terminal.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Difference:
    """One observed difference between two journeys."""
    type: str
    message: str = ''
    before: Any = None
    after: Any = None
    endpoint: Optional[str] = None
    step: Optional[int] = None
    details: List[str] = field(default_factory=list)

    # Informational differences are reported but don't fail the match
    blocking: bool = True

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'type': self.type}
        for key in ('message', 'before', 'after', 'endpoint', 'step', 'details'):
            value = getattr(self, key)
            if value not in (None, '', []):
                result[key] = value
        if not self.blocking:
            result['blocking'] = False
        return result


@dataclass
class SemanticSummary:
    """Externally observable effects of a journey."""
    apis: List[str] = field(default_factory=list)
    api_count: int = 0
    mutations: Dict[str, int] = field(default_factory=dict)
    error_endpoints: List[str] = field(default_factory=list)
    form_submits: List[str] = field(default_factory=list)
    navigations: List[str] = field(default_factory=list)
    context_menus: List[str] = field(default_factory=list)
    journey: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'apis': self.apis,
            'apiCount': self.api_count,
            'mutations': self.mutations,
            'errorEndpoints': self.error_endpoints,
            'formSubmits': self.form_submits,
            'navigations': self.navigations,
            'contextMenus': self.context_menus,
            'journey': self.journey,
        }


@dataclass
class ComparisonReport:
    """Result of comparing a baseline journey with a new one."""
    match: bool
    differences: List[Difference] = field(default_factory=list)
    before: Optional[SemanticSummary] = None
    after: Optional[SemanticSummary] = None
    ignored_apis: List[str] = field(default_factory=list)
    step_counts: Optional[tuple] = None

    @property
    def blocking(self) -> List[Difference]:
        return [d for d in self.differences if d.blocking]

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'match': self.match,
            'differences': [d.to_dict() for d in self.differences],
        }
        if self.ignored_apis:
            result['ignoredApis'] = self.ignored_apis
        if self.step_counts is not None:
            result['stepCount'] = {'before': self.step_counts[0], 'after': self.step_counts[1]}
        if self.before is not None:
            result['before'] = self.before.to_dict()
        if self.after is not None:
            result['after'] = self.after.to_dict()
        return result


def _format_difference(diff: Difference) -> List[str]:
    heading = f"  Step {diff.step}: {diff.type}" if diff.step is not None else f"  {diff.type}"
    if diff.message:
        heading += f": {diff.message}"
    if not diff.blocking:
        heading += " (informational)"

    lines = [heading]
    if diff.before is not None:
        lines.append(f"    before: {json.dumps(diff.before, ensure_ascii=False)}")
    if diff.after is not None:
        lines.append(f"    after: {json.dumps(diff.after, ensure_ascii=False)}")
    for detail in diff.details:
        lines.append(f"    - {detail}")
    return lines


def _format_summary(title: str, summary: SemanticSummary, show_journey: bool) -> List[str]:
    lines = [
        f"{title}:",
        f"  APIs: {', '.join(summary.apis)}",
        f"  Form submits: {len(summary.form_submits)} ({' → '.join(summary.form_submits)})",
        f"  Context menus: {', '.join(summary.context_menus)}",
    ]
    if summary.error_endpoints:
        lines.append(f"  Errors: {', '.join(summary.error_endpoints)}")
    if show_journey and summary.journey:
        lines.append('  Journey:')
        lines.extend(f"    {line}" for line in summary.journey)
    return lines


def format_report(report: ComparisonReport, show_journey: bool = False) -> str:
    """
    Render a report for the terminal.

    Args:
        report: Semantic or step report
        show_journey: Include each side's journey lines (semantic reports)

    Returns:
        Multi-line text
    """
    lines = []
    semantic = report.before is not None

    if report.ignored_apis:
        lines.append(f"(ignoring APIs: {', '.join(report.ignored_apis)})")

    kind = 'semantically' if semantic else 'step by step'
    if report.match:
        lines.append(f"✓ Traces match {kind}")
        if report.step_counts is not None:
            lines.append(f"  {report.step_counts[0]} steps compared")
    else:
        lines.append(f"✗ Traces differ {kind}")
        if report.step_counts is not None:
            lines.append(f"  Before: {report.step_counts[0]} steps")
            lines.append(f"  After: {report.step_counts[1]} steps")

    if report.differences:
        lines.append('')
        lines.append('Differences:')
        for diff in report.differences:
            lines.extend(_format_difference(diff))

    if semantic:
        lines.append('')
        lines.extend(_format_summary('Before', report.before, show_journey))
        lines.append('')
        lines.extend(_format_summary('After', report.after, show_journey))

    return '\n'.join(lines)
