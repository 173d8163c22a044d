"""
Semantic journey comparison.

Two runs of the same user journey are equivalent when they have the same
externally observable effects: the same API surface, the same number of
writes per endpoint, the same failures, the same form submissions and
the same context-menu targets. Timing, DOM structure, event order inside
a step and GET counts (refresh and polling vary) are ignored.
"""

import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Union

from ..common import URLMatcher
from ..config import DistillConfig
from ..distill.distiller import distill
from ..distill.models import CONTEXT_MENU, KEY_PRESS, ApiAwait, Journey
from .report import ComparisonReport, Difference, SemanticSummary


logger = logging.getLogger("journeytap.compare")

JourneySource = Union[Journey, Dict[str, Any], List[Any], str, bytes]


def to_journey(source: JourneySource, config: Optional[DistillConfig] = None) -> Journey:
    """
    Accept a Journey, its JSON form, a raw event log or a text export.
    """
    if isinstance(source, Journey):
        return source
    if isinstance(source, dict) and isinstance(source.get('steps'), list):
        return Journey.from_dict(source)
    return distill(source, config)


def is_ignored(api: ApiAwait, ignore_apis: Sequence[str]) -> bool:
    """Substring match against the full endpoint or the 'METHOD /path' signature."""
    signature = f"{api.method} {URLMatcher.endpoint_path(api.endpoint)}"
    return any(pattern in api.endpoint or pattern in signature for pattern in ignore_apis)


def form_identifier(form_data: Dict[str, Any], field_name: str = 'name') -> str:
    value = form_data.get(field_name)
    if isinstance(value, str):
        return value
    return json.dumps(form_data, sort_keys=True, ensure_ascii=False)


def extract_semantics(
    source: JourneySource,
    ignore_apis: Sequence[str] = (),
    form_identifier_field: str = 'name',
    config: Optional[DistillConfig] = None
) -> SemanticSummary:
    """
    Summarize the observable effects of a journey.

    Startup calls are excluded: baselines captured by hand often lose them
    to buffer eviction. Only completed calls count.

    Args:
        source: Journey, journey dict, raw log or text export
        ignore_apis: Endpoint substrings to leave out entirely
        form_identifier_field: Form data field naming a submission
        config: Distillation heuristics for raw input

    Returns:
        SemanticSummary with sorted, de-duplicated sets
    """
    journey = to_journey(source, config)

    calls = [
        api
        for step in journey.interactions
        for api in step.awaits.api
        if api.completed and not is_ignored(api, ignore_apis)
    ]
    signatures = [f"{api.method} {URLMatcher.endpoint_path(api.endpoint)}" for api in calls]

    mutations = Counter(sig for sig, api in zip(signatures, calls) if api.mutating)
    errors = {sig for sig, api in zip(signatures, calls) if api.error}

    navigations = []
    for step in journey.interactions:
        nav = step.awaits.navigate
        if nav and nav.to_path:
            destination = nav.to_path.split('?')[0]
            if destination not in navigations:
                navigations.append(destination)

    context_menus = [
        step.target.display_name()
        for step in journey.interactions
        if step.action == CONTEXT_MENU and step.target and step.target.display_name()
    ]

    return SemanticSummary(
        apis=sorted(set(signatures)),
        api_count=len(calls),
        mutations=dict(sorted(mutations.items())),
        error_endpoints=sorted(errors),
        form_submits=[
            form_identifier(step.form_data, form_identifier_field)
            for step in journey.interactions if step.submits_form
        ],
        navigations=navigations,
        context_menus=context_menus,
        journey=[step.describe() for step in journey.steps if step.action != KEY_PRESS],
    )


def compare_semantic(
    before: JourneySource,
    after: JourneySource,
    ignore_apis: Sequence[str] = (),
    strict_navigation: bool = False,
    form_identifier_field: str = 'name',
    config: Optional[DistillConfig] = None
) -> ComparisonReport:
    """
    Compare two journeys by their observable effects.

    The match holds only if the API sets, per-endpoint mutation counts,
    error endpoints, form submissions (positionally) and context-menu
    target sets are all equal. Navigation differences are informational
    unless strict_navigation is set.

    Example:
        report = compare_semantic(baseline, capture, ignore_apis=['/GetLicense'])
        if not report.match:
            print(format_report(report))
    """
    ignore_apis = list(ignore_apis)
    sem_a = extract_semantics(before, ignore_apis, form_identifier_field, config)
    sem_b = extract_semantics(after, ignore_apis, form_identifier_field, config)

    differences: List[Difference] = []

    missing = [a for a in sem_a.apis if a not in sem_b.apis]
    extra = [a for a in sem_b.apis if a not in sem_a.apis]
    if missing or extra:
        parts = []
        if missing:
            parts.append(f"in before but not after: {', '.join(missing)}")
        if extra:
            parts.append(f"in after but not before: {', '.join(extra)}")
        differences.append(Difference(
            type='api-set',
            message='APIs ' + '; '.join(parts),
            before=missing,
            after=extra,
        ))

    for signature in sorted(set(sem_a.mutations) | set(sem_b.mutations)):
        count_a = sem_a.mutations.get(signature, 0)
        count_b = sem_b.mutations.get(signature, 0)
        if count_a != count_b:
            differences.append(Difference(
                type='mutation-count',
                message=f"{signature} called {count_a}x before, {count_b}x after",
                before=count_a,
                after=count_b,
                endpoint=signature,
            ))

    if sem_a.error_endpoints != sem_b.error_endpoints:
        differences.append(Difference(
            type='error-endpoints',
            message='Failing endpoints changed',
            before=sem_a.error_endpoints,
            after=sem_b.error_endpoints,
        ))

    if sem_a.form_submits != sem_b.form_submits:
        message = (f"{len(sem_a.form_submits)} submissions before, {len(sem_b.form_submits)} after"
                   if len(sem_a.form_submits) != len(sem_b.form_submits)
                   else 'Submitted values differ')
        differences.append(Difference(
            type='form-submissions',
            message=message,
            before=sem_a.form_submits,
            after=sem_b.form_submits,
        ))

    if set(sem_a.context_menus) != set(sem_b.context_menus):
        differences.append(Difference(
            type='context-menus',
            message='Context menu targets differ',
            before=sorted(set(sem_a.context_menus) - set(sem_b.context_menus)),
            after=sorted(set(sem_b.context_menus) - set(sem_a.context_menus)),
        ))

    if sem_a.navigations != sem_b.navigations:
        differences.append(Difference(
            type='navigation',
            message='Navigation destinations differ',
            before=sem_a.navigations,
            after=sem_b.navigations,
            blocking=strict_navigation,
        ))

    report = ComparisonReport(
        match=not any(d.blocking for d in differences),
        differences=differences,
        before=sem_a,
        after=sem_b,
        ignored_apis=ignore_apis,
    )
    logger.debug(f"Semantic comparison: match={report.match}, {len(differences)} difference(s)")
    return report
