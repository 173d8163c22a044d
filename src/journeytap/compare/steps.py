"""
Step-by-step journey comparison.

Stricter than the semantic comparison: steps are compared positionally,
so any added, removed or reordered interaction shows up. Useful when
debugging why a semantic comparison failed.
"""

from typing import List, Optional

from ..distill.models import Awaits, Step, Target
from .report import ComparisonReport, Difference
from .semantic import JourneySource, to_journey


def _label(step: Step) -> str:
    return step.target.display_name() if step.target else ''


def _target_difference(index: int, a: Optional[Target], b: Optional[Target]) -> Optional[Difference]:
    if a is None and b is None:
        return None
    if a is None or b is None:
        return Difference(
            type='target',
            step=index,
            message='target missing in ' + ('before' if a is None else 'after'),
            before=a.to_dict() if a else None,
            after=b.to_dict() if b else None,
        )

    # Component changes with the same label are refactors, not regressions
    if a.display_name() != b.display_name():
        return Difference(type='target', step=index, before=a.display_name(), after=b.display_name())
    return None


def _await_details(a: Awaits, b: Awaits) -> List[str]:
    details = []
    apis_a = sorted(api.signature() for api in a.api)
    apis_b = sorted(api.signature() for api in b.api)

    removed = [api for api in apis_a if api not in apis_b]
    added = [api for api in apis_b if api not in apis_a]
    if removed:
        details.append(f"api removed: {', '.join(removed)}")
    if added:
        details.append(f"api added: {', '.join(added)}")

    to_a = a.navigate.to_path if a.navigate else None
    to_b = b.navigate.to_path if b.navigate else None
    if to_a != to_b:
        details.append(f"navigate: {to_a} → {to_b}")

    return details


def compare_steps(before: JourneySource, after: JourneySource) -> ComparisonReport:
    """
    Compare two journeys step by step.

    Returns:
        ComparisonReport with 1-based step numbers on each difference
    """
    steps_a = to_journey(before).steps
    steps_b = to_journey(after).steps
    differences: List[Difference] = []

    if len(steps_a) != len(steps_b):
        differences.append(Difference(
            type='step-count',
            message=f"{len(steps_a)} steps before, {len(steps_b)} after",
            before=len(steps_a),
            after=len(steps_b),
        ))

    for i in range(max(len(steps_a), len(steps_b))):
        number = i + 1

        if i >= len(steps_a):
            step = steps_b[i]
            differences.append(Difference(
                type='extra-step', step=number,
                message=f"After trace has extra step: {step.action} {_label(step)}".rstrip(),
            ))
            continue

        if i >= len(steps_b):
            step = steps_a[i]
            differences.append(Difference(
                type='missing-step', step=number,
                message=f"After trace missing step: {step.action} {_label(step)}".rstrip(),
            ))
            continue

        a, b = steps_a[i], steps_b[i]
        if a.action != b.action:
            differences.append(Difference(type='action', step=number, before=a.action, after=b.action))

        target_diff = _target_difference(number, a.target, b.target)
        if target_diff:
            differences.append(target_diff)

        details = _await_details(a.awaits, b.awaits)
        if details:
            differences.append(Difference(type='awaits', step=number, details=details))

    return ComparisonReport(
        match=not differences,
        differences=differences,
        step_counts=(len(steps_a), len(steps_b)),
    )
