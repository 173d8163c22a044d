"""
DataSource snapshot diffing.

The app logs the full contents of its data sources on every change. The
tracker keeps the latest list per collection and, for steps that made a
mutating API call, records which items appeared and disappeared. Steps
that only refresh or paginate change snapshots too, but those are not
regression signals, so they only update the baseline.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..trace.normalizer import RawEvent
from .models import Step


logger = logging.getLogger("journeytap.distill")


def item_label(item: Any, label_fields: Sequence[str], max_length: int = 100) -> Optional[str]:
    """
    Display label for one data source item.

    Tries the known label fields in order, then the first short string
    field on the item.
    """
    if isinstance(item, str):
        return item
    if isinstance(item, (int, float)) and not isinstance(item, bool):
        return str(item)
    if not isinstance(item, dict):
        return None

    for name in label_fields:
        value = item.get(name)
        if isinstance(value, str) and value:
            return value

    for value in item.values():
        if isinstance(value, str) and value and len(value) < max_length:
            return value

    return None


def extract_snapshots(
    events: Sequence[RawEvent],
    prefix: str = 'DataSource:',
    label_fields: Sequence[str] = ('displayName', 'name', 'label', 'title'),
    max_length: int = 100
) -> Dict[str, List[str]]:
    """
    Latest snapshot per collection found in a group's state changes.

    Returns:
        Collection id -> ordered item labels
    """
    snapshots = {}
    for event in sorted(events, key=lambda e: e.timestamp):
        if event.kind != 'state:changes':
            continue
        for entry in event.get('diffJson') or []:
            if not isinstance(entry, dict):
                continue
            path = entry.get('path')
            after = entry.get('after')
            if not isinstance(path, str) or not path.startswith(prefix) or not isinstance(after, list):
                continue

            labels = [item_label(item, label_fields, max_length) for item in after]
            snapshots[path[len(prefix):]] = [label for label in labels if label is not None]

    return snapshots


class DataSourceTracker:
    """Per-journey snapshot state. Create one per distillation run."""

    def __init__(self):
        self.previous: Dict[str, List[str]] = {}

    def observe(self, step: Step, snapshots: Dict[str, List[str]]) -> Dict[str, Dict[str, List[str]]]:
        """
        Record a step's snapshots and return the diffs worth asserting on.

        Args:
            step: Step the snapshots were captured in
            snapshots: Collection id -> item labels for this step

        Returns:
            Non-empty diffs keyed by collection id (also attached to the step)
        """
        changes = {}
        mutating = step.awaits.has_mutation

        for collection, current in snapshots.items():
            before = self.previous.get(collection)
            self.previous[collection] = current

            if not mutating or before is None:
                continue

            before_set, current_set = set(before), set(current)
            added = _unique([label for label in current if label not in before_set])
            removed = _unique([label for label in before if label not in current_set])

            if added or removed:
                changes[collection] = {'added': added, 'removed': removed}
                logger.debug(f"{collection}: +{added} -{removed}")

        if changes:
            step.data_source_changes = changes
        return changes

    def record(self, snapshots: Dict[str, List[str]]) -> None:
        """Update the baseline from a group that produced no step."""
        self.previous.update(snapshots)

    def apply(self, steps: Sequence[Optional[Step]], snapshots_per_step: Sequence[Dict[str, List[str]]]) -> None:
        """
        Run `observe` over a whole journey.

        A None step (startup, background refresh) only records its snapshots.
        """
        for step, snapshots in zip(steps, snapshots_per_step):
            if not snapshots:
                continue
            if step is None:
                self.record(snapshots)
            else:
                self.observe(step, snapshots)


def _unique(labels: List[str]) -> List[str]:
    seen = set()
    result = []
    for label in labels:
        if label not in seen:
            seen.add(label)
            result.append(label)
    return result
