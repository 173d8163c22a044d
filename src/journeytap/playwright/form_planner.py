"""
Form-aware step planning for script generation.

Two passes run before code is emitted:

- reorder_form_steps: when a user types into a modal form and clicks
  something behind it mid-typing, the trace records both chronologically.
  Replay must finish the form first or it will click elements the modal
  still covers.
- build_fill_plan: keystrokes are replayed as a single fill() per field.
  The value comes from the form data of the next submission, matched to
  the textbox's accessible name.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..config import FillScoring
from ..distill.models import CLICK, KEY_PRESS, Step


DEFAULT_TEXT_FIELD_ROLES = ('textbox', 'searchbox')


def is_text_keystroke(step: Step, text_field_roles: Sequence[str] = DEFAULT_TEXT_FIELD_ROLES) -> bool:
    return step.action == KEY_PRESS and step.target is not None and step.target.role in text_field_roles


def _same_field(step: Step, name: Optional[str], text_field_roles: Sequence[str]) -> bool:
    return is_text_keystroke(step, text_field_roles) and step.target.name == name


def _next_submission(steps: Sequence[Step], start: int) -> int:
    for j in range(start, len(steps)):
        if steps[j].is_submission:
            return j
    return -1


def _is_interleaved(steps: Sequence[Step], fill_start: int, submit_idx: int, name: Optional[str],
                    text_field_roles: Sequence[str]) -> bool:
    """A non-keystroke step followed by more typing on the same field."""
    saw_other = False
    for j in range(fill_start + 1, submit_idx):
        if not _same_field(steps[j], name, text_field_roles):
            saw_other = True
        elif saw_other:
            return True
    return False


def reorder_form_steps(steps: Sequence[Step],
                       text_field_roles: Sequence[str] = DEFAULT_TEXT_FIELD_ROLES) -> List[Step]:
    """
    Move background steps that interrupted a form fill to after its submit.

    Only sequences with evidence of interleaving are touched; anything
    else is returned in its original order.

    Args:
        steps: Ordered steps
        text_field_roles: Roles treated as text fields

    Returns:
        New list with the same steps
    """
    result = list(steps)
    i = 0

    while i < len(result):
        step = result[i]
        if not is_text_keystroke(step, text_field_roles):
            i += 1
            continue

        name = step.target.name
        submit_idx = _next_submission(result, i + 1)
        if submit_idx == -1 or not _is_interleaved(result, i, submit_idx, name, text_field_roles):
            i += 1
            continue

        kept, deferred = [], []
        for j in range(i + 1, submit_idx):
            (kept if _same_field(result[j], name, text_field_roles) else deferred).append(result[j])

        result[i + 1:submit_idx + 1] = kept + [result[submit_idx]] + deferred
        i = i + len(kept) + 2

    return result


def _normalize_label(label: str) -> str:
    return re.sub(r'[:\s*]+', '', label.lower())


def field_match_score(field_name: str, accessible_name: str, scoring: Optional[FillScoring] = None) -> int:
    """
    Score how well a form field name matches a textbox label.

        "password" vs "Password:"            -> exact
        "name" vs "User Name:"               -> substring
        "rootDirectory" vs "Home Directory:" -> word overlap ("directory")

    Returns:
        0 when nothing matches; higher is better
    """
    scoring = scoring or FillScoring()
    label = _normalize_label(accessible_name)
    field_lower = field_name.lower()

    if not field_lower or not label:
        return 0

    if label == field_lower:
        return scoring.exact_score

    if field_lower in label:
        return scoring.substring_base + len(field_lower)

    words = re.sub(r'([A-Z])', r' \1', field_name).lower().split()
    return sum(len(word) for word in words if word in label)


@dataclass
class FillEntry:
    field_name: str
    value: str
    submit_index: int


class FillPlan:
    """
    Queued fill values per accessible name.

    The same field may be filled once per submission (e.g. two renames in
    one journey); each use consumes the queue head.
    """

    def __init__(self, submit_indices: Optional[List[int]] = None):
        self.queues: "OrderedDict[str, List[FillEntry]]" = OrderedDict()
        self.covered_fields: Set[str] = set()
        self.submit_indices = submit_indices or []
        self._filled: Set[Tuple[str, int]] = set()

    def add(self, name: str, entry: FillEntry):
        self.queues.setdefault(name, []).append(entry)
        self.covered_fields.add(entry.field_name)

    def has(self, name: Optional[str]) -> bool:
        return bool(name) and bool(self.queues.get(name))

    def peek(self, name: str) -> Optional[FillEntry]:
        queue = self.queues.get(name)
        return queue[0] if queue else None

    def consume(self, name: str) -> Optional[FillEntry]:
        queue = self.queues.get(name)
        return queue.pop(0) if queue else None

    def next_submit_after(self, index: int) -> int:
        return next((s for s in self.submit_indices if s > index), -1)

    def take(self, name: Optional[str], step_index: int) -> Tuple[Optional[FillEntry], bool]:
        """
        Fill value for a text-field step, once per field per submission.

        Returns:
            (entry, suppressed): the entry to emit, or None with
            suppressed=True when this field was already filled for the
            submission the step belongs to
        """
        if not name:
            return None, False

        submit_index = self.next_submit_after(step_index)
        if (name, submit_index) in self._filled:
            return None, True

        entry = self.peek(name)
        if entry is None or entry.submit_index != submit_index:
            return None, False

        self.consume(name)
        self._filled.add((name, submit_index))
        return entry, False


def build_fill_plan(steps: Sequence[Step], scoring: Optional[FillScoring] = None,
                    text_field_roles: Sequence[str] = DEFAULT_TEXT_FIELD_ROLES) -> FillPlan:
    """
    Match text-field interactions to the form data of their submission.

    Each click or keystroke on a named text field is paired with the
    nearest following submission; the best-scoring string field not yet
    claimed for that submission becomes its fill value.
    """
    submit_indices = [i for i, s in enumerate(steps) if s.is_submission]
    plan = FillPlan(submit_indices)
    if not submit_indices:
        return plan

    claimed: Set[Tuple[int, str]] = set()
    planned: Set[Tuple[str, int]] = set()

    for i, step in enumerate(steps):
        if step.action not in (CLICK, KEY_PRESS) or step.target is None:
            continue
        if step.target.role not in text_field_roles or not step.target.name:
            continue

        name = step.target.name
        submit_index = plan.next_submit_after(i)
        if submit_index == -1 or (name, submit_index) in planned:
            continue

        form_data: Dict[str, Any] = steps[submit_index].form_data or {}
        best: Optional[FillEntry] = None
        best_score = 0
        for field_name, value in form_data.items():
            if not isinstance(value, str) or (submit_index, field_name) in claimed:
                continue
            score = field_match_score(field_name, name, scoring)
            if score > best_score:
                best_score = score
                best = FillEntry(field_name=field_name, value=value, submit_index=submit_index)

        if best is not None:
            plan.add(name, best)
            claimed.add((submit_index, best.field_name))
            planned.add((name, submit_index))

    return plan
