"""
Held-modifier reconstruction.

A ctrl+click on a table row is often logged as two separate traces: the
keydown for Control under one correlation id and the click under another.
The timeline here is therefore built from the FULL event stream, not
per group, and answers "which modifiers were down at time T".
"""

import bisect
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from ..trace.normalizer import RawEvent
from .models import POINTER_ACTIONS, Step


MODIFIER_KEYS = ('Control', 'Meta', 'Shift', 'Alt')

KEY_ALIASES = {
    'control': 'Control',
    'ctrl': 'Control',
    'meta': 'Meta',
    'cmd': 'Meta',
    'command': 'Meta',
    'os': 'Meta',
    'shift': 'Shift',
    'alt': 'Alt',
    'option': 'Alt',
}

# Interaction detail flag -> canonical key
MODIFIER_FLAGS = {
    'ctrlKey': 'Control',
    'metaKey': 'Meta',
    'shiftKey': 'Shift',
    'altKey': 'Alt',
}


def canonical_key(key: Optional[str]) -> Optional[str]:
    """Canonical modifier name, or None if the key isn't a modifier."""
    if not key:
        return None
    return KEY_ALIASES.get(str(key).lower())


def explicit_modifiers(detail: dict) -> List[str]:
    """Modifiers flagged directly on an interaction event."""
    return [key for flag, key in MODIFIER_FLAGS.items() if detail.get(flag) is True]


def _key_transition(event: RawEvent) -> Optional[Tuple[str, bool]]:
    if event.kind in ('keydown', 'keyup'):
        direction = event.kind
    elif event.kind == 'interaction' and event.action in ('keydown', 'keyup'):
        direction = event.action
    else:
        return None

    key = canonical_key(event.detail.get('key') or event.get('key'))
    if key is None:
        return None
    return key, direction == 'keydown'


@dataclass
class ModifierTimeline:
    """Chronological (timestamp, key, pressed) transitions for modifier keys."""

    entries: List[Tuple[float, str, bool]] = field(default_factory=list)

    @classmethod
    def from_events(cls, events: Iterable[RawEvent]) -> 'ModifierTimeline':
        entries = []
        for event in events:
            transition = _key_transition(event)
            if transition:
                entries.append((event.timestamp, transition[0], transition[1]))
        # Stable: simultaneous events keep log order
        entries.sort(key=lambda entry: entry[0])
        return cls(entries=entries)

    def active_at(self, timestamp: float, window_ms: float = 500.0) -> Set[str]:
        """
        Modifiers considered held at a point in time.

        A key counts when its latest keydown at or before `timestamp` has no
        keyup after it, and that keydown is at most `window_ms` old. The
        window guards against keyups missing from the log.
        """
        last_down = {}
        cutoff = bisect.bisect_right([entry[0] for entry in self.entries], timestamp)

        for ts, key, pressed in self.entries[:cutoff]:
            if pressed:
                last_down[key] = ts
            else:
                last_down.pop(key, None)

        return {key for key, ts in last_down.items() if timestamp - ts <= window_ms}


def apply_modifiers(steps: List[Step], timeline: ModifierTimeline, window_ms: float = 500.0) -> None:
    """
    Fill in modifier keys on pointer steps that didn't record their own.

    Explicit flags captured on the interaction always win.
    """
    if not timeline.entries:
        return

    for step in steps:
        if step.action not in POINTER_ACTIONS or step.target is None:
            continue
        if step.target.explicit_modifiers:
            continue

        active = timeline.active_at(step.timestamp, window_ms)
        if active:
            step.target.modifiers = [key for key in MODIFIER_KEYS if key in active]
