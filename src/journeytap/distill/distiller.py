"""
Step distillation.

Groups normalized events by correlation id into ordered Steps, each one
user action plus the API calls, navigation, dialogs and toasts it caused.

Pipeline:
    1. Bucket events by correlation id, order buckets by earliest timestamp
    2. Build the single startup step
    3. Build one step per bucket with a primary interaction, diffing
       DataSource snapshots against everything seen so far
    4. Resolve held modifiers from the global key timeline
    5. Collapse click, click, double-click runs
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import DistillConfig
from ..trace.method_resolver import resolve_method
from ..trace.normalizer import RawEvent, normalize_log
from .datasource import DataSourceTracker, extract_snapshots
from .modals import resolve_modals
from .models import (
    ACTION_NAMES, CLICK, DOUBLE_CLICK, STARTUP, TOAST,
    ApiAwait, Awaits, Journey, Navigation, Step, Target, Toast,
)
from .modifiers import ModifierTimeline, apply_modifiers, canonical_key, explicit_modifiers


logger = logging.getLogger("journeytap.distill")

INTERACTION = 'interaction'
API_START = 'api:start'
API_COMPLETE = 'api:complete'
API_ERROR = 'api:error'
HANDLER_START = 'handler:start'
NAVIGATE = 'navigate'
STATE_CHANGES = 'state:changes'
VARS_INIT = 'component:vars:init'
TOAST_KIND = 'toast'

SUBMIT_EVENT = 'submit'


@dataclass
class Bucket:
    """Events sharing one correlation id."""

    correlation_id: Optional[str]
    events: List[RawEvent] = field(default_factory=list)

    @property
    def first_timestamp(self) -> float:
        return min(e.timestamp for e in self.events)

    def of_kind(self, *kinds: str) -> List[RawEvent]:
        return [e for e in self.events if e.kind in kinds]


class StepDistiller:
    """
    Turns a normalized event stream into a Journey.

    Example:
        events = normalize_log(raw)
        journey = StepDistiller().distill(events)
    """

    def __init__(self, config: Optional[DistillConfig] = None):
        self.config = config or DistillConfig()
        self._generic = re.compile(self.config.generic_component_pattern)
        self._html_tag = re.compile(self.config.html_tag_pattern, re.IGNORECASE)

    def distill(self, events: Sequence[RawEvent], name: Optional[str] = None) -> Journey:
        """
        Distill events into a journey.

        Args:
            events: Normalized events (any order)
            name: Optional journey name

        Returns:
            Journey whose first step is the startup step
        """
        buckets = self._partition(events)
        startup_ids = self._startup_ids(buckets)

        startup_step = self._startup_step([b for b in buckets if b.correlation_id in startup_ids])
        steps: List[Step] = []
        tracker = DataSourceTracker()

        for bucket in buckets:
            snapshots = extract_snapshots(
                bucket.events,
                prefix=self.config.datasource_prefix,
                label_fields=self.config.datasource_label_fields,
                max_length=self.config.max_item_label_length,
            )
            step = None if bucket.correlation_id in startup_ids else self._bucket_step(bucket)
            if step is None:
                # Startup loads and background refreshes only move the baseline
                tracker.record(snapshots)
                continue
            steps.append(step)
            tracker.observe(step, snapshots)

        # Global: modifier keydowns live in other buckets
        timeline = ModifierTimeline.from_events(events)
        apply_modifiers(steps, timeline, self.config.modifier_window_ms)

        journey = Journey(steps=[startup_step] + collapse_double_clicks(steps), name=name)
        logger.info(f"Distilled {len(events)} events into {len(journey.steps)} steps")
        return journey

    # -- bucketing -------------------------------------------------------

    def _partition(self, events: Sequence[RawEvent]) -> List[Bucket]:
        grouped: "OrderedDict[Any, Bucket]" = OrderedDict()

        for event in events:
            key = event.correlation_id
            if key is None:
                # Uncorrelated toasts stand alone; everything else is listener noise
                if event.kind == TOAST_KIND:
                    key = ('toast', event.index)
                else:
                    logger.debug(f"Dropping uncorrelated {event.kind} event #{event.index}")
                    continue
            if key not in grouped:
                grouped[key] = Bucket(correlation_id=key if isinstance(key, str) else None)
            grouped[key].events.append(event)

        buckets = list(grouped.values())
        for bucket in buckets:
            bucket.events.sort(key=lambda e: e.timestamp)
        buckets.sort(key=lambda b: b.first_timestamp)
        return buckets

    def _startup_ids(self, buckets: List[Bucket]) -> set:
        prefixed = {
            b.correlation_id for b in buckets
            if b.correlation_id and b.correlation_id.startswith(self.config.startup_prefix)
        }
        if prefixed:
            return prefixed

        # No reserved id: the earliest non-interaction bucket ahead of any interaction
        for bucket in buckets:
            if self._primary_interaction(bucket) is not None:
                break
            if bucket.correlation_id and not self._toast_only(bucket):
                return {bucket.correlation_id}
        return set()

    # -- startup -----------------------------------------------------------

    def _startup_step(self, buckets: List[Bucket]) -> Step:
        apis: List[ApiAwait] = []
        seen = set()
        state: List[str] = []

        for bucket in buckets:
            for event in bucket.of_kind(API_COMPLETE):
                if not event.get('method'):
                    continue
                endpoint = event.get('endpoint') or ''
                api = ApiAwait(
                    method=resolve_method(event.get('method'), endpoint),
                    endpoint=endpoint,
                    status=event.get('status'),
                )
                if api.signature() not in seen:
                    seen.add(api.signature())
                    apis.append(api)

            for event in bucket.of_kind(STATE_CHANGES, VARS_INIT):
                for marker in self._state_names(event):
                    if marker not in state:
                        state.append(marker)

        if not buckets:
            logger.debug("No startup trace found; synthesizing an empty startup step")

        return Step(action=STARTUP, awaits=Awaits(api=apis, state=state))

    # -- interaction steps -------------------------------------------------

    def _toast_only(self, bucket: Bucket) -> bool:
        return bool(bucket.events) and all(e.kind == TOAST_KIND for e in bucket.events)

    def _primary_interaction(self, bucket: Bucket) -> Optional[RawEvent]:
        for event in bucket.events:
            if event.kind != INTERACTION:
                continue
            action = event.action
            if action not in ACTION_NAMES:
                continue
            # A bare modifier keydown only feeds the modifier timeline
            if action == 'keydown' and canonical_key(event.detail.get('key')):
                continue
            if self._is_ignored(event):
                continue
            return event
        return None

    def _is_ignored(self, event: RawEvent) -> bool:
        ignored = self.config.ignored_interaction_labels
        text = event.detail.get('text') or ''
        return (
            event.get('componentLabel') in ignored
            or event.get('componentType') in ignored
            or any(label in text for label in ignored)
        )

    def _bucket_step(self, bucket: Bucket) -> Optional[Step]:
        interaction = self._primary_interaction(bucket)

        if interaction is None:
            if self._toast_only(bucket):
                return Step(
                    action=TOAST,
                    toasts=self._toasts(bucket),
                    timestamp=bucket.first_timestamp,
                )
            logger.debug(f"Skipping background trace {bucket.correlation_id} (no user interaction)")
            return None

        action = ACTION_NAMES[interaction.action]
        target = self._target(bucket, interaction, action)

        return Step(
            action=action,
            target=target,
            awaits=self._awaits(bucket),
            modals=resolve_modals(bucket.events, cancel_label=self.config.cancel_label),
            toasts=self._toasts(bucket),
            timestamp=interaction.timestamp,
        )

    def _is_usable_label(self, text: Optional[str]) -> bool:
        if not text or not isinstance(text, str):
            return False
        if len(text) >= self.config.max_label_length:
            return False
        return not self._generic.search(text) and not self._html_tag.match(text)

    def _nearest_handler(self, bucket: Bucket, interaction: RawEvent,
                         event_name: Optional[str] = None) -> Optional[RawEvent]:
        handlers = [
            e for e in bucket.of_kind(HANDLER_START)
            if (e.get('args') is not None or e.get('displayName') or e.get('itemName'))
            and (event_name is None or e.get('eventName') == event_name)
        ]
        if not handlers:
            return None
        return min(handlers, key=lambda e: abs(e.timestamp - interaction.timestamp))

    def _target(self, bucket: Bucket, interaction: RawEvent, action: str) -> Target:
        detail = interaction.detail
        target = Target(
            component=interaction.get('componentType') or interaction.get('componentLabel'),
            tag=detail.get('targetTag'),
            selector_path=detail.get('selectorPath'),
        )

        # (a) accessible role/name captured on the interaction
        target.role = detail.get('ariaRole')
        target.name = detail.get('ariaName')

        # (b) stable test id
        if interaction.get('uid'):
            target.test_id = str(interaction.get('uid'))

        # (d, applied first so (c) can override) short visible text
        if self._is_usable_label(detail.get('text')):
            target.label = detail.get('text')

        # (c) semantic label from the handler's arguments
        handler = self._nearest_handler(bucket, interaction)
        if handler is not None:
            args = handler.get('args')
            display_name = handler.get('displayName')
            is_submit = handler.get('eventName') == SUBMIT_EVENT
            if isinstance(args, dict):
                display_name = args.get('displayName') or display_name
                if isinstance(args.get('path'), str):
                    target.path = args['path']
            elif handler.get('argsPath'):
                target.path = handler.get('argsPath')

            if display_name:
                target.label = display_name
                if not target.role:
                    target.role, target.name = 'treeitem', display_name
            elif not target.label and not is_submit:
                item_name = handler.get('itemName')
                if isinstance(args, dict) and isinstance(args.get('name'), str):
                    item_name = item_name or args['name']
                if isinstance(item_name, str):
                    target.label = item_name

        submit = self._nearest_handler(bucket, interaction, event_name=SUBMIT_EVENT)
        if submit is not None and isinstance(submit.get('args'), dict):
            target.form_data = submit.get('args')

        # Submission fallback: a mutating call carrying a structured body
        if target.form_data is None and action == CLICK:
            for event in bucket.of_kind(API_START, API_COMPLETE):
                body = event.get('body')
                method = resolve_method(event.get('method'), event.get('endpoint'))
                if isinstance(body, dict) and method not in ('GET', 'HEAD', 'OPTIONS'):
                    target.form_data = body
                    break

        self._apply_selection(bucket, target)

        if not target.label and self._is_usable_label(interaction.get('componentLabel')):
            target.label = interaction.get('componentLabel')

        if action == 'key-press' and detail.get('key'):
            target.key = detail.get('key')

        flagged = explicit_modifiers(detail)
        if flagged:
            target.modifiers = flagged
            target.explicit_modifiers = True

        return target

    def _apply_selection(self, bucket: Bucket, target: Target):
        """Selected path from a selectedIds change; also a last-resort label."""
        for event in bucket.of_kind(STATE_CHANGES):
            for entry in event.get('diffJson') or []:
                if not isinstance(entry, dict) or 'selectedIds' not in str(entry.get('path', '')):
                    continue
                after = entry.get('after')
                selected = after[0] if isinstance(after, list) and after else after
                if isinstance(selected, str) and selected:
                    target.selected_path = selected
                    if not target.label:
                        target.label = selected.rstrip('/').split('/')[-1]
                    return

    # -- awaits --------------------------------------------------------

    def _awaits(self, bucket: Bucket) -> Awaits:
        awaits = Awaits(api=self._api_calls(bucket))

        navigations = bucket.of_kind(NAVIGATE)
        if navigations:
            nav = navigations[0]
            awaits.navigate = Navigation(from_path=nav.get('from'), to_path=nav.get('to'))

        for event in bucket.of_kind(STATE_CHANGES):
            for marker in self._state_names(event):
                if marker not in awaits.state:
                    awaits.state.append(marker)

        return awaits

    def _api_calls(self, bucket: Bucket) -> List[ApiAwait]:
        """
        One ApiAwait per call: starts are paired with their completion by
        request id, else by method+endpoint in order.
        """
        calls: List[Dict[str, Any]] = []

        for event in bucket.of_kind(API_START, API_COMPLETE, API_ERROR):
            if not event.get('method'):
                continue
            endpoint = event.get('endpoint') or ''
            method = resolve_method(event.get('method'), endpoint)
            request_id = event.get('requestId')

            if event.kind == API_START:
                calls.append({'method': method, 'endpoint': endpoint, 'requestId': request_id,
                              'status': None, 'error': False, 'completed': False})
                continue

            pending = next(
                (c for c in calls if not c['completed'] and (
                    (request_id is not None and c['requestId'] == request_id)
                    or (request_id is None and c['method'] == method and c['endpoint'] == endpoint)
                )),
                None
            )
            if pending is None:
                pending = {'method': method, 'endpoint': endpoint, 'requestId': request_id}
                calls.append(pending)

            status = event.get('status')
            pending['status'] = status
            pending['completed'] = True
            pending['error'] = event.kind == API_ERROR or (isinstance(status, int) and status >= 400)

        return [
            ApiAwait(method=c['method'], endpoint=c['endpoint'], status=c['status'],
                     error=c['error'], completed=c['completed'])
            for c in calls
        ]

    def _state_names(self, event: RawEvent) -> List[str]:
        names = []
        if event.get('stateName'):
            names.append(event.get('stateName'))
        for entry in event.get('diffJson') or []:
            if isinstance(entry, dict) and isinstance(entry.get('path'), str):
                names.append(entry['path'])
        if event.kind == VARS_INIT and event.get('vars') and isinstance(event.get('vars'), dict):
            names.extend(event.get('vars').keys())
        return names

    def _toasts(self, bucket: Bucket) -> List[Toast]:
        return [
            Toast(type=e.get('toastType'), message=e.get('message') or '')
            for e in bucket.of_kind(TOAST_KIND)
        ]


def _absorb(window: Sequence[Step]) -> Step:
    """The double-click, carrying whatever the two preceding clicks caused."""
    kept = window[-1]
    state: List[str] = []
    changes: Dict[str, Dict[str, List[str]]] = {}
    for step in window:
        state.extend(marker for marker in step.awaits.state if marker not in state)
        changes.update(step.data_source_changes)

    kept.awaits = Awaits(
        api=[api for step in window for api in step.awaits.api],
        navigate=kept.awaits.navigate or next(
            (s.awaits.navigate for s in window if s.awaits.navigate is not None), None),
        state=state,
    )
    kept.modals = [modal for step in window for modal in step.modals]
    kept.toasts = [toast for step in window for toast in step.toasts]
    kept.data_source_changes = changes
    return kept


def collapse_double_clicks(steps: List[Step]) -> List[Step]:
    """
    Replace click, click, double-click on one target with the double-click.

    Browsers fire two clicks before the dblclick; only the last is replayed,
    but the API calls, dialogs and toasts of all three stay on it.
    """
    result = []
    i = 0
    while i < len(steps):
        window = steps[i:i + 3]
        if (
            len(window) == 3
            and [s.action for s in window] == [CLICK, CLICK, DOUBLE_CLICK]
            and all(s.target is not None for s in window)
            and len({s.target.identity() for s in window}) == 1
        ):
            result.append(_absorb(window))
            i += 3
        else:
            result.append(steps[i])
            i += 1
    return result


def distill(raw: Union[Sequence[RawEvent], list, dict, str], config: Optional[DistillConfig] = None,
            name: Optional[str] = None) -> Journey:
    """
    Distill a raw trace (any supported shape) or normalized events.

    Example:
        journey = distill(TraceLoader.load_from_file('baseline.json'))
    """
    if isinstance(raw, (list, tuple)) and raw and all(isinstance(e, RawEvent) for e in raw):
        events = list(raw)
    else:
        events = normalize_log(raw)
    return StepDistiller(config).distill(events, name=name)
