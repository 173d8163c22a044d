"""
Event log normalization.

Converts either supported trace shape into a flat list of RawEvent records:

- Structured logs: the JSON array captured from ``window._xsLogs``
- Grouped text exports: the inspector's human-readable "--- Trace N ---" dump

Both converge on the same payload keys so the distiller never needs to
know which shape it was given.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..common.utils import safe_json_parse, extract_partial_fields


logger = logging.getLogger("journeytap.trace")


class TraceFormatError(ValueError):
    """Raised when a trace is neither a structured log nor a text export."""


@dataclass(frozen=True)
class RawEvent:
    """One entry of the source log. Never mutated after normalization."""

    kind: str
    correlation_id: Optional[str] = None
    timestamp: float = 0.0
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    index: int = 0
    group_summary: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        """Shortcut for payload lookups."""
        return self.payload.get(key, default)

    @property
    def action(self) -> Optional[str]:
        """Interaction name (click, dblclick, keydown, ...) for interaction events."""
        return self.payload.get('action')

    @property
    def detail(self) -> Dict[str, Any]:
        detail = self.payload.get('detail')
        return detail if isinstance(detail, dict) else {}


# Keys lifted out of the structured log into RawEvent fields
_ENVELOPE_KEYS = ('kind', 'traceId', 'perfTs')

# Wrapper keys accepted around the event array
_WRAPPER_KEYS = ('events', 'logs', 'traces')


def normalize_log(raw: Union[list, dict, str]) -> List[RawEvent]:
    """
    Normalize a trace in any supported shape.

    Args:
        raw: Parsed JSON (list/dict), JSON text, or a grouped text export

    Returns:
        Events in source order

    Raises:
        TraceFormatError: If the input shape is not recognized
    """
    if isinstance(raw, (list, dict)):
        return normalize_structured(raw)

    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')

    if not isinstance(raw, str):
        raise TraceFormatError(
            f"Unrecognized trace format: expected a JSON array, object or text export, "
            f"got {type(raw).__name__}"
        )

    stripped = raw.strip()
    if not stripped:
        raise TraceFormatError("Unrecognized trace format: input is empty")

    if stripped.startswith('[') or stripped.startswith('{'):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            if not TextTraceParser.looks_like_export(raw):
                raise TraceFormatError(f"Unrecognized trace format: invalid JSON ({e})") from e
        else:
            return normalize_structured(parsed)

    return TextTraceParser().parse(raw)


def normalize_structured(data: Union[list, dict]) -> List[RawEvent]:
    """
    Normalize a structured (JSON) event log.

    Raises:
        TraceFormatError: On a wrong container type or a malformed event
    """
    if isinstance(data, dict):
        for key in _WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            raise TraceFormatError(
                f"Unrecognized trace format: expected a list of events or a dict with one of "
                f"{list(_WRAPPER_KEYS)}, found keys: {list(data.keys())}"
            )

    if not isinstance(data, list):
        raise TraceFormatError(f"Unrecognized trace format: expected a list, got {type(data).__name__}")

    if not data:
        raise TraceFormatError("Trace contains no events")

    events = []
    for idx, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise TraceFormatError(f"Event #{idx} is not an object (got {type(entry).__name__})")
        if not entry.get('kind'):
            raise TraceFormatError(f"Event #{idx} has no 'kind' field: {json.dumps(entry)[:120]}")
        events.append(_from_structured(entry, idx))

    logger.debug(f"Normalized {len(events)} structured events")
    return events


def _first_arg(entry: Dict[str, Any]) -> Any:
    """Handler arguments: eventArgs[0], else args[0], else args itself."""
    event_args = entry.get('eventArgs')
    if isinstance(event_args, list) and event_args:
        return event_args[0]
    if isinstance(event_args, dict):
        return event_args

    args = entry.get('args')
    if isinstance(args, list):
        return args[0] if args else None
    if isinstance(args, str):
        parsed = safe_json_parse(args)
        if parsed is None:
            return None
        return parsed[0] if isinstance(parsed, list) and parsed else parsed
    return args


def _from_structured(entry: Dict[str, Any], idx: int) -> RawEvent:
    kind = entry['kind']
    payload = {k: v for k, v in entry.items() if k not in _ENVELOPE_KEYS}

    if kind == 'interaction':
        payload['action'] = entry.get('interaction') or entry.get('eventName') or entry.get('action')
        if not isinstance(entry.get('detail'), dict):
            payload['detail'] = {}

    elif kind.startswith('api:'):
        payload['endpoint'] = entry.get('url') or entry.get('endpoint')
        if 'requestId' not in payload and entry.get('id') is not None:
            payload['requestId'] = entry.get('id')

    elif kind.startswith('handler:'):
        payload['args'] = _first_arg(entry)
        if isinstance(entry.get('args'), str) and payload['args'] is None:
            payload.update(_recovered_args(entry["args"]))
            payload['argsRaw'] = entry['args']

    elif kind in ('keydown', 'keyup'):
        # Bare key events from the keyboard listener
        payload['action'] = kind
        payload.setdefault('detail', {'key': entry.get('key')})

    elif kind == 'state:changes':
        diff = entry.get('diffJson')
        if isinstance(diff, str):
            diff = safe_json_parse(diff, default=[])
        payload['diffJson'] = diff if isinstance(diff, list) else []

    timestamp = entry.get('perfTs')
    if not isinstance(timestamp, (int, float)):
        timestamp = entry.get('ts') if isinstance(entry.get('ts'), (int, float)) else 0.0

    return RawEvent(
        kind=kind,
        correlation_id=entry.get('traceId') or None,
        timestamp=float(timestamp),
        payload=payload,
        index=idx,
    )


class TextTraceParser:
    """
    Parser for the inspector's grouped text export.

    Format:

        --- Trace 3: click "Rename" (212ms) ---
          traceId: t-17
          [interaction] click "Rename" (perfTs 1520.3)
          [handler:start] click "onClick" (file Main.xmlui)
                args: [{"displayName":"Documents", ...
          [api:complete] [200] (13.6ms) PUT /files/foo.txt [req-3]
          [state:changes] DataSource:files
                DataSource:files: ["a.txt"] → ["a.txt","b.txt"]
    """

    HEADER = re.compile(r'^--- Trace (\d+): (.+?) \((\d+)ms\) ---$')
    TRACE_ID = re.compile(r'^\s+traceId: (.+)$')
    EVENT = re.compile(r'^\s+\[([^\]]+)\]\s+(.+)$')
    CONTINUATION = re.compile(r'^\s{6,}')
    PERF_TS = re.compile(r'\(perfTs ([\d.]+)')

    INTERACTION = re.compile(r'^(\w+)\s+"([^"]+)"')
    HANDLER = re.compile(r'^(\w+)(?:\s+"([^"]+)")?')
    HANDLER_FILE = re.compile(r'file ([^)]+)\)')
    NAVIGATE = re.compile(r'^(.+?) → (.+?)(?:\s+\(|$)')
    API = re.compile(
        r'^(?:\[(\d+)\]\s+)?(?:\(([\d.]+)ms\)\s+)?(\{[^}]*\}|\S+)\s+(\S+)(?:\s+\[([^\]]+)\])?'
    )
    MULTIPLIER = re.compile(r'×\d+\s+')
    STATE_NAME = re.compile(r'^([\w$]+(?::[\w/.$-]+)?)')
    QUOTED = re.compile(r'^"([^"]+)"')
    MODAL_VALUE = re.compile(r'value=([^\s,]+)')
    MODAL_BUTTON = re.compile(r'button="([^"]+)"')
    TOAST = re.compile(r'^(\w+)\s+"(.*)"')
    CHANGE = re.compile(r'^(.+?):\s+(.*?)\s*→\s*(.*)$')

    @classmethod
    def looks_like_export(cls, text: str) -> bool:
        return any(cls.HEADER.match(line) for line in text.split('\n'))

    def parse(self, text: str) -> List[RawEvent]:
        """
        Parse a text export into RawEvents.

        Raises:
            TraceFormatError: If no trace header is found, or an event line
                              appears before the first header
        """
        if not self.looks_like_export(text):
            raise TraceFormatError(
                "Unrecognized trace format: not JSON and no '--- Trace N: <summary> (<ms>ms) ---' header found"
            )

        events: List[Dict[str, Any]] = []
        group: Optional[Dict[str, Any]] = None
        current: Optional[Dict[str, Any]] = None

        for line_no, line in enumerate(text.split('\n'), 1):
            header = self.HEADER.match(line)
            if header:
                if group:
                    self._close_group(group, events)
                group = {
                    'number': int(header.group(1)),
                    'summary': header.group(2),
                    'traceId': None,
                    'events': [],
                }
                current = None
                continue

            trace_id = self.TRACE_ID.match(line)
            if trace_id and group is not None:
                group['traceId'] = trace_id.group(1).strip()
                continue

            event_match = self.EVENT.match(line)
            if event_match and not self.CONTINUATION.match(line):
                if group is None:
                    raise TraceFormatError(f"Line {line_no}: event before the first trace header: {line.strip()}")
                current = self._parse_event(event_match.group(1), event_match.group(2))
                group['events'].append(current)
                continue

            if current is not None and self.CONTINUATION.match(line):
                self._parse_continuation(current, line.strip())

        if group:
            self._close_group(group, events)

        result = []
        for idx, payload in enumerate(events):
            kind = payload.pop('kind')
            trace_id = payload.pop('_traceId')
            timestamp = payload.pop('_perfTs')
            summary = payload.pop('_summary')
            result.append(RawEvent(
                kind=kind,
                correlation_id=trace_id,
                timestamp=timestamp,
                payload=payload,
                index=idx,
                group_summary=summary,
            ))

        logger.debug(f"Parsed {len(result)} events from text export")
        return result

    def _close_group(self, group: Dict[str, Any], events: List[Dict[str, Any]]):
        trace_id = group['traceId']
        if not trace_id:
            prefix = 'startup' if 'startup' in group['summary'].lower() else 'trace'
            trace_id = f"{prefix}-{group['number']}"

        # Events without perfTs inherit the previous one so group order holds
        last_ts = 0.0
        for event in group['events']:
            if event['_perfTs'] is None:
                event['_perfTs'] = last_ts
            last_ts = event['_perfTs']
            event['_traceId'] = trace_id
            event['_summary'] = group['summary']
            events.append(event)

    def _parse_event(self, kind: str, rest: str) -> Dict[str, Any]:
        event: Dict[str, Any] = {'kind': kind, 'raw': rest, '_perfTs': None}

        perf = self.PERF_TS.search(rest)
        if perf:
            event['_perfTs'] = float(perf.group(1))

        if kind == 'interaction':
            match = self.INTERACTION.match(rest)
            if match:
                event['action'] = match.group(1)
                event['componentLabel'] = match.group(2)
                event['detail'] = {'text': match.group(2)}
            else:
                event['action'] = rest.split()[0]
                event['detail'] = {}

        elif kind.startswith('handler:'):
            match = self.HANDLER.match(rest)
            if match:
                event['eventName'] = match.group(1)
                event['handlerName'] = match.group(2)
            file_match = self.HANDLER_FILE.search(rest)
            if file_match:
                event['file'] = file_match.group(1)

        elif kind == 'navigate':
            match = self.NAVIGATE.match(rest)
            if match:
                event['from'] = match.group(1).strip()
                event['to'] = match.group(2).strip()

        elif kind.startswith('api:'):
            match = self.API.match(self.MULTIPLIER.sub('', rest))
            if match:
                event['status'] = int(match.group(1)) if match.group(1) else None
                event['durationMs'] = float(match.group(2)) if match.group(2) else None
                event['method'] = match.group(3)
                event['endpoint'] = match.group(4)
                if match.group(5):
                    event['requestId'] = match.group(5)

        elif kind == 'state:changes' or kind == 'component:vars:init':
            match = self.STATE_NAME.match(rest)
            if match:
                event['stateName'] = match.group(1)
            event['diffJson'] = []

        elif kind == 'modal:show':
            match = self.QUOTED.match(rest)
            if match:
                event['title'] = match.group(1)

        elif kind == 'modal:confirm':
            value = self.MODAL_VALUE.search(rest)
            if value:
                event['value'] = value.group(1)
            label = self.MODAL_BUTTON.search(rest)
            if label:
                event['buttonLabel'] = label.group(1)

        elif kind == 'toast':
            match = self.TOAST.match(rest)
            if match:
                event['toastType'] = match.group(1)
                event['message'] = match.group(2)
            else:
                event['message'] = rest

        return event

    def _parse_continuation(self, event: Dict[str, Any], trimmed: str):
        if trimmed.startswith('args:'):
            args_json = re.sub(r'^args:\s*', '', trimmed)
            event['argsRaw'] = args_json
            if args_json.startswith('[') or args_json.startswith('{'):
                parsed = safe_json_parse(args_json)
                if parsed is not None:
                    event['args'] = parsed[0] if isinstance(parsed, list) and parsed else parsed
                else:
                    # Truncated export: keep what can be recovered
                    event.update(_recovered_args(args_json))
            return

        if trimmed.startswith('buttons:') and event['kind'] == 'modal:show':
            buttons = safe_json_parse(trimmed[len('buttons:'):].strip())
            if isinstance(buttons, list):
                event['buttons'] = buttons
            return

        if trimmed.startswith('body:') and event['kind'] == 'modal:show':
            event['message'] = trimmed[len('body:'):].strip()
            return

        if ' → ' in trimmed:
            change = self.CHANGE.match(trimmed)
            if change:
                event.setdefault('diffJson', []).append({
                    'path': change.group(1).strip(),
                    'before': _loose_value(change.group(2)),
                    'after': _loose_value(change.group(3)),
                })
            event.setdefault('changes', []).append(trimmed)
            return

        if trimmed.startswith(('code:', '.xs:', 'arrow:')):
            event['code'] = trimmed


def _loose_value(text: str) -> Any:
    """JSON value if the text parses as one, else the text itself."""
    parsed = safe_json_parse(text)
    return text if parsed is None and text != 'null' else parsed


def _recovered_args(raw: str) -> Dict[str, str]:
    """Fields salvaged from truncated handler args, under handler-safe keys."""
    recovered = extract_partial_fields(raw)
    result = {}
    if 'displayName' in recovered:
        result['displayName'] = recovered['displayName']
    if 'name' in recovered:
        result['itemName'] = recovered['name']
    if 'path' in recovered:
        result['argsPath'] = recovered['path']
    return result
