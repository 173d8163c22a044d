"""
Tests for trace normalization.

Covers structured JSON logs, grouped text exports, truncated argument
recovery, and format errors.
"""

import json

import pytest

from journeytap.trace import RawEvent, TextTraceParser, TraceFormatError, normalize_log, normalize_structured


class TestStructuredLogs:
    """Test JSON event logs."""

    def test_basic_fields(self, rename_trace):
        events = normalize_log(rename_trace)

        assert len(events) == len(rename_trace)
        first = events[0]
        assert isinstance(first, RawEvent)
        assert first.kind == 'api:complete'
        assert first.correlation_id == 'startup-1'
        assert first.timestamp == 10.0
        assert first.get('endpoint') == '/ListFolder?folder=Documents'

    def test_interaction_action_and_detail(self, rename_trace):
        events = normalize_log(rename_trace)
        contextmenu = events[2]

        assert contextmenu.action == 'contextmenu'
        assert contextmenu.detail['ariaName'] == 'foo.txt'

    def test_missing_trace_id_is_none(self, rename_trace):
        events = normalize_log(rename_trace)
        keystroke = events[5]

        assert keystroke.correlation_id is None

    def test_request_id_from_id(self, rename_trace):
        events = normalize_log(rename_trace)
        api_start = [e for e in events if e.kind == 'api:start'][0]

        assert api_start.get('requestId') == 'r1'

    def test_handler_event_args(self, rename_trace):
        events = normalize_log(rename_trace)
        handler = [e for e in events if e.kind == 'handler:start'][0]

        assert handler.get('args') == {'name': 'bar.txt'}

    def test_wrapped_in_events_key(self, rename_trace):
        events = normalize_log({'events': rename_trace})
        assert len(events) == len(rename_trace)

    def test_json_text_input(self, rename_trace):
        events = normalize_log(json.dumps(rename_trace))
        assert len(events) == len(rename_trace)

    def test_diff_json_string_is_parsed(self):
        events = normalize_structured([
            {'kind': 'state:changes', 'traceId': 't', 'diffJson': '[{"path": "x", "after": 1}]'}
        ])
        assert events[0].get('diffJson') == [{'path': 'x', 'after': 1}]

    def test_truncated_string_args_recovered(self):
        events = normalize_structured([{
            'kind': 'handler:start',
            'traceId': 't',
            'eventName': 'click',
            'args': '[{"displayName":"Reports","name":"reports","path":"/Reports","children":[{"dis',
        }])
        handler = events[0]

        assert handler.get('args') is None
        assert handler.get('displayName') == 'Reports'
        assert handler.get('itemName') == 'reports'
        assert handler.get('argsPath') == '/Reports'

    def test_timestamp_falls_back_to_ts(self):
        events = normalize_structured([{'kind': 'toast', 'ts': 55, 'message': 'hi'}])
        assert events[0].timestamp == 55.0

    def test_bare_keydown_event(self):
        events = normalize_structured([{'kind': 'keydown', 'key': 'Control', 'perfTs': 3}])
        assert events[0].action == 'keydown'
        assert events[0].detail == {'key': 'Control'}


class TestTextExport:
    """Test the inspector's grouped text export."""

    def test_groups_and_trace_ids(self, text_export):
        events = normalize_log(text_export)

        assert [e.kind for e in events] == ['api:complete', 'interaction', 'handler:start', 'navigate']
        assert events[0].correlation_id == 'startup-abc'
        assert all(e.correlation_id == 't-2' for e in events[1:])

    def test_api_line(self, text_export):
        api = normalize_log(text_export)[0]

        assert api.get('status') == 200
        assert api.get('method') == 'GET'
        assert api.get('endpoint') == '/ListFolder?folder=Documents'
        assert api.get('requestId') == 'req-1'

    def test_interaction_line(self, text_export):
        interaction = normalize_log(text_export)[1]

        assert interaction.action == 'click'
        assert interaction.get('componentLabel') == 'Documents'
        assert interaction.timestamp == 1520.3

    def test_truncated_args_recovered(self, text_export):
        handler = normalize_log(text_export)[2]

        assert handler.get('eventName') == 'click'
        assert handler.get('displayName') == 'Documents'
        assert handler.get('argsPath') == '/Documents'
        # Inherits the interaction's timestamp
        assert handler.timestamp == 1520.3

    def test_navigate_line(self, text_export):
        nav = normalize_log(text_export)[3]

        assert nav.get('from') == '/files'
        assert nav.get('to') == '/files?folder=Documents'

    def test_group_without_trace_id(self):
        text = (
            "--- Trace 4: click \"Save\" (5ms) ---\n"
            "  [interaction] click \"Save\" (perfTs 10)\n"
        )
        events = normalize_log(text)
        assert events[0].correlation_id == 'trace-4'
        assert events[0].group_summary == 'click "Save"'

    def test_template_method(self):
        text = (
            "--- Trace 1: click \"Save\" (5ms) ---\n"
            "  traceId: t1\n"
            "  [api:complete] [200] {$queryParams.new == 'true' ? 'post' : 'put'} /api/users/42\n"
        )
        api = normalize_log(text)[0]
        assert api.get('method') == "{$queryParams.new == 'true' ? 'post' : 'put'}"
        assert api.get('endpoint') == '/api/users/42'

    def test_state_change_continuation(self):
        text = (
            "--- Trace 1: click \"Delete\" (5ms) ---\n"
            "  traceId: t1\n"
            "  [state:changes] DataSource:files\n"
            "        DataSource:files: [\"a.txt\",\"b.txt\"] → [\"a.txt\"]\n"
        )
        event = normalize_log(text)[0]
        assert event.get('stateName') == 'DataSource:files'
        assert event.get('diffJson') == [{'path': 'DataSource:files', 'before': ['a.txt', 'b.txt'], 'after': ['a.txt']}]

    def test_modal_lines(self):
        text = (
            "--- Trace 1: click \"Delete\" (5ms) ---\n"
            "  traceId: t1\n"
            "  [modal:show] \"Delete file\"\n"
            "        buttons: [{\"label\":\"Delete\",\"value\":true}]\n"
            "        body: Are you sure?\n"
            "  [modal:confirm] value=true\n"
        )
        show, confirm = normalize_log(text)
        assert show.get('title') == 'Delete file'
        assert show.get('buttons') == [{'label': 'Delete', 'value': True}]
        assert show.get('message') == 'Are you sure?'
        assert confirm.get('value') == 'true'

    def test_toast_line(self):
        text = (
            "--- Trace 1: toast (1ms) ---\n"
            "  traceId: t1\n"
            "  [toast] success \"File renamed\"\n"
        )
        toast = normalize_log(text)[0]
        assert toast.get('toastType') == 'success'
        assert toast.get('message') == 'File renamed'


class TestFormatErrors:
    """Bad input fails fast with a descriptive error."""

    def test_empty_string(self):
        with pytest.raises(TraceFormatError, match='empty'):
            normalize_log('   ')

    def test_plain_text(self):
        with pytest.raises(TraceFormatError, match='Unrecognized trace format'):
            normalize_log('hello world')

    def test_invalid_json(self):
        with pytest.raises(TraceFormatError, match='invalid JSON'):
            normalize_log('[{"kind": ')

    def test_empty_list(self):
        with pytest.raises(TraceFormatError, match='no events'):
            normalize_log([])

    def test_dict_without_events(self):
        with pytest.raises(TraceFormatError, match='found keys'):
            normalize_log({'foo': []})

    def test_event_without_kind_names_index(self):
        with pytest.raises(TraceFormatError, match='Event #1'):
            normalize_log([{'kind': 'toast'}, {'traceId': 'x'}])

    def test_non_object_event(self):
        with pytest.raises(TraceFormatError, match='Event #0 is not an object'):
            normalize_log(['click'])

    def test_event_before_header(self):
        text = "  [interaction] click \"x\"\n--- Trace 1: click (1ms) ---\n"
        with pytest.raises(TraceFormatError, match='Line 1'):
            TextTraceParser().parse(text)

    def test_unsupported_type(self):
        with pytest.raises(TraceFormatError):
            normalize_log(42)
