"""
Tests for journey summaries.
"""

from journeytap.distill import distill
from journeytap.summary import format_summary, summarize


class TestSummarize:
    def test_rename_summary(self, rename_trace):
        summary = summarize(distill(rename_trace), event_count=len(rename_trace))

        assert summary.step_count == 3
        assert summary.event_count == len(rename_trace)
        assert summary.apis == ['GET /ListFolder', 'PUT /files/foo.txt']
        assert summary.form_submits == ['bar.txt']
        assert summary.journey_lines == ['startup', 'context-menu: foo.txt', 'click: Rename → "bar.txt"']

    def test_event_count_optional(self, text_export):
        summary = summarize(distill(text_export))

        assert summary.event_count is None
        assert summary.form_submits == []

    def test_keyboard_submission(self, enter_trace):
        summary = summarize(distill(enter_trace))

        assert summary.form_submits == ['x']
        assert summary.apis == ['GET /items', 'POST /items']


class TestFormatSummary:
    def test_layout(self, rename_trace):
        text = format_summary(summarize(distill(rename_trace), event_count=13), show_journey=True)

        assert '=== Trace Summary ===' in text
        assert 'Events: 13' in text
        assert 'Steps: 3' in text
        assert '  2. context-menu: foo.txt' in text
        assert 'API calls: GET /ListFolder, PUT /files/foo.txt' in text
        assert 'Form submits: 1 (bar.txt)' in text

    def test_journey_hidden_by_default(self, rename_trace):
        text = format_summary(summarize(distill(rename_trace)))

        assert 'Journey:' not in text
        assert 'Events:' not in text

    def test_no_apis(self):
        text = format_summary(summarize(distill([
            {'kind': 'interaction', 'traceId': 'c1', 'perfTs': 1, 'interaction': 'click',
             'detail': {'ariaRole': 'button', 'ariaName': 'Help'}},
        ])))

        assert 'API calls: (none)' in text
        assert 'Form submits' not in text
