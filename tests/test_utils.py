"""
Tests for common utilities.

Tests safe_json_parse(), extract_partial_fields(), TraceLoader and
URLMatcher using temporary files only.
"""

import json

import pytest

from journeytap.common import TraceLoader, URLMatcher, extract_partial_fields, safe_json_parse


class TestSafeJsonParse:
    """Test suite for safe_json_parse() function."""

    def test_valid_json(self):
        """Test parsing of a valid JSON document."""
        assert safe_json_parse('{"a": 1}') == {'a': 1}

    def test_invalid_json_returns_default(self):
        """Test fallback to the default on malformed input."""
        assert safe_json_parse('{"a": ', default={}) == {}

    def test_empty_input(self):
        """Test that empty and None input return the default."""
        assert safe_json_parse('') is None
        assert safe_json_parse(None, default=[]) == []


class TestExtractPartialFields:
    """Test suite for extract_partial_fields() function."""

    def test_truncated_blob(self):
        """Test recovery of fields that precede the truncation point."""
        raw = '[{"displayName":"Documents","path":"/Documents","children":[{"na'

        result = extract_partial_fields(raw)

        assert result == {'displayName': 'Documents', 'path': '/Documents'}

    def test_first_occurrence_wins(self):
        """Test that nested items don't override the top-level field."""
        raw = '{"name":"outer","children":[{"name":"inner"}]'
        assert extract_partial_fields(raw)['name'] == 'outer'

    def test_nothing_recoverable(self):
        """Test empty result for blobs without known fields."""
        assert extract_partial_fields('[{"size": 12') == {}
        assert extract_partial_fields('') == {}


class TestTraceLoader:
    """Test suite for TraceLoader."""

    def test_load_structured_log(self, tmp_path, rename_trace):
        """Test that JSON logs come back parsed."""
        path = tmp_path / 'trace.json'
        path.write_text(json.dumps(rename_trace), encoding='utf-8')

        assert TraceLoader.load_from_file(path) == rename_trace

    def test_load_text_export(self, tmp_path, text_export):
        """Test that text exports come back as raw text."""
        path = tmp_path / 'trace.txt'
        path.write_text(text_export, encoding='utf-8')

        assert TraceLoader(path).load() == text_export

    def test_bom_stripped(self, tmp_path):
        """Test loading a file saved with a UTF-8 byte order mark."""
        path = tmp_path / 'bom.json'
        path.write_text('\ufeff[{"kind": "toast"}]', encoding='utf-8')

        assert TraceLoader(path).load() == [{'kind': 'toast'}]

    def test_missing_file(self, tmp_path):
        """Test FileNotFoundError for a missing trace."""
        with pytest.raises(FileNotFoundError, match='Trace file not found'):
            TraceLoader(tmp_path / 'missing.json').load()

    def test_count_events(self, tmp_path, text_export):
        """Test event counts for wrapped logs and text exports."""
        wrapped = tmp_path / 'wrapped.json'
        wrapped.write_text(json.dumps({'events': [{'kind': 'toast'}] * 3}), encoding='utf-8')
        text = tmp_path / 'export.txt'
        text.write_text(text_export, encoding='utf-8')

        assert TraceLoader(wrapped).count_events() == 3
        assert TraceLoader(text).count_events() is None


class TestURLMatcher:
    """Test suite for URLMatcher."""

    @pytest.mark.parametrize('url,expected', [
        ('/ListFolder?folder=Documents', '/ListFolder'),
        ('http://localhost:8080/api/users/42?x=1#top', '/api/users/42'),
        ('files/foo.txt', '/files/foo.txt'),
        ('', ''),
    ])
    def test_endpoint_path(self, url, expected):
        """Test stripping of host, query and fragment."""
        assert URLMatcher.endpoint_path(url) == expected

    def test_query_param(self):
        """Test query parameter lookup with decoding."""
        assert URLMatcher.query_param('/users?new=true&q=a%20b', 'q') == 'a b'
        assert URLMatcher.query_param('/users?new=', 'new') == ''
        assert URLMatcher.query_param('/users', 'new') is None

    def test_path_segments(self):
        """Test splitting a path into segments."""
        assert URLMatcher.path_segments('/api/users/42') == ['api', 'users', '42']

    def test_match_fragment(self):
        """Test the fragment used in waitForResponse predicates."""
        assert URLMatcher.match_fragment('/files/foo.txt?x=1') == 'files/foo.txt'

    def test_decoded(self):
        """Test percent-decoding of navigation targets."""
        assert URLMatcher.decoded('/files?folder=My%20Docs') == '/files?folder=My Docs'
        assert URLMatcher.decoded(None) == ''
