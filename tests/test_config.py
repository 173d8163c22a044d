"""
Tests for YAML configuration loading.
"""

import pytest

from journeytap.config import ConfigError, DistillConfig, JourneyConfig


class TestDefaults:
    def test_default_values(self):
        config = JourneyConfig()

        assert config.distill.modifier_window_ms == 500.0
        assert config.distill.max_label_length == 50
        assert config.distill.startup_prefix == 'startup-'
        assert config.fill.exact_score == 100
        assert config.generator.settle_ms == 500
        assert config.compare.strict_navigation is False
        assert config.paths.playwright_command == ['npx', 'playwright', 'test']

    def test_mutable_defaults_not_shared(self):
        a, b = DistillConfig(), DistillConfig()
        a.ignored_interaction_labels.append('Other')
        assert 'Other' not in b.ignored_interaction_labels


class TestFromYaml:
    def test_partial_override(self, tmp_path):
        path = tmp_path / 'journeytap.yaml'
        path.write_text(
            "distill:\n"
            "  modifier_window_ms: 400\n"
            "generator:\n"
            "  settle_ms: 750\n"
            "  capture_trace: false\n"
            "compare:\n"
            "  ignore_apis:\n"
            "    - /GetLicense\n",
            encoding='utf-8',
        )
        config = JourneyConfig.load(path)

        assert config.distill.modifier_window_ms == 400
        assert config.distill.max_label_length == 50
        assert config.generator.settle_ms == 750
        assert config.generator.capture_trace is False
        assert config.compare.ignore_apis == ['/GetLicense']

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('', encoding='utf-8')
        assert JourneyConfig.load(path) == JourneyConfig()

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("distill:\n  modifer_window_ms: 400\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="Unknown key\\(s\\) in 'distill': modifer_window_ms"):
            JourneyConfig.load(path)

    def test_unknown_section_rejected(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("replay:\n  timeout: 3\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="'root'"):
            JourneyConfig.load(path)

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("generator: 5\n", encoding='utf-8')

        with pytest.raises(ConfigError, match='must be a mapping'):
            JourneyConfig.load(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("distill: [unclosed\n", encoding='utf-8')

        with pytest.raises(ConfigError, match='Invalid YAML'):
            JourneyConfig.load(path)


class TestLoad:
    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JourneyConfig.load(tmp_path / 'missing.yaml')

    def test_default_file_picked_up(self, tmp_path, monkeypatch):
        (tmp_path / 'journeytap.yaml').write_text("generator:\n  settle_ms: 42\n", encoding='utf-8')
        monkeypatch.chdir(tmp_path)

        assert JourneyConfig.load().generator.settle_ms == 42

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert JourneyConfig.load() == JourneyConfig()
