"""
JourneyTap Configuration

YAML-based configuration for the distillation heuristics, script
generation and comparison. Every threshold the pipeline relies on lives
here so it can be tuned per application (and probed from tests).

Example journeytap.yaml:

    distill:
      modifier_window_ms: 400
      max_label_length: 60
    generator:
      settle_ms: 750
    compare:
      ignore_apis:
        - /GetLicense
    paths:
      baselines_dir: traces/baselines
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml


DEFAULT_CONFIG_FILE = 'journeytap.yaml'


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""


def _checked_kwargs(cls, data: Optional[Dict[str, Any]], section: str) -> Dict[str, Any]:
    """Reject keys the dataclass doesn't know about."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{section}': {', '.join(unknown)}")
    return dict(data)


@dataclass
class DistillConfig:
    """Heuristics used while grouping events into steps."""

    # Correlation id prefix reserved for the app startup trace
    startup_prefix: str = "startup-"

    # A keydown older than this no longer counts as "held" (dropped keyups)
    modifier_window_ms: float = 500.0

    # Text longer than this is modal body content, not a label
    max_label_length: int = 50

    # Framework component names are not user-visible labels
    generic_component_pattern: str = r"^[A-Z][a-z]+[A-Z]|^(HStack|VStack|Tree|Stack|Box|Link|Text)$"
    html_tag_pattern: str = (
        r"^(svg|path|input|textarea|div|span|button|a|img|label|select|option|ul|li|ol|"
        r"tr|td|th|table|form|section|header|footer|nav|main|aside|article)$"
    )

    # Interactions with the trace inspector itself are not part of a journey
    ignored_interaction_labels: List[str] = field(default_factory=lambda: ["XMLUI Inspector", "XSInspector"])

    # DataSource snapshot tracking
    datasource_prefix: str = "DataSource:"
    datasource_label_fields: List[str] = field(
        default_factory=lambda: ["displayName", "name", "label", "title", "fileName", "path"]
    )
    max_item_label_length: int = 100

    # Label used for a cancelled dialog when the event has no button label
    cancel_label: str = "Cancel"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DistillConfig':
        """Create DistillConfig from dictionary."""
        return cls(**_checked_kwargs(cls, data, 'distill'))


@dataclass
class FillScoring:
    """Weights for matching a form field name to a textbox's accessible name."""

    exact_score: int = 100
    substring_base: int = 50

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FillScoring':
        """Create FillScoring from dictionary."""
        return cls(**_checked_kwargs(cls, data, 'fill'))


@dataclass
class GeneratorConfig:
    """Playwright script generation options."""

    # Relative so Playwright resolves against baseURL (keeps paths like /ui/)
    base_path: str = "./"

    capture_trace: bool = True
    browser_errors: bool = False
    # Adds test.use({ video: 'on' }) to the generated test
    record_video: bool = False
    trace_output_env: str = "TRACE_OUTPUT"
    trace_output_default: str = "captured-trace.json"

    # Settle delay when the next target has no usable locator
    settle_ms: int = 500

    # Roles that carry no identity of their own
    noise_roles: List[str] = field(default_factory=lambda: ["generic", "presentation", "none"])

    text_field_roles: List[str] = field(default_factory=lambda: ["textbox", "searchbox"])

    # Clicked tags that mean "the expand toggle", not the tree item label
    icon_tags: List[str] = field(default_factory=lambda: ["svg", "path", "use", "i"])
    tree_toggle_selector: str = '[class*="toggleWrapper"]'

    # UI convention: "Select <row>" checkboxes only appear on row hover
    row_checkbox_prefix: str = "Select "

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GeneratorConfig':
        """Create GeneratorConfig from dictionary."""
        return cls(**_checked_kwargs(cls, data, 'generator'))


@dataclass
class CompareConfig:
    """Semantic comparison options."""

    ignore_apis: List[str] = field(default_factory=list)
    strict_navigation: bool = False

    # Form data field that identifies a submission ("name" of the created item)
    form_identifier_field: str = "name"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CompareConfig':
        """Create CompareConfig from dictionary."""
        return cls(**_checked_kwargs(cls, data, 'compare'))


@dataclass
class PathsConfig:
    """Where journeys and captures are stored."""

    baselines_dir: str = "traces/baselines"
    captures_dir: str = "traces/captures"
    generated_dir: str = "."
    playwright_command: List[str] = field(default_factory=lambda: ["npx", "playwright", "test"])

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PathsConfig':
        """Create PathsConfig from dictionary."""
        return cls(**_checked_kwargs(cls, data, 'paths'))


@dataclass
class JourneyConfig:
    """Complete JourneyTap configuration."""

    distill: DistillConfig = field(default_factory=DistillConfig)
    fill: FillScoring = field(default_factory=FillScoring)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    compare: CompareConfig = field(default_factory=CompareConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'JourneyConfig':
        """Create config from dictionary."""
        data = _checked_kwargs(cls, data, 'root')
        return cls(
            distill=DistillConfig.from_dict(data.get('distill')),
            fill=FillScoring.from_dict(data.get('fill')),
            generator=GeneratorConfig.from_dict(data.get('generator')),
            compare=CompareConfig.from_dict(data.get('compare')),
            paths=PathsConfig.from_dict(data.get('paths')),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'JourneyConfig':
        """Load config from YAML file."""
        with open(yaml_path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> 'JourneyConfig':
        """
        Load configuration.

        Args:
            path: Explicit config file. When omitted, ./journeytap.yaml is
                  used if present, otherwise the defaults.

        Raises:
            FileNotFoundError: If an explicit path doesn't exist
            ConfigError: If the file is malformed
        """
        if path is not None:
            if not Path(path).exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            return cls.from_yaml(path)

        if Path(DEFAULT_CONFIG_FILE).exists():
            return cls.from_yaml(DEFAULT_CONFIG_FILE)

        return cls()
