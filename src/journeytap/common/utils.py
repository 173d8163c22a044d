"""
JourneyTap Common Utilities

Shared helpers for loading trace files and recovering data from
partially-captured payloads.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union


# Fields worth recovering from a truncated handler argument blob
PARTIAL_FIELD_PATTERNS = {
    'displayName': re.compile(r'"displayName"\s*:\s*"([^"]+)"'),
    'name': re.compile(r'"name"\s*:\s*"([^"]+)"'),
    'path': re.compile(r'"path"\s*:\s*"([^"]+)"'),
}


def safe_json_parse(json_string: str, default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        args = safe_json_parse(raw_args, default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


def extract_partial_fields(raw: str) -> Dict[str, str]:
    """
    Pull well-known string fields out of JSON that was cut off mid-string.

    Trace exports truncate long argument blobs, so ``json.loads`` fails
    even though the interesting fields are intact near the start.

    Args:
        raw: Possibly truncated JSON text

    Returns:
        Dict of the fields that could be recovered (may be empty)

    Example:
        extract_partial_fields('[{"displayName":"Documents","children":[{"na')
        # {'displayName': 'Documents'}
    """
    recovered = {}
    if not raw:
        return recovered

    for field_name, pattern in PARTIAL_FIELD_PATTERNS.items():
        match = pattern.search(raw)
        if match:
            recovered[field_name] = match.group(1)

    return recovered


class TraceLoader:
    """
    Loader for captured trace files.

    Handles both trace shapes produced by the capture side:
    - Structured JSON logs: [...] or {"events": [...]}
    - Grouped text exports from the inspector ("--- Trace N: ... ---")

    Structured files are returned parsed, text exports are returned as
    the raw string so the normalizer can pick the right parser.

    Example:
        loader = TraceLoader("baseline.json")
        raw = loader.load()
        events = normalize_log(raw)
    """

    def __init__(self, file_path: Union[str, Path]):
        """
        Initialize trace loader.

        Args:
            file_path: Path to trace file (JSON or text export)
        """
        self.file_path = Path(file_path)

    def load(self) -> Union[list, dict, str]:
        """
        Load trace contents.

        Returns:
            Parsed JSON (list or dict) or the raw text export

        Raises:
            FileNotFoundError: If trace file doesn't exist
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Trace file not found: {self.file_path}")

        # Strip BOM written by some Windows editors
        text = self.file_path.read_text(encoding='utf-8').lstrip('\ufeff')
        stripped = text.strip()

        if stripped.startswith('[') or stripped.startswith('{'):
            parsed = safe_json_parse(stripped)
            if parsed is not None:
                return parsed

        return text

    @staticmethod
    def load_from_file(file_path: Union[str, Path]) -> Union[list, dict, str]:
        """
        Convenience method to load a trace in one call.

        Args:
            file_path: Path to trace file

        Returns:
            Parsed JSON or raw text
        """
        return TraceLoader(file_path).load()

    def count_events(self) -> Optional[int]:
        """Number of events in a structured log, or None for text exports."""
        data = self.load()
        if isinstance(data, list):
            return len(data)
        if isinstance(data, dict):
            for key in ('events', 'logs'):
                if isinstance(data.get(key), list):
                    return len(data[key])
        return None
