"""
Baseline storage.

Recorded journeys are stored as the raw trace they came from, so they can
be re-distilled when the heuristics improve:

    traces/baselines/<name>.json     accepted journey
    traces/baselines/ignore-apis.txt endpoints excluded from comparison
    traces/captures/<name>.json      trace from the latest replay
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .common import TraceLoader
from .config import PathsConfig


logger = logging.getLogger("journeytap.baselines")

IGNORE_FILE = 'ignore-apis.txt'


@dataclass
class BaselineInfo:
    name: str
    path: Path
    event_count: Optional[int]


class BaselineStore:
    """Saves, lists and promotes baseline traces."""

    def __init__(self, paths: Optional[PathsConfig] = None):
        paths = paths or PathsConfig()
        self.baselines_dir = Path(paths.baselines_dir)
        self.captures_dir = Path(paths.captures_dir)

    def baseline_path(self, name: str) -> Path:
        return self.baselines_dir / f"{name}.json"

    def capture_path(self, name: str) -> Path:
        return self.captures_dir / f"{name}.json"

    def save(self, trace_path: Union[str, Path], name: str) -> Path:
        """
        Save a trace as the baseline for a journey.

        Raises:
            FileNotFoundError: If the trace doesn't exist
        """
        trace_path = Path(trace_path)
        if not trace_path.exists():
            raise FileNotFoundError(f"Trace file not found: {trace_path}")

        self.baselines_dir.mkdir(parents=True, exist_ok=True)
        destination = self.baseline_path(name)
        shutil.copy2(trace_path, destination)
        logger.info(f"Saved baseline {name} -> {destination}")
        return destination

    def list(self) -> List[BaselineInfo]:
        """All baselines, sorted by name."""
        if not self.baselines_dir.is_dir():
            return []
        return [
            BaselineInfo(name=path.stem, path=path, event_count=TraceLoader(path).count_events())
            for path in sorted(self.baselines_dir.glob('*.json'))
        ]

    def load(self, name: str):
        """
        Raw trace for a baseline.

        Raises:
            FileNotFoundError: If no baseline with that name exists
        """
        path = self.baseline_path(name)
        if not path.exists():
            raise FileNotFoundError(f"Baseline not found: {name} (save one first)")
        return TraceLoader(path).load()

    def store_capture(self, name: str, trace_path: Union[str, Path]) -> Path:
        """Keep the trace captured by a replay next to its baseline."""
        self.captures_dir.mkdir(parents=True, exist_ok=True)
        destination = self.capture_path(name)
        shutil.copy2(trace_path, destination)
        return destination

    def update(self, name: str, trace_path: Optional[Union[str, Path]] = None) -> Path:
        """
        Promote a trace to baseline: the given one, else the latest capture.

        Raises:
            FileNotFoundError: If there is nothing to promote
        """
        source = Path(trace_path) if trace_path else self.capture_path(name)
        if not source.exists():
            raise FileNotFoundError(f"No capture found for {name}: {source} (run the journey first)")
        return self.save(source, name)

    def ignore_apis(self) -> List[str]:
        """Endpoint patterns from ignore-apis.txt (blank lines and # comments skipped)."""
        path = self.baselines_dir / IGNORE_FILE
        if not path.exists():
            return []
        patterns = []
        for line in path.read_text(encoding='utf-8').splitlines():
            line = line.strip()
            if line and not line.startswith('#'):
                patterns.append(line)
        return patterns
