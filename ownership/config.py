"""
Ownership Configuration

Loads settings from an ownership.toml file:

    [trace]
    level = "ops"        # none | lifecycle | ops | borrows | all, or 0-4
    stream = "stderr"    # stderr | stdout

    [tracker]
    max = 100
    log_path = "ownership.log"

The OWNERSHIP_TRACE environment variable overrides trace.level.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ownership.diagnostics import RcDiagnostics, TraceLevel, set_diagnostics
from ownership.errors import ConfigError

# TOML parsing - use stdlib tomllib in 3.11+, fallback to tomli
try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

DEFAULT_CONFIG_FILE = "ownership.toml"
TRACE_ENV_VAR = "OWNERSHIP_TRACE"
STREAMS = ("stderr", "stdout")


@dataclass
class OwnershipConfig:
    trace_level: TraceLevel = TraceLevel.NONE
    trace_stream: str = "stderr"
    tracker_max: int = 100
    log_path: str = "ownership.log"


def _read_toml(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise ConfigError(
            "TOML parsing not available.\n"
            "Install with: pip install tomli"
        )
    with open(path, 'rb') as f:
        try:
            return tomllib.load(f)
        except Exception as e:
            raise ConfigError(f"Failed to parse {path}: {e}")


def _parse_level(value: Any, source: str) -> TraceLevel:
    try:
        return TraceLevel.parse(value)
    except ValueError as e:
        raise ConfigError(f"{source}: {e}")


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None) -> OwnershipConfig:
    """Build an OwnershipConfig from a TOML file and the environment.

    With no path, ./ownership.toml is used if present and defaults otherwise.
    An explicit path that does not exist is an error.
    """
    environ = os.environ if environ is None else environ
    config = OwnershipConfig()

    data: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        data = _read_toml(config_path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        data = _read_toml(Path(DEFAULT_CONFIG_FILE))

    trace = data.get('trace', {})
    if not isinstance(trace, dict):
        raise ConfigError("[trace] must be a table")
    if 'level' in trace:
        config.trace_level = _parse_level(trace['level'], "trace.level")
    if 'stream' in trace:
        if trace['stream'] not in STREAMS:
            raise ConfigError(f"trace.stream must be one of {', '.join(STREAMS)}, got {trace['stream']!r}")
        config.trace_stream = trace['stream']

    tracker = data.get('tracker', {})
    if not isinstance(tracker, dict):
        raise ConfigError("[tracker] must be a table")
    if 'max' in tracker:
        tracker_max = tracker['max']
        if isinstance(tracker_max, bool) or not isinstance(tracker_max, int) or tracker_max <= 0:
            raise ConfigError(f"tracker.max must be a positive integer, got {tracker_max!r}")
        config.tracker_max = tracker_max
    if 'log_path' in tracker:
        config.log_path = str(tracker['log_path'])

    if environ.get(TRACE_ENV_VAR):
        config.trace_level = _parse_level(environ[TRACE_ENV_VAR], TRACE_ENV_VAR)

    return config


def apply_config(config: OwnershipConfig) -> RcDiagnostics:
    """Install a fresh diagnostics instance configured from config."""
    stream = sys.stdout if config.trace_stream == "stdout" else None
    diagnostics = RcDiagnostics(trace_level=config.trace_level, stream=stream)
    set_diagnostics(diagnostics)
    return diagnostics
