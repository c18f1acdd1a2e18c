"""
Tests for ownership.toml loading and environment overrides.
"""

import sys

import pytest

from ownership import (
    ConfigError, OwnershipConfig, TraceLevel, apply_config, get_diagnostics,
    load_config,
)


def write_config(tmp_path, text):
    path = tmp_path / "ownership.toml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(environ={})
        assert config == OwnershipConfig()
        assert config.trace_level == TraceLevel.NONE

    def test_default_file_in_cwd(self, tmp_path, monkeypatch):
        write_config(tmp_path, '[trace]\nlevel = "lifecycle"\n')
        monkeypatch.chdir(tmp_path)
        config = load_config(environ={})
        assert config.trace_level == TraceLevel.LIFECYCLE

    def test_full_file(self, tmp_path):
        path = write_config(tmp_path, """
[trace]
level = "ops"
stream = "stdout"

[tracker]
max = 250
log_path = "quota.log"
""")
        config = load_config(path, environ={})
        assert config.trace_level == TraceLevel.OPS
        assert config.trace_stream == "stdout"
        assert config.tracker_max == 250
        assert config.log_path == "quota.log"

    def test_numeric_level(self, tmp_path):
        path = write_config(tmp_path, "[trace]\nlevel = 3\n")
        assert load_config(path, environ={}).trace_level == TraceLevel.BORROWS

    def test_environment_overrides_file(self, tmp_path):
        path = write_config(tmp_path, '[trace]\nlevel = "ops"\n')
        config = load_config(path, environ={"OWNERSHIP_TRACE": "all"})
        assert config.trace_level == TraceLevel.ALL

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.toml", environ={})

    def test_malformed_toml(self, tmp_path):
        path = write_config(tmp_path, "[trace\nlevel = ")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(path, environ={})

    @pytest.mark.parametrize("text", [
        '[trace]\nlevel = "loud"\n',
        '[trace]\nstream = "file"\n',
        '[tracker]\nmax = 0\n',
        '[tracker]\nmax = "ten"\n',
        'trace = 1\n',
    ])
    def test_invalid_values(self, tmp_path, text):
        path = write_config(tmp_path, text)
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_invalid_environment_level(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="OWNERSHIP_TRACE"):
            load_config(environ={"OWNERSHIP_TRACE": "loud"})


class TestApplyConfig:
    def test_installs_diagnostics(self):
        config = OwnershipConfig(trace_level=TraceLevel.OPS)
        diagnostics = apply_config(config)
        assert get_diagnostics() is diagnostics
        assert diagnostics.trace_level == TraceLevel.OPS
        assert diagnostics.stream is None

    def test_stdout_stream(self):
        diagnostics = apply_config(OwnershipConfig(trace_stream="stdout"))
        assert diagnostics.stream is sys.stdout
