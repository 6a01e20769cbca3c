# tests/unit/core/test_settings.py
"""Tests for ProbeListenerSettings and load_settings()."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from probe_listener.contracts import SettingsError
from probe_listener.core.config import CollectorSettings, ProbeListenerSettings, load_settings


def _write(tmp_path: Path, config: dict) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(config))
    return path


class TestDefaults:
    def test_defaults_target_kuzzle_collector(self):
        settings = ProbeListenerSettings()

        assert settings.plugin_id == "kuzzle-plugin-probe"
        assert settings.startup_event == "core:kuzzleStart"
        assert settings.strict is False
        assert settings.probes == {}
        assert settings.collector.host == "kdc-kuzzle"
        assert settings.collector.port == 7512
        assert settings.collector.max_connection_errors == 10
        assert settings.collector.url == "http://kdc-kuzzle:7512"

    def test_frozen(self):
        settings = ProbeListenerSettings()
        with pytest.raises(ValidationError):
            settings.strict = True  # type: ignore[misc]

    def test_null_probes_section_means_no_probes(self):
        assert ProbeListenerSettings(probes=None).probes == {}

    @pytest.mark.parametrize(
        "collector",
        [
            {"max_connection_errors": 0},
            {"port": 70000},
            {"retry_backoff_seconds": -1},
            {"scheme": "ftp"},
            {"queue_size": 0},
        ],
    )
    def test_invalid_collector_values_rejected(self, collector):
        with pytest.raises(ValidationError):
            ProbeListenerSettings(collector=collector)

    def test_malformed_probes_not_rejected_by_settings(self):
        settings = ProbeListenerSettings(probes={"bad": {"kind": "nope"}, "worse": "text"})
        assert set(settings.probes) == {"bad", "worse"}

    def test_transport_options(self):
        collector = CollectorSettings(host="kdc", port=9000, options={"format": "pretty"})
        assert collector.transport_options() == {
            "host": "kdc",
            "port": 9000,
            "scheme": "http",
            "timeout": 5.0,
            "auto_queue": True,
            "queue_size": 1000,
            "format": "pretty",
        }


class TestLoadSettings:
    def test_loads_yaml(self, tmp_path, sample_probes):
        path = _write(
            tmp_path,
            {
                "plugin_id": "probes",
                "collector": {"host": "collector.local", "max_connection_errors": 3},
                "probes": sample_probes,
            },
        )

        settings = load_settings(path)

        assert settings.plugin_id == "probes"
        assert settings.collector.host == "collector.local"
        assert settings.collector.max_connection_errors == 3
        assert settings.probes["counter1"] == sample_probes["counter1"]
        assert settings.probes["sampler1"]["sampleSize"] == 10

    def test_probe_names_keep_their_case(self, tmp_path):
        path = _write(tmp_path, {"probes": {"MixedCase": {"kind": "monitor", "hooks": ["a"]}}})
        assert "MixedCase" in load_settings(path).probes

    def test_missing_file(self, tmp_path):
        with pytest.raises(SettingsError, match="Config file not found"):
            load_settings(tmp_path / "absent.yaml")

    def test_env_override(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"collector": {"host": "from-file"}})
        monkeypatch.setenv("PROBE_LISTENER_COLLECTOR__HOST", "from-env")

        assert load_settings(path).collector.host == "from-env"

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        path = _write(
            tmp_path,
            {"collector": {"host": "${KDC_HOST}", "scheme": "${KDC_SCHEME:-https}"}},
        )
        monkeypatch.setenv("KDC_HOST", "expanded")
        monkeypatch.delenv("KDC_SCHEME", raising=False)

        settings = load_settings(path)
        assert settings.collector.host == "expanded"
        assert settings.collector.scheme == "https"

    def test_validation_error(self, tmp_path):
        path = _write(tmp_path, {"collector": {"max_connection_errors": -1}})
        with pytest.raises(ValidationError):
            load_settings(path)
