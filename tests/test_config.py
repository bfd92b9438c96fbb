"""
Tests for parser settings and the YAML configuration loader.
"""

import pytest

from evtc_analytics.config.gw2_data import DEFAULT_TRACKED_BUFFS
from evtc_analytics.config.loader import ConfigLoader, load_settings
from evtc_analytics.config.settings import ParserSettings
from evtc_analytics.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    for name in (
        "EVTC_ALLOW_TRUNCATED_TAIL",
        "EVTC_AGENT_RESOLUTION",
        "EVTC_KEEP_RAW_RECORDS",
        "EVTC_TRACKED_BUFFS",
        "EVTC_MAX_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep config files of the working directory and home out of the tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


class TestParserSettings:
    """Settings values and validation."""

    def test_defaults(self):
        settings = ParserSettings()
        assert not settings.allow_truncated_tail
        assert settings.agent_resolution == "last_holder"
        assert settings.tracked_buff_ids == DEFAULT_TRACKED_BUFFS
        assert settings.max_workers is None

    def test_invalid_resolution(self):
        with pytest.raises(ConfigurationError):
            ParserSettings(agent_resolution="guess")

    def test_invalid_worker_count(self):
        with pytest.raises(ConfigurationError):
            ParserSettings(max_workers=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EVTC_ALLOW_TRUNCATED_TAIL", "true")
        monkeypatch.setenv("EVTC_AGENT_RESOLUTION", "STRICT")
        monkeypatch.setenv("EVTC_TRACKED_BUFFS", "740, 725")
        monkeypatch.setenv("EVTC_MAX_WORKERS", "4")

        settings = ParserSettings.from_env()

        assert settings.allow_truncated_tail
        assert settings.agent_resolution == "strict"
        assert settings.tracked_buff_ids == frozenset({740, 725})
        assert settings.max_workers == 4

    def test_from_env_invalid_buff_list(self, monkeypatch):
        monkeypatch.setenv("EVTC_TRACKED_BUFFS", "740,might")
        with pytest.raises(ConfigurationError):
            ParserSettings.from_env()


class TestConfigLoader:
    """YAML configuration files."""

    def test_load_explicit_file(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            "encounter_names:\n"
            "  15438: VG\n"
            "tracked_buffs: [740, 1187]\n"
            "agent_resolution: strict\n"
            "max_workers: 2\n"
        )

        settings = load_settings(str(config_file))

        assert settings.encounter_name_overrides == {15438: "VG"}
        assert settings.tracked_buff_ids == frozenset({740, 1187})
        assert settings.agent_resolution == "strict"
        assert settings.max_workers == 2

    def test_default_search_path(self, tmp_path):
        (tmp_path / "evtc_config.yaml").write_text("allow_truncated_tail: true\n")
        assert load_settings().allow_truncated_tail

    def test_no_config_file(self):
        assert load_settings() == ParserSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigLoader.load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("encounter_names: [unclosed\n")
        with pytest.raises(ConfigurationError):
            ConfigLoader.load_config(str(config_file))

    def test_non_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- 740\n- 725\n")
        with pytest.raises(ConfigurationError):
            ConfigLoader.load_config(str(config_file))

    def test_invalid_entries_skipped(self):
        config = {"encounter_names": {"abc": "Nope", 17154: "Deimos CM"}, "tracked_buffs": [740, "x"]}
        settings = ConfigLoader.apply_config(config, ParserSettings())

        assert settings.encounter_name_overrides == {17154: "Deimos CM"}
        assert settings.tracked_buff_ids == frozenset({740})

    def test_invalid_strategy_in_file(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader.apply_config({"agent_resolution": "guess"}, ParserSettings())
