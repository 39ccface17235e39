"""
Settings Tests
==============

Tests for the persisted settings file and environment overrides.
"""

import json
import logging

import pytest

from lbpasm.assembler.listing import OutputFormat, SourceFormat
from lbpasm.config import (
    CONFIG_VERSION,
    Settings,
    default_config_path,
    load_settings,
    save_settings,
)
from lbpasm.errors import SettingsError


# =============================================================================
# Defaults
# =============================================================================

class TestDefaults:
    """Test the built-in defaults."""

    def test_values(self):
        settings = Settings()
        assert settings.target_arch == "parva_0_1"
        assert settings.address_format is OutputFormat.DECIMAL
        assert settings.machine_code_format is OutputFormat.BINARY
        assert settings.inline_source is SourceFormat.INSTRUCTION
        assert settings.show_labels
        assert not settings.raw_output
        assert settings.send_delay == 1500

    def test_to_dict(self):
        """The file uses camelCase keys and a version marker."""
        data = Settings().to_dict()
        assert data["version"] == CONFIG_VERSION
        assert data["targetArch"] == "parva_0_1"
        assert data["machineCodeOutputFormat"] == "binary"
        assert data["inlineSourceFormat"] == "instruction"
        assert set(data) == {
            "version", "targetArch", "assemblyOutputFormat", "machineCodeOutputFormat",
            "machineCodeShowLabels", "syntaxHighlighting", "inlineSourceFormat",
            "rawOutput", "focusEmulator", "sendDelay",
        }

    def test_listing_options(self):
        settings = Settings(machine_code_format=OutputFormat.HEX, show_labels=False)
        options = settings.listing_options()
        assert options.machine_code is OutputFormat.HEX
        assert options.address is OutputFormat.DECIMAL
        assert not options.show_labels


# =============================================================================
# File Tests
# =============================================================================

class TestSettingsFile:
    """Test saving and loading."""

    def test_config_path_from_environment(self, isolated_settings):
        assert default_config_path() == isolated_settings

    def test_missing_file(self, isolated_settings):
        assert load_settings() == Settings()

    def test_round_trip(self, isolated_settings):
        settings = Settings(target_arch="v8", address_format=OutputFormat.HEX,
                            raw_output=True, send_delay=250)
        assert save_settings(settings) == isolated_settings
        assert load_settings() == settings

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "settings.json"
        save_settings(Settings(), path)
        assert json.loads(path.read_text())["version"] == CONFIG_VERSION

    def test_partial_file_keeps_defaults(self, isolated_settings):
        isolated_settings.write_text(json.dumps({"version": "1", "targetArch": "bitzzy"}))
        settings = load_settings()
        assert settings.target_arch == "bitzzy"
        assert settings.send_delay == 1500

    def test_version_mismatch_uses_defaults(self, isolated_settings, caplog):
        """A file of another version is ignored with a warning."""
        isolated_settings.write_text(json.dumps({"version": "0", "targetArch": "v8"}))
        with caplog.at_level(logging.WARNING, logger="lbpasm.config"):
            assert load_settings() == Settings()
        assert "version mismatch" in caplog.text

    def test_corrupt_file_uses_defaults(self, isolated_settings, caplog):
        isolated_settings.write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="lbpasm.config"):
            assert load_settings() == Settings()
        assert "Ignoring settings" in caplog.text


# =============================================================================
# Validation Tests
# =============================================================================

class TestValidation:
    """Test rejected values."""

    def test_version_required(self):
        with pytest.raises(SettingsError) as exc_info:
            Settings.from_dict({"targetArch": "v8"})
        assert str(exc_info.value) == (
            "Saved configuration version mismatch: found None, expected 1"
        )

    def test_unknown_target(self):
        with pytest.raises(SettingsError) as exc_info:
            Settings.from_dict({"version": "1", "targetArch": "z80"})
        assert str(exc_info.value) == "Unknown architecture 'z80'"

    def test_unknown_format(self):
        with pytest.raises(SettingsError):
            Settings.from_dict({"version": "1", "machineCodeOutputFormat": "octal"})

    @pytest.mark.parametrize("delay", [-1, "fast", True])
    def test_bad_send_delay(self, delay):
        with pytest.raises(SettingsError):
            Settings.from_dict({"version": "1", "sendDelay": delay})


# =============================================================================
# Environment Tests
# =============================================================================

class TestEnvironment:
    """Test LBPASM_TARGET and LBPASM_SEND_DELAY."""

    def test_overrides(self):
        settings = Settings().with_env({"LBPASM_TARGET": "v8", "LBPASM_SEND_DELAY": "20"})
        assert settings.target_arch == "v8"
        assert settings.send_delay == 20

    def test_empty_values_ignored(self):
        assert Settings().with_env({"LBPASM_TARGET": ""}) == Settings()

    def test_bad_delay(self):
        with pytest.raises(SettingsError) as exc_info:
            Settings().with_env({"LBPASM_SEND_DELAY": "x"})
        assert str(exc_info.value) == "LBPASM_SEND_DELAY must be an integer, got 'x'"

    def test_bad_target(self):
        with pytest.raises(SettingsError):
            Settings().with_env({"LBPASM_TARGET": "z80"})

    def test_from_env_reads_file_first(self, isolated_settings, monkeypatch):
        """The environment wins over the file."""
        save_settings(Settings(target_arch="bitzzy", send_delay=10))
        monkeypatch.setenv("LBPASM_SEND_DELAY", "99")
        settings = Settings.from_env()
        assert settings.target_arch == "bitzzy"
        assert settings.send_delay == 99
