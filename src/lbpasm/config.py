"""
Persisted Settings
==================

User preferences shared by the command-line tools: the target
architecture, how listings look, and the transfer delay.

Settings live in a small JSON file:

- ``$LBPASM_CONFIG`` if set
- otherwise ``~/.config/lbpasm/settings.json``

The file carries a ``version`` key. A file of another version, or one
that cannot be read, is ignored with a warning and the defaults are used.

Environment Overrides
---------------------
- ``LBPASM_TARGET``: target architecture
- ``LBPASM_SEND_DELAY``: transfer delay in milliseconds

File Format
-----------
::

    {
      "version": "1",
      "targetArch": "parva_0_1",
      "assemblyOutputFormat": "decimal",
      "machineCodeOutputFormat": "binary",
      "machineCodeShowLabels": true,
      "syntaxHighlighting": "default",
      "inlineSourceFormat": "instruction",
      "rawOutput": false,
      "focusEmulator": false,
      "sendDelay": 1500
    }

``assemblyOutputFormat`` is the address column format.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final, Optional

from lbpasm.assembler.listing import ListingOptions, OutputFormat, SourceFormat
from lbpasm.errors import SettingsError
from lbpasm.targets import DEFAULT_TARGET, TARGETS
from lbpasm.transfer.protocol import DEFAULT_SEND_DELAY

logger = logging.getLogger(__name__)

CONFIG_VERSION: Final[str] = "1"
CONFIG_ENV: Final[str] = "LBPASM_CONFIG"
TARGET_ENV: Final[str] = "LBPASM_TARGET"
SEND_DELAY_ENV: Final[str] = "LBPASM_SEND_DELAY"

# Settings attribute -> JSON key
_KEYS: Final[dict[str, str]] = {
    "target_arch": "targetArch",
    "address_format": "assemblyOutputFormat",
    "machine_code_format": "machineCodeOutputFormat",
    "show_labels": "machineCodeShowLabels",
    "syntax_highlighting": "syntaxHighlighting",
    "inline_source": "inlineSourceFormat",
    "raw_output": "rawOutput",
    "focus_emulator": "focusEmulator",
    "send_delay": "sendDelay",
}


def default_config_path() -> Path:
    """Return the settings file location."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override)
    return Path.home() / ".config" / "lbpasm" / "settings.json"


@dataclass(frozen=True)
class Settings:
    """
    User settings.

    Attributes:
        target_arch: Default target architecture
        address_format: Address column of listings
        machine_code_format: Machine code column of listings
        show_labels: Print label lines in listings
        syntax_highlighting: Highlighting theme name
        inline_source: Which source text listings include
        raw_output: Print bare machine code without decoration
        focus_emulator: Start in the emulator view
        send_delay: Delay after each transfer message, in milliseconds
    """
    target_arch: str = DEFAULT_TARGET
    address_format: OutputFormat = OutputFormat.DECIMAL
    machine_code_format: OutputFormat = OutputFormat.BINARY
    show_labels: bool = True
    syntax_highlighting: str = "default"
    inline_source: SourceFormat = SourceFormat.INSTRUCTION
    raw_output: bool = False
    focus_emulator: bool = False
    send_delay: int = DEFAULT_SEND_DELAY

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"version": CONFIG_VERSION}
        for attribute, key in _KEYS.items():
            value = getattr(self, attribute)
            data[key] = value.value if isinstance(value, (OutputFormat, SourceFormat)) else value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        """
        Build settings from a decoded settings file.

        Missing keys keep their defaults.

        Raises:
            SettingsError: If the version differs or a value is invalid
        """
        version = data.get("version")
        if version != CONFIG_VERSION:
            raise SettingsError(
                f"Saved configuration version mismatch: found {version}, "
                f"expected {CONFIG_VERSION}"
            )
        values = {attribute: data[key] for attribute, key in _KEYS.items() if key in data}
        return cls()._with(values)

    def _with(self, values: Mapping[str, Any]) -> "Settings":
        try:
            for name in ("address_format", "machine_code_format"):
                if name in values:
                    values = {**values, name: OutputFormat(values[name])}
            if "inline_source" in values:
                values = {**values, "inline_source": SourceFormat(values["inline_source"])}
        except ValueError as e:
            raise SettingsError(str(e)) from e

        settings = replace(self, **values)
        if settings.target_arch not in TARGETS:
            raise SettingsError(f"Unknown architecture '{settings.target_arch}'")
        if (isinstance(settings.send_delay, bool) or not isinstance(settings.send_delay, int)
                or settings.send_delay < 0):
            raise SettingsError(f"Invalid send delay: {settings.send_delay!r}")
        return settings

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Apply environment overrides.

        Raises:
            SettingsError: If an override has an invalid value
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if environ.get(TARGET_ENV):
            values["target_arch"] = environ[TARGET_ENV]
        if environ.get(SEND_DELAY_ENV):
            try:
                values["send_delay"] = int(environ[SEND_DELAY_ENV])
            except ValueError:
                raise SettingsError(
                    f"{SEND_DELAY_ENV} must be an integer, got '{environ[SEND_DELAY_ENV]}'"
                ) from None
        return self._with(values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Load the settings file, then apply environment overrides."""
        return load_settings().with_env(environ)

    def listing_options(self) -> ListingOptions:
        return ListingOptions(
            machine_code=self.machine_code_format,
            address=self.address_format,
            source=self.inline_source,
            show_labels=self.show_labels,
        )


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings, falling back to defaults.

    Args:
        path: Settings file (default_config_path() if None)

    Returns:
        The stored settings, or the defaults when the file is missing,
        unreadable, invalid or of another version
    """
    path = path if path is not None else default_config_path()
    if not path.exists():
        logger.debug("no settings file at %s", path)
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise SettingsError("settings file does not hold a JSON object")
        return Settings.from_dict(data)
    except (OSError, ValueError, SettingsError) as e:
        logger.warning("Ignoring settings in %s: %s", path, e)
        return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """
    Write settings as JSON, creating parent directories.

    Returns:
        The path written
    """
    path = path if path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.debug("settings saved to %s", path)
    return path
