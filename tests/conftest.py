"""
Test Configuration
==================

Shared fixtures for the lbpasm test suite.

It provides:
- One fixture per target architecture
- ``assemble_words``: assemble and return each instruction as an integer
- An isolated settings file so tests never read the user's configuration
"""

import pytest

from lbpasm.targets import get_target


# =============================================================================
# Targets
# =============================================================================

@pytest.fixture
def v8():
    return get_target("v8")


@pytest.fixture
def bitzzy():
    return get_target("bitzzy")


@pytest.fixture
def lodestar():
    return get_target("lodestar")


@pytest.fixture
def parva():
    return get_target("parva_0_1")


# =============================================================================
# Helpers
# =============================================================================

@pytest.fixture
def assemble_words():
    """
    Fixture: assemble source and return the instruction values.

    Fails the test with the formatted errors if assembly reports any.
    """
    def assemble(spec, source: str) -> list[int]:
        result = spec.assemble(source)
        assert result.ok, "\n".join(str(e) for e in result.errors)
        return [int(line.bits, 2) for line in result.instructions]
    return assemble


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every test at an empty settings file and clear overrides."""
    path = tmp_path / "settings.json"
    monkeypatch.setenv("LBPASM_CONFIG", str(path))
    monkeypatch.delenv("LBPASM_TARGET", raising=False)
    monkeypatch.delenv("LBPASM_SEND_DELAY", raising=False)
    return path
