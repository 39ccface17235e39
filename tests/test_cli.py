"""
CLI Tests
=========

Tests for the lbpasm, lbpemu and lbpsend command-line tools, run through
click's CliRunner.
"""

import json
import socket

import pytest
from click.testing import CliRunner

from lbpasm.cli.lbpasm import main as lbpasm_main
from lbpasm.cli.lbpemu import main as lbpemu_main
from lbpasm.cli.lbpsend import main as lbpsend_main
from lbpasm.targets import get_target
from lbpasm.transfer.protocol import encode_message


V8_LOOP = "LDC #3\nloop:\nINC A\nDEC C\nJNZ loop\nHLT\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write_source(tmp_path):
    """Fixture: write a source file and return its path as a string."""
    def write(text: str, name: str = "program.asm") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return write


def closed_port() -> int:
    """Return a local TCP port with nothing listening on it."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# =============================================================================
# lbpasm Tests
# =============================================================================

class TestAssemblerCli:
    """Test the lbpasm command."""

    def test_raw_listing(self, runner, write_source):
        source = write_source("start:\nLDA #1\n")
        result = runner.invoke(lbpasm_main, [source, "-t", "v8", "--raw"])
        assert result.exit_code == 0
        assert result.output == "start:\n  0: 01111000 00000001    ; LDA #1\n"

    def test_format_options(self, runner, write_source):
        source = write_source("LDA #1\n")
        result = runner.invoke(lbpasm_main, [
            source, "-t", "v8", "--raw", "-f", "hex", "-a", "hex", "-s", "none",
        ])
        assert result.exit_code == 0
        assert result.output == "  00: 78 01\n"

    def test_styled_listing_has_same_text(self, runner, write_source):
        """Without a terminal, click strips the colour codes."""
        source = write_source("start:\nLDA #1\n")
        result = runner.invoke(lbpasm_main, [source, "-t", "v8"])
        assert result.exit_code == 0
        assert result.output == "start:\n  0: 01111000 00000001    ; LDA #1\n"

    def test_errors(self, runner, write_source):
        """Every failing line is reported and the exit code is 1."""
        source = write_source("FOO\nNOP\nBAR\n")
        result = runner.invoke(lbpasm_main, [source, "-t", "v8"])
        assert result.exit_code == 1
        assert "Line 1: Unknown instruction: FOO" in result.output
        assert "Line 3: Unknown instruction: BAR" in result.output
        assert "2 error(s)" in result.output

    def test_errors_keep_partial_output(self, runner, write_source, tmp_path):
        """Lines that assembled are listed and saved before the errors."""
        source = write_source("HLT\nfrobnicate x\nNOP\n")
        image = tmp_path / "program.json"
        result = runner.invoke(lbpasm_main, [
            source, "-t", "v8", "--raw", "-s", "none", "-m", str(image),
        ])
        assert result.exit_code == 1
        assert "  0: 00000000\n  1: 00000001\n" in result.output
        assert "Line 2: Unknown instruction: frobnicate" in result.output
        assert json.loads(image.read_text()) == [[0, 0], [1, 1]]

    def test_target_from_environment(self, runner, write_source, monkeypatch):
        monkeypatch.setenv("LBPASM_TARGET", "v8")
        source = write_source("HLT\n")
        result = runner.invoke(lbpasm_main, [source, "--raw", "-s", "none"])
        assert result.exit_code == 0
        assert result.output == "  0: 00000000\n"

    def test_bad_environment(self, runner, write_source, monkeypatch):
        monkeypatch.setenv("LBPASM_SEND_DELAY", "soon")
        result = runner.invoke(lbpasm_main, [write_source("HLT\n")])
        assert result.exit_code == 2
        assert "LBPASM_SEND_DELAY must be an integer" in result.output

    def test_missing_source(self, runner):
        result = runner.invoke(lbpasm_main, [])
        assert result.exit_code == 2
        assert "Missing argument" in result.output

    def test_list_targets(self, runner):
        result = runner.invoke(lbpasm_main, ["--list-targets"])
        assert result.exit_code == 0
        assert "parva_0_1  24-bit words" in result.output
        assert "lodestar    8-bit words, up to 2 per instruction, no emulator" in result.output

    def test_docs(self, runner):
        result = runner.invoke(lbpasm_main, ["--docs", "-t", "bitzzy"])
        assert result.exit_code == 0
        assert result.output == get_target("bitzzy").documentation + "\n"

    def test_output_file(self, runner, write_source, tmp_path):
        source = write_source("LDA #1\n")
        listing = tmp_path / "program.lst"
        result = runner.invoke(lbpasm_main, [source, "-t", "v8", "-o", str(listing)])
        assert result.exit_code == 0
        assert listing.read_text() == "  0: 01111000 00000001    ; LDA #1\n"

    def test_memory_image(self, runner, write_source, tmp_path):
        source = write_source("NOP\nLDA #1\n")
        image = tmp_path / "program.json"
        result = runner.invoke(lbpasm_main, [source, "-t", "v8", "-m", str(image)])
        assert result.exit_code == 0
        assert json.loads(image.read_text()) == [[0, 1], [1, 0x78], [2, 1]]

    def test_save_settings(self, runner, isolated_settings):
        """Options given with --save-settings become the new defaults."""
        result = runner.invoke(lbpasm_main, ["--save-settings", "-t", "v8", "-f", "hex"])
        assert result.exit_code == 0
        data = json.loads(isolated_settings.read_text())
        assert data["targetArch"] == "v8"
        assert data["machineCodeOutputFormat"] == "hex"

    def test_saved_settings_used(self, runner, write_source):
        runner.invoke(lbpasm_main, ["--save-settings", "-t", "v8", "-f", "hex", "--raw"])
        result = runner.invoke(lbpasm_main, [write_source("LDA #1\n")])
        assert result.exit_code == 0
        assert result.output == "  0: 78 01    ; LDA #1\n"


# =============================================================================
# lbpemu Tests
# =============================================================================

class TestEmulatorCli:
    """Test the lbpemu command."""

    def test_run_to_halt(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source(V8_LOOP), "-t", "v8"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "Halted at 0x6"
        assert lines[1] == "Steps: 10"
        assert lines[2] == "pc: 06, stack pointer: 7e"

    def test_breakpoint(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source(V8_LOOP), "-t", "v8", "-b", "$4"])
        assert result.exit_code == 0
        assert result.output.startswith("Breakpoint at 0x4\nSteps: 3\n")

    def test_step_budget(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source(V8_LOOP), "-t", "v8", "-n", "2"])
        assert result.exit_code == 0
        assert result.output.startswith("Stopped after 2 steps\n")

    def test_trace(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source("NOP\nHLT\n"), "-t", "v8", "--trace"])
        assert result.exit_code == 0
        assert result.output.startswith("pc=0x1\nHalted at 0x1\n")

    def test_bad_breakpoint(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source("HLT\n"), "-t", "v8", "-b", "here"])
        assert result.exit_code == 2

    def test_no_emulator(self, runner, write_source):
        result = runner.invoke(lbpemu_main, [write_source("hlt\n"), "-t", "lodestar"])
        assert result.exit_code == 1
        assert "Emulator error: Architecture 'lodestar' has no emulator" in result.output

    def test_screenshot(self, runner, write_source, tmp_path):
        image = tmp_path / "screen.png"
        result = runner.invoke(lbpemu_main, [
            write_source("wfi\n"), "-t", "parva_0_1", "--screenshot", str(image),
        ])
        assert result.exit_code == 0
        assert image.read_bytes().startswith(b"\x89PNG")

    def test_screenshot_without_display(self, runner, write_source, tmp_path):
        result = runner.invoke(lbpemu_main, [
            write_source("HLT\n"), "-t", "v8", "--screenshot", str(tmp_path / "s.png"),
        ])
        assert result.exit_code == 2
        assert "v8 has no display" in result.output


# =============================================================================
# lbpsend Tests
# =============================================================================

class TestSendCli:
    """Test the lbpsend command group."""

    def test_encode(self, runner):
        result = runner.invoke(lbpsend_main, ["encode", "1", "0x123"])
        assert result.exit_code == 0
        assert result.output == encode_message(0x123, 1) + "\n"

    def test_encode_value_too_large(self, runner):
        result = runner.invoke(lbpsend_main, ["encode", "3", "0x1000"])
        assert result.exit_code == 2

    def test_push_without_bridge(self, runner, tmp_path):
        image = tmp_path / "program.json"
        image.write_text("[[0, 1], [1, 2]]")
        result = runner.invoke(lbpsend_main, [
            "--host", "127.0.0.1", "--port", str(closed_port()), "push", str(image),
        ])
        assert result.exit_code == 1
        assert "Sending 2 values" in result.output
        assert "Transfer error: Cannot connect to bridge" in result.output

    def test_push_bad_image(self, runner, tmp_path):
        image = tmp_path / "program.json"
        image.write_text('{"not": "pairs"}')
        result = runner.invoke(lbpsend_main, ["push", str(image)])
        assert result.exit_code == 1
        assert "is not a memory image" in result.output

    def test_push_assembly_errors(self, runner, write_source):
        result = runner.invoke(lbpsend_main, ["push", write_source("FOO\n"), "-t", "v8"])
        assert result.exit_code == 1
        assert "Line 1: Unknown instruction: FOO" in result.output
