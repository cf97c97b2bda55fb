"""
Tests for the Command-Line Tools
================================

isacc and isasim exercised through click's CliRunner.
"""

from pathlib import Path

import pytest

from isacc.cli.errors import ExitCode, handle_cli_exception
from isacc.errors import NamespaceError, PatternNotFoundError


class TestIsacc:
    """Tests for the isacc command."""

    def test_default_output_path(self):
        """The listing lands next to the input, named after the ISA."""
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(main, ["prog.c", "-a", "stack"])

            assert result.exit_code == 0, result.output
            text = Path("prog.stack.s").read_text()
            assert text.startswith("\tpush B\n\tpush C\n\tadd\n\tpop A\n")
            assert "Instruction count:\t4" in text

    def test_stdout(self):
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(main, ["prog.c", "-o", "-"])

            assert result.exit_code == 0
            assert "\tadd A, B, C" in result.output
            assert not Path("prog.mm3.s").exists()

    def test_no_summary(self):
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(
                main, ["prog.c", "-a", "loadstore", "--no-summary", "-o", "out.s"]
            )

            assert result.exit_code == 0
            text = Path("out.s").read_text()
            assert "Instruction count" not in text
            assert "\tsw $s2, A($zero)" in text

    def test_width_flags(self):
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(
                main, ["prog.c", "--opcode-bits", "8", "--address-bits", "16", "-o", "-"]
            )

            assert result.exit_code == 0
            assert "Size of resulting code:\t56 bits" in result.output

    def test_invalid_width(self):
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(main, ["prog.c", "--opcode-bits", "0"])

            assert result.exit_code == ExitCode.INVALID_ARGS

    def test_compile_error(self):
        """Source errors exit with BUILD_ERROR and a located message."""
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.c").write_text("A = 1;\nif (B) C = 1;\n")
            result = runner.invoke(main, ["bad.c"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "bad.c:2:1: error:" in result.output
            assert not Path("bad.mm3.s").exists()

    def test_unknown_architecture(self):
        from click.testing import CliRunner
        from isacc.cli.isacc import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("prog.c").write_text("A = B + C;")
            result = runner.invoke(main, ["prog.c", "-a", "vliw"])

            assert result.exit_code == 2

    def test_version(self):
        from click.testing import CliRunner
        from isacc import __version__
        from isacc.cli.isacc import main

        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestIsasim:
    """Tests for the isasim command."""

    def test_all_architectures(self):
        from click.testing import CliRunner
        from isacc.cli.isasim import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("a.c").write_text("A = B + C;")
            Path("b.c").write_text("while (A < 5) A = A + 1;")
            result = runner.invoke(main, ["a.c", "b.c"])

            assert result.exit_code == 0, result.output
            for name in ("MM4ADDRESS", "MM3ADDRESS", "ACCUMULATOR", "STACK", "LOADSTORE"):
                assert f"Architecture: {name}" in result.output
            assert "File: b.c" in result.output

    def test_selected_architectures_and_report(self):
        from click.testing import CliRunner
        from isacc.cli.isasim import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("a.c").write_text("A = B + C;")
            result = runner.invoke(main, ["a.c", "-a", "mm3", "-a", "stack", "-o", "report.txt"])

            assert result.exit_code == 0
            report = Path("report.txt").read_text()
            assert "Architecture: STACK" in report
            assert "Architecture: LOADSTORE" not in report

    def test_failure_logged(self):
        """A failing file sets the exit code and is written to the log file."""
        from click.testing import CliRunner
        from isacc.cli.isasim import main

        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("a.c").write_text("A = B + C;")
            Path("bad.c").write_text("A = B % C;")
            result = runner.invoke(main, ["a.c", "bad.c", "-a", "mm3", "--log-file", "sim.log"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "Compilation failed:" in result.output
            assert "\tadd A, B, C" in result.output
            assert "failed to compile" in Path("sim.log").read_text()

    def test_missing_file(self):
        from click.testing import CliRunner
        from isacc.cli.isasim import main

        result = CliRunner().invoke(main, ["missing.c"])
        assert result.exit_code == 2


class TestHandleCliException:
    """Tests for the shared exit-code mapping."""

    @pytest.mark.parametrize("error, code", [
        (PatternNotFoundError("no comparison"), ExitCode.BUILD_ERROR),
        (NamespaceError("leak"), ExitCode.INTERNAL_ERROR),
        (ValueError("bad width"), ExitCode.INVALID_ARGS),
        (FileNotFoundError("gone.c"), ExitCode.INVALID_ARGS),
        (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
    ])
    def test_exit_codes(self, error, code):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_exception(error)
        assert exc_info.value.code == code
