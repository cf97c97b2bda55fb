"""
Tests for the Program Driver
============================
"""

import logging

from isacc.backends import ISA
from isacc.compiler import CompilationResult
from isacc.driver import CompilationFailure, simulate, simulate_sources

SOURCES = {
    "ok.c": "A = B + C;",
    "bad.c": "if (A) B = 1;",
}


class TestSimulateSources:
    """Tests for simulate_sources()."""

    def test_all_architectures_by_default(self):
        report = simulate_sources({"ok.c": "A = B + C;"})
        assert report.isas == list(ISA)
        assert len(report.outcomes) == 5
        assert report.succeeded

    def test_order(self):
        """Architecture order first, then file order."""
        report = simulate_sources(SOURCES, isas=["stack", "mm3"])
        assert [(o.isa, o.filename) for o in report.outcomes] == [
            (ISA.STACK, "ok.c"),
            (ISA.STACK, "bad.c"),
            (ISA.MM3ADDRESS, "ok.c"),
            (ISA.MM3ADDRESS, "bad.c"),
        ]

    def test_failure_does_not_stop_run(self, caplog):
        """A failing file is recorded and logged; the rest still compile."""
        with caplog.at_level(logging.ERROR, logger="isacc.driver"):
            report = simulate_sources(SOURCES, isas=["mm3", "stack"])
        assert not report.succeeded
        assert len(report.results) == 2
        assert all(isinstance(r, CompilationResult) for r in report.results)
        assert [f.filename for f in report.failures] == ["bad.c", "bad.c"]
        assert isinstance(report.failures[0], CompilationFailure)
        assert "no comparison operator" in report.failures[0].message
        assert "bad.c" in caplog.text

    def test_totals(self):
        report = simulate_sources(SOURCES, isas=["mm3", "stack"])
        totals = report.totals()
        assert totals[ISA.MM3ADDRESS].instructions == 1
        assert totals[ISA.STACK].instructions == 4
        assert totals[ISA.STACK].bits == 96


class TestReport:
    """Tests for SimulationReport.render()."""

    def test_render(self):
        report = simulate_sources(SOURCES, isas=["mm3"])
        text = report.render()
        assert text.startswith(
            "Architecture: MM3ADDRESS\n"
            "File: ok.c\n"
            "Code:\n"
            "\tadd A, B, C\n"
        )
        assert "File: bad.c\nCode:\nCompilation failed: " in text
        assert "Architecture  Files" in text

    def test_totals_table(self):
        report = simulate_sources({"ok.c": "A = B + C;"}, isas=["mm3", "accumulator"])
        rows = report.render_totals().splitlines()
        assert len(rows) == 3
        assert rows[1].split() == ["MM3ADDRESS", "1", "1", "78", "3"]
        assert rows[2].split() == ["ACCUMULATOR", "1", "3", "90", "6"]


class TestSimulateFiles:
    """Tests for simulate() over files."""

    def test_reads_files(self, tmp_path):
        path = tmp_path / "prog.c"
        path.write_text("A = B - C;")
        report = simulate([path], isas=["mm4"])
        assert report.results[0].filename == str(path)
        assert "\tsub A, B, C, 13" in report.results[0].text
