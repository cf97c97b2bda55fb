"""
Program Driver
==============

Compiles a set of source files for a set of architectures and collects
everything into one report, so the cost of the same program can be
compared across instruction-set styles.

A PatternNotFoundError only fails its own (architecture, file)
combination: it is logged, recorded as a CompilationFailure, and the
driver moves on to the next combination.

Report Layout
-------------
::

    Architecture: MM4ADDRESS
    File: loop.c
    Code:
    <listing>

    File: fact.c
    Code:
    Compilation failed: <message>

    Architecture: MM3ADDRESS
    ...

    Architecture  Files  Instructions    Bits  Memory accesses
    MM4ADDRESS        1             7     462               23
    ...
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from isacc.backends import ISA
from isacc.compiler.compiler import CompilationResult, Compiler
from isacc.config import CompilerOptions
from isacc.costs import CostAccumulator
from isacc.errors import PatternNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CompilationFailure:
    """One (architecture, file) combination that did not compile."""

    isa: ISA
    filename: str
    error: PatternNotFoundError

    @property
    def message(self) -> str:
        return str(self.error)


Outcome = Union[CompilationResult, CompilationFailure]


@dataclass
class SimulationReport:
    """
    Outcomes of a driver run, in architecture order then file order.

    Attributes:
        isas: Architectures in the order they were compiled for
        outcomes: One CompilationResult or CompilationFailure per combination
    """
    isas: list[ISA] = field(default_factory=list)
    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def results(self) -> list[CompilationResult]:
        return [o for o in self.outcomes if isinstance(o, CompilationResult)]

    @property
    def failures(self) -> list[CompilationFailure]:
        return [o for o in self.outcomes if isinstance(o, CompilationFailure)]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def outcomes_for(self, isa: ISA) -> list[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.isa is isa]

    def totals(self) -> dict[ISA, CostAccumulator]:
        """Summed costs of the successful compilations per architecture."""
        totals = {isa: CostAccumulator() for isa in self.isas}
        for result in self.results:
            totals[result.isa].merge(result.costs)
        return totals

    def render(self) -> str:
        """Render the full listing followed by the totals table."""
        parts = []
        for isa in self.isas:
            parts.append(f"Architecture: {isa.name}\n")
            for outcome in self.outcomes_for(isa):
                parts.append(f"File: {outcome.filename}\nCode:\n")
                if isinstance(outcome, CompilationFailure):
                    parts.append(f"Compilation failed: {outcome.message}\n")
                else:
                    parts.append(outcome.text)
                parts.append("\n")
        parts.append(self.render_totals())
        return "".join(parts)

    def render_totals(self) -> str:
        compiled = {isa: 0 for isa in self.isas}
        for result in self.results:
            compiled[result.isa] += 1

        lines = [
            f"{'Architecture':<12}  {'Files':>5}  {'Instructions':>12}  "
            f"{'Bits':>6}  {'Memory accesses':>15}"
        ]
        for isa, costs in self.totals().items():
            lines.append(
                f"{isa.name:<12}  {compiled[isa]:>5}  {costs.instructions:>12}  "
                f"{costs.bits:>6}  {costs.memory_accesses:>15}"
            )
        return "\n".join(lines) + "\n"


def simulate_sources(
    sources: Mapping[str, str],
    isas: Optional[Iterable[Union[ISA, str]]] = None,
    options: Optional[CompilerOptions] = None,
) -> SimulationReport:
    """
    Compile every source for every architecture.

    Args:
        sources: File name -> source text, in report order
        isas: Architectures to compile for (default: all five)
        options: Compiler options shared by every compilation

    Returns:
        SimulationReport with one outcome per (architecture, file)
    """
    selected = [ISA.parse(isa) for isa in isas] if isas else list(ISA)
    report = SimulationReport(isas=selected)

    for isa in selected:
        compiler = Compiler(isa, options)
        for filename, source in sources.items():
            try:
                report.outcomes.append(compiler.compile_source(source, filename))
            except PatternNotFoundError as e:
                logger.error(f"{isa.name}: {filename} failed to compile: {e}")
                report.outcomes.append(CompilationFailure(isa, filename, e))

    logger.info(
        f"Simulated {len(sources)} file(s) on {len(selected)} architecture(s), "
        f"{len(report.failures)} failure(s)"
    )
    return report


def simulate(
    paths: Iterable[Union[str, Path]],
    isas: Optional[Iterable[Union[ISA, str]]] = None,
    options: Optional[CompilerOptions] = None,
) -> SimulationReport:
    """
    Read source files and compile each for every architecture.

    Raises:
        OSError: If a file cannot be read
    """
    sources = {}
    for path in paths:
        path = Path(path)
        logger.debug(f"Reading {path}")
        sources[str(path)] = path.read_text()
    return simulate_sources(sources, isas, options)
