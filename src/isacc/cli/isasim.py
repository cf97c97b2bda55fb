"""
isasim - Architecture Comparison Command-Line Interface
=======================================================

Compiles every given source file for every selected architecture and
prints one report with all listings and a per-architecture totals table.
A file that fails to compile for one architecture is reported and logged
without stopping the run; the exit code is then 1.

Usage Examples
--------------
All five architectures:
    $ isasim loop.c fact.c

Two architectures, report and log written to files:
    $ isasim loop.c -a mm3 -a stack -o report.txt --log-file sim.log
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from isacc import __version__
from isacc.cli.common import ISA_CHOICE, build_options, setup_logging
from isacc.cli.errors import ExitCode, handle_cli_exception
from isacc.driver import simulate


@click.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-a", "--arch",
    type=ISA_CHOICE,
    multiple=True,
    help="Architecture to compile for (repeatable; default: all)",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the report to this file",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append log records to this file",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="isasim")
def main(
    files: tuple[Path, ...],
    arch: tuple[str, ...],
    output: Optional[Path],
    log_file: Optional[Path],
    verbose: bool,
) -> None:
    """
    Compile source files for several architectures and compare costs.

    FILES are the source programs.
    """
    setup_logging(verbose)

    handler = None
    if log_file is not None:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s")
        )
        logging.getLogger("isacc").addHandler(handler)

    try:
        report = simulate(files, arch or None, build_options())
        text = report.render()
        click.echo(text, nl=False)
        if output is not None:
            output.write_text(text)
            if verbose:
                click.echo(f"Wrote report to {output}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Simulation")

    finally:
        if handler is not None:
            logging.getLogger("isacc").removeHandler(handler)
            handler.close()

    if not report.succeeded:
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
