"""
isacc - Compiler Command-Line Interface
=======================================

Compiles one source file for one instruction-set architecture and writes
the assembly listing, cost summary included.

Usage Examples
--------------
Three-address listing next to the source (loop.mm3.s):
    $ isacc loop.c

Stack machine, printed to the terminal:
    $ isacc loop.c -a stack -o -

Listing without the cost summary:
    $ isacc loop.c -a loadstore --no-summary
"""

from pathlib import Path
from typing import Optional

import click

from isacc import __version__
from isacc.cli.common import ISA_CHOICE, build_options, setup_logging
from isacc.cli.errors import handle_cli_exception
from isacc.compiler import Compiler


@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-a", "--arch",
    type=ISA_CHOICE,
    default="mm3",
    show_default=True,
    help="Target instruction-set architecture",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, allow_dash=True, path_type=Path),
    help="Output listing (default: input.<arch>.s, '-' for stdout)",
)
@click.option(
    "--summary/--no-summary",
    default=True,
    help="Append the cost summary to the listing",
)
@click.option(
    "--opcode-bits",
    type=int,
    help="Opcode width used for code size (default: 6)",
)
@click.option(
    "--address-bits",
    type=int,
    help="Operand width used for code size (default: 24)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="isacc")
def main(
    input_file: Path,
    arch: str,
    output: Optional[Path],
    summary: bool,
    opcode_bits: Optional[int],
    address_bits: Optional[int],
    verbose: bool,
) -> None:
    """
    Compile a C-like source file to assembly for one architecture.

    INPUT_FILE is the source program.

    \b
    Examples:
        isacc loop.c                 # Outputs loop.mm3.s
        isacc loop.c -a stack -o -   # Print stack-machine code
    """
    setup_logging(verbose)

    try:
        options = build_options(summary, opcode_bits, address_bits)
        compiler = Compiler(arch, options)
        result = compiler.compile_file(input_file)

        if output is not None and str(output) == "-":
            click.echo(result.text, nl=False)
            return

        output_file = output if output is not None else input_file.with_suffix(f".{arch.lower()}.s")
        output_file.write_text(result.text)
        if verbose:
            click.echo(
                f"Wrote {result.costs.instructions} instructions "
                f"({result.costs.bits} bits) to {output_file}"
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Compilation")


if __name__ == "__main__":
    main()
