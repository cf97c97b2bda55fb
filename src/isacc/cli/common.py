"""
Shared CLI Helpers
==================

Logging setup and compiler-option handling used by both tools.
"""

import dataclasses
import logging
from typing import Optional

import click

from isacc.backends import ISA
from isacc.config import CompilerOptions

ISA_CHOICE = click.Choice([isa.value for isa in ISA], case_sensitive=False)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def build_options(
    summary: bool = True,
    opcode_bits: Optional[int] = None,
    address_bits: Optional[int] = None,
) -> CompilerOptions:
    """
    Environment options with command-line overrides applied.

    Raises:
        ValueError: If an override is out of range
    """
    options = CompilerOptions.from_env()
    overrides = {}
    if not summary:
        overrides["emit_summary"] = False
    if opcode_bits is not None:
        overrides["opcode_bits"] = opcode_bits
    if address_bits is not None:
        overrides["address_bits"] = address_bits
    return dataclasses.replace(options, **overrides) if overrides else options
