"""
isacc Command-Line Interface
============================

- **isacc**: compile one source file for one architecture
- **isasim**: compile many files for many architectures and compare costs

Both tools are click applications sharing the exit codes in
isacc.cli.errors.
"""

__all__ = ["isacc", "isasim"]
