"""
stackcc - Compiler Command-Line Interface
=========================================

Usage Examples
--------------
Compile program text to stdout:
    $ stackcc "a = 3; return a * 2;"

Compile a file:
    $ stackcc -f program.c -o program.s

Inspect the front end:
    $ stackcc --tokens "a <= 1;"
    $ stackcc --ast -f program.c

Run the result (exit status is the program's result):
    $ stackcc --run "return 42;"; echo $?
    $ stackcc --native -f program.c; echo $?
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import click

from stackcc import __version__
from stackcc.compiler import Compiler, CompilerOptions, ASTPrinter, tokenize
from stackcc.cli.errors import handle_cli_exception

logger = logging.getLogger(__name__)

_SYMBOL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def _validate_symbol(ctx: click.Context, param: click.Parameter, value: str) -> str:
    if not _SYMBOL_RE.match(value):
        raise click.BadParameter(f"'{value}' is not a valid symbol name")
    return value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument("source", required=False)
@click.option(
    "-f", "--file", "source_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the program from a file instead of the SOURCE argument",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: stdout)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print tokens and exit",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit",
)
@click.option(
    "--run",
    is_flag=True,
    help="Run the program in the emulator and exit with its status",
)
@click.option(
    "--native",
    is_flag=True,
    help="Build with the system C compiler, run, and exit with its status",
)
@click.option(
    "--entry",
    default="main",
    show_default=True,
    callback=_validate_symbol,
    help="Name of the generated routine",
)
@click.option(
    "--comments",
    is_flag=True,
    help="Annotate the assembly with comments",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="stackcc")
def main(
    source: Optional[str],
    source_file: Optional[Path],
    output: Optional[Path],
    tokens: bool,
    ast: bool,
    run: bool,
    native: bool,
    entry: str,
    comments: bool,
    verbose: bool,
) -> None:
    """
    Compile a small C-like program to x86-64 assembly.

    SOURCE is the program text; use -f to read it from a file instead.

    The output is GNU as Intel-syntax assembly defining a routine whose
    return value is the program's result. Link it with a C compiler:

    \b
    Examples:
        stackcc "return 1 + 2;"              # Assembly to stdout
        stackcc -f prog.c -o prog.s          # Assembly to a file
        stackcc --run "x = 5; return x * 2;" # Exit status 10
        cc -o prog prog.s && ./prog          # Native build by hand

    \b
    Language:
        - 64-bit integers, + - * / and unary -
        - == != < <= > >= (yield 0 or 1), = (chains right to left)
        - if/else, while, for, { ... }, return
        - variables are declared by their first use
    """
    setup_logging(verbose)

    if (source is None) == (source_file is None):
        raise click.UsageError("provide either SOURCE or -f/--file")
    if run and native:
        raise click.UsageError("--run and --native are mutually exclusive")
    if native and entry != "main":
        raise click.UsageError("--native links against the C runtime, which calls 'main'")

    try:
        if source_file is not None:
            filename = str(source_file)
            text = source_file.read_text(encoding="utf-8")
        else:
            filename = "<input>"
            text = source

        compiler = Compiler(CompilerOptions(entry_symbol=entry, emit_comments=comments))

        if tokens:
            for token in tokenize(text, filename):
                click.echo(repr(token))
            return

        result = compiler.compile_source(text, filename)

        if verbose:
            click.echo(
                f"Compiled {filename}: {result.token_count} tokens, "
                f"{len(result.program.statements)} statements, "
                f"{result.variable_count} variables",
                err=True,
            )

        if ast:
            click.echo(ASTPrinter().print(result.program))
            return

        if output is not None:
            output.write_text(result.assembly, encoding="utf-8")
            if verbose:
                click.echo(f"Wrote {len(result.assembly)} bytes to {output}", err=True)
        elif not (run or native):
            click.echo(result.assembly, nl=False)

        if run:
            from stackcc.emulator import run_listing
            status = run_listing(result.assembly, entry).exit_status
        elif native:
            from stackcc.toolchain import compile_and_run
            status = compile_and_run(result.assembly)
        else:
            return

        logger.debug("program exited with status %d", status)
        sys.exit(status)

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
