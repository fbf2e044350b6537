"""
Native Toolchain
================

Assembles, links and runs stackcc listings with the system C compiler.
The C compiler driver is used as assembler and linker in one step, so
the listing's ``main`` becomes the program entry called by the C
runtime:

    $ cc -o program program.s
    $ ./program; echo $?

Usage
-----
>>> from stackcc import compile_source
>>> from stackcc.toolchain import build_executable, run_executable
>>> exe = build_executable(compile_source("return 42;"), "answer")
>>> run_executable(exe)
42

Running the output requires an x86-64 host; building it requires a C
compiler that targets one.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from stackcc.errors import StackCCError

logger = logging.getLogger(__name__)


# Compiler drivers tried in order
COMPILER_CANDIDATES = ("cc", "gcc", "clang")

BUILD_TIMEOUT = 60
RUN_TIMEOUT = 10


class ToolchainError(StackCCError):
    """
    Raised when building or running a native executable fails.

    Attributes:
        command: Command line that was executed
        stdout: Standard output of the command
        stderr: Standard error of the command
        return_code: Process return code
    """

    def __init__(
        self,
        message: str,
        *,
        command: Optional[list[str]] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        return_code: Optional[int] = None,
    ):
        self.command = command
        self.stdout = stdout
        self.stderr = stderr
        self.return_code = return_code
        hint = stderr.strip() if stderr and stderr.strip() else None
        super().__init__(message, hint=hint)


def find_c_compiler() -> Optional[str]:
    """
    Locate a C compiler driver on PATH.

    The CC environment variable takes precedence when it names a program
    that exists.

    Returns:
        Absolute path of the compiler, or None if none is installed
    """
    preferred = os.environ.get("CC")
    candidates = ((preferred,) if preferred else ()) + COMPILER_CANDIDATES
    for name in candidates:
        path = shutil.which(name)
        if path:
            return path
    return None


def build_executable(
    assembly: str,
    output: str | Path,
    compiler: Optional[str] = None,
) -> Path:
    """
    Assemble and link a listing into an executable.

    Args:
        assembly: Listing text produced by the compiler
        output: Path of the executable to create
        compiler: C compiler to use (default: find_c_compiler())

    Returns:
        Path to the executable

    Raises:
        ToolchainError: If no compiler is found or the build fails
    """
    compiler = compiler or find_c_compiler()
    if compiler is None:
        raise ToolchainError(
            "no C compiler found (tried " + ", ".join(COMPILER_CANDIDATES) + ")"
        )

    output = Path(output).resolve()

    with tempfile.TemporaryDirectory(prefix="stackcc-") as tmp:
        source_path = Path(tmp) / f"{output.stem or 'program'}.s"
        source_path.write_text(assembly, encoding="utf-8")

        cmd = [compiler, "-o", str(output), str(source_path)]
        logger.debug("running %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=BUILD_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolchainError(f"build timed out after {BUILD_TIMEOUT}s", command=cmd) from e
        except FileNotFoundError as e:
            raise ToolchainError(f"C compiler not found: {compiler}", command=cmd) from e

    if result.returncode != 0:
        raise ToolchainError(
            f"build failed with status {result.returncode}",
            command=cmd,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
        )

    return output


def run_executable(path: str | Path, timeout: int = RUN_TIMEOUT) -> int:
    """
    Run an executable and return its exit status (0-255).

    Raises:
        ToolchainError: If the program cannot be started, times out or is
                        killed by a signal
    """
    cmd = [str(Path(path).resolve())]
    logger.debug("running %s", cmd[0])

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise ToolchainError(f"program timed out after {timeout}s", command=cmd) from e
    except OSError as e:
        raise ToolchainError(f"cannot run {cmd[0]}: {e}", command=cmd) from e

    if result.returncode < 0:
        raise ToolchainError(
            f"program killed by signal {-result.returncode}",
            command=cmd,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
        )

    return result.returncode


def compile_and_run(assembly: str, compiler: Optional[str] = None) -> int:
    """Build a listing in a scratch directory, run it and return its exit status."""
    with tempfile.TemporaryDirectory(prefix="stackcc-") as tmp:
        executable = build_executable(assembly, Path(tmp) / "program", compiler)
        return run_executable(executable)
