"""
stackcc Command-Line Interface
==============================

Provides the ``stackcc`` command: compile a program to assembly, dump
its tokens or AST, or run it in the emulator or natively.

Implemented as a Click application with unified error reporting.
"""

__all__ = ["main"]
