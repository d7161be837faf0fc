"""Runnel CLI — Typer-based command-line interface.

Provides the ``runnel`` command with subcommands for inspecting compiled
route files and publishing test messages through them.

All output uses Rich for formatted terminal display.
"""
