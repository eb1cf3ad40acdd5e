"""pgwarden CLI: Typer-based command-line interface.

Provides the ``pgwarden`` command: ``run`` for a full backup cycle (the
cron entry point), ``check`` for preflight only and ``show-config`` to
inspect the effective settings.

All terminal output uses Rich.
"""
