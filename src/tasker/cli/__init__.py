"""Command line interface."""

from tasker.cli.app import app, main

__all__ = ["app", "main"]
