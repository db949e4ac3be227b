"""Command line interface for mlprovision."""

from mlprovision.cli.main import cli

__all__ = ["cli"]
