"""Allow ``python -m toolserve``."""

from toolserve.cli.app import cli

cli()
