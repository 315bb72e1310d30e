"""CLI logging setup: simple %(message)s format for standalone commands."""

import logging
import sys

from devprov.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure root logger with plain message format for CLI commands.

    Remote command output is not logged here; it goes to the per-deployment
    log file.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # paramiko logs every transport event at DEBUG
    logging.getLogger("paramiko").setLevel(logging.WARNING)
