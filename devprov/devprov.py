#!/usr/bin/env python3
"""devprov CLI entrypoint."""

import argparse

from devprov.commands.deploy_bosh import register_deploy_bosh_command
from devprov.commands.service import register_service_command
from devprov.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Local development VM provisioning")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_deploy_bosh_command(subparsers)
    register_service_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
