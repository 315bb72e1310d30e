"""service command: manage OS background services through the service wrapper."""

import logging
import sys

from devprov.provisioning.errors import ProvisionError
from devprov.servicew import ServiceConfig, ServiceWrapper

logger = logging.getLogger(__name__)


def _parse_env(pairs):
    env = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Invalid --env '{pair}' (expected KEY=VALUE)")
        env[key] = value
    return env


def handle_service(args):
    """Handle the service command."""
    wrapper = ServiceWrapper(args.wrapper, args.workdir)
    try:
        if args.action == "install":
            cfg = ServiceConfig(
                label=args.label,
                executable=args.executable,
                args=args.arg or [],
                env=_parse_env(args.env),
                log=args.log or "",
            )
            wrapper.install(cfg)
        elif args.action == "uninstall":
            wrapper.uninstall(args.label)
        elif args.action == "start":
            wrapper.start(args.label)
        elif args.action == "stop":
            wrapper.stop(args.label)
        elif args.action == "status":
            running = wrapper.is_running(args.label)
            logger.info(f"{args.label}: {'running' if running else 'not running'}")
    except (ProvisionError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def register_service_command(subparsers):
    """Register the 'service' command with its action subparsers."""
    parser = subparsers.add_parser("service", help="Manage background services via the service wrapper")
    actions = parser.add_subparsers(dest="action", required=True)

    def _add(name, help_text):
        p = actions.add_parser(name, help=help_text)
        p.add_argument("label", help="Service label, e.g. org.devprov.vpnkit")
        p.add_argument("--wrapper", required=True, help="Path to the service wrapper binary")
        p.add_argument("--workdir", required=True, help="Directory holding installed wrappers")
        p.set_defaults(func=handle_service)
        return p

    install = _add("install", "Install a service")
    install.add_argument("--executable", required=True, help="Program the service runs")
    install.add_argument("--arg", action="append", help="Program argument (repeatable)")
    install.add_argument("--env", action="append", help="KEY=VALUE environment entry (repeatable)")
    install.add_argument("--log", default=None, help="Log file for the service output")
    _add("uninstall", "Uninstall a service")
    _add("start", "Start a service")
    _add("stop", "Stop a service")
    _add("status", "Show whether a service is running")
