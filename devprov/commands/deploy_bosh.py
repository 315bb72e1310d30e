"""deploy-bosh command: deploy the BOSH director onto the development VM."""

import asyncio
import logging
import sys

from devprov.config import load_config
from devprov.director.deploy import deploy_director
from devprov.provisioning.errors import ProvisionError
from devprov.redact import register_secrets

logger = logging.getLogger(__name__)


def static_ip(ip):
    """IP resolver for a VM whose address is already known."""

    def resolve():
        if not ip:
            raise ProvisionError("VM IP address unknown; pass --vm-ip or set vm_ip in the config file")
        return ip

    return resolve


def handle_deploy_bosh(args):
    """Handle the deploy-bosh command."""
    try:
        config = load_config(
            args.config,
            state_dir=args.state_dir,
            log_dir=args.log_dir,
            vm_ip=args.vm_ip,
            network_backend=args.backend,
            host_key_trust=args.host_key_trust,
        )
    except (OSError, ValueError) as e:
        logger.error(f"Error loading config: {e}")
        sys.exit(1)

    register_secrets(*(str(v) for v in config.bosh_env.values()))

    outcome = asyncio.run(deploy_director(config, static_ip(config.vm_ip)))
    if not outcome.ok:
        logger.error(f"Deploy failed at {outcome.error.describe()}")
        sys.exit(1)


def register_deploy_bosh_command(subparsers):
    """Register the deploy-bosh command."""
    parser = subparsers.add_parser("deploy-bosh", help="Deploy the BOSH director onto the VM via SSH")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--state-dir", default=None, help="State directory (default: ~/.devprov/state)")
    parser.add_argument("--log-dir", default=None, help="Log directory (default: ~/.devprov/log)")
    parser.add_argument("--vm-ip", default=None, help="IP address of the VM")
    parser.add_argument(
        "--backend",
        choices=["auto", "vpnkit", "kvm"],
        default=None,
        help="Network backend (default: detect from host platform)",
    )
    trust = parser.add_mutually_exclusive_group()
    trust.add_argument(
        "--insecure",
        dest="host_key_trust",
        action="store_const",
        const="insecure",
        help="Accept any VM host key (default)",
    )
    trust.add_argument(
        "--known-hosts",
        dest="host_key_trust",
        action="store_const",
        const="known-hosts",
        help="Verify the VM host key against known_hosts",
    )
    parser.set_defaults(func=handle_deploy_bosh, host_key_trust=None)
