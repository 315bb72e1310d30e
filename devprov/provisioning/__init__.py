"""Remote provisioning: SSH dialing, sticky-error sessions, file transfer."""

from devprov.provisioning.errors import (
    ConnectTimeoutError,
    EncodingError,
    KeyFormatError,
    LocalIOError,
    ProvisionError,
    RemoteOperationError,
)
from devprov.provisioning.readiness import grace_delay, wait_until_ready
from devprov.provisioning.session import RemoteSession
from devprov.provisioning.shell import run_shell_cmd
from devprov.provisioning.ssh import HostKeyTrust, connect, load_private_key
from devprov.provisioning.transfer import TransferSpec, scp_header
from devprov.provisioning.types import DeploymentOutcome, VMConnectionInfo

__all__ = [
    "ProvisionError",
    "KeyFormatError",
    "ConnectTimeoutError",
    "LocalIOError",
    "RemoteOperationError",
    "EncodingError",
    "RemoteSession",
    "DeploymentOutcome",
    "VMConnectionInfo",
    "TransferSpec",
    "scp_header",
    "HostKeyTrust",
    "connect",
    "load_private_key",
    "grace_delay",
    "wait_until_ready",
    "run_shell_cmd",
]
