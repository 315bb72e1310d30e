"""SSH connection establishment with bounded retry polling."""

import asyncio
import enum
import io
import logging

import paramiko

from devprov.provisioning.errors import ConnectTimeoutError, KeyFormatError
from devprov.provisioning.session import RemoteSession
from devprov.provisioning.types import VMConnectionInfo

logger = logging.getLogger(__name__)

DIAL_INTERVAL = 1.0
ATTEMPT_TIMEOUT = 10.0
DIAL_PHASES = 3
SSH_USER = "root"

_KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)
_DIAL_ERRORS = (paramiko.SSHException, OSError, EOFError)


class HostKeyTrust(enum.Enum):
    """How the server's host key is checked."""

    # Accept whatever key the VM presents. Meant for a VM this tool just
    # created and whose address the caller controls.
    INSECURE = "insecure"
    # System known_hosts only; unknown keys are rejected.
    KNOWN_HOSTS = "known-hosts"


class _AcceptAnyHostKey(paramiko.MissingHostKeyPolicy):
    def missing_host_key(self, client, hostname, key):
        logger.debug(f"Accepting unverified {key.get_name()} host key for {hostname}")


def load_private_key(key_data) -> paramiko.PKey:
    """Parse an OpenSSH/PEM private key (RSA, Ed25519 or ECDSA)."""
    if isinstance(key_data, bytes):
        key_data = key_data.decode(errors="replace")
    errors = []
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key_data))
        except (paramiko.SSHException, ValueError) as e:
            errors.append(f"{key_class.__name__}: {e}")
    raise KeyFormatError(f"could not parse private key ({'; '.join(errors)})")


def make_client(trust: HostKeyTrust = HostKeyTrust.INSECURE) -> paramiko.SSHClient:
    """Create an SSHClient configured for the requested host key trust."""
    client = paramiko.SSHClient()
    if trust is HostKeyTrust.INSECURE:
        client.set_missing_host_key_policy(_AcceptAnyHostKey())
    else:
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.RejectPolicy())
    return client


def dial(conn: VMConnectionInfo, pkey: paramiko.PKey, timeout: float, trust: HostKeyTrust = HostKeyTrust.INSECURE):
    """Open one authenticated SSH connection or raise.

    paramiko runs TCP connect, transport negotiation and authentication one
    after another, each with its own timeout, so they split the budget.
    """
    phase_timeout = timeout / DIAL_PHASES
    client = make_client(trust)
    try:
        client.connect(
            hostname=conn.host,
            port=conn.ssh_port,
            username=conn.username,
            pkey=pkey,
            timeout=phase_timeout,
            banner_timeout=phase_timeout,
            auth_timeout=phase_timeout,
            allow_agent=False,
            look_for_keys=False,
        )
    except BaseException:
        client.close()
        raise
    return client


async def connect(
    host,
    port,
    private_key,
    timeout,
    stdout=None,
    stderr=None,
    username=SSH_USER,
    trust=HostKeyTrust.INSECURE,
    interval=DIAL_INTERVAL,
    dial_fn=dial,
):
    """Poll until an SSH connection succeeds or timeout elapses.

    The key is parsed up front; a bad key fails immediately. Dial attempts
    start one interval after the call and repeat every interval. Each attempt
    is capped by the time left, so the call returns within roughly
    timeout + interval.

    Returns:
        RemoteSession wrapping the connected client.

    Raises:
        KeyFormatError: the private key is malformed.
        ConnectTimeoutError: no attempt succeeded in time; chained from the
            last dial error.
    """
    pkey = load_private_key(private_key)
    conn = VMConnectionInfo(host=host, username=username, ssh_port=int(port))
    if trust is HostKeyTrust.INSECURE:
        logger.debug(f"Host key verification disabled for {conn.address}")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last_error = None
    attempts = 0
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))
        remaining = deadline - loop.time()
        if remaining <= 0:
            break

        attempts += 1
        try:
            client = await asyncio.to_thread(dial_fn, conn, pkey, min(ATTEMPT_TIMEOUT, remaining), trust)
        except _DIAL_ERRORS as e:
            last_error = e
            logger.debug(f"SSH attempt {attempts} to {conn.address} failed: {e}")
            continue

        logger.debug(f"SSH connected to {conn.address} after {attempts} attempt(s)")
        return RemoteSession(client, stdout=stdout, stderr=stderr)

    logger.error(f"Timeout after {timeout}s waiting for SSH connectivity to {conn.address}")
    raise ConnectTimeoutError(
        f"ssh connection to {conn.address} timed out after {timeout}s: {last_error}",
        last_error=last_error,
    ) from last_error
