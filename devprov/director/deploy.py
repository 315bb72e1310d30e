"""Director deployment: push config and state to the VM, run create-env, pull state back.

The remote part is one chain of RemoteSession calls. Any failure along the
chain turns the rest of it into no-ops and becomes the deployment outcome.
"""

import asyncio
import logging
import os
import time

from devprov.director.bosh import BoshRunner
from devprov.director.network import Document, NetworkBackend, patch
from devprov.director.paths import DeploymentPaths
from devprov.provisioning.errors import LocalIOError, ProvisionError
from devprov.provisioning.readiness import grace_delay, wait_until_ready
from devprov.provisioning.ssh import HostKeyTrust, connect
from devprov.provisioning.types import DeploymentOutcome

logger = logging.getLogger(__name__)

REMOTE_DIRECTOR = "director.yml"
REMOTE_STATE = "state.json"
REMOTE_CREDS = "creds.yml"

CREATE_ENV_COMMAND = f"/usr/local/bin/bosh --tty create-env {REMOTE_DIRECTOR} --state {REMOTE_STATE}"
VARS_STORE_FLAG = f"--vars-store {REMOTE_CREDS}"


def credhub_is_deployed(paths: DeploymentPaths) -> bool:
    """True when creds.yml is absent.

    Absence of the credentials file is read as "a director with credhub is
    already deployed". The polarity is deliberate and must not be flipped
    without confirming intent.
    """
    return not os.path.exists(paths.creds)


def create_env_command(vars_store: bool) -> str:
    if vars_store:
        return f"{CREATE_ENV_COMMAND} {VARS_STORE_FLAG}"
    return CREATE_ENV_COMMAND


def write_bytes(path: str, data: bytes) -> None:
    """Write data to path; a newly created file gets mode 0600."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        raise LocalIOError(f"cannot write {path}: {e}", path=path) from e


def read_bytes(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise LocalIOError(f"cannot read {path}: {e}", path=path) from e


class DirectorDeployer:
    """Deploys (or updates) the bosh director on the development VM.

    Args:
        config: DevConfig
        resolve_ip: callable returning the VM's IP address
        backend: NetworkBackend; derived from config/host platform if None
        bosh: BoshRunner for the local follow-up commands
        connect_fn: coroutine with the signature of provisioning.ssh.connect
        sleep: blocking sleep used for the readiness gap
    """

    def __init__(self, config, resolve_ip, backend=None, bosh=None, connect_fn=connect, sleep=time.sleep):
        self.config = config
        self.resolve_ip = resolve_ip
        self.backend = backend or NetworkBackend.resolve(config.network_backend)
        self.bosh = bosh or BoshRunner(config.bosh_bin, config.bosh_env)
        self.connect_fn = connect_fn
        self.sleep = sleep

    async def deploy(self) -> DeploymentOutcome:
        paths = DeploymentPaths.from_config(self.config)
        logger.info(f"Deploying BOSH director ({self.backend.value} networking)")

        try:
            ip = self.resolve_ip()
        except ProvisionError as e:
            return DeploymentOutcome.failure(e, step="resolve VM address")

        try:
            os.makedirs(os.path.dirname(paths.log_file), exist_ok=True)
            log_file = open(paths.log_file, "wb")
        except OSError as e:
            err = LocalIOError(f"cannot create {paths.log_file}: {e}", path=paths.log_file)
            return DeploymentOutcome.failure(err, step="open deploy log")

        with log_file:
            try:
                key = read_bytes(paths.private_key)
                logger.info(f"Connecting to {ip}:{self.config.ssh_port}...")
                session = await self.connect_fn(
                    ip,
                    self.config.ssh_port,
                    key,
                    self.config.connect_timeout,
                    stdout=log_file,
                    stderr=log_file,
                    trust=HostKeyTrust(self.config.host_key_trust),
                )
            except ProvisionError as e:
                return DeploymentOutcome.failure(e, step="connect")

            with session:
                outcome = await asyncio.to_thread(self._provision, session, paths, ip)

        if not outcome.ok:
            return outcome

        if self.backend is NetworkBackend.KVM:
            try:
                await self._apply_kvm_configs(paths)
            except ProvisionError as e:
                return DeploymentOutcome.failure(e, step="update director configs")

        logger.info("BOSH director deployed.")
        return outcome

    def _provision(self, session, paths: DeploymentPaths, ip: str) -> DeploymentOutcome:
        """Remote part of the deployment; blocking, run off the event loop."""
        try:
            director = read_bytes(paths.director)
        except LocalIOError as e:
            return session.fail(e, step="prepare director config").outcome()
        director = patch(director, self.backend, Document.DIRECTOR, vm_ip=ip)

        logger.info("Uploading director config and state...")
        session.upload(director, REMOTE_DIRECTOR)
        session.upload_file(paths.state_json, REMOTE_STATE)

        vars_store = not credhub_is_deployed(paths)
        if vars_store:
            logger.info("Uploading credentials...")
            session.upload_file(paths.creds, REMOTE_CREDS)
        command = create_env_command(vars_store)

        if self.config.readiness_command:
            wait_until_ready(session, self.config.readiness_command, self.config.readiness_timeout, sleep=self.sleep)
        elif not session.failed:
            grace_delay(self.config.grace_delay, sleep=self.sleep)

        logger.info(f"Running create-env (output in {paths.log_file})...")
        session.run(command)
        session.download(REMOTE_STATE, paths.state_json)
        return session.outcome()

    async def _apply_kvm_configs(self, paths: DeploymentPaths) -> None:
        """Rewrite cloud-config and dns runtime-config for KVM and apply them.

        Local file errors raise. A failing bosh command is only logged.
        """
        updates = [
            (paths.cloud_config, Document.CLOUD_CONFIG, self.bosh.update_cloud_config),
            (paths.dns_config, Document.DNS_CONFIG, self.bosh.update_runtime_config),
        ]
        for path, document, apply in updates:
            data = patch(read_bytes(path), self.backend, document)
            write_bytes(path, data)
            logger.info(f"Applying {document.value} {path}...")
            rc, _, stderr = await apply(path)
            if rc != 0:
                logger.warning(f"WARNING: applying {document.value} failed (exit {rc}): {stderr.strip()}")


async def deploy_director(config, resolve_ip, backend=None) -> DeploymentOutcome:
    """Deploy the director with default collaborators. Single entry point."""
    return await DirectorDeployer(config, resolve_ip, backend=backend).deploy()
