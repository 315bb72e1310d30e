"""RemoteSession: ordered remote operations sharing one sticky error slot.

Every operation checks the slot first and does nothing once it is set, so a
caller can issue a whole chain of uploads, commands and downloads and look
at the result once at the end:

    session.upload(data, "director.yml").run("bosh create-env ...")
    outcome = session.outcome()

Only the first error is kept.
"""

import io
import logging

from devprov.provisioning import transfer
from devprov.provisioning.channel import OutputTail, Pump, execute
from devprov.provisioning.errors import LocalIOError, ProvisionError, RemoteOperationError
from devprov.provisioning.types import DeploymentOutcome

logger = logging.getLogger(__name__)


class RemoteSession:
    """A connected SSH client, two output sinks and the first error seen."""

    def __init__(self, client, stdout=None, stderr=None):
        self._client = client
        self.stdout = stdout
        self.stderr = stderr
        self.error: ProvisionError | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def closed(self) -> bool:
        return self._client is None

    def fail(self, error: ProvisionError, step: str | None = None) -> "RemoteSession":
        """Record error unless an earlier one is already held."""
        if self.error is not None:
            logger.debug(f"Ignoring secondary error after '{self.error.step}': {error}")
            return self
        if step and not error.step:
            error.step = step
        self.error = error
        return self

    def outcome(self) -> DeploymentOutcome:
        return DeploymentOutcome(error=self.error)

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        client, self._client = self._client, None
        if client is not None:
            client.close()

    def _open_channel(self):
        if self._client is None:
            raise RemoteOperationError("session is closed")
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise RemoteOperationError("SSH transport is not active")
        return transport.open_session()

    # ── CommandRunner ───────────────────────────────────────────────

    def run(self, command: str) -> "RemoteSession":
        """Run command remotely, streaming its output to the session sinks."""
        if self.error is not None:
            return self
        return self._exec(command, self.stdout, f"run '{command}'")

    def _exec(self, command, stdout, step):
        logger.debug(f"ssh: {command}")
        tail = OutputTail()
        try:
            channel = self._open_channel()
            try:
                status, drain_error = execute(channel, command, stdout, self.stderr, tail)
            finally:
                channel.close()
        except ProvisionError as e:
            return self.fail(e, step)
        except Exception as e:
            return self.fail(RemoteOperationError(f"{e}", command=command, output=tail.text()), step)

        if drain_error is not None:
            return self._fail_drain(drain_error, command, tail, step)
        if status != 0:
            return self.fail(
                RemoteOperationError(
                    f"command exited with status {status}",
                    command=command,
                    exit_status=status,
                    output=tail.text(),
                ),
                step,
            )
        return self

    def _fail_drain(self, error, command, tail, step):
        if isinstance(error, ProvisionError):
            return self.fail(error, step)
        return self.fail(
            RemoteOperationError(f"reading stderr: {error}", command=command, output=tail.text()),
            step,
        )

    def probe(self, command: str) -> bool:
        """Run command with output discarded; report success without touching the error slot."""
        if self.error is not None:
            return False
        try:
            channel = self._open_channel()
            try:
                status, _ = execute(channel, command)
            finally:
                channel.close()
        except Exception as e:
            logger.debug(f"probe '{command}' failed: {e}")
            return False
        return status == 0

    # ── FileChannel ─────────────────────────────────────────────────

    def upload(self, data: bytes, remote_path: str, mode: int = 0o755) -> "RemoteSession":
        """Push data to remote_path using the scp sink protocol."""
        if self.error is not None:
            return self

        spec = transfer.TransferSpec(data, remote_path, mode)
        command = transfer.receive_command(spec.remote_dir)
        step = f"upload {remote_path}"
        logger.debug(f"ssh: upload {len(data)} bytes -> {remote_path}")

        acks = io.BytesIO()
        tail = OutputTail()
        try:
            channel = self._open_channel()
            try:
                writer = Pump(transfer.write_scp_stream, channel, data, spec.basename, name="scp-writer")
                status, drain_error = execute(channel, command, acks, self.stderr, tail, feeder=writer)
            finally:
                channel.close()
        except ProvisionError as e:
            return self.fail(e, step)
        except Exception as e:
            return self.fail(RemoteOperationError(f"{e}", command=command, output=tail.text()), step)

        if writer.error is not None:
            return self.fail(
                RemoteOperationError(f"writing transfer stream: {writer.error}", command=command, output=tail.text()),
                step,
            )
        if drain_error is not None:
            return self._fail_drain(drain_error, command, tail, step)
        rejected = transfer.parse_acks(acks.getvalue())
        if rejected is not None:
            return self.fail(
                RemoteOperationError(f"transfer rejected: {rejected}", command=command, exit_status=status, output=tail.text()),
                step,
            )
        if status != 0:
            return self.fail(
                RemoteOperationError(
                    f"receiver exited with status {status}",
                    command=command,
                    exit_status=status,
                    output=tail.text(),
                ),
                step,
            )
        return self

    def upload_file(self, local_path: str, remote_path: str) -> "RemoteSession":
        """Read local_path fully, then upload it to remote_path."""
        if self.error is not None:
            return self
        try:
            with open(local_path, "rb") as f:
                data = f.read()
        except OSError as e:
            return self.fail(LocalIOError(f"cannot read {local_path}: {e}", path=local_path), f"upload {remote_path}")
        return self.upload(data, remote_path)

    def download(self, remote_path: str, local_path: str) -> "RemoteSession":
        """Copy remote_path into local_path by streaming `cat` output into it."""
        if self.error is not None:
            return self

        step = f"download {remote_path}"
        try:
            f = open(local_path, "wb")
        except OSError as e:
            return self.fail(LocalIOError(f"cannot create {local_path}: {e}", path=local_path), step)

        try:
            with f:
                return self._exec(transfer.read_command(remote_path), f, step)
        except OSError as e:
            # Buffered bytes are flushed on close.
            return self.fail(LocalIOError(f"cannot write {local_path}: {e}", path=local_path), step)

