"""Shared pytest fixtures for all test modules."""

import io
import os
import re
import shlex
import subprocess
import sys
import threading

import paramiko
import pytest

from devprov.provisioning.session import RemoteSession

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the devprov CLI as a subprocess."""

    def _run(*args, env=None):
        result = subprocess.run(
            [sys.executable, "-m", "devprov.devprov", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env=env,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(scope="session")
def rsa_key_pem():
    """A freshly generated RSA private key in PEM form."""
    key = paramiko.RSAKey.generate(2048)
    buf = io.StringIO()
    key.write_private_key(buf)
    return buf.getvalue()


# ── In-memory SSH server ────────────────────────────────────────────

_SCP_HEADER = re.compile(rb"C(\d{4}) (\d+) (.+)")


class FakeVM:
    """Remote side of a fake SSH connection.

    Understands `scp -qt DIR` (stores the pushed file), `cat PATH` (returns a
    stored file) and treats any other command as a no-op success unless a
    handler was registered for its prefix with on().
    """

    def __init__(self):
        self.files = {}
        self.commands = []
        self.scp_headers = []
        self.handlers = []
        self.fail_sendall = False
        self.close_count = 0

    def on(self, prefix, handler):
        """handler(vm, command) -> (stdout, stderr, status)"""
        self.handlers.append((prefix, handler))

    def respond(self, prefix, stdout=b"", stderr=b"", status=0):
        self.on(prefix, lambda vm, command: (stdout, stderr, status))

    def _handler(self, command):
        for prefix, handler in self.handlers:
            if command.startswith(prefix):
                return handler
        return None

    def execute(self, command):
        handler = self._handler(command)
        if handler is not None:
            return handler(self, command)
        if command.startswith("cat "):
            path = shlex.split(command)[1]
            if path in self.files:
                return self.files[path], b"", 0
            return b"", f"cat: {path}: No such file or directory\n".encode(), 1
        return b"", b"", 0

    def receive(self, command, data):
        handler = self._handler(command)
        if handler is not None:
            return handler(self, command)
        target = shlex.split(command)[-1]
        header, _, rest = data.partition(b"\n")
        m = _SCP_HEADER.fullmatch(header)
        if not m:
            return b"\x02scp: protocol error: bad header\n", b"", 1
        length = int(m[2])
        body, marker = rest[:length], rest[length:]
        if len(body) != length or marker != b"\x00":
            return b"\x00\x02scp: protocol error: unexpected end of stream\n", b"", 1
        name = m[3].decode()
        path = name if target == "." else f"{target}/{name}"
        self.files[path] = bytes(body)
        self.scp_headers.append(header.decode())
        return b"\x00\x00\x00", b"", 0


class FakeChannel:
    def __init__(self, vm):
        self.vm = vm
        self.command = None
        self.stdin = bytearray()
        self.closed = False
        self._done = threading.Event()
        self._out = b""
        self._err = b""
        self._status = -1
        self._lock = threading.Lock()

    @property
    def _is_scp(self):
        return self.command is not None and self.command.startswith("/usr/bin/scp")

    def exec_command(self, command):
        self.command = command
        self.vm.commands.append(command)
        if not self._is_scp:
            self._finish(*self.vm.execute(command))

    def sendall(self, data):
        if self.vm.fail_sendall:
            raise OSError("connection reset by peer")
        self.stdin.extend(data)

    def shutdown_write(self):
        if self._is_scp:
            self._finish(*self.vm.receive(self.command, bytes(self.stdin)))

    def _finish(self, out, err, status):
        self._out, self._err, self._status = out, err, status
        self._done.set()

    def recv(self, n):
        self._done.wait(5)
        with self._lock:
            chunk, self._out = self._out[:n], self._out[n:]
        return chunk

    def recv_stderr(self, n):
        self._done.wait(5)
        with self._lock:
            chunk, self._err = self._err[:n], self._err[n:]
        return chunk

    def recv_exit_status(self):
        self._done.wait(5)
        return self._status

    def close(self):
        self.closed = True
        self._done.set()


class FakeTransport:
    def __init__(self, vm, client):
        self.vm = vm
        self.client = client
        self.channels = []

    def is_active(self):
        return not self.client.closed

    def open_session(self):
        channel = FakeChannel(self.vm)
        self.channels.append(channel)
        return channel


class FakeClient:
    """Stands in for a connected paramiko.SSHClient."""

    def __init__(self, vm):
        self.vm = vm
        self.closed = False
        self._transport = FakeTransport(vm, self)

    def get_transport(self):
        return self._transport

    def close(self):
        self.closed = True
        self.vm.close_count += 1


@pytest.fixture
def fake_vm():
    return FakeVM()


@pytest.fixture
def make_session(fake_vm):
    """Factory for a RemoteSession on fake_vm with BytesIO sinks."""

    def _make(stdout=None, stderr=None):
        return RemoteSession(
            FakeClient(fake_vm),
            stdout=stdout if stdout is not None else io.BytesIO(),
            stderr=stderr if stderr is not None else io.BytesIO(),
        )

    return _make


@pytest.fixture
def fake_dial(fake_vm):
    """Dial function for provisioning.ssh.connect that reaches fake_vm."""

    def _dial(conn, pkey, timeout, trust):
        return FakeClient(fake_vm)

    return _dial


@pytest.fixture
def fake_connect(fake_vm):
    """Coroutine with connect()'s signature returning a session on fake_vm.

    The recorded keyword arguments of each call are in fake_connect.calls.
    """
    calls = []

    async def _connect(host, port, private_key, timeout, stdout=None, stderr=None, **kwargs):
        calls.append({"host": host, "port": port, "private_key": private_key, "timeout": timeout, **kwargs})
        return RemoteSession(FakeClient(fake_vm), stdout=stdout, stderr=stderr)

    _connect.calls = calls
    return _connect
