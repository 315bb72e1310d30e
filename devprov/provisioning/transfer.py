"""Inline single-file transfer over an SSH exec channel (scp sink protocol).

Only the subset needed to push one file is implemented:

    C0755 <length> <basename>\\n
    <length raw bytes>
    \\x00

written to the stdin of ``scp -qt <dir>`` running on the remote host.
"""

import posixpath
import shlex
from dataclasses import dataclass

SCP_BIN = "/usr/bin/scp"
# The header always advertises 0755, whatever mode the caller asked for.
SCP_FILE_MODE = "0755"
END_MARKER = b"\x00"

_ACK_WARNING = 1
_ACK_FATAL = 2


@dataclass
class TransferSpec:
    """One file to push: payload bytes or a local path, plus its remote path."""

    source: bytes | str
    remote_path: str
    mode: int = 0o755

    @property
    def remote_dir(self) -> str:
        return posixpath.dirname(self.remote_path) or "."

    @property
    def basename(self) -> str:
        return posixpath.basename(self.remote_path)


def scp_header(length: int, basename: str) -> bytes:
    """Build the single-file record header."""
    return f"C{SCP_FILE_MODE} {length} {basename}\n".encode()


def receive_command(remote_dir: str) -> str:
    """Remote command that accepts one pushed file into remote_dir."""
    return f"{SCP_BIN} -qt {shlex.quote(remote_dir)}"


def read_command(remote_path: str) -> str:
    """Remote command that writes the file's bytes to stdout."""
    return f"cat {shlex.quote(remote_path)}"


def write_scp_stream(channel, data: bytes, basename: str):
    """Writer side of an upload: header, payload, end marker, then EOF.

    End-of-input is signalled even when a write fails so the remote
    receiver can exit; the write error still propagates to the caller.
    """
    try:
        channel.sendall(scp_header(len(data), basename))
        channel.sendall(data)
        channel.sendall(END_MARKER)
    finally:
        channel.shutdown_write()


def parse_acks(output: bytes) -> str | None:
    """Return the receiver's first warning/fatal message, or None if all acks were OK.

    The receiver answers each record with a single status byte: 0 for OK,
    1 (warning) or 2 (fatal) followed by a message line.
    """
    i = 0
    while i < len(output):
        code = output[i]
        if code in (_ACK_WARNING, _ACK_FATAL):
            end = output.find(b"\n", i)
            message = output[i + 1:] if end == -1 else output[i + 1:end]
            return message.decode(errors="replace").strip() or "transfer rejected"
        i += 1
    return None
