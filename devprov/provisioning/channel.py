"""Command execution on a single SSH channel.

Runs one command on an already-opened paramiko channel, copying its stdout
and stderr into caller-provided sinks. stderr is drained on a helper thread
so a chatty command cannot stall on a full window while we read stdout.
"""

import threading

from devprov.provisioning.errors import LocalIOError

CHUNK_SIZE = 32 * 1024
OUTPUT_TAIL_LIMIT = 4096


class OutputTail:
    """Thread-safe bounded buffer keeping the last bytes seen on a channel."""

    def __init__(self, limit=OUTPUT_TAIL_LIMIT):
        self._limit = limit
        self._buf = bytearray()
        self._lock = threading.Lock()

    def feed(self, chunk: bytes) -> None:
        with self._lock:
            self._buf.extend(chunk)
            overflow = len(self._buf) - self._limit
            if overflow > 0:
                del self._buf[:overflow]

    def text(self) -> str:
        with self._lock:
            return self._buf.decode(errors="replace").strip()


class Pump(threading.Thread):
    """Worker thread that remembers the exception its target raised.

    The owner must join() it and check ``error``; nothing is logged or
    dropped here.
    """

    def __init__(self, target, *args, name=None):
        super().__init__(name=name, daemon=True)
        self._target_fn = target
        self._target_args = args
        self.error = None

    def run(self):
        try:
            self._target_fn(*self._target_args)
        except Exception as e:
            self.error = e


def copy_stream(recv, sink, tail=None):
    """Copy from a channel receive function into sink until EOF.

    A failing sink write raises LocalIOError.
    """
    while True:
        chunk = recv(CHUNK_SIZE)
        if not chunk:
            return
        if sink is not None:
            try:
                sink.write(chunk)
            except OSError as e:
                path = getattr(sink, "name", None)
                raise LocalIOError(f"cannot write {path or 'output'}: {e}", path=path) from e
        if tail is not None:
            tail.feed(chunk)


def execute(channel, command, stdout=None, stderr=None, tail=None, feeder=None):
    """Execute command on channel and block until it exits.

    Args:
        channel: an open paramiko Channel (not yet used for a request)
        command: shell command line
        stdout, stderr: binary writable sinks, or None to discard
        tail: optional OutputTail fed with both streams
        feeder: optional Pump started right after the command is issued;
            it is joined before returning, the caller inspects its error

    Returns:
        (exit_status, stderr_pump_error)
    """
    channel.exec_command(command)
    if feeder is not None:
        feeder.start()

    drain = Pump(copy_stream, channel.recv_stderr, stderr, tail, name="stderr-drain")
    drain.start()
    try:
        copy_stream(channel.recv, stdout, tail)
    except Exception:
        # Unblocks the drain and feeder threads before we join them.
        channel.close()
        raise
    finally:
        drain.join()
        if feeder is not None:
            feeder.join()

    return channel.recv_exit_status(), drain.error
