"""Tests for RemoteSession: commands, transfers and the sticky error slot."""

import io
import os

import pytest

from devprov.provisioning.errors import LocalIOError, RemoteOperationError


# ── run ──────────────────────────────────────────────────────────


def test_run_streams_output_to_sinks(fake_vm, make_session):
    fake_vm.respond("echo", stdout=b"hello\n", stderr=b"warn\n")
    stdout, stderr = io.BytesIO(), io.BytesIO()
    session = make_session(stdout=stdout, stderr=stderr)

    session.run("echo hello")

    assert session.error is None
    assert session.outcome().ok
    assert stdout.getvalue() == b"hello\n"
    assert stderr.getvalue() == b"warn\n"
    assert fake_vm.commands == ["echo hello"]


def test_run_nonzero_exit_is_recorded(fake_vm, make_session):
    fake_vm.respond("false", stderr=b"boom\n", status=3)
    session = make_session()

    session.run("false")

    assert isinstance(session.error, RemoteOperationError)
    assert session.error.command == "false"
    assert session.error.exit_status == 3
    assert "boom" in session.error.output
    assert session.error.step == "run 'false'"
    assert not session.outcome().ok


class _FullDisk:
    name = "/var/log/deploy-bosh.log"

    def write(self, chunk):
        raise OSError(28, "No space left on device")


def test_run_sink_write_failure_is_local_error(fake_vm, make_session):
    fake_vm.respond("echo", stdout=b"hello\n")
    session = make_session(stdout=_FullDisk())

    session.run("echo hello")

    assert isinstance(session.error, LocalIOError)
    assert session.error.path == "/var/log/deploy-bosh.log"
    assert "No space left" in str(session.error)


def test_run_stderr_sink_write_failure_is_local_error(fake_vm, make_session):
    fake_vm.respond("echo", stderr=b"warn\n")
    session = make_session(stderr=_FullDisk())

    session.run("echo hello")

    assert isinstance(session.error, LocalIOError)
    assert session.error.step == "run 'echo hello'"


def test_run_on_closed_session_fails(make_session):
    session = make_session()
    session.close()

    session.run("true")

    assert isinstance(session.error, RemoteOperationError)
    assert "closed" in str(session.error)


def test_run_returns_session_for_chaining(make_session):
    session = make_session()
    assert session.run("true").run("true") is session


# ── sticky error slot ────────────────────────────────────────────


def test_first_failure_short_circuits_rest(fake_vm, make_session, tmp_path):
    fake_vm.respond("false", status=1)
    fake_vm.files["state.json"] = b"{}"
    local = tmp_path / "state.json"
    session = make_session()

    session.run("false")
    first = session.error
    session.upload(b"data", "director.yml")
    session.upload_file(str(tmp_path / "missing.yml"), "creds.yml")
    session.run("true")
    session.download("state.json", str(local))

    assert session.error is first
    assert fake_vm.commands == ["false"]
    assert "director.yml" not in fake_vm.files
    assert not local.exists()


def test_fail_keeps_first_error(make_session):
    session = make_session()
    first = RemoteOperationError("first")
    session.fail(first, step="a")
    session.fail(RemoteOperationError("second"), step="b")

    assert session.error is first
    assert session.outcome().step == "a"


def test_close_is_idempotent(fake_vm, make_session):
    session = make_session()
    session.close()
    session.close()

    assert session.closed
    assert fake_vm.close_count == 1


def test_close_after_failure_still_releases(fake_vm, make_session):
    fake_vm.respond("false", status=1)
    with make_session() as session:
        session.run("false")
    assert session.failed
    assert fake_vm.close_count == 1


# ── upload ───────────────────────────────────────────────────────


def test_upload_framing_ignores_mode(fake_vm, make_session):
    session = make_session()
    payload = b"name: director\n"

    session.upload(payload, "dir/name.ext", mode=0o744)

    assert session.error is None
    assert fake_vm.commands == ["/usr/bin/scp -qt dir"]
    assert fake_vm.scp_headers == [f"C0755 {len(payload)} name.ext"]
    assert fake_vm.files["dir/name.ext"] == payload


def test_upload_wire_bytes(fake_vm, make_session):
    session = make_session()
    payload = b"\x00\x01binary\n"

    session.upload(payload, "blob.bin")

    channel = session._client.get_transport().channels[-1]
    assert bytes(channel.stdin) == b"C0755 9 blob.bin\n" + payload + b"\x00"


def test_upload_empty_payload(fake_vm, make_session):
    session = make_session()

    session.upload(b"", "empty.txt")

    assert session.error is None
    channel = session._client.get_transport().channels[-1]
    assert bytes(channel.stdin) == b"C0755 0 empty.txt\n\x00"
    assert fake_vm.files["empty.txt"] == b""


def test_upload_does_not_log_acks(fake_vm, make_session):
    stdout = io.BytesIO()
    session = make_session(stdout=stdout)

    session.upload(b"abc", "a.txt")

    assert stdout.getvalue() == b""


def test_upload_rejected_by_receiver(fake_vm, make_session):
    fake_vm.respond("/usr/bin/scp", stdout=b"\x02scp: /ro: Read-only file system\n", status=1)
    session = make_session()

    session.upload(b"abc", "/ro/a.txt")

    assert isinstance(session.error, RemoteOperationError)
    assert "Read-only file system" in str(session.error)
    assert session.error.step == "upload /ro/a.txt"


def test_upload_nonzero_exit_without_ack(fake_vm, make_session):
    fake_vm.respond("/usr/bin/scp", status=1)
    session = make_session()

    session.upload(b"abc", "a.txt")

    assert isinstance(session.error, RemoteOperationError)
    assert session.error.exit_status == 1


def test_upload_writer_failure_is_folded(fake_vm, make_session):
    fake_vm.fail_sendall = True
    session = make_session()

    session.upload(b"abc", "a.txt")

    assert isinstance(session.error, RemoteOperationError)
    assert "writing transfer stream" in str(session.error)
    assert "connection reset" in str(session.error)
    assert "a.txt" not in fake_vm.files


def test_upload_file_reads_local_file(fake_vm, make_session, tmp_path):
    src = tmp_path / "state.json"
    src.write_bytes(b'{"a": 1}')
    session = make_session()

    session.upload_file(str(src), "state.json")

    assert session.error is None
    assert fake_vm.files["state.json"] == b'{"a": 1}'


def test_upload_file_missing_aborts_before_remote(fake_vm, make_session, tmp_path):
    missing = tmp_path / "nope.yml"
    session = make_session()

    session.upload_file(str(missing), "creds.yml")

    assert isinstance(session.error, LocalIOError)
    assert session.error.path == str(missing)
    assert fake_vm.commands == []


# ── download ─────────────────────────────────────────────────────


def test_download_writes_local_file(fake_vm, make_session, tmp_path):
    fake_vm.files["state.json"] = b'{"current_manifest_sha": "abc"}'
    local = tmp_path / "state.json"
    local.write_bytes(b"old")
    stdout = io.BytesIO()
    session = make_session(stdout=stdout)

    session.download("state.json", str(local))

    assert session.error is None
    assert local.read_bytes() == b'{"current_manifest_sha": "abc"}'
    assert fake_vm.commands == ["cat state.json"]
    assert stdout.getvalue() == b""
    assert session.stdout is stdout


def test_download_missing_remote_file(fake_vm, make_session, tmp_path):
    session = make_session()

    session.download("state.json", str(tmp_path / "state.json"))

    assert isinstance(session.error, RemoteOperationError)
    assert session.error.step == "download state.json"
    assert "No such file" in session.error.output


@pytest.mark.skipif(not os.path.exists("/dev/full"), reason="needs /dev/full")
def test_download_local_write_failure_is_local_error(fake_vm, make_session):
    fake_vm.files["state.json"] = b'{"director_id": "new"}'
    session = make_session()

    session.download("state.json", "/dev/full")

    assert isinstance(session.error, LocalIOError)
    assert session.error.path == "/dev/full"
    assert session.error.step == "download state.json"


def test_download_local_create_failure_aborts_before_remote(fake_vm, make_session, tmp_path):
    session = make_session()
    local = os.path.join(str(tmp_path), "no-such-dir", "state.json")

    session.download("state.json", local)

    assert isinstance(session.error, LocalIOError)
    assert fake_vm.commands == []


# ── probe ────────────────────────────────────────────────────────


def test_probe_does_not_touch_error_slot(fake_vm, make_session):
    fake_vm.respond("ping", status=1)
    session = make_session()

    assert session.probe("ping -c1 example.com") is False
    assert session.error is None
    assert session.probe("true") is True


def test_probe_after_failure_is_noop(fake_vm, make_session):
    fake_vm.respond("false", status=1)
    session = make_session()
    session.run("false")

    assert session.probe("true") is False
    assert fake_vm.commands == ["false"]
