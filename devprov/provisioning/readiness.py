"""Waiting for the VM to be usable after SSH comes up."""

import logging
import time

from devprov.provisioning.errors import RemoteOperationError

logger = logging.getLogger(__name__)

PROBE_INTERVAL = 1.0


def grace_delay(seconds, sleep=time.sleep):
    """Fixed pause covering the gap between VM start and outbound network access.

    There is no check behind it; set a readiness command to poll instead.
    """
    if seconds > 0:
        logger.debug(f"Waiting {seconds}s for VM networking to settle")
        sleep(seconds)


def wait_until_ready(session, command, timeout, interval=PROBE_INTERVAL, sleep=time.sleep, clock=time.monotonic):
    """Poll command over session until it exits 0 or timeout elapses.

    A timeout is recorded as the session error. Does nothing if the session
    has already failed.

    Returns:
        The session, for chaining.
    """
    if session.failed:
        return session

    deadline = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        if session.probe(command):
            logger.debug(f"VM ready after {attempts} probe(s)")
            return session
        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))

    return session.fail(
        RemoteOperationError(
            f"VM not ready after {timeout}s ({attempts} probes)",
            command=command,
        ),
        step="wait for VM readiness",
    )
