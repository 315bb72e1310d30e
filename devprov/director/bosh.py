"""Local bosh CLI invocations against the running director."""

import logging
import os

from devprov.provisioning.shell import run_shell_cmd

logger = logging.getLogger(__name__)


class BoshRunner:
    """Runs the local bosh CLI with the director's environment variables."""

    def __init__(self, bosh_bin="bosh", env=None, run=run_shell_cmd):
        self.bosh_bin = bosh_bin
        self.env = dict(env or {})
        self._run = run

    def _child_env(self):
        if not self.env:
            return None
        return {**os.environ, **{k: str(v) for k, v in self.env.items()}}

    async def output(self, *args, timeout=600):
        """Run `bosh <args>` and return (returncode, stdout, stderr)."""
        command = [self.bosh_bin, *args]
        rc, stdout, stderr = await self._run(command, env=self._child_env(), timeout=timeout)
        if rc != 0:
            logger.debug(f"{' '.join(command)} exited {rc}: {stderr.strip()}")
        return rc, stdout, stderr

    async def update_cloud_config(self, path):
        return await self.output("-n", "update-cloud-config", path)

    async def update_runtime_config(self, path):
        return await self.output("-n", "update-runtime-config", path)
