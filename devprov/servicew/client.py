"""Client for the service wrapper binary: install, start, stop and query services.

Each service gets its own copy of the wrapper binary in workdir, named after
the last dot-separated segment of its label, plus a `<name>.yml` definition.
The wrapper itself talks to the OS service manager.
"""

import logging
import os
import shutil
import subprocess

import yaml

from devprov.provisioning.errors import EncodingError, LocalIOError, ProvisionError
from devprov.servicew.config import STATUS_RUNNING, ServiceConfig

logger = logging.getLogger(__name__)


class ServiceWrapperError(ProvisionError):
    """The wrapper binary failed for a service."""

    def __init__(self, message, label=None, output=""):
        super().__init__(message)
        self.label = label
        self.output = output


class ServiceWrapper:
    def __init__(self, binary_path, workdir):
        self.binary_path = binary_path
        self.workdir = workdir

    def install(self, cfg: ServiceConfig) -> None:
        wrapper_path = self._wrapper_path(cfg.label)
        definition_path = wrapper_path + ".yml"

        copy_binary(self.binary_path, wrapper_path)

        try:
            text = yaml.safe_dump(cfg.to_dict(), default_flow_style=False, sort_keys=False)
        except yaml.YAMLError as e:
            raise EncodingError(f"cannot encode service definition for '{cfg.label}': {e}") from e
        try:
            with open(definition_path, "w") as f:
                f.write(text)
        except OSError as e:
            raise LocalIOError(f"cannot write {definition_path}: {e}", path=definition_path) from e

        logger.info(f"Installing service '{cfg.label}'...")
        self._exec(wrapper_path, "install", cfg.label)

    def uninstall(self, label: str) -> None:
        wrapper_path = self._wrapper_path(label)
        if not os.path.exists(wrapper_path):
            return

        logger.info(f"Uninstalling service '{label}'...")
        self._exec(wrapper_path, "uninstall", label)
        _remove(wrapper_path)
        _remove(wrapper_path + ".yml")

    def start(self, label: str) -> None:
        self._exec(self._wrapper_path(label), "start", label)

    def stop(self, label: str) -> None:
        wrapper_path = self._wrapper_path(label)
        if not os.path.exists(wrapper_path):
            return
        self._exec(wrapper_path, "stop", label)

    def is_running(self, label: str) -> bool:
        wrapper_path = self._wrapper_path(label)
        if not os.path.exists(wrapper_path):
            return False

        try:
            result = subprocess.run([wrapper_path, "status"], capture_output=True, text=True)
        except OSError as e:
            raise ServiceWrapperError(f"failed to fetch status of '{label}': {e}", label=label) from e
        if result.returncode != 0:
            raise ServiceWrapperError(
                f"failed to fetch status of '{label}': exit {result.returncode}: {result.stdout}",
                label=label,
                output=result.stdout,
            )
        return result.stdout.strip() == STATUS_RUNNING

    def _exec(self, wrapper_path, action, label):
        try:
            result = subprocess.run(
                [wrapper_path, action],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise ServiceWrapperError(f"failed to {action} '{label}': {e}", label=label) from e
        if result.returncode != 0:
            raise ServiceWrapperError(
                f"failed to {action} '{label}': exit {result.returncode}: {result.stdout}",
                label=label,
                output=result.stdout,
            )

    def _wrapper_path(self, label: str) -> str:
        return os.path.join(self.workdir, label.split(".")[-1])


def copy_binary(src: str, dest: str) -> None:
    """Copy the wrapper binary to dest and make it executable (0744)."""
    try:
        shutil.copyfile(src, dest)
        os.chmod(dest, 0o744)
    except OSError as e:
        raise LocalIOError(f"cannot copy {src} to {dest}: {e}", path=dest) from e


def _remove(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise LocalIOError(f"cannot remove {path}: {e}", path=path) from e
