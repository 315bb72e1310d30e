"""Shared data types for remote provisioning."""

from dataclasses import dataclass

from devprov.provisioning.errors import ProvisionError


@dataclass
class VMConnectionInfo:
    """Where and how to reach the development VM over SSH."""

    host: str
    username: str = "root"
    ssh_port: int = 22

    @property
    def address(self) -> str:
        """SSH address string (user@host:port)."""
        return f"{self.username}@{self.host}:{self.ssh_port}"


@dataclass
class DeploymentOutcome:
    """Result of a provisioning run: success, or the first error hit."""

    error: ProvisionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def step(self) -> str | None:
        return self.error.step if self.error is not None else None

    @classmethod
    def failure(cls, error: ProvisionError, step: str | None = None) -> "DeploymentOutcome":
        if step and not error.step:
            error.step = step
        return cls(error=error)

    def __bool__(self) -> bool:
        return self.ok
