"""Error taxonomy for VM provisioning."""


class ProvisionError(Exception):
    """Base class for every provisioning failure.

    ``step`` names the workflow step that produced the error, when known.
    """

    def __init__(self, message, step=None):
        super().__init__(message)
        self.step = step

    def describe(self) -> str:
        if self.step:
            return f"{self.step}: {self}"
        return str(self)


class KeyFormatError(ProvisionError):
    """The SSH private key could not be parsed."""


class ConnectTimeoutError(ProvisionError):
    """No SSH connection could be established before the deadline."""

    def __init__(self, message, last_error=None, step=None):
        super().__init__(message, step=step)
        self.last_error = last_error


class LocalIOError(ProvisionError):
    """A local file could not be read, written or created."""

    def __init__(self, message, path=None, step=None):
        super().__init__(message, step=step)
        self.path = path


class RemoteOperationError(ProvisionError):
    """A remote command or transfer failed or exited non-zero."""

    def __init__(self, message, command=None, exit_status=None, output="", step=None):
        super().__init__(message, step=step)
        self.command = command
        self.exit_status = exit_status
        self.output = output

    def describe(self) -> str:
        text = super().describe()
        if self.output:
            text += f"\n{self.output}"
        return text


class EncodingError(ProvisionError):
    """Structured data could not be serialized."""
