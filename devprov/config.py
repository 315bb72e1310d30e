"""devprov configuration: defaults, YAML loading and path expansion."""

import logging
import os
from dataclasses import dataclass, field, fields

import yaml

logger = logging.getLogger(__name__)

DEFAULT_HOME = "~/.devprov"


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))


@dataclass
class DevConfig:
    """Settings for provisioning the development VM."""

    state_dir: str = f"{DEFAULT_HOME}/state"
    log_dir: str = f"{DEFAULT_HOME}/log"
    vm_ip: str | None = None
    network_backend: str = "auto"  # auto, vpnkit or kvm
    ssh_port: int = 9992
    connect_timeout: float = 20
    grace_delay: float = 7
    readiness_command: str | None = None
    readiness_timeout: float = 60
    host_key_trust: str = "insecure"  # insecure or known-hosts
    bosh_bin: str = "bosh"
    bosh_env: dict = field(default_factory=dict)

    def __post_init__(self):
        self.state_dir = _expand_path(self.state_dir)
        self.log_dir = _expand_path(self.log_dir)
        if self.network_backend not in ("auto", "vpnkit", "kvm"):
            raise ValueError(f"Unknown network_backend '{self.network_backend}' (expected auto, vpnkit or kvm)")
        if self.host_key_trust not in ("insecure", "known-hosts"):
            raise ValueError(f"Unknown host_key_trust '{self.host_key_trust}' (expected insecure or known-hosts)")

    @property
    def bosh_state_dir(self) -> str:
        return os.path.join(self.state_dir, "bosh")


def load_config(config_path: str | None = None, **overrides) -> DevConfig:
    """Load DevConfig from an optional YAML file, then apply non-None overrides."""
    values = {}
    if config_path:
        with open(_expand_path(config_path)) as f:
            values = yaml.safe_load(f) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Config file '{config_path}' must contain a mapping")

    known = {f.name for f in fields(DevConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    values.update({k: v for k, v in overrides.items() if v is not None})
    config = DevConfig(**values)
    logger.debug(f"Config: state_dir={config.state_dir} log_dir={config.log_dir}")
    return config
