"""Local file layout used by a director deployment."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class DeploymentPaths:
    """Paths of every local file a director deployment reads or writes."""

    director: str
    cloud_config: str
    dns_config: str
    state_json: str
    creds: str
    private_key: str
    log_file: str

    @classmethod
    def from_dirs(cls, state_dir, log_dir, bosh_dir=None) -> "DeploymentPaths":
        bosh_dir = bosh_dir or os.path.join(state_dir, "bosh")
        return cls(
            director=os.path.join(bosh_dir, "director.yml"),
            cloud_config=os.path.join(bosh_dir, "cloud-config.yml"),
            dns_config=os.path.join(bosh_dir, "dns.yml"),
            state_json=os.path.join(bosh_dir, "state.json"),
            creds=os.path.join(bosh_dir, "creds.yml"),
            private_key=os.path.join(state_dir, "id_rsa"),
            log_file=os.path.join(log_dir, "deploy-bosh.log"),
        )

    @classmethod
    def from_config(cls, config) -> "DeploymentPaths":
        return cls.from_dirs(config.state_dir, config.log_dir, config.bosh_state_dir)
