"""BOSH director deployment onto the development VM."""

from devprov.director.bosh import BoshRunner
from devprov.director.deploy import (
    DirectorDeployer,
    create_env_command,
    credhub_is_deployed,
    deploy_director,
)
from devprov.director.network import Document, NetworkBackend, patch
from devprov.director.paths import DeploymentPaths

__all__ = [
    "BoshRunner",
    "DirectorDeployer",
    "DeploymentPaths",
    "Document",
    "NetworkBackend",
    "create_env_command",
    "credhub_is_deployed",
    "deploy_director",
    "patch",
]
