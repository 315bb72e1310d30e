"""OS background-service wrapper client."""

from devprov.servicew.client import ServiceWrapper, ServiceWrapperError, copy_binary
from devprov.servicew.config import STATUS_RUNNING, ServiceConfig

__all__ = [
    "ServiceWrapper",
    "ServiceWrapperError",
    "ServiceConfig",
    "STATUS_RUNNING",
    "copy_binary",
]
