"""Network-backend specific IP literals and the text patches that swap them.

Templates are rendered for the default (VPNKit) user-mode network. On a KVM
host the same addresses are wrong inside the VM, so a few literals are
replaced before the files are used. This table is the only place those
literals live.
"""

import enum
import sys

VPNKIT_NAMESERVER_IP = "192.168.65.1"
VPNKIT_HOST_IP = "192.168.65.2"
VPNKIT_INTERNAL_IP = "192.168.65.3"
KVM_NAMESERVER_IP = "192.168.122.1"

DIRECTOR_PORT = 9999

VM_IP = "{vm_ip}"


class NetworkBackend(enum.Enum):
    VPNKIT = "vpnkit"
    KVM = "kvm"

    @classmethod
    def detect(cls, platform=None) -> "NetworkBackend":
        """Backend used on the given (or current) host platform."""
        platform = platform if platform is not None else sys.platform
        return cls.KVM if platform.startswith("linux") else cls.VPNKIT

    @classmethod
    def resolve(cls, name="auto", platform=None) -> "NetworkBackend":
        if name == "auto":
            return cls.detect(platform)
        return cls(name)


class Document(enum.Enum):
    DIRECTOR = "director"
    CLOUD_CONFIG = "cloud-config"
    DNS_CONFIG = "dns-config"


# (backend, document) -> ordered (old, new) literal pairs.
# VM_IP in a replacement stands for the discovered VM address.
SUBSTITUTIONS = {
    (NetworkBackend.KVM, Document.DIRECTOR): [
        (f"{VPNKIT_INTERNAL_IP}:{DIRECTOR_PORT}", f"{VM_IP}:{DIRECTOR_PORT}"),
        (VPNKIT_NAMESERVER_IP, KVM_NAMESERVER_IP),
    ],
    (NetworkBackend.KVM, Document.CLOUD_CONFIG): [
        (VPNKIT_NAMESERVER_IP, KVM_NAMESERVER_IP),
    ],
    (NetworkBackend.KVM, Document.DNS_CONFIG): [
        (VPNKIT_HOST_IP, KVM_NAMESERVER_IP),
    ],
}


def substitutions(backend: NetworkBackend, document: Document, vm_ip: str = "") -> list[tuple[str, str]]:
    """Literal replacements to apply to document under backend."""
    pairs = SUBSTITUTIONS.get((backend, document), [])
    return [(old, new.replace(VM_IP, vm_ip)) for old, new in pairs]


def patch(text: str | bytes, backend: NetworkBackend, document: Document, vm_ip: str = "") -> str | bytes:
    """Apply the backend's literal substitutions to text.

    Plain replacement of every occurrence. Bytes are patched without decoding
    (the literals are ASCII), so templates in any encoding pass through
    untouched apart from the replaced addresses. Input without the literals is
    returned unchanged.
    """
    for old, new in substitutions(backend, document, vm_ip):
        if isinstance(text, bytes):
            old, new = old.encode(), new.encode()
        text = text.replace(old, new)
    return text
