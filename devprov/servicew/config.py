"""Service definition written next to each installed wrapper."""

from dataclasses import asdict, dataclass, field

STATUS_RUNNING = "running"


@dataclass
class ServiceConfig:
    """What the wrapper runs as an OS background service."""

    label: str
    executable: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    log: str = ""

    def to_dict(self) -> dict:
        return asdict(self)
