from dataclasses import dataclass, field
from time import time


@dataclass(frozen=True)
class AuditEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class IssuesDetected(AuditEvent):
    system: str = ""
    site: str = ""
    host: str = ""
    error_count: int = 0
    status_count: int = 0
    components: tuple[str, ...] = ()
    errors: tuple[dict, ...] = ()
    statuses: tuple[dict, ...] = ()


@dataclass(frozen=True)
class RestartAttempted(AuditEvent):
    system: str = ""
    site: str = ""
    host: str = ""
    component: str = ""
    success: bool = False
    error: str = ""


@dataclass(frozen=True)
class ComponentResolved(AuditEvent):
    component: str = ""


@dataclass(frozen=True)
class ComponentPersistent(AuditEvent):
    component: str = ""
    error_count: int = 0
    status_count: int = 0
