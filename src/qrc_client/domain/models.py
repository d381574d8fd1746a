from dataclasses import asdict, dataclass, field
from enum import Enum
from time import monotonic
from typing import Any

from qrc_client.domain.events import AuditEvent


class CompletionMode(Enum):
    FIRE_AND_FORGET = "fire-and-forget"
    AWAIT_ID = "await-id"
    AWAIT_QUIESCENCE = "await-quiescence"


@dataclass(frozen=True)
class PendingRequest:
    id: Any
    mode: CompletionMode
    issued_at: float = field(default_factory=monotonic)


@dataclass(frozen=True)
class ComponentDescriptor:
    name: str
    id: str
    type: str

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> "ComponentDescriptor":
        return cls(
            name=str(raw.get("Name", "")),
            id=str(raw.get("ID", "")),
            type=str(raw.get("Type", "")),
        )


@dataclass(frozen=True)
class ControlSnapshot:
    name: str
    type: str
    string_value: str
    numeric_value: float | None

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> "ControlSnapshot":
        value = raw.get("Value")
        if isinstance(value, bool):
            numeric: float | None = float(value)
        elif isinstance(value, (int, float)):
            numeric = float(value)
        else:
            numeric = None
        string = raw.get("String")
        if string is None:
            string = "" if value is None else str(value)
        return cls(
            name=str(raw.get("Name", "")),
            type=str(raw.get("Type", "")),
            string_value=str(string),
            numeric_value=numeric,
        )


@dataclass(frozen=True)
class ComponentIssue:
    component: str
    value: Any
    control: str | None = None
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"Component": self.component, "Value": self.value}
        if self.control is not None:
            result["Control"] = self.control
        result["Details"] = self.detail
        return result


@dataclass
class DiagnosticsReport:
    script_errors: list[ComponentIssue] = field(default_factory=list)
    script_statuses: list[ComponentIssue] = field(default_factory=list)
    persistent_errors: list[ComponentIssue] = field(default_factory=list)
    persistent_statuses: list[ComponentIssue] = field(default_factory=list)
    audit_events: list[AuditEvent] = field(default_factory=list)

    @property
    def affected_components(self) -> list[str]:
        names: list[str] = []
        for issue in self.script_errors + self.script_statuses:
            if issue.component not in names:
                names.append(issue.component)
        return names

    @property
    def healthy(self) -> bool:
        return not self.persistent_errors and not self.persistent_statuses

    def to_dict(self) -> dict[str, Any]:
        return {
            "scriptErrors": [issue.to_dict() for issue in self.script_errors],
            "scriptStatuses": [issue.to_dict() for issue in self.script_statuses],
            "persistentErrors": [issue.to_dict() for issue in self.persistent_errors],
            "persistentStatuses": [issue.to_dict() for issue in self.persistent_statuses],
            "auditEvents": [
                {"event": type(event).__name__, **asdict(event)} for event in self.audit_events
            ],
        }
