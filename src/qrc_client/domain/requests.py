import json
from dataclasses import dataclass
from typing import Any

from qrc_client.domain.framing import TERMINATOR

JSONRPC_VERSION = "2.0"


@dataclass(frozen=True)
class ControlValue:
    name: str
    value: Any
    ramp: float | None = None

    def to_wire(self) -> dict[str, Any]:
        control: dict[str, Any] = {"Name": self.name, "Value": self.value}
        if self.ramp is not None:
            control["Ramp"] = self.ramp
        return control


def _request(method: str, params: Any, request_id: int | None = None) -> dict[str, Any]:
    request: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if request_id is not None:
        request["id"] = request_id
    request["params"] = params
    return request


def build_logon(user: str, password: str) -> dict[str, Any]:
    return _request("Logon", {"User": user, "Password": password})


def build_status_get(request_id: int) -> dict[str, Any]:
    return _request("StatusGet", 0, request_id)


def build_component_get(name: str, controls: list[str], request_id: int) -> dict[str, Any]:
    return _request(
        "Component.Get",
        {"Name": name, "Controls": [{"Name": control} for control in controls]},
        request_id,
    )


def build_component_set(name: str, controls: list[ControlValue], request_id: int) -> dict[str, Any]:
    return _request(
        "Component.Set",
        {"Name": name, "Controls": [control.to_wire() for control in controls]},
        request_id,
    )


def build_get_controls(name: str, request_id: int) -> dict[str, Any]:
    return _request("Component.GetControls", {"Name": name}, request_id)


def build_get_components(request_id: int) -> dict[str, Any]:
    return _request("Component.GetComponents", {}, request_id)


def encode_frame(request: dict[str, Any]) -> bytes:
    return json.dumps(request, separators=(",", ":")).encode("utf-8") + TERMINATOR
