import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from qrc_client.config import ConnectionConfig
from qrc_client.domain.models import CompletionMode
from qrc_client.domain.requests import ControlValue

Reply = dict | bytes
Responder = Callable[[dict[str, Any]], list[Reply]]


def result_for(request: dict[str, Any], result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request.get("id"), "result": result}


def error_for(request: dict[str, Any], code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request.get("id"), "error": {"code": code, "message": message}}


def engine_status() -> dict[str, Any]:
    return {"jsonrpc": "2.0", "method": "EngineStatus", "params": {"State": "Active", "DesignName": "Lobby"}}


def to_frame(reply: Reply) -> bytes:
    if isinstance(reply, bytes):
        return reply
    return json.dumps(reply).encode("utf-8") + b"\x00"


class FakeWriter:
    def __init__(self, device: "FakeCoreDevice", reader: asyncio.StreamReader) -> None:
        self._device = device
        self._reader = reader
        self._pending = bytearray()
        self.written = bytearray()
        self.requests: list[dict[str, Any]] = []
        self.close_calls = 0

    def write(self, data: bytes) -> None:
        self.written.extend(data)
        self._pending.extend(data)
        while b"\x00" in self._pending:
            end = self._pending.index(b"\x00")
            request = json.loads(bytes(self._pending[:end]))
            del self._pending[: end + 1]
            self.requests.append(request)
            for reply in self._device.responder(request):
                self._reader.feed_data(to_frame(reply))
            if self._device.close_after_reply and request.get("method") != "Logon":
                self._reader.feed_eof()

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.close_calls += 1

    def is_closing(self) -> bool:
        return self.close_calls > 0

    async def wait_closed(self) -> None:
        pass


class FakeCoreDevice:
    def __init__(
        self,
        responder: Responder | None = None,
        greeting: list[Reply] | None = None,
        close_after_reply: bool = False,
    ) -> None:
        self.responder: Responder = responder or (lambda request: [])
        self.greeting = greeting or []
        self.close_after_reply = close_after_reply
        self.writers: list[FakeWriter] = []

    @property
    def connect_calls(self) -> int:
        return len(self.writers)

    @property
    def last_writer(self) -> FakeWriter:
        return self.writers[-1]

    async def open_connection(self, host: str, port: int) -> tuple[asyncio.StreamReader, FakeWriter]:
        reader = asyncio.StreamReader()
        writer = FakeWriter(self, reader)
        self.writers.append(writer)
        for reply in self.greeting:
            reader.feed_data(to_frame(reply))
        return reader, writer


def qrc_responder(
    results: dict[str, Any] | None = None,
    errors: dict[str, tuple[int, str]] | None = None,
) -> Responder:
    results = results or {}
    errors = errors or {}

    def respond(request: dict[str, Any]) -> list[Reply]:
        method = request.get("method", "")
        if method == "Logon":
            return []
        if method in errors:
            code, message = errors[method]
            return [error_for(request, code, message)]
        if method in results:
            result = results[method]
            return [result_for(request, result(request) if callable(result) else result)]
        if method == "StatusGet":
            return [result_for(request, {"Platform": "Core 110f", "State": "Active"})]
        return [result_for(request, True)]

    return respond


async def never_connects(host: str, port: int) -> Any:
    await asyncio.Event().wait()


def script_component(name: str, type_: str = "device_controller_script") -> dict[str, str]:
    return {"Name": name, "ID": f"id-{name}", "Type": type_}


def error_controls(count: int, history: str = "") -> list[dict[str, Any]]:
    return [
        {"Name": "script.error.count", "Type": "Integer", "Value": count, "String": str(count)},
        {"Name": "log.history", "Type": "Text", "Value": history, "String": history},
    ]


def status_control(value: int, string: str = "OK", name: str = "Status") -> dict[str, Any]:
    return {"Name": name, "Type": "Status", "Value": value, "String": string}


class FakeCorePort:
    def __init__(
        self,
        components: list[dict[str, str]] | None = None,
        controls: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.components = components or []
        self.controls = controls or {}
        self.set_calls: list[tuple[str | None, list[ControlValue]]] = []
        self.on_set: dict[str, Callable[[], Any]] = {}
        self.components_error: Exception | None = None
        self.controls_errors: dict[str, Exception] = {}
        self.modes: list[CompletionMode] = []

    async def get_components(self, mode: CompletionMode = CompletionMode.AWAIT_QUIESCENCE) -> list[dict[str, str]]:
        self.modes.append(mode)
        await asyncio.sleep(0)
        if self.components_error is not None:
            raise self.components_error
        return list(self.components)

    async def get_controls(
        self, component: str | None = None, mode: CompletionMode = CompletionMode.AWAIT_ID
    ) -> dict[str, Any]:
        self.modes.append(mode)
        await asyncio.sleep(0)
        if component in self.controls_errors:
            raise self.controls_errors[component]
        return {"Name": component, "Controls": list(self.controls.get(component, []))}

    async def set_controls(
        self,
        controls: list[ControlValue],
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
    ) -> Any:
        self.modes.append(mode)
        self.set_calls.append((component, list(controls)))
        effect = self.on_set.get(component or "")
        if effect is not None:
            effect()
        return True

    @property
    def restarted(self) -> list[str | None]:
        return [component for component, _ in self.set_calls]


@pytest.fixture
def config():
    return ConnectionConfig(host="core.local", settle_window=0.05, connect_timeout=1.0, operation_timeout=2.0)


@pytest.fixture
def auth_config():
    return ConnectionConfig(
        host="core.local",
        username="admin",
        password="secret",
        settle_window=0.05,
        connect_timeout=1.0,
        operation_timeout=2.0,
    )


@pytest.fixture
def device():
    return FakeCoreDevice(responder=qrc_responder())


@pytest.fixture
def fake_core():
    return FakeCorePort()
