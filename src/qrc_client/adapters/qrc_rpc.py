import logging
from collections.abc import Callable
from typing import Any

from qrc_client.adapters.tcp_session import TransportSession
from qrc_client.config import ConnectionConfig
from qrc_client.domain.errors import NoResponseError, ProtocolError
from qrc_client.domain.messages import RpcError, RpcMessage, RpcResult
from qrc_client.domain.models import CompletionMode
from qrc_client.domain.requests import (
    ControlValue,
    build_component_get,
    build_component_set,
    build_get_components,
    build_get_controls,
    build_status_get,
)
from qrc_client.ports.files import PayloadSource

logger = logging.getLogger(__name__)

CODE_CONTROL = "code"


class QrcRpcClient:
    def __init__(
        self,
        config: ConnectionConfig,
        session_factory: Callable[[], TransportSession] | None = None,
        source: PayloadSource | None = None,
    ) -> None:
        self._config = config
        self._session_factory = session_factory or (lambda: TransportSession(config))
        self._source = source

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    def _component(self, component: str | None) -> str:
        name = component or self._config.default_component
        if not name:
            raise ValueError("No component given and no default component configured")
        return name

    def _id(self, request_id: int | None) -> int:
        return self._config.request_id if request_id is None else request_id

    async def _call(self, request: dict[str, Any], mode: CompletionMode) -> Any:
        logger.debug("Calling %s on %s (%s)", request["method"], self._config.host, mode.value)
        session = self._session_factory()
        outcome = await session.run(request, mode)
        if mode is CompletionMode.AWAIT_QUIESCENCE:
            return resolve_messages(outcome, request.get("id"))
        return outcome

    async def status(self, request_id: int | None = None) -> Any:
        return await self._call(build_status_get(self._id(request_id)), CompletionMode.AWAIT_ID)

    async def get(
        self,
        controls: list[str],
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
        request_id: int | None = None,
    ) -> dict[str, Any]:
        request = build_component_get(self._component(component), controls, self._id(request_id))
        return await self._call(request, mode)

    async def set(
        self,
        control: str,
        value: Any,
        ramp: float | None = None,
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
        request_id: int | None = None,
    ) -> Any:
        return await self.set_controls(
            [ControlValue(control, value, ramp)],
            component=component,
            mode=mode,
            request_id=request_id,
        )

    async def set_controls(
        self,
        controls: list[ControlValue],
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
        request_id: int | None = None,
    ) -> Any:
        name = self._component(component)
        logger.info("Setting %s on %s", ", ".join(c.name for c in controls), name)
        request = build_component_set(name, controls, self._id(request_id))
        return await self._call(request, mode)

    async def get_controls(
        self,
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
        request_id: int | None = None,
    ) -> dict[str, Any]:
        request = build_get_controls(self._component(component), self._id(request_id))
        return await self._call(request, mode)

    async def get_components(
        self,
        mode: CompletionMode = CompletionMode.AWAIT_QUIESCENCE,
        request_id: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self._call(build_get_components(self._id(request_id)), mode)

    async def push_code(
        self,
        source: str,
        component: str | None = None,
        control: str = CODE_CONTROL,
        request_id: int | None = None,
    ) -> Any:
        """Write to a component control.

        For the ``code`` control ``source`` is a file path and its contents are
        sent. Any other control receives ``source`` itself as the value.
        """
        name = self._component(component)
        if control != CODE_CONTROL:
            logger.info("Control type changed to: %s", control)
            logger.info("Updating %s's %s to %s", name, control, source)
            return await self.set(control, source, component=name, request_id=request_id)
        if self._source is None:
            raise ValueError("No payload source configured for push_code")
        payload = self._source.read_text(source)
        logger.info("Pushing %d characters from %s to %s", len(payload), source, name)
        return await self.set(control, payload, component=name, request_id=request_id)


def resolve_messages(messages: list[RpcMessage], request_id: Any) -> Any:
    fallback: RpcResult | None = None
    for message in messages:
        if isinstance(message, RpcError) and message.id == request_id:
            raise ProtocolError(message.code, message.message, message.data)
        if isinstance(message, RpcResult):
            if message.id == request_id:
                return message.payload
            fallback = message
    if fallback is not None:
        return fallback.payload
    raise NoResponseError(f"No response to request {request_id} before the connection went quiet")
