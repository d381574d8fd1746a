import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from time import monotonic
from typing import Any

from qrc_client.config import ConnectionConfig
from qrc_client.domain.errors import (
    AuthenticationError,
    ConnectTimeout,
    CoreConnectionError,
    CoreError,
    OperationTimeout,
    ProtocolError,
)
from qrc_client.domain.framing import FrameParser
from qrc_client.domain.messages import RpcError, RpcMessage, classify, matches_id
from qrc_client.domain.models import CompletionMode, PendingRequest
from qrc_client.domain.requests import build_logon, build_status_get, encode_frame
from qrc_client.domain.state import TERMINAL_STATES, SessionState, validate_transition

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536

OpenConnection = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


class TransportSession:
    """One TCP connection to a Core carrying at most one request at a time."""

    def __init__(
        self,
        config: ConnectionConfig,
        open_connection: OpenConnection | None = None,
    ) -> None:
        self._config = config
        self._open_connection = open_connection or asyncio.open_connection
        self._state = SessionState.DISCONNECTED
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._parser = FrameParser()
        self._pending: PendingRequest | None = None
        self._authenticated = False
        self._connected_at: float | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def pending(self) -> PendingRequest | None:
        return self._pending

    @property
    def parser(self) -> FrameParser:
        return self._parser

    async def __aenter__(self) -> "TransportSession":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.debug("State: %s -> %s", self._state.name, target.name)
        self._state = target

    async def connect(self) -> None:
        self._transition_to(SessionState.CONNECTING)
        host, port = self._config.host, self._config.port
        logger.debug("Connecting to %s:%d", host, port)
        try:
            self._reader, self._writer = await asyncio.wait_for(
                self._open_connection(host, port),
                timeout=self._config.connect_timeout,
            )
        except asyncio.TimeoutError as exc:
            self._fail("connect timed out")
            raise ConnectTimeout(host, self._config.connect_timeout) from exc
        except OSError as exc:
            self._fail(str(exc))
            raise CoreConnectionError(host, exc) from exc
        self._connected_at = monotonic()

        credentials = self._config.credentials
        if credentials is None:
            logger.debug("No credentials configured, continuing unauthenticated")
            self._transition_to(SessionState.READY)
            return

        self._transition_to(SessionState.AUTHENTICATING)
        await self._authenticate(*credentials)
        self._transition_to(SessionState.READY)

    async def _authenticate(self, user: str, secret: str) -> None:
        probe_id = self._config.request_id
        await self._write(build_logon(user, secret))
        await self._write(build_status_get(probe_id))
        try:
            await self._read_until_id(probe_id)
        except ProtocolError as exc:
            self._fail("logon rejected")
            raise AuthenticationError(user, exc.code, exc.message) from exc
        self._authenticated = True
        logger.info("Logged on to %s as %s", self._config.host, user)

    async def send(self, request: dict[str, Any], mode: CompletionMode = CompletionMode.AWAIT_ID) -> Any:
        request_id = request.get("id")
        if mode is not CompletionMode.FIRE_AND_FORGET and request_id is None:
            raise ValueError(f"{mode.value} requests need an id")
        self._transition_to(SessionState.BUSY)
        self._pending = PendingRequest(id=request_id, mode=mode)
        try:
            await self._write(request)
            if mode is CompletionMode.AWAIT_ID:
                return await self._read_until_id(request_id)
            if mode is CompletionMode.AWAIT_QUIESCENCE:
                messages = await self._collect_until_quiet()
                await self.close()
                messages.extend(self._classify_all(self._parser.flush()))
                return messages
            return None
        finally:
            self._pending = None
            if self._state is SessionState.BUSY:
                self._transition_to(SessionState.READY)

    async def run(self, request: dict[str, Any], mode: CompletionMode = CompletionMode.AWAIT_ID) -> Any:
        operation = str(request.get("method", "request"))
        try:
            return await asyncio.wait_for(
                self._connect_and_send(request, mode),
                timeout=self._config.operation_timeout,
            )
        except CoreError:
            raise
        except asyncio.TimeoutError as exc:
            self._fail("operation deadline exceeded")
            raise OperationTimeout(operation, self._config.operation_timeout) from exc
        finally:
            await self.close()

    async def _connect_and_send(self, request: dict[str, Any], mode: CompletionMode) -> Any:
        await self.connect()
        return await self.send(request, mode)

    async def close(self) -> None:
        if self._state in (SessionState.READY, SessionState.BUSY):
            self._transition_to(SessionState.CLOSING)
        elif self._state in (SessionState.CONNECTING, SessionState.AUTHENTICATING):
            self._fail("closed before the session was ready")

        writer = self._detach()
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Ignoring error while closing socket: %s", exc)

        if self._state in (SessionState.CLOSING, SessionState.DISCONNECTED):
            self._transition_to(SessionState.CLOSED)

    def _fail(self, reason: str) -> None:
        if self._state not in TERMINAL_STATES:
            logger.warning("Session to %s failed: %s", self._config.host, reason)
            self._transition_to(SessionState.FAILED)
        writer = self._detach()
        if writer is not None:
            writer.close()

    def _detach(self) -> asyncio.StreamWriter | None:
        writer, self._writer = self._writer, None
        self._reader = None
        return writer

    async def _write(self, request: dict[str, Any]) -> None:
        if self._writer is None:
            raise CoreConnectionError(self._config.host, "socket is not open")
        frame = encode_frame(request)
        logger.debug("Sending %s (id=%s, %d bytes)", request.get("method"), request.get("id"), len(frame))
        try:
            self._writer.write(frame)
            await self._writer.drain()
        except OSError as exc:
            self._fail(str(exc))
            raise CoreConnectionError(self._config.host, exc) from exc

    async def _read(self) -> bytes:
        if self._reader is None:
            raise CoreConnectionError(self._config.host, "socket is not open")
        try:
            return await self._reader.read(READ_CHUNK_SIZE)
        except OSError as exc:
            self._fail(str(exc))
            raise CoreConnectionError(self._config.host, exc) from exc

    async def _read_until_id(self, request_id: Any) -> Any:
        while True:
            data = await self._read()
            if not data:
                self._fail("remote closed the connection")
                raise CoreConnectionError(
                    self._config.host, f"connection closed before response to id {request_id}"
                )
            for message in self._classify_all(self._parser.feed(data)):
                if not matches_id(message, request_id):
                    logger.debug("Ignoring unmatched frame: %s", message)
                    continue
                if isinstance(message, RpcError):
                    raise ProtocolError(message.code, message.message, message.data)
                return message.payload

    async def _collect_until_quiet(self) -> list[RpcMessage]:
        deadline = (self._connected_at or monotonic()) + self._config.settle_window
        collected: list[RpcMessage] = []
        while True:
            remaining = deadline - monotonic()
            if remaining <= 0:
                break
            try:
                data = await asyncio.wait_for(self._read(), timeout=remaining)
            except asyncio.TimeoutError:
                break
            if not data:
                logger.debug("Remote closed the connection during the settle window")
                break
            collected.extend(self._classify_all(self._parser.feed(data)))
        logger.debug("Settle window elapsed with %d messages", len(collected))
        return collected

    @staticmethod
    def _classify_all(values: Iterator[Any] | list[Any]) -> Iterator[RpcMessage]:
        for value in values:
            message = classify(value)
            if message is None:
                logger.debug("Ignoring frame that is not a JSON-RPC message: %r", value)
                continue
            yield message
