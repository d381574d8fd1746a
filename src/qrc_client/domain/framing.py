import json
import logging
from collections.abc import Iterator
from typing import Any

from qrc_client.domain.errors import ParseError

logger = logging.getLogger(__name__)

TERMINATOR = b"\x00"
EXCERPT_LENGTH = 40


class FrameParser:
    """Splits a NUL-delimited byte stream into JSON values.

    Only terminated frames are parsed while the stream is open, so the output
    does not depend on where reads happen to split the data. The unterminated
    tail is retained until more bytes arrive or ``flush`` is called.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._consumed = 0
        self._errors: list[ParseError] = []

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def errors(self) -> list[ParseError]:
        return list(self._errors)

    def feed(self, data: bytes | str) -> Iterator[Any]:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer.extend(data)
        return self._drain()

    def _drain(self) -> Iterator[Any]:
        while True:
            end = self._buffer.find(TERMINATOR)
            if end < 0:
                return
            segment = bytes(self._buffer[:end])
            offset = self._consumed
            del self._buffer[: end + 1]
            self._consumed += end + 1
            if not segment.strip():
                continue
            try:
                value = _decode(segment)
            except ValueError as exc:
                error = ParseError(offset, _excerpt(segment), str(exc))
                self._errors.append(error)
                logger.warning("Dropping frame: %s", error)
                continue
            yield value

    def flush(self) -> list[Any]:
        segment = bytes(self._buffer)
        offset = self._consumed
        self._consumed += len(self._buffer)
        self._buffer.clear()
        if not segment.strip():
            return []
        try:
            return [_decode(segment)]
        except ValueError:
            logger.debug(
                "Discarding truncated frame at byte %d (%d bytes): %r",
                offset, len(segment), _excerpt(segment),
            )
            return []


def parse_frames(buffer: bytes | str) -> Iterator[Any]:
    parser = FrameParser()
    yield from parser.feed(buffer)


def _decode(segment: bytes) -> Any:
    # UnicodeDecodeError and JSONDecodeError are both ValueErrors.
    return json.loads(segment.decode("utf-8"))


def _excerpt(segment: bytes) -> str:
    text = segment[:EXCERPT_LENGTH].decode("utf-8", errors="replace")
    if len(segment) > EXCERPT_LENGTH:
        return text + "..."
    return text
