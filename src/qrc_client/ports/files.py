from typing import Protocol


class PayloadSource(Protocol):
    def read_text(self, path: str) -> str: ...


class ResultSink(Protocol):
    def write_text(self, path: str, data: str) -> None: ...
