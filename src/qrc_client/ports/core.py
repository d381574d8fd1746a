from typing import Any, Protocol

from qrc_client.domain.models import CompletionMode
from qrc_client.domain.requests import ControlValue


class CorePort(Protocol):
    async def get_components(
        self, mode: CompletionMode = CompletionMode.AWAIT_QUIESCENCE
    ) -> list[dict[str, Any]]: ...

    async def get_controls(
        self, component: str | None = None, mode: CompletionMode = CompletionMode.AWAIT_ID
    ) -> dict[str, Any]: ...

    async def set_controls(
        self,
        controls: list[ControlValue],
        component: str | None = None,
        mode: CompletionMode = CompletionMode.AWAIT_ID,
    ) -> Any: ...
