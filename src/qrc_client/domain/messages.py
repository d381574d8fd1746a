from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RpcResult:
    id: Any
    payload: Any


@dataclass(frozen=True)
class RpcError:
    id: Any
    code: int | None
    message: str
    data: Any = None


@dataclass(frozen=True)
class RpcNotification:
    method: str
    params: Any = None


RpcMessage = RpcResult | RpcError | RpcNotification


def classify(obj: Any) -> RpcMessage | None:
    if not isinstance(obj, dict):
        return None
    if "error" in obj:
        error = obj["error"]
        if isinstance(error, dict):
            code = error.get("code")
            return RpcError(
                id=obj.get("id"),
                code=code if isinstance(code, int) else None,
                message=str(error.get("message", "")),
                data=error.get("data"),
            )
        return RpcError(id=obj.get("id"), code=None, message=str(error))
    if "result" in obj:
        return RpcResult(id=obj.get("id"), payload=obj["result"])
    if "method" in obj:
        return RpcNotification(method=str(obj["method"]), params=obj.get("params"))
    return None


def matches_id(message: RpcMessage | None, request_id: Any) -> bool:
    return isinstance(message, (RpcResult, RpcError)) and message.id == request_id
