class CoreError(Exception):
    pass


class CoreConnectionError(CoreError, ConnectionError):
    def __init__(self, host: str, cause: object) -> None:
        super().__init__(f"Connection to {host} failed: {cause}")
        self.host = host
        self.cause = cause


class ConnectTimeout(CoreError, TimeoutError):
    def __init__(self, host: str, timeout_seconds: float) -> None:
        super().__init__(f"Connecting to {host} timed out after {timeout_seconds}s")
        self.host = host
        self.timeout_seconds = timeout_seconds


class OperationTimeout(CoreError, TimeoutError):
    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(f"Operation '{operation}' timed out after {timeout_seconds}s")
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class ProtocolError(CoreError):
    """The Core answered with a JSON-RPC ``error`` member."""

    def __init__(self, code: int | None, message: str, data: object = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data


class AuthenticationError(CoreError):
    def __init__(self, username: str, code: int | None, message: str) -> None:
        super().__init__(f"Logon rejected for '{username}': [{code}] {message}")
        self.username = username
        self.code = code
        self.message = message


class NoResponseError(CoreError):
    pass


class ParseError(CoreError):
    def __init__(self, offset: int, excerpt: str, reason: str) -> None:
        super().__init__(f"Corrupt frame at byte {offset}: {reason} ({excerpt!r})")
        self.offset = offset
        self.excerpt = excerpt
        self.reason = reason


class MultipleMatchError(CoreError):
    def __init__(self, component: str, count: int) -> None:
        super().__init__(f"Component name '{component}' matched {count} components")
        self.component = component
        self.count = count
