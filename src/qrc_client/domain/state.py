from enum import Enum, auto


class SessionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    AUTHENTICATING = auto()
    READY = auto()
    BUSY = auto()
    CLOSING = auto()
    CLOSED = auto()
    FAILED = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.DISCONNECTED: {SessionState.CONNECTING, SessionState.CLOSED, SessionState.FAILED},
    SessionState.CONNECTING: {SessionState.AUTHENTICATING, SessionState.READY, SessionState.FAILED},
    SessionState.AUTHENTICATING: {SessionState.READY, SessionState.FAILED},
    SessionState.READY: {SessionState.BUSY, SessionState.CLOSING, SessionState.FAILED},
    SessionState.BUSY: {SessionState.READY, SessionState.CLOSING, SessionState.FAILED},
    SessionState.CLOSING: {SessionState.CLOSED, SessionState.FAILED},
    SessionState.CLOSED: set(),
    SessionState.FAILED: set(),
}

TERMINAL_STATES = frozenset({SessionState.CLOSED, SessionState.FAILED})


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
