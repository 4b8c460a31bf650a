from __future__ import annotations

import threading
from enum import Enum

import structlog


class LifecycleState(str, Enum):
    INITIALIZING = "initializing"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class LifecycleError(RuntimeError):
    pass


_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.INITIALIZING: frozenset({LifecycleState.LISTENING, LifecycleState.STOPPED}),
    LifecycleState.LISTENING: frozenset({LifecycleState.SHUTTING_DOWN}),
    LifecycleState.SHUTTING_DOWN: frozenset({LifecycleState.STOPPED}),
    LifecycleState.STOPPED: frozenset(),
}


class Lifecycle:
    """Process state machine: initializing -> listening -> shutting_down -> stopped.

    Transitions only move forward; ``initializing -> stopped`` covers a startup
    that is aborted before the listener opens.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = LifecycleState.INITIALIZING

    @property
    def state(self) -> LifecycleState:
        return self._state

    def transition(self, target: LifecycleState) -> None:
        with self._lock:
            current = self._state
            if target not in _TRANSITIONS[current]:
                raise LifecycleError(f"invalid lifecycle transition {current.value} -> {target.value}")
            self._state = target
        structlog.get_logger("lifecycle").info("lifecycle_transition", source=current.value, target=target.value)
