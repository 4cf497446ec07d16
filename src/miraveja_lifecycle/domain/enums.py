from enum import Enum


class LifecycleState(str, Enum):
    """Aggregate lifecycle state of a system.

    Attributes:
        STOPPED: Initial state, or the state after a successful full stop.
        STARTED: State after a successful full start.
    """

    STOPPED = "stopped"
    STARTED = "started"

    def __str__(self) -> str:
        return self.value


class LifecycleAction(str, Enum):
    """Lifecycle operation applied to components of a system."""

    START = "start"
    STOP = "stop"

    def __str__(self) -> str:
        return self.value
