"""Watch loop state."""

from enum import Enum


class WatchState(Enum):
    """Rendering state owned by the watch loop.

    Derived once from the pause sentinel at startup, then driven by
    sentinel create/remove events.
    """

    ACTIVE = "active"
    PAUSED = "paused"
