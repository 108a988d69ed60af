"""Round state machine and its audit events."""

from engine.game.events import EventEmitter, EventType, RoundEvent
from engine.game.controller import (
    RoundController,
    RoundFlow,
    RoundView,
    apply_action,
    deal,
    get_state,
)

__all__ = [
    "EventEmitter",
    "EventType",
    "RoundEvent",
    "RoundController",
    "RoundFlow",
    "RoundView",
    "apply_action",
    "deal",
    "get_state",
]
