"""Blackjack round engine - UI- and transport-agnostic."""

from engine.cards import Card, Rank, Shoe, Suit
from engine.errors import EngineError
from engine.models import Action, HandResult, HandStatus, Phase, RoundState
from engine.rules import RuleSet
from engine.session import Session, new_session, reset_session
from engine.game import RoundController, apply_action, deal, get_state

__all__ = [
    "Card",
    "Rank",
    "Shoe",
    "Suit",
    "EngineError",
    "Action",
    "HandResult",
    "HandStatus",
    "Phase",
    "RoundState",
    "RuleSet",
    "Session",
    "new_session",
    "reset_session",
    "RoundController",
    "apply_action",
    "deal",
    "get_state",
]
