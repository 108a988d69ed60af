"""Session serialization to JSON-safe dicts for the session store."""

from dataclasses import asdict
from typing import Any

from engine.cards import Card, Rank, Shoe, Suit
from engine.models import (
    Action,
    DealerHand,
    HandOutcome,
    HandResult,
    HandStatus,
    Outcome,
    Phase,
    PlayerHand,
    RoundState,
)
from engine.rules import RuleSet
from engine.session import Session
from engine.stats import PlayerStats


def serialize_card(card: Card) -> dict[str, int]:
    """Serialize a card to a dict."""
    return {"rank": card.rank.value, "suit": card.suit.value}


def deserialize_card(data: dict[str, int]) -> Card:
    """Deserialize a card from a dict."""
    return Card(Rank(data["rank"]), Suit(data["suit"]))


def serialize_shoe(shoe: Shoe) -> dict[str, Any]:
    return {
        "cards": [serialize_card(c) for c in shoe.cards],
        "dealt_count": shoe.dealt_count,
    }


def deserialize_shoe(data: dict[str, Any]) -> Shoe:
    return Shoe(
        cards=tuple(deserialize_card(c) for c in data["cards"]),
        dealt_count=data["dealt_count"],
    )


def serialize_hand(hand: PlayerHand) -> dict[str, Any]:
    """Serialize a player hand to a dict."""
    return {
        "cards": [serialize_card(c) for c in hand.cards],
        "total": hand.total,
        "soft": hand.soft,
        "bet_cents": hand.bet_cents,
        "status": hand.status.name,
        "is_doubled": hand.is_doubled,
        "is_split": hand.is_split,
        "is_split_aces": hand.is_split_aces,
        "surrendered": hand.surrendered,
    }


def deserialize_hand(data: dict[str, Any]) -> PlayerHand:
    """Deserialize a player hand from a dict."""
    return PlayerHand(
        cards=tuple(deserialize_card(c) for c in data["cards"]),
        total=data["total"],
        soft=data["soft"],
        bet_cents=data["bet_cents"],
        status=HandStatus[data["status"]],
        is_doubled=data["is_doubled"],
        is_split=data["is_split"],
        is_split_aces=data["is_split_aces"],
        surrendered=data["surrendered"],
    )


def serialize_dealer(dealer: DealerHand) -> dict[str, Any]:
    return {
        "cards": [serialize_card(c) for c in dealer.cards],
        "hole_revealed": dealer.hole_revealed,
    }


def deserialize_dealer(data: dict[str, Any]) -> DealerHand:
    return DealerHand(
        cards=tuple(deserialize_card(c) for c in data["cards"]),
        hole_revealed=data["hole_revealed"],
    )


def serialize_outcome(outcome: Outcome) -> dict[str, Any]:
    return {
        "results": [
            {
                "hand_index": r.hand_index,
                "result": r.result.name,
                "net_payout_cents": r.net_payout_cents,
            }
            for r in outcome.results
        ],
        "net_cents": outcome.net_cents,
        "message": outcome.message,
        "insurance_net_cents": outcome.insurance_net_cents,
    }


def deserialize_outcome(data: dict[str, Any]) -> Outcome:
    return Outcome(
        results=tuple(
            HandOutcome(
                hand_index=r["hand_index"],
                result=HandResult[r["result"]],
                net_payout_cents=r["net_payout_cents"],
            )
            for r in data["results"]
        ),
        net_cents=data["net_cents"],
        message=data["message"],
        insurance_net_cents=data.get("insurance_net_cents", 0),
    )


def serialize_round(state: RoundState) -> dict[str, Any]:
    """Serialize a round state to a dict."""
    return {
        "phase": state.phase.name,
        "bankroll_cents": state.bankroll_cents,
        "base_bet_cents": state.base_bet_cents,
        "dealer": serialize_dealer(state.dealer),
        "player_hands": [serialize_hand(h) for h in state.player_hands],
        "active_hand_index": state.active_hand_index,
        "legal_actions": sorted(a.name for a in state.legal_actions),
        "outcome": serialize_outcome(state.outcome) if state.outcome else None,
        "insurance_cents": state.insurance_cents,
    }


def deserialize_round(data: dict[str, Any]) -> RoundState:
    """Restore a round state from a dict."""
    outcome = data.get("outcome")
    return RoundState(
        phase=Phase[data["phase"]],
        bankroll_cents=data["bankroll_cents"],
        base_bet_cents=data["base_bet_cents"],
        dealer=deserialize_dealer(data["dealer"]),
        player_hands=tuple(deserialize_hand(h) for h in data["player_hands"]),
        active_hand_index=data["active_hand_index"],
        legal_actions=frozenset(Action[a] for a in data["legal_actions"]),
        outcome=deserialize_outcome(outcome) if outcome else None,
        insurance_cents=data.get("insurance_cents", 0),
    )


def session_to_dict(session: Session) -> dict[str, Any]:
    """Serialize a session for storage."""
    return {
        "shoe": serialize_shoe(session.shoe),
        "rules": asdict(session.rules),
        "bankroll_cents": session.bankroll_cents,
        "round_state": serialize_round(session.round_state) if session.round_state else None,
        "stats": asdict(session.stats),
    }


def session_from_dict(data: dict[str, Any]) -> Session:
    """Restore a session from storage."""
    round_data = data.get("round_state")
    return Session(
        shoe=deserialize_shoe(data["shoe"]),
        rules=RuleSet(**data["rules"]),
        bankroll_cents=data["bankroll_cents"],
        round_state=deserialize_round(round_data) if round_data else None,
        stats=PlayerStats(**data.get("stats", {})),
    )
