"""Round state values.

All values are frozen: every transition builds new instances and the
controller swaps the whole ``RoundState`` into the session at once.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Sequence

from engine.cards import Card
from engine.hand import format_hand, hand_total


class Action(Enum):
    """Possible player actions."""

    HIT = auto()
    STAND = auto()
    DOUBLE = auto()
    SPLIT = auto()
    INSURANCE = auto()
    SURRENDER = auto()

    def __str__(self) -> str:
        return self.name


class Phase(Enum):
    """
    Round phases.

    Flow: PLAYER_TURN → DEALER_TURN → SETTLEMENT
    """

    PLAYER_TURN = auto()
    DEALER_TURN = auto()
    SETTLEMENT = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


class HandStatus(Enum):
    """Lifecycle of a player hand; anything but ACTIVE is final."""

    ACTIVE = auto()
    STAND = auto()
    BUST = auto()
    BLACKJACK = auto()
    DONE = auto()


class HandResult(Enum):
    """Settled result of one player hand."""

    WIN = auto()
    LOSS = auto()
    PUSH = auto()
    BJ = auto()
    SURRENDER = auto()


@dataclass(frozen=True)
class PlayerHand:
    """A player hand with its wager."""

    cards: tuple[Card, ...]
    total: int
    soft: bool
    bet_cents: int
    status: HandStatus = HandStatus.ACTIVE
    is_doubled: bool = False
    is_split: bool = False
    is_split_aces: bool = False
    surrendered: bool = False

    @classmethod
    def from_cards(
        cls,
        cards: Sequence[Card],
        bet_cents: int,
        status: HandStatus = HandStatus.ACTIVE,
        is_split: bool = False,
        is_split_aces: bool = False,
    ) -> "PlayerHand":
        """Build a hand, deriving total and softness from the cards."""
        total, soft = hand_total(cards)
        return cls(
            cards=tuple(cards),
            total=total,
            soft=soft,
            bet_cents=bet_cents,
            status=status,
            is_split=is_split,
            is_split_aces=is_split_aces,
        )

    def with_card(self, card: Card) -> "PlayerHand":
        """Return a copy holding one more card, totals recomputed."""
        cards = self.cards + (card,)
        total, soft = hand_total(cards)
        return replace(self, cards=cards, total=total, soft=soft)

    def with_status(self, status: HandStatus) -> "PlayerHand":
        return replace(self, status=status)

    @property
    def is_active(self) -> bool:
        return self.status is HandStatus.ACTIVE

    def __str__(self) -> str:
        return format_hand(self.cards)


@dataclass(frozen=True)
class DealerHand:
    """
    The dealer's hand.

    The second card is the hole card. The engine always knows it, but
    ``total`` stays ``None`` until the hole is revealed.
    """

    cards: tuple[Card, ...]
    hole_revealed: bool = False

    @property
    def up_card(self) -> Card | None:
        """Return the face-up card."""
        return self.cards[0] if self.cards else None

    @property
    def visible_cards(self) -> tuple[Card, ...]:
        if self.hole_revealed:
            return self.cards
        return self.cards[:1]

    @property
    def total(self) -> int | None:
        if not self.hole_revealed:
            return None
        return hand_total(self.cards)[0]

    def revealed(self, cards: Sequence[Card] | None = None) -> "DealerHand":
        """Return the hand with the hole card face up, optionally with more cards."""
        return DealerHand(
            cards=tuple(cards) if cards is not None else self.cards,
            hole_revealed=True,
        )

    def __str__(self) -> str:
        if not self.hole_revealed:
            return f"{self.up_card} ??"
        return format_hand(self.cards)


@dataclass(frozen=True)
class HandOutcome:
    """Settlement of a single hand."""

    hand_index: int
    result: HandResult
    net_payout_cents: int


@dataclass(frozen=True)
class Outcome:
    """Settlement of a whole round."""

    results: tuple[HandOutcome, ...]
    net_cents: int
    message: str
    insurance_net_cents: int = 0


@dataclass(frozen=True)
class RoundState:
    """Complete snapshot of one round."""

    phase: Phase
    bankroll_cents: int  # Projected: every stake on the table is already deducted
    base_bet_cents: int
    dealer: DealerHand
    player_hands: tuple[PlayerHand, ...]
    active_hand_index: int = 0
    legal_actions: frozenset[Action] = frozenset()
    outcome: Outcome | None = None
    insurance_cents: int = 0

    @property
    def active_hand(self) -> PlayerHand | None:
        """Get the hand awaiting a decision."""
        if 0 <= self.active_hand_index < len(self.player_hands):
            return self.player_hands[self.active_hand_index]
        return None

    @property
    def is_settled(self) -> bool:
        return self.phase is Phase.SETTLEMENT

    @property
    def wagered_cents(self) -> int:
        """Return every cent wagered this round, doubles and insurance included."""
        return sum(h.bet_cents for h in self.player_hands) + self.insurance_cents
