"""Blackjack rule variations."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from config import GameConfig

DoubleOn = Literal["any", "9-11", "10-11"]

DOUBLE_RANGES: dict[str, range] = {
    "any": range(0, 32),
    "9-11": range(9, 12),
    "10-11": range(10, 12),
}


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Supplied once per session and read-only for the life of every round.
    """

    # Deck configuration
    num_decks: int = 6

    # Betting limits, in cents
    min_bet_cents: int = 100
    max_bet_cents: int = 10_000

    # Dealer rules
    dealer_hits_soft_17: bool = False  # H17 vs S17

    # Blackjack payout (3:2 = 1.5, 6:5 = 1.2)
    blackjack_payout: float = 1.5

    # Double down rules
    double_on: DoubleOn = "any"

    # Split rules
    split_allowed: bool = True
    resplit_allowed: bool = False
    split_aces_one_card: bool = True  # Usually only one card to split aces

    # Side options
    insurance_allowed: bool = False
    surrender_allowed: bool = False

    # Reshuffle when this fraction of the shoe (or less) remains
    reshuffle_threshold: float = 0.25

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.num_decks < 1 or self.num_decks > 8:
            raise ValueError("num_decks must be between 1 and 8")
        if self.blackjack_payout < 1.0:
            raise ValueError("blackjack_payout must be at least 1.0")
        if self.double_on not in DOUBLE_RANGES:
            raise ValueError(f"double_on must be one of {sorted(DOUBLE_RANGES)}")
        if not 0.0 <= self.reshuffle_threshold < 1.0:
            raise ValueError("reshuffle_threshold must be in [0, 1)")
        if self.min_bet_cents < 1 or self.max_bet_cents < self.min_bet_cents:
            raise ValueError("bet limits must satisfy 1 <= min_bet_cents <= max_bet_cents")

    def can_double_on(self, total: int) -> bool:
        """Check whether a two-card total may be doubled under these rules."""
        return total in DOUBLE_RANGES[self.double_on]

    @classmethod
    def from_config(cls, game: "GameConfig") -> "RuleSet":
        """Build the table rules from the game configuration."""
        return cls(
            num_decks=game.num_decks,
            min_bet_cents=game.min_bet_cents,
            max_bet_cents=game.max_bet_cents,
            dealer_hits_soft_17=game.dealer_hits_soft_17,
            blackjack_payout=game.blackjack_payout,
            double_on=game.double_on,
            split_allowed=game.split_allowed,
            resplit_allowed=game.resplit_allowed,
            split_aces_one_card=game.split_aces_one_card,
            insurance_allowed=game.insurance_allowed,
            surrender_allowed=game.surrender_allowed,
            reshuffle_threshold=game.reshuffle_threshold,
        )

    @classmethod
    def vegas_strip(cls) -> "RuleSet":
        """Standard Vegas Strip rules."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            double_on="any",
            resplit_allowed=True,
            surrender_allowed=True,
            insurance_allowed=True,
        )

    @classmethod
    def downtown_vegas(cls) -> "RuleSet":
        """Downtown Las Vegas rules (typically H17)."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=True,
            blackjack_payout=1.5,
            double_on="any",
            resplit_allowed=True,
            surrender_allowed=True,
            insurance_allowed=True,
        )

    @classmethod
    def single_deck(cls) -> "RuleSet":
        """Single deck rules: 6:5 naturals, doubles on 10-11 only."""
        return cls(
            num_decks=1,
            dealer_hits_soft_17=True,
            blackjack_payout=1.2,
            double_on="10-11",
            resplit_allowed=False,
            surrender_allowed=False,
            insurance_allowed=True,
            reshuffle_threshold=0.5,
        )

    @classmethod
    def atlantic_city(cls) -> "RuleSet":
        """Atlantic City rules."""
        return cls(
            num_decks=8,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            double_on="any",
            resplit_allowed=True,
            surrender_allowed=True,
            insurance_allowed=True,
        )
