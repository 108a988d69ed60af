"""Card and Shoe values - immutable card representations."""

from dataclasses import dataclass, replace
from enum import Enum, auto
from random import Random, SystemRandom
from typing import Iterator

from engine.errors import EmptyShoeError

CARDS_PER_DECK = 52


class Suit(Enum):
    """Card suits."""

    CLUBS = auto()
    DIAMONDS = auto()
    HEARTS = auto()
    SPADES = auto()

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks with blackjack values."""

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        if self.value <= 10:
            return str(self.value)
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self.value <= 10:
            return self.value
        if self == Rank.ACE:
            return 11
        return 10  # Face cards

    @property
    def is_ace(self) -> bool:
        return self == Rank.ACE

    @property
    def is_ten_value(self) -> bool:
        return self.blackjack_value == 10

    @property
    def split_class(self) -> int:
        """Ranks sharing a split class may be split against each other."""
        return 10 if self.is_ten_value else self.value


_RANK_CODES = {
    "2": Rank.TWO,
    "3": Rank.THREE,
    "4": Rank.FOUR,
    "5": Rank.FIVE,
    "6": Rank.SIX,
    "7": Rank.SEVEN,
    "8": Rank.EIGHT,
    "9": Rank.NINE,
    "10": Rank.TEN,
    "T": Rank.TEN,
    "J": Rank.JACK,
    "Q": Rank.QUEEN,
    "K": Rank.KING,
    "A": Rank.ACE,
}

_SUIT_CODES = {
    "C": Suit.CLUBS,
    "♣": Suit.CLUBS,
    "D": Suit.DIAMONDS,
    "♦": Suit.DIAMONDS,
    "H": Suit.HEARTS,
    "♥": Suit.HEARTS,
    "S": Suit.SPADES,
    "♠": Suit.SPADES,
}


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Return the blackjack point value."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        return self.rank.is_ace

    @property
    def is_ten_value(self) -> bool:
        return self.rank.is_ten_value

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', '10h'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        if rank_str not in _RANK_CODES:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in _SUIT_CODES:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(_RANK_CODES[rank_str], _SUIT_CODES[suit_str])


def cards_from_string(s: str) -> tuple[Card, ...]:
    """Parse a whitespace-separated list of cards, e.g. 'AS KD 10H'."""
    return tuple(Card.from_string(part) for part in s.split())


@dataclass(frozen=True)
class Shoe:
    """
    A multi-deck shoe dealt strictly in sequence.

    The shoe is a value: drawing returns a new shoe with the cursor advanced
    and leaves this one untouched.
    """

    cards: tuple[Card, ...]
    dealt_count: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.dealt_count <= len(self.cards):
            raise ValueError("dealt_count must lie within the shoe")

    @property
    def total_cards(self) -> int:
        """Return the size of the full shoe, dealt cards included."""
        return len(self.cards)

    @property
    def cards_remaining(self) -> int:
        """Return the number of undealt cards."""
        return len(self.cards) - self.dealt_count

    @property
    def num_decks(self) -> int:
        return self.total_cards // CARDS_PER_DECK

    @property
    def penetration(self) -> float:
        """Return the fraction of the shoe already dealt."""
        if self.total_cards == 0:
            return 1.0
        return self.dealt_count / self.total_cards

    def __len__(self) -> int:
        return self.cards_remaining

    def __iter__(self) -> Iterator[Card]:
        """Iterate over the undealt cards in draw order."""
        return iter(self.cards[self.dealt_count :])


def create_shoe(num_decks: int) -> Shoe:
    """Build an unshuffled shoe of ``num_decks`` standard decks."""
    if num_decks < 1:
        raise ValueError("Shoe must have at least 1 deck")
    cards = tuple(
        Card(rank, suit)
        for _ in range(num_decks)
        for suit in Suit
        for rank in Rank
    )
    return Shoe(cards=cards)


def shuffle_shoe(shoe: Shoe, rng: Random | None = None) -> Shoe:
    """
    Return a uniformly shuffled copy of the shoe with the cursor reset.

    Args:
        shoe: Shoe whose full card multiset is shuffled (dealt cards included)
        rng: Random number generator; defaults to the OS entropy source
    """
    rng = rng or SystemRandom()
    cards = list(shoe.cards)
    rng.shuffle(cards)
    return Shoe(cards=tuple(cards), dealt_count=0)


def new_shuffled_shoe(num_decks: int, rng: Random | None = None) -> Shoe:
    """Build and shuffle a fresh shoe."""
    return shuffle_shoe(create_shoe(num_decks), rng)


def draw_card(shoe: Shoe) -> tuple[Card, Shoe]:
    """Draw the next card, returning it together with the advanced shoe."""
    if shoe.dealt_count >= len(shoe.cards):
        raise EmptyShoeError("Cannot draw from empty shoe")
    card = shoe.cards[shoe.dealt_count]
    return card, replace(shoe, dealt_count=shoe.dealt_count + 1)


def draw_cards(shoe: Shoe, count: int) -> tuple[tuple[Card, ...], Shoe]:
    """Draw ``count`` cards in sequence order."""
    if count < 0:
        raise ValueError("count must not be negative")
    if count > shoe.cards_remaining:
        raise EmptyShoeError(
            f"Cannot draw {count} cards, only {shoe.cards_remaining} remain"
        )
    end = shoe.dealt_count + count
    return shoe.cards[shoe.dealt_count : end], replace(shoe, dealt_count=end)


def remaining_cards(shoe: Shoe) -> int:
    """Return the number of cards left to deal."""
    return shoe.cards_remaining


def should_reshuffle(shoe: Shoe, threshold: float) -> bool:
    """Check whether the remaining fraction has dropped to the threshold."""
    if shoe.total_cards == 0:
        return True
    return shoe.cards_remaining / shoe.total_cards <= threshold
