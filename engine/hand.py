"""Hand evaluation for blackjack.

Pure functions over card sequences; nothing here knows about bets, rules or
round state.
"""

from typing import Sequence

from engine.cards import Card

BLACKJACK = 21


def hand_total(cards: Sequence[Card]) -> tuple[int, bool]:
    """
    Calculate the best hand value and its softness.

    Aces start at 11 and are demoted to 1 one at a time while the total
    exceeds 21.

    Returns:
        (total, soft) where soft means at least one ace still counts as 11
    """
    total = 0
    aces = 0

    for card in cards:
        if card.is_ace:
            aces += 1
        total += card.value

    # Reduce aces from 11 to 1 as needed
    while total > BLACKJACK and aces > 0:
        total -= 10
        aces -= 1

    return total, aces > 0


def is_blackjack(cards: Sequence[Card]) -> bool:
    """Check for a natural: exactly an ace and a ten-value card."""
    if len(cards) != 2:
        return False
    return any(c.is_ace for c in cards) and any(c.is_ten_value for c in cards)


def is_bust(cards: Sequence[Card]) -> bool:
    """Check if the hand has busted (value > 21)."""
    return hand_total(cards)[0] > BLACKJACK


def can_split_cards(cards: Sequence[Card]) -> bool:
    """Check for two cards of the same split class (all tens split together)."""
    return len(cards) == 2 and cards[0].rank.split_class == cards[1].rank.split_class


def format_hand(cards: Sequence[Card]) -> str:
    """Render cards with their value, e.g. 'A♠ 6♥ (soft 17)'."""
    cards_str = " ".join(str(card) for card in cards)
    total, soft = hand_total(cards)
    value_str = f"({total})"
    if soft:
        value_str = f"(soft {total})"
    if is_blackjack(cards):
        value_str = "(BLACKJACK)"
    if total > BLACKJACK:
        value_str = "(BUST)"
    return f"{cards_str} {value_str}".strip()
