"""Dealer drawing policy."""

from typing import Callable, Sequence

from engine.cards import Card
from engine.hand import hand_total, is_bust
from engine.rules import RuleSet


def should_hit(cards: Sequence[Card], rules: RuleSet) -> bool:
    """Determine if the dealer should hit (H17 hits soft 17, S17 stands)."""
    value, soft = hand_total(cards)
    if value < 17:
        return True
    if value == 17 and soft and rules.dealer_hits_soft_17:
        return True
    return False


def play_dealer_hand(
    cards: Sequence[Card],
    rules: RuleSet,
    draw: Callable[[], Card],
) -> tuple[Card, ...]:
    """
    Play the dealer's hand to completion.

    Args:
        cards: Dealer's cards with the hole card included
        rules: Table rules
        draw: Called once per hit; supplies the next card from the shoe

    Returns:
        The final dealer cards
    """
    hand = list(cards)
    while should_hit(hand, rules) and not is_bust(hand):
        hand.append(draw())
    return tuple(hand)
