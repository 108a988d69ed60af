"""Legal-action resolution.

``legal_actions`` is a pure function of the hand, the dealer's visible card,
the rules, the turn context and the bankroll, so it can be exercised without
a session.
"""

from engine.hand import can_split_cards, is_blackjack
from engine.models import Action, DealerHand, PlayerHand
from engine.rules import RuleSet


def legal_actions(
    hand: PlayerHand,
    dealer: DealerHand,
    rules: RuleSet,
    is_first_decision: bool,
    num_hands: int,
    bankroll_cents: int,
) -> frozenset[Action]:
    """
    Compute the actions available for a hand right now.

    Each action is checked independently and the result is their union.

    Args:
        hand: The hand awaiting a decision
        dealer: Dealer hand (only the up-card is consulted)
        rules: Table rules
        is_first_decision: True until the hand has acted on its first two cards
        num_hands: Number of player hands in the round
        bankroll_cents: Projected bankroll available for additional wagers

    Returns:
        The set of legal actions; empty for finished hands
    """
    if not hand.is_active:
        return frozenset()

    # Split aces get their single card and stand
    if hand.is_split_aces and rules.split_aces_one_card and len(hand.cards) >= 2:
        return frozenset()

    actions = {Action.STAND}
    if not is_blackjack(hand.cards):
        actions.add(Action.HIT)

    opening = is_first_decision and len(hand.cards) == 2
    if not opening:
        return frozenset(actions)

    if can_double(hand, rules, bankroll_cents):
        actions.add(Action.DOUBLE)
    if can_split(hand, rules, num_hands, bankroll_cents):
        actions.add(Action.SPLIT)
    if rules.surrender_allowed:
        actions.add(Action.SURRENDER)
    up_card = dealer.up_card
    if rules.insurance_allowed and up_card is not None and up_card.is_ace:
        actions.add(Action.INSURANCE)

    return frozenset(actions)


def can_double(hand: PlayerHand, rules: RuleSet, bankroll_cents: int) -> bool:
    """Check bankroll cover and the permitted doubling totals."""
    if bankroll_cents < hand.bet_cents:
        return False
    return rules.can_double_on(hand.total)


def can_split(
    hand: PlayerHand,
    rules: RuleSet,
    num_hands: int,
    bankroll_cents: int,
) -> bool:
    """Check split permission, resplit permission, pairing and bankroll cover."""
    if not rules.split_allowed:
        return False
    if num_hands > 1 and not rules.resplit_allowed:
        return False
    if bankroll_cents < hand.bet_cents:
        return False
    return can_split_cards(hand.cards)
