"""Settlement of finished hands against the dealer.

All amounts are signed integer cents relative to the stake: +bet is an even
money win, -bet a full loss. Stakes themselves are escrowed by the round
controller and are not part of these numbers.
"""

from decimal import ROUND_FLOOR, Decimal
from typing import Sequence

from engine.cards import Card
from engine.hand import hand_total, is_blackjack, is_bust
from engine.models import HandOutcome, HandResult, Outcome, PlayerHand
from engine.rules import RuleSet

INSURANCE_PAYOUT = 2

_SINGLE_HAND_MESSAGES = {
    HandResult.BJ: "Blackjack!",
    HandResult.WIN: "You win!",
    HandResult.LOSS: "Dealer wins",
    HandResult.PUSH: "Push",
    HandResult.SURRENDER: "Surrendered",
}


def blackjack_payout_cents(bet_cents: int, rules: RuleSet) -> int:
    """Return floor(bet × payout) without touching float arithmetic."""
    amount = Decimal(bet_cents) * Decimal(str(rules.blackjack_payout))
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))


def surrender_loss_cents(bet_cents: int) -> int:
    """Return the signed cost of surrendering; an odd cent goes to the house."""
    return -bet_cents // 2


def settle_hand(
    player_cards: Sequence[Card],
    dealer_cards: Sequence[Card],
    bet_cents: int,
    rules: RuleSet,
    surrendered: bool = False,
    split_hand: bool = False,
) -> HandOutcome:
    """
    Settle a single player hand against the dealer.

    A two-card 21 on a split hand is an ordinary 21, never a natural.

    Returns:
        HandOutcome with hand_index 0; callers settling several hands set it
    """
    if surrendered:
        return HandOutcome(0, HandResult.SURRENDER, surrender_loss_cents(bet_cents))

    # Player busts always loses, whatever the dealer ends with
    if is_bust(player_cards):
        return HandOutcome(0, HandResult.LOSS, -bet_cents)

    player_bj = not split_hand and is_blackjack(player_cards)
    dealer_bj = is_blackjack(dealer_cards)

    if player_bj:
        if dealer_bj:
            return HandOutcome(0, HandResult.PUSH, 0)
        return HandOutcome(0, HandResult.BJ, blackjack_payout_cents(bet_cents, rules))

    if dealer_bj:
        return HandOutcome(0, HandResult.LOSS, -bet_cents)

    if is_bust(dealer_cards):
        return HandOutcome(0, HandResult.WIN, bet_cents)

    player_value = hand_total(player_cards)[0]
    dealer_value = hand_total(dealer_cards)[0]
    if player_value > dealer_value:
        return HandOutcome(0, HandResult.WIN, bet_cents)
    if dealer_value > player_value:
        return HandOutcome(0, HandResult.LOSS, -bet_cents)
    return HandOutcome(0, HandResult.PUSH, 0)


def settle_insurance(insurance_cents: int, dealer_cards: Sequence[Card]) -> int:
    """Insurance pays 2:1 when the dealer holds blackjack and is lost otherwise."""
    if insurance_cents <= 0:
        return 0
    if is_blackjack(dealer_cards):
        return insurance_cents * INSURANCE_PAYOUT
    return -insurance_cents


def settle_all_hands(
    hands: Sequence[PlayerHand],
    dealer_cards: Sequence[Card],
    rules: RuleSet,
    insurance_cents: int = 0,
) -> Outcome:
    """
    Settle every hand of a round, each at its own (possibly doubled) bet.

    Args:
        hands: Player hands in turn order
        dealer_cards: Dealer's final cards
        rules: Table rules
        insurance_cents: Insurance side bet, if one was placed

    Returns:
        Outcome with per-hand results, the summed net and a summary message
    """
    results = []
    for index, hand in enumerate(hands):
        outcome = settle_hand(
            hand.cards,
            dealer_cards,
            hand.bet_cents,
            rules,
            surrendered=hand.surrendered,
            split_hand=hand.is_split,
        )
        results.append(HandOutcome(index, outcome.result, outcome.net_payout_cents))

    insurance_net = settle_insurance(insurance_cents, dealer_cards)
    net_cents = sum(r.net_payout_cents for r in results) + insurance_net

    return Outcome(
        results=tuple(results),
        net_cents=net_cents,
        message=summarize(results),
        insurance_net_cents=insurance_net,
    )


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def summarize(results: Sequence[HandOutcome]) -> str:
    """Build the human-readable summary for a settled round."""
    if len(results) == 1:
        return _SINGLE_HAND_MESSAGES[results[0].result]

    wins = sum(1 for r in results if r.result in (HandResult.WIN, HandResult.BJ))
    losses = sum(1 for r in results if r.result is HandResult.LOSS)
    pushes = sum(1 for r in results if r.result is HandResult.PUSH)
    surrenders = sum(1 for r in results if r.result is HandResult.SURRENDER)

    wins_str = _plural(wins, "win", "wins")
    losses_str = _plural(losses, "loss", "losses")
    if losses > wins:
        message = f"{losses_str}, {wins_str}"
    else:
        message = f"{wins_str}, {losses_str}"

    if pushes:
        message += f", {_plural(pushes, 'push', 'pushes')}"
    if surrenders:
        message += f", {_plural(surrenders, 'surrender', 'surrenders')}"
    return message
