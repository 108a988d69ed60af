"""Lifetime player statistics, updated once per settled round."""

from dataclasses import dataclass, replace

from engine.models import HandResult, RoundState


@dataclass(frozen=True)
class PlayerStats:
    """Statistics accumulated across rounds; money in cents."""

    rounds_played: int = 0
    hands_played: int = 0
    hands_won: int = 0
    hands_lost: int = 0
    hands_pushed: int = 0
    blackjacks: int = 0
    busts: int = 0
    doubles_played: int = 0
    doubles_won: int = 0
    splits_played: int = 0
    splits_won: int = 0
    surrenders: int = 0
    insurance_taken: int = 0
    insurance_won: int = 0
    total_wagered_cents: int = 0
    net_profit_cents: int = 0
    biggest_win_cents: int = 0
    biggest_loss_cents: int = 0
    # Positive for consecutive winning rounds, negative for losing ones
    current_streak: int = 0
    longest_win_streak: int = 0
    longest_lose_streak: int = 0

    @property
    def win_rate(self) -> float:
        """Fraction of decided hands (pushes excluded) that were won."""
        decided = self.hands_won + self.hands_lost
        if decided == 0:
            return 0.0
        return self.hands_won / decided


def record_round(stats: PlayerStats, state: RoundState) -> PlayerStats:
    """
    Fold a settled round into the statistics.

    Args:
        stats: Statistics before the round
        state: A round in the SETTLEMENT phase

    Returns:
        Updated statistics; ``stats`` is returned unchanged for unsettled rounds
    """
    if not state.is_settled or state.outcome is None:
        return stats

    results = state.outcome.results
    wins = [r for r in results if r.result in (HandResult.WIN, HandResult.BJ)]
    hands = state.player_hands
    net = state.outcome.net_cents

    streak = stats.current_streak
    if net > 0:
        streak = streak + 1 if streak > 0 else 1
    elif net < 0:
        streak = streak - 1 if streak < 0 else -1

    return replace(
        stats,
        rounds_played=stats.rounds_played + 1,
        hands_played=stats.hands_played + len(results),
        hands_won=stats.hands_won + len(wins),
        hands_lost=stats.hands_lost
        + sum(1 for r in results if r.result in (HandResult.LOSS, HandResult.SURRENDER)),
        hands_pushed=stats.hands_pushed + sum(1 for r in results if r.result is HandResult.PUSH),
        blackjacks=stats.blackjacks + sum(1 for r in results if r.result is HandResult.BJ),
        busts=stats.busts + sum(1 for h in hands if h.total > 21),
        doubles_played=stats.doubles_played + sum(1 for h in hands if h.is_doubled),
        doubles_won=stats.doubles_won + sum(1 for r in wins if hands[r.hand_index].is_doubled),
        splits_played=stats.splits_played + len(hands) - 1,
        splits_won=stats.splits_won + sum(1 for r in wins if hands[r.hand_index].is_split),
        surrenders=stats.surrenders + sum(1 for h in hands if h.surrendered),
        insurance_taken=stats.insurance_taken + (1 if state.insurance_cents else 0),
        insurance_won=stats.insurance_won + (1 if state.outcome.insurance_net_cents > 0 else 0),
        total_wagered_cents=stats.total_wagered_cents + state.wagered_cents,
        net_profit_cents=stats.net_profit_cents + net,
        biggest_win_cents=max(stats.biggest_win_cents, net),
        biggest_loss_cents=max(stats.biggest_loss_cents, -net),
        current_streak=streak,
        longest_win_streak=max(stats.longest_win_streak, streak),
        longest_lose_streak=max(stats.longest_lose_streak, -streak),
    )
