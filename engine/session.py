"""Player session: the only mutable object the engine touches."""

from dataclasses import dataclass, field
from random import Random

from config import config
from engine.cards import Shoe, new_shuffled_shoe
from engine.models import RoundState
from engine.rules import RuleSet
from engine.stats import PlayerStats


@dataclass
class Session:
    """
    One player's table: shoe, rules, bankroll and at most one round.

    The engine replaces fields wholesale after an operation succeeds and never
    patches the values inside them. Callers must serialize access per session.
    """

    shoe: Shoe
    rules: RuleSet
    bankroll_cents: int
    round_state: RoundState | None = None
    stats: PlayerStats = field(default_factory=PlayerStats)
    # Shuffle source; None means the OS entropy source
    rng: Random | None = field(default=None, repr=False, compare=False)


def new_session(
    rules: RuleSet | None = None,
    bankroll_cents: int | None = None,
    rng: Random | None = None,
) -> Session:
    """
    Create a session with a freshly shuffled shoe.

    Args:
        rules: Table rules (built from the game configuration if not provided)
        bankroll_cents: Starting bankroll (configured default if not provided)
        rng: Random number generator for reproducible shuffles
    """
    rules = rules or RuleSet.from_config(config.game)
    if bankroll_cents is None:
        bankroll_cents = config.game.default_bankroll_cents
    return Session(
        shoe=new_shuffled_shoe(rules.num_decks, rng),
        rules=rules,
        bankroll_cents=bankroll_cents,
        rng=rng,
    )


def reset_session(session: Session, bankroll_cents: int | None = None) -> Session:
    """Restore the starting bankroll, drop the round and reshuffle; stats are kept."""
    if bankroll_cents is None:
        bankroll_cents = config.game.default_bankroll_cents
    session.shoe = new_shuffled_shoe(session.rules.num_decks, session.rng)
    session.bankroll_cents = bankroll_cents
    session.round_state = None
    return session
