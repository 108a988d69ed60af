"""Pytest fixtures for round engine tests."""

import pytest
from random import Random

from engine.cards import Shoe, cards_from_string
from engine.game import EventEmitter, RoundController
from engine.rules import RuleSet
from engine.session import Session, new_session


def stacked_shoe(player: str, dealer: str, draws: str = "") -> Shoe:
    """
    Build a shoe that deals known cards.

    The opening deal alternates player, dealer, player, dealer (hole), so the
    two-card hands are interleaved here; ``draws`` follow in order.
    """
    p = cards_from_string(player)
    d = cards_from_string(dealer)
    return Shoe(cards=(p[0], d[0], p[1], d[1]) + cards_from_string(draws))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def rules():
    """Default ruleset that never reshuffles a stacked shoe mid-test."""
    return RuleSet(reshuffle_threshold=0.0)


@pytest.fixture
def full_rules():
    """Rules with every option enabled."""
    return RuleSet(
        resplit_allowed=True,
        insurance_allowed=True,
        surrender_allowed=True,
        reshuffle_threshold=0.0,
    )


@pytest.fixture
def make_session(rules):
    """Factory for sessions dealt from a stacked shoe."""

    def _make(
        player: str,
        dealer: str,
        draws: str = "",
        table_rules: RuleSet | None = None,
        bankroll_cents: int = 100_000,
    ) -> Session:
        return Session(
            shoe=stacked_shoe(player, dealer, draws),
            rules=table_rules or rules,
            bankroll_cents=bankroll_cents,
        )

    return _make


@pytest.fixture
def session(rng):
    """A session with a seeded, shuffled 6-deck shoe."""
    return new_session(rules=RuleSet(), bankroll_cents=100_000, rng=rng)


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture
def controller(emitter):
    """Round controller recording into ``emitter``."""
    return RoundController(emitter)
