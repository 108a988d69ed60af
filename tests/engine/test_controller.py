"""Tests for the round controller."""

import copy
from random import Random

import pytest
from hypothesis import given, settings, strategies as st
from transitions import MachineError

from engine.cards import Shoe, cards_from_string, create_shoe
from engine.errors import (
    EmptyShoeError,
    IllegalActionError,
    InsufficientBankrollError,
    InvalidBetError,
    InvalidHandIndexError,
    NoActiveRoundError,
    RoundInProgressError,
    WrongPhaseError,
)
from engine.game import EventType, RoundController, RoundFlow, apply_action, deal, get_state
from engine.models import Action, HandResult, HandStatus, Phase
from engine.rules import RuleSet
from engine.session import new_session


class TestDeal:
    """Tests for starting a round."""

    def test_deal_starts_player_turn(self, make_session, controller):
        """Test that a deal reserves the bet and waits for the player."""
        session = make_session("10H 6D", "9S 7C")
        state = controller.deal(session, 1000)

        assert state.phase is Phase.PLAYER_TURN
        assert len(state.player_hands) == 1
        assert len(state.player_hands[0].cards) == 2
        assert state.legal_actions
        assert state.bankroll_cents == 99_000
        assert session.bankroll_cents == 99_000
        assert session.round_state is state

    def test_deal_on_shuffled_shoe(self, session, controller):
        """Test the deal against a real shoe, whatever cards come out."""
        state = controller.deal(session, 1000)

        assert session.shoe.dealt_count >= 4
        if state.phase is Phase.PLAYER_TURN:
            assert state.bankroll_cents == 99_000
            assert len(state.player_hands[0].cards) == 2
        else:
            assert state.is_settled
            assert state.bankroll_cents - 100_000 == state.outcome.net_cents

    def test_hole_card_hidden(self, make_session, controller):
        state = controller.deal(make_session("10H 6D", "9S 7C"), 1000)

        assert not state.dealer.hole_revealed
        assert state.dealer.total is None
        assert state.dealer.visible_cards == cards_from_string("9S")

    def test_deal_order(self, make_session, controller):
        """Test that cards alternate player, dealer, player, dealer."""
        state = controller.deal(make_session("10H 6D", "9S 7C"), 1000)

        assert state.player_hands[0].cards == cards_from_string("10H 6D")
        assert state.dealer.cards == cards_from_string("9S 7C")

    def test_player_blackjack_settles(self, make_session, controller):
        """Test that a natural goes straight to settlement at 3:2."""
        session = make_session("AS KD", "10S 7C")
        state = controller.deal(session, 1000)

        assert state.phase is Phase.SETTLEMENT
        assert state.dealer.hole_revealed
        assert state.player_hands[0].status is HandStatus.BLACKJACK
        assert state.outcome.results[0].result is HandResult.BJ
        assert state.outcome.net_cents == 1500
        assert session.bankroll_cents == 101_500
        assert state.legal_actions == frozenset()

    def test_blackjack_against_dealer_blackjack(self, make_session, controller):
        state = controller.deal(make_session("AS KD", "AC 10C"), 1000)

        assert state.phase is Phase.SETTLEMENT
        assert state.outcome.results[0].result is HandResult.PUSH
        assert state.bankroll_cents == 100_000

    def test_deal_again_after_settlement(self, make_session, controller):
        session = make_session("AS KD", "10S 7C", "10H 6D 9S 7C")
        controller.deal(session, 1000)

        state = controller.deal(session, 1000)
        assert state.phase is Phase.PLAYER_TURN
        assert state.bankroll_cents == 100_500


class TestHit:
    """Tests for HIT."""

    def test_hit_to_21_stays_active(self, make_session, controller):
        """Test that 21 on three cards keeps the hand in play without opening options."""
        session = make_session("10H 6D", "9S 7C", "5C")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.HIT, 0)

        hand = state.player_hands[0]
        assert len(hand.cards) == 3
        assert hand.total == 21
        assert hand.status is HandStatus.ACTIVE
        assert state.phase is Phase.PLAYER_TURN
        assert Action.DOUBLE not in state.legal_actions
        assert Action.SPLIT not in state.legal_actions

    def test_hit_then_stand_wins(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C", "5C 2D")
        controller.deal(session, 1000)
        controller.apply_action(session, Action.HIT, 0)
        state = controller.apply_action(session, Action.STAND, 0)

        assert state.phase is Phase.SETTLEMENT
        assert state.dealer.total == 18
        assert state.outcome.results[0].result is HandResult.WIN
        assert session.bankroll_cents == 101_000

    def test_bust_skips_dealer_draw(self, make_session, controller):
        """Test that the dealer reveals but does not draw once every hand has busted."""
        session = make_session("10H 6D", "9S 7C", "KC")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.HIT, 0)

        assert state.phase is Phase.SETTLEMENT
        assert state.player_hands[0].status is HandStatus.BUST
        assert state.dealer.hole_revealed
        assert len(state.dealer.cards) == 2
        assert session.shoe.cards_remaining == 0
        assert state.outcome.results[0].result is HandResult.LOSS
        assert session.bankroll_cents == 99_000


class TestDouble:
    """Tests for DOUBLE."""

    def test_double_last_hand_settles(self, make_session, controller):
        session = make_session("5H 6D", "9S 7C", "KC 4D")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.DOUBLE, 0)

        hand = state.player_hands[0]
        assert hand.bet_cents == 2000
        assert hand.is_doubled
        assert len(hand.cards) == 3
        assert state.phase is Phase.SETTLEMENT
        assert state.outcome.net_cents == 2000
        assert session.bankroll_cents == 102_000

    def test_double_on_split_hand_moves_on(self, make_session, controller):
        session = make_session("8H 8D", "9S 7C", "3C 10S 9D")
        controller.deal(session, 1000)
        controller.apply_action(session, Action.SPLIT, 0)
        state = controller.apply_action(session, Action.DOUBLE, 0)

        assert state.phase is Phase.PLAYER_TURN
        assert state.active_hand_index == 1
        assert state.player_hands[0].bet_cents == 2000
        assert len(state.player_hands[0].cards) == 3
        assert state.bankroll_cents == 97_000

    def test_double_bust(self, make_session, controller):
        session = make_session("10H 2D", "9S 7C", "KC")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.DOUBLE, 0)

        assert state.player_hands[0].status is HandStatus.BUST
        assert state.outcome.net_cents == -2000
        assert session.bankroll_cents == 98_000


class TestSplit:
    """Tests for SPLIT."""

    def test_split_creates_two_hands(self, make_session, controller):
        session = make_session("8H 8D", "9S 7C", "3C 10S")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SPLIT, 0)

        assert len(state.player_hands) == 2
        assert all(len(h.cards) == 2 for h in state.player_hands)
        assert state.player_hands[0].cards == cards_from_string("8H 3C")
        assert state.player_hands[1].cards == cards_from_string("8D 10S")
        assert all(h.bet_cents == 1000 for h in state.player_hands)
        assert state.bankroll_cents == 98_000
        assert state.active_hand_index == 0
        assert Action.DOUBLE in state.legal_actions

    def test_split_hands_play_in_order(self, make_session, controller):
        session = make_session("8H 8D", "9S 7C", "3C 10S 5D")
        controller.deal(session, 1000)
        controller.apply_action(session, Action.SPLIT, 0)
        state = controller.apply_action(session, Action.STAND, 0)

        assert state.phase is Phase.PLAYER_TURN
        assert state.active_hand_index == 1

        state = controller.apply_action(session, Action.STAND, 1)
        # Dealer 16 draws 5 for 21
        assert state.phase is Phase.SETTLEMENT
        assert state.dealer.total == 21
        assert state.outcome.message == "2 losses, 0 wins"
        assert session.bankroll_cents == 98_000

    def test_split_aces_get_one_card(self, make_session, controller):
        """Test that split aces stand on one card and a 21 there pays even money."""
        session = make_session("AH AD", "9S 7C", "KC 5D 2S")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SPLIT, 0)

        assert state.phase is Phase.SETTLEMENT
        assert all(h.is_split_aces for h in state.player_hands)
        assert [len(h.cards) for h in state.player_hands] == [2, 2]
        assert state.outcome.results[0].result is HandResult.WIN
        assert state.outcome.results[0].net_payout_cents == 1000
        assert state.outcome.results[1].result is HandResult.LOSS
        assert session.bankroll_cents == 100_000

    def test_split_21_moves_to_next_hand(self, make_session, controller):
        """Test that a first hand reaching 21 stands and play continues on the second."""
        session = make_session("KH KD", "9S 7C", "AC 5D 3S")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SPLIT, 0)

        assert state.player_hands[0].status is HandStatus.STAND
        assert state.player_hands[0].total == 21
        assert state.active_hand_index == 1
        assert state.phase is Phase.PLAYER_TURN

        state = controller.apply_action(session, Action.STAND, 1)
        assert state.outcome.results[0].result is HandResult.WIN
        assert state.outcome.results[0].net_payout_cents == 1000

    def test_second_split_hand_21_is_skipped(self, make_session, controller):
        session = make_session("KH KD", "9S 7C", "5D AC 3S")
        controller.deal(session, 1000)
        controller.apply_action(session, Action.SPLIT, 0)
        state = controller.apply_action(session, Action.STAND, 0)

        assert state.phase is Phase.SETTLEMENT
        assert state.player_hands[1].status is HandStatus.STAND

    def test_no_resplit_by_default(self, make_session, controller):
        session = make_session("8H 8D", "9S 7C", "8C 10S")
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SPLIT, 0)

        assert Action.SPLIT not in state.legal_actions

    def test_resplit_when_allowed(self, make_session, controller, full_rules):
        session = make_session("8H 8D", "9S 7C", "8C 10S 2C 3C", table_rules=full_rules)
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SPLIT, 0)
        assert Action.SPLIT in state.legal_actions

        state = controller.apply_action(session, Action.SPLIT, 0)
        assert len(state.player_hands) == 3
        assert state.player_hands[2].cards == cards_from_string("8D 10S")
        assert state.bankroll_cents == 97_000


class TestSurrender:
    """Tests for SURRENDER."""

    def test_single_hand_surrender(self, make_session, controller, full_rules):
        session = make_session("10H 6D", "10S 7C", table_rules=full_rules)
        controller.deal(session, 1000)
        state = controller.apply_action(session, Action.SURRENDER, 0)

        assert state.phase is Phase.SETTLEMENT
        assert state.dealer.hole_revealed
        assert state.player_hands[0].surrendered
        assert state.outcome.results[0].result is HandResult.SURRENDER
        assert state.outcome.net_cents == -500
        assert session.bankroll_cents == 99_500
        assert session.shoe.dealt_count == 4

    def test_odd_cent_surrender(self, make_session, controller, full_rules):
        """Test that the odd cent of a surrendered bet stays with the house."""
        session = make_session("10H 6D", "10S 7C", table_rules=full_rules)
        controller.deal(session, 1001)
        state = controller.apply_action(session, Action.SURRENDER, 0)

        assert state.outcome.net_cents == -501
        assert session.bankroll_cents == 100_000 - 501

    def test_surrender_one_split_hand(self, make_session, controller, full_rules):
        session = make_session("8H 8D", "10S 7C", "2C 10D", table_rules=full_rules)
        controller.deal(session, 1000)
        controller.apply_action(session, Action.SPLIT, 0)
        state = controller.apply_action(session, Action.SURRENDER, 0)

        assert state.phase is Phase.PLAYER_TURN
        assert state.active_hand_index == 1
        assert state.player_hands[0].status is HandStatus.DONE
        assert state.bankroll_cents == 98_500

        state = controller.apply_action(session, Action.STAND, 1)
        assert state.outcome.results[0].result is HandResult.SURRENDER
        assert state.outcome.results[1].result is HandResult.WIN
        assert state.outcome.net_cents == 500
        assert state.outcome.message == "1 win, 0 losses, 1 surrender"
        assert session.bankroll_cents == 100_500


class TestInsurance:
    """Tests for the insurance side bet."""

    def test_insurance_pays_on_dealer_blackjack(self, make_session, controller, full_rules):
        session = make_session("10H 6D", "AS KC", table_rules=full_rules)
        state = controller.deal(session, 1000)
        assert Action.INSURANCE in state.legal_actions

        state = controller.apply_action(session, Action.INSURANCE, 0)
        assert state.insurance_cents == 500
        assert state.bankroll_cents == 98_500
        assert Action.INSURANCE not in state.legal_actions
        assert Action.DOUBLE in state.legal_actions

        state = controller.apply_action(session, Action.STAND, 0)
        assert state.outcome.insurance_net_cents == 1000
        assert state.outcome.net_cents == 0
        assert session.bankroll_cents == 100_000

    def test_insurance_lost(self, make_session, controller, full_rules):
        session = make_session("10H 8D", "AS 7C", table_rules=full_rules)
        controller.deal(session, 1000)
        controller.apply_action(session, Action.INSURANCE, 0)
        state = controller.apply_action(session, Action.STAND, 0)

        assert state.outcome.results[0].result is HandResult.PUSH
        assert state.outcome.insurance_net_cents == -500
        assert session.bankroll_cents == 99_500

    def test_insurance_needs_bankroll(self, make_session, controller, full_rules):
        session = make_session("10H 6D", "AS KC", table_rules=full_rules, bankroll_cents=1000)
        state = controller.deal(session, 1000)
        assert Action.INSURANCE not in state.legal_actions


class TestRejections:
    """Rejected operations leave the session exactly as it was."""

    @pytest.mark.parametrize("bet", [50, 20_000, 0, -100, 10.5, "1000", True])
    def test_invalid_bet(self, make_session, controller, bet):
        session = make_session("10H 6D", "9S 7C")
        before = copy.copy(session)
        with pytest.raises(InvalidBetError):
            controller.deal(session, bet)
        assert session == before

    def test_insufficient_bankroll(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C", bankroll_cents=500)
        before = copy.copy(session)
        with pytest.raises(InsufficientBankrollError):
            controller.deal(session, 1000)
        assert session == before

    def test_round_in_progress(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C", "2C 3C 4C 5C")
        controller.deal(session, 1000)
        before = copy.copy(session)
        with pytest.raises(RoundInProgressError):
            controller.deal(session, 1000)
        assert session == before

    def test_no_active_round(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C")
        with pytest.raises(NoActiveRoundError):
            controller.apply_action(session, Action.HIT, 0)

    def test_wrong_phase(self, make_session, controller):
        session = make_session("AS KD", "10S 7C")
        controller.deal(session, 1000)
        before = copy.copy(session)
        with pytest.raises(WrongPhaseError):
            controller.apply_action(session, Action.HIT, 0)
        assert session == before

    def test_wrong_hand_index(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C", "5C")
        controller.deal(session, 1000)
        before = copy.copy(session)
        with pytest.raises(InvalidHandIndexError):
            controller.apply_action(session, Action.HIT, 1)
        assert session == before

    def test_illegal_action(self, make_session, controller):
        session = make_session("10H 6D", "9S 7C")
        controller.deal(session, 1000)
        before = copy.copy(session)
        with pytest.raises(IllegalActionError):
            controller.apply_action(session, Action.SPLIT, 0)
        with pytest.raises(IllegalActionError):
            controller.apply_action(session, "fold", 0)
        assert session == before

    def test_empty_shoe_mid_action(self, make_session, controller, emitter):
        """Test that running out of cards rolls the whole action back."""
        session = make_session("10H 6D", "9S 7C")
        controller.deal(session, 1000)
        before = copy.copy(session)
        emitted = len(emitter.history)

        with pytest.raises(EmptyShoeError):
            controller.apply_action(session, Action.HIT, 0)
        assert session == before
        assert len(emitter.history) == emitted

    def test_empty_shoe_on_deal(self, rules, controller, emitter):
        session = new_session(rules=rules, bankroll_cents=100_000)
        session.shoe = Shoe(cards=cards_from_string("2C 3C 4C"))
        before = copy.copy(session)

        with pytest.raises(EmptyShoeError):
            controller.deal(session, 1000)
        assert session == before
        assert emitter.history == []


class TestReshuffle:
    """Tests for between-round reshuffling."""

    def test_reshuffles_at_threshold(self, controller, emitter):
        rules = RuleSet(num_decks=1, reshuffle_threshold=0.25)
        session = new_session(rules=rules, bankroll_cents=100_000, rng=Random(42))
        session.shoe = Shoe(cards=create_shoe(1).cards, dealt_count=39)

        controller.deal(session, 1000)

        assert session.shoe.total_cards == 52
        assert session.shoe.dealt_count < 39
        assert emitter.history[0].event_type is EventType.SHOE_SHUFFLED

    def test_no_reshuffle_above_threshold(self, controller, emitter):
        rules = RuleSet(num_decks=1, reshuffle_threshold=0.25)
        session = new_session(rules=rules, bankroll_cents=100_000, rng=Random(42))
        session.shoe = Shoe(cards=create_shoe(1).cards, dealt_count=30)

        controller.deal(session, 1000)

        assert session.shoe.dealt_count >= 34
        assert EventType.SHOE_SHUFFLED not in [e.event_type for e in emitter.history]


class TestEvents:
    """Tests for the committed audit trail."""

    def test_double_event_sequence(self, make_session, controller, emitter):
        session = make_session("5H 6D", "9S 7C", "KC 4D")
        controller.deal(session, 1000)
        controller.apply_action(session, Action.DOUBLE, 0)

        assert [e.event_type for e in emitter.history] == [
            EventType.ROUND_STARTED,
            EventType.CARD_DEALT,
            EventType.CARD_DEALT,
            EventType.CARD_DEALT,
            EventType.CARD_DEALT,
            EventType.CARD_DEALT,
            EventType.PLAYER_DOUBLE,
            EventType.DEALER_REVEALS,
            EventType.CARD_DEALT,
            EventType.DEALER_HITS,
            EventType.DEALER_STANDS,
            EventType.ROUND_SETTLED,
        ]

    def test_hole_card_event_is_hidden(self, make_session, controller, emitter):
        controller.deal(make_session("10H 6D", "9S 7C"), 1000)

        dealt = [e for e in emitter.history if e.event_type is EventType.CARD_DEALT]
        assert [e.data["hand"] for e in dealt] == ["player", "dealer", "player", "dealer"]
        assert dealt[3].data["card"] == "??"
        assert dealt[1].data["card"] == "9♠"

    def test_subscriber_sees_settlement(self, make_session, controller, emitter):
        settled = []
        emitter.subscribe(settled.append, EventType.ROUND_SETTLED)
        controller.deal(make_session("AS KD", "10S 7C"), 1000)

        assert len(settled) == 1
        assert settled[0].data["net_cents"] == 1500

    def test_rejection_emits_nothing(self, make_session, controller, emitter):
        with pytest.raises(InvalidBetError):
            controller.deal(make_session("10H 6D", "9S 7C"), 1)
        assert emitter.history == []


class TestModuleFunctions:
    """Tests for the module-level entry points."""

    def test_deal_apply_get_state(self, make_session):
        session = make_session("10H 6D", "9S 7C", "5C 2D")
        deal(session, 1000)
        apply_action(session, "hit", 0)
        state = apply_action(session, "STAND", 0)

        view = get_state(session)
        assert view.round_state is state
        assert view.bankroll_cents == 101_000

    def test_get_state_without_round(self, make_session):
        view = get_state(make_session("10H 6D", "9S 7C"))
        assert view.round_state is None
        assert view.bankroll_cents == 100_000

    def test_stats_follow_settlement(self, make_session):
        session = make_session("5H 6D", "9S 7C", "KC 4D")
        deal(session, 1000)
        apply_action(session, Action.DOUBLE, 0)

        assert session.stats.rounds_played == 1
        assert session.stats.doubles_won == 1
        assert session.stats.net_profit_cents == 2000
        assert session.stats.total_wagered_cents == 2000


class TestRoundFlow:
    """Tests for the phase machine."""

    def test_normal_flow(self):
        flow = RoundFlow()
        assert flow.phase is Phase.PLAYER_TURN
        flow.player_action()
        flow.player_done()
        assert flow.phase is Phase.DEALER_TURN
        flow.dealer_done()
        assert flow.phase is Phase.SETTLEMENT

    def test_no_transition_out_of_settlement(self):
        flow = RoundFlow(Phase.SETTLEMENT)
        with pytest.raises(MachineError):
            flow.player_action()


@settings(max_examples=50, deadline=None)
@given(
    seed=st.integers(min_value=0, max_value=10_000),
    choices=st.lists(st.sampled_from(list(Action)), max_size=12),
)
def test_bankroll_moves_by_round_net(seed, choices):
    """Whatever the player does, the bankroll changes by exactly the settled net."""
    rules = RuleSet(
        resplit_allowed=True,
        insurance_allowed=True,
        surrender_allowed=True,
    )
    session = new_session(rules=rules, bankroll_cents=100_000, rng=Random(seed))
    controller = RoundController()

    state = controller.deal(session, 1000)
    pending = list(choices)
    while state.phase is Phase.PLAYER_TURN:
        assert session.bankroll_cents == state.bankroll_cents
        action = pending.pop(0) if pending else Action.STAND
        if action not in state.legal_actions:
            action = Action.STAND
        state = controller.apply_action(session, action, state.active_hand_index)

    assert state.phase is Phase.SETTLEMENT
    assert session.bankroll_cents - 100_000 == state.outcome.net_cents
    assert len(state.outcome.results) == len(state.player_hands)
