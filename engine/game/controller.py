"""Round controller: the blackjack round state machine.

Every operation works on a private draft of the round and commits the new
shoe, bankroll and ``RoundState`` to the session in one step at the end. A
rejected or failed operation therefore leaves the session untouched.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from transitions import Machine

from engine.actions import legal_actions
from engine.cards import Card, Shoe, draw_card, new_shuffled_shoe, should_reshuffle
from engine.dealer import play_dealer_hand
from engine.errors import (
    EngineError,
    IllegalActionError,
    InsufficientBankrollError,
    InvalidBetError,
    InvalidHandIndexError,
    NoActiveRoundError,
    RoundInProgressError,
    WrongPhaseError,
)
from engine.game.events import EventEmitter, EventType
from engine.hand import BLACKJACK, hand_total, is_blackjack
from engine.models import (
    Action,
    DealerHand,
    HandStatus,
    Outcome,
    Phase,
    PlayerHand,
    RoundState,
)
from engine.rules import RuleSet
from engine.session import Session
from engine.settlement import settle_all_hands
from engine.stats import record_round

logger = logging.getLogger(__name__)

HIDDEN_CARD = "??"


class RoundFlow:
    """Round phase tracker backed by a transitions state machine."""

    STATES = [p.name.lower() for p in Phase]

    TRANSITIONS = [
        {"trigger": "player_action", "source": "player_turn", "dest": "player_turn"},
        {"trigger": "player_done", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "surrender_round", "source": "player_turn", "dest": "settlement"},
        {"trigger": "dealer_done", "source": "dealer_turn", "dest": "settlement"},
    ]

    def __init__(self, phase: Phase = Phase.PLAYER_TURN) -> None:
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=phase.name.lower(),
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def phase(self) -> Phase:
        """Get current phase as enum."""
        return Phase[self._machine_state.upper()]  # type: ignore


@dataclass
class _Draft:
    """Working copy of a round for the duration of one operation."""

    rules: RuleSet
    shoe: Shoe
    bankroll_cents: int
    base_bet_cents: int
    dealer: DealerHand
    hands: list[PlayerHand]
    flow: RoundFlow
    active_hand_index: int = 0
    insurance_cents: int = 0
    legal: frozenset[Action] = frozenset()
    outcome: Outcome | None = None
    events: list[tuple[EventType, dict[str, Any]]] = field(default_factory=list)

    @classmethod
    def from_round(cls, session: Session, state: RoundState) -> "_Draft":
        return cls(
            rules=session.rules,
            shoe=session.shoe,
            bankroll_cents=state.bankroll_cents,
            base_bet_cents=state.base_bet_cents,
            dealer=state.dealer,
            hands=list(state.player_hands),
            flow=RoundFlow(state.phase),
            active_hand_index=state.active_hand_index,
            insurance_cents=state.insurance_cents,
            legal=state.legal_actions,
        )

    @property
    def hand(self) -> PlayerHand:
        return self.hands[self.active_hand_index]

    @hand.setter
    def hand(self, hand: PlayerHand) -> None:
        self.hands[self.active_hand_index] = hand

    def draw(self) -> Card:
        card, self.shoe = draw_card(self.shoe)
        return card

    def record(self, event_type: EventType, **data: Any) -> None:
        self.events.append((event_type, data))

    def to_state(self) -> RoundState:
        return RoundState(
            phase=self.flow.phase,
            bankroll_cents=self.bankroll_cents,
            base_bet_cents=self.base_bet_cents,
            dealer=self.dealer,
            player_hands=tuple(self.hands),
            active_hand_index=self.active_hand_index,
            legal_actions=self.legal,
            outcome=self.outcome,
            insurance_cents=self.insurance_cents,
        )


@dataclass(frozen=True)
class RoundView:
    """Read-only projection of a session for clients."""

    round_state: RoundState | None
    bankroll_cents: int


def _rejected(error: EngineError) -> EngineError:
    logger.debug("Rejected: %s", error)
    return error


class RoundController:
    """
    Drives rounds against an explicit session.

    The controller itself holds no round state between calls; it only owns
    the emitter that receives the audit trail of committed transitions.
    """

    def __init__(self, emitter: EventEmitter | None = None) -> None:
        self.events = emitter or EventEmitter()
        self._handlers: dict[Action, Callable[[_Draft], None]] = {
            Action.HIT: self._hit,
            Action.STAND: self._stand,
            Action.DOUBLE: self._double,
            Action.SPLIT: self._split,
            Action.SURRENDER: self._surrender,
            Action.INSURANCE: self._insurance,
        }

    def deal(self, session: Session, bet_cents: int) -> RoundState:
        """
        Start a new round.

        Args:
            session: Session to play in
            bet_cents: Wager for the starting hand

        Returns:
            The new round state

        Raises:
            InvalidBetError: Bet is not a whole number of cents within table limits
            RoundInProgressError: The current round is still awaiting the player
            InsufficientBankrollError: Bet exceeds the bankroll
        """
        rules = session.rules
        if isinstance(bet_cents, bool) or not isinstance(bet_cents, int):
            raise _rejected(InvalidBetError(f"Bet must be whole cents, got {bet_cents!r}"))
        if not rules.min_bet_cents <= bet_cents <= rules.max_bet_cents:
            raise _rejected(
                InvalidBetError(
                    f"Bet must be between {rules.min_bet_cents} and {rules.max_bet_cents} cents"
                )
            )
        current = session.round_state
        if current is not None and current.phase is Phase.PLAYER_TURN:
            raise _rejected(RoundInProgressError("Finish the current round before dealing"))
        if bet_cents > session.bankroll_cents:
            raise _rejected(InsufficientBankrollError("Insufficient bankroll"))

        # Only ever reshuffle between rounds
        shoe = session.shoe
        reshuffled = should_reshuffle(shoe, rules.reshuffle_threshold)
        if reshuffled:
            shoe = new_shuffled_shoe(rules.num_decks, session.rng)
            logger.debug("Reshuffling %d-deck shoe", rules.num_decks)

        draft = _Draft(
            rules=rules,
            shoe=shoe,
            bankroll_cents=session.bankroll_cents - bet_cents,
            base_bet_cents=bet_cents,
            dealer=DealerHand(cards=()),
            hands=[],
            flow=RoundFlow(),
        )
        if reshuffled:
            draft.record(EventType.SHOE_SHUFFLED, num_decks=rules.num_decks)
        draft.record(EventType.ROUND_STARTED, bet_cents=bet_cents)

        # Deal: player, dealer, player, dealer (hole)
        dealt = [draft.draw() for _ in range(4)]
        player_1, dealer_up, player_2, dealer_hole = dealt
        for position, card in enumerate(dealt):
            if position % 2 == 0:
                draft.record(EventType.CARD_DEALT, card=str(card), hand="player", hand_index=0)
            elif position == 3:
                draft.record(EventType.CARD_DEALT, card=HIDDEN_CARD, hand="dealer")
            else:
                draft.record(EventType.CARD_DEALT, card=str(card), hand="dealer")

        player_cards = (player_1, player_2)
        natural = is_blackjack(player_cards)
        draft.hands = [
            PlayerHand.from_cards(
                player_cards,
                bet_cents,
                status=HandStatus.BLACKJACK if natural else HandStatus.ACTIVE,
            )
        ]
        draft.dealer = DealerHand(cards=(dealer_up, dealer_hole))

        if natural:
            draft.record(EventType.PLAYER_BLACKJACK, hand_index=0)
            draft.flow.player_done()
            self._finalize_dealer_turn(draft)
        else:
            draft.legal = self._legal_for(draft, first_decision=True)

        state = self._commit(session, draft)
        logger.info("Round started: bet=%d bankroll=%d", bet_cents, state.bankroll_cents)
        return state

    def apply_action(
        self,
        session: Session,
        action: Action | str,
        hand_index: int,
    ) -> RoundState:
        """
        Apply a player decision to the active hand.

        Raises:
            NoActiveRoundError: The session has no round
            WrongPhaseError: The round is not in the player's turn
            InvalidHandIndexError: hand_index is not the active hand
            IllegalActionError: The action is unknown or not currently legal
        """
        state = session.round_state
        if state is None:
            raise _rejected(NoActiveRoundError("No active round"))
        if state.phase is not Phase.PLAYER_TURN:
            raise _rejected(WrongPhaseError(f"Cannot act during {state.phase}"))
        if hand_index != state.active_hand_index:
            raise _rejected(
                InvalidHandIndexError(
                    f"Hand {hand_index} is not the active hand ({state.active_hand_index})"
                )
            )
        if isinstance(action, str):
            try:
                action = Action[action.upper()]
            except KeyError:
                raise _rejected(IllegalActionError(f"Unknown action: {action}")) from None
        if action not in state.legal_actions:
            raise _rejected(IllegalActionError(f"Action {action} is not legal"))

        draft = _Draft.from_round(session, state)
        logger.debug("Applying %s to hand %d", action, hand_index)
        self._handlers[action](draft)
        return self._commit(session, draft)

    def get_state(self, session: Session) -> RoundView:
        """Return the current round (or None) and bankroll without changing anything."""
        return RoundView(round_state=session.round_state, bankroll_cents=session.bankroll_cents)

    # Action handlers

    def _hit(self, draft: _Draft) -> None:
        card = draft.draw()
        hand = draft.hand.with_card(card)
        draft.record(
            EventType.CARD_DEALT,
            card=str(card),
            hand="player",
            hand_index=draft.active_hand_index,
        )
        draft.record(EventType.PLAYER_HIT, hand_index=draft.active_hand_index, hand_value=hand.total)

        if hand.total > BLACKJACK:
            draft.hand = hand.with_status(HandStatus.BUST)
            draft.record(EventType.PLAYER_BUSTS, hand_index=draft.active_hand_index)
            self._advance(draft)
            return

        draft.hand = hand
        draft.flow.player_action()
        draft.legal = self._legal_for(draft, first_decision=False)

    def _stand(self, draft: _Draft) -> None:
        draft.hand = draft.hand.with_status(HandStatus.STAND)
        draft.record(
            EventType.PLAYER_STAND,
            hand_index=draft.active_hand_index,
            hand_value=draft.hand.total,
        )
        self._advance(draft)

    def _double(self, draft: _Draft) -> None:
        hand = draft.hand
        draft.bankroll_cents -= hand.bet_cents

        card = draft.draw()
        hand = replace(hand, bet_cents=hand.bet_cents * 2, is_doubled=True).with_card(card)
        busted = hand.total > BLACKJACK
        draft.hand = hand.with_status(HandStatus.BUST if busted else HandStatus.STAND)

        draft.record(
            EventType.CARD_DEALT,
            card=str(card),
            hand="player",
            hand_index=draft.active_hand_index,
        )
        draft.record(
            EventType.PLAYER_DOUBLE,
            hand_index=draft.active_hand_index,
            hand_value=hand.total,
            new_bet_cents=hand.bet_cents,
        )
        if busted:
            draft.record(EventType.PLAYER_BUSTS, hand_index=draft.active_hand_index)
        self._advance(draft)

    def _split(self, draft: _Draft) -> None:
        hand = draft.hand
        index = draft.active_hand_index
        draft.bankroll_cents -= hand.bet_cents

        split_aces = hand.cards[0].is_ace
        one_card = split_aces and draft.rules.split_aces_one_card

        new_hands = []
        for offset, card in enumerate(hand.cards):
            drawn = draft.draw()
            cards = (card, drawn)
            # A split 21 is not a natural and needs no decision
            done = one_card or hand_total(cards)[0] == BLACKJACK
            new_hands.append(
                PlayerHand.from_cards(
                    cards,
                    hand.bet_cents,
                    status=HandStatus.STAND if done else HandStatus.ACTIVE,
                    is_split=True,
                    is_split_aces=split_aces,
                )
            )
            draft.record(EventType.CARD_DEALT, card=str(drawn), hand="player", hand_index=index + offset)

        draft.hands[index : index + 1] = new_hands
        draft.record(
            EventType.PLAYER_SPLIT,
            hand_index=index,
            hand1_value=new_hands[0].total,
            hand2_value=new_hands[1].total,
        )

        if draft.hand.is_active:
            draft.flow.player_action()
            draft.legal = self._legal_for(draft, first_decision=True)
        else:
            self._advance(draft)

    def _surrender(self, draft: _Draft) -> None:
        hand = draft.hand
        refund = hand.bet_cents // 2
        draft.bankroll_cents += refund
        draft.hand = replace(hand, status=HandStatus.DONE, surrendered=True)
        draft.record(
            EventType.PLAYER_SURRENDER,
            hand_index=draft.active_hand_index,
            refund_cents=refund,
        )

        if len(draft.hands) > 1:
            self._advance(draft)
            return

        # A lone surrendered hand ends the round without dealer play
        draft.dealer = draft.dealer.revealed()
        self._record_reveal(draft)
        draft.flow.surrender_round()
        self._settle(draft)

    def _insurance(self, draft: _Draft) -> None:
        amount = draft.base_bet_cents // 2
        draft.bankroll_cents -= amount
        draft.insurance_cents = amount
        draft.record(EventType.INSURANCE_TAKEN, amount_cents=amount)
        draft.flow.player_action()
        draft.legal = self._legal_for(draft, first_decision=True)

    # Turn order and dealer play

    def _legal_for(self, draft: _Draft, first_decision: bool) -> frozenset[Action]:
        actions = legal_actions(
            draft.hand,
            draft.dealer,
            draft.rules,
            first_decision,
            len(draft.hands),
            draft.bankroll_cents,
        )
        if Action.INSURANCE in actions and not self._insurance_open(draft):
            actions = actions - {Action.INSURANCE}
        return actions

    @staticmethod
    def _insurance_open(draft: _Draft) -> bool:
        """Insurance is a single side bet on the unsplit starting hand."""
        amount = draft.base_bet_cents // 2
        return (
            draft.insurance_cents == 0
            and len(draft.hands) == 1
            and 0 < amount <= draft.bankroll_cents
        )

    def _advance(self, draft: _Draft) -> None:
        """Move to the next hand awaiting a decision, or on to the dealer."""
        pending = [i for i, h in enumerate(draft.hands) if h.is_active]
        if not pending:
            draft.flow.player_done()
            self._finalize_dealer_turn(draft)
            return

        later = [i for i in pending if i > draft.active_hand_index]
        draft.active_hand_index = later[0] if later else pending[0]
        draft.flow.player_action()
        draft.legal = self._legal_for(draft, first_decision=True)

    def _finalize_dealer_turn(self, draft: _Draft) -> None:
        draft.legal = frozenset()
        draft.dealer = draft.dealer.revealed()
        self._record_reveal(draft)

        # Nothing left to play for once every hand has busted or surrendered
        contested = any(
            h.status is not HandStatus.BUST and not h.surrendered for h in draft.hands
        )
        if contested:
            start = len(draft.dealer.cards)
            cards = play_dealer_hand(draft.dealer.cards, draft.rules, draft.draw)
            draft.dealer = draft.dealer.revealed(cards)
            for card in cards[start:]:
                draft.record(EventType.CARD_DEALT, card=str(card), hand="dealer")
                draft.record(EventType.DEALER_HITS, hand_value=hand_total(cards)[0])

            total = draft.dealer.total
            if total is not None and total > BLACKJACK:
                draft.record(EventType.DEALER_BUSTS, hand_value=total)
            else:
                draft.record(EventType.DEALER_STANDS, hand_value=total)

        draft.flow.dealer_done()
        self._settle(draft)

    def _record_reveal(self, draft: _Draft) -> None:
        draft.record(
            EventType.DEALER_REVEALS,
            card=str(draft.dealer.cards[1]),
            hand_value=draft.dealer.total,
        )

    def _settle(self, draft: _Draft) -> None:
        """Settle every hand and credit escrowed stakes plus net payouts."""
        outcome = settle_all_hands(
            draft.hands,
            draft.dealer.cards,
            draft.rules,
            insurance_cents=draft.insurance_cents,
        )

        # Surrendered hands were refunded when they surrendered
        returned = sum(
            hand.bet_cents + result.net_payout_cents
            for hand, result in zip(draft.hands, outcome.results)
            if not hand.surrendered
        )
        if draft.insurance_cents:
            returned += draft.insurance_cents + outcome.insurance_net_cents

        draft.bankroll_cents += returned
        draft.outcome = outcome
        draft.legal = frozenset()
        draft.record(
            EventType.ROUND_SETTLED,
            net_cents=outcome.net_cents,
            message=outcome.message,
            bankroll_cents=draft.bankroll_cents,
        )

    def _commit(self, session: Session, draft: _Draft) -> RoundState:
        state = draft.to_state()
        stats = record_round(session.stats, state) if state.is_settled else session.stats

        session.shoe = draft.shoe
        session.bankroll_cents = state.bankroll_cents
        session.round_state = state
        session.stats = stats

        for event_type, data in draft.events:
            self.events.emit_new(event_type, **data)

        if state.outcome is not None:
            logger.info(
                "Round settled: %s net=%d bankroll=%d",
                state.outcome.message,
                state.outcome.net_cents,
                state.bankroll_cents,
            )
        return state


def deal(session: Session, bet_cents: int, emitter: EventEmitter | None = None) -> RoundState:
    """Start a round on ``session``; see ``RoundController.deal``."""
    return RoundController(emitter).deal(session, bet_cents)


def apply_action(
    session: Session,
    action: Action | str,
    hand_index: int,
    emitter: EventEmitter | None = None,
) -> RoundState:
    """Apply a player action; see ``RoundController.apply_action``."""
    return RoundController(emitter).apply_action(session, action, hand_index)


def get_state(session: Session) -> RoundView:
    """Read-only projection of the session's round and bankroll."""
    return RoundView(round_state=session.round_state, bankroll_cents=session.bankroll_cents)
