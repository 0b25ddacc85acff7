"""Rule-level tests for Spades bidding, trick play and bag scoring."""

from __future__ import annotations

from dataclasses import replace

import pytest

from engine.cards import TrickPlay
from engine.contract import Difficulty
from engine.move import Continue
from engine.state import SeatInfo
from engine.turn import AwaitingGate, Turn
from spades.spades_game import SpadesGame, score_team, team_limit_check
from spades.spades_moves import Bid, PlayCard
from spades.spades_state import Phase, SpadesState


def _players() -> tuple[SeatInfo, ...]:
    return tuple(SeatInfo(seat=seat, display_name=f"P{seat}") for seat in range(4))


def _dealt_state(seed: int = 7) -> SpadesState:
    game = SpadesGame()
    state = replace(game.init_state(_players(), {}), seed=seed)
    return game.deal_or_setup(state)


def _playing_state(
    hands: tuple[tuple[str, ...], ...],
    trick: tuple[TrickPlay, ...] = (),
    leader: int = 0,
    spades_broken: bool = False,
    bids: tuple[int, ...] = (3, 3, 3, 3),
) -> SpadesState:
    return SpadesState(
        turn=Turn((leader + len(trick)) % 4),
        players=_players(),
        seed=7,
        phase=Phase.PLAYING,
        hands=hands,
        bids=bids,
        trick=trick,
        trick_leader=leader,
        spades_broken=spades_broken,
    )


def test_made_contract_with_overtricks_scores_53_and_adds_three_bags() -> None:
    result = score_team((3, None, 2, None), (4, 0, 4, 0), (0, 2), bags=0)
    assert result.points == 53
    assert result.bags == 3
    assert result.bags_added == 3
    assert result.bag_penalty is False


def test_tenth_bag_costs_100_and_wraps() -> None:
    result = score_team((3, None, 2, None), (4, 0, 4, 0), (0, 2), bags=8)
    assert result.points == 53 - 100
    assert result.bags == 1
    assert result.bag_penalty is True


def test_nil_bid_scores_separately_from_partner_contract() -> None:
    made = score_team((0, None, 4, None), (0, 0, 5, 0), (0, 2), bags=0)
    assert made.nil_points == 100
    assert made.points == 141

    failed = score_team((0, None, 4, None), (1, 0, 4, 0), (0, 2), bags=0)
    assert failed.nil_points == -100
    assert failed.points == 40 - 100


def test_failed_contract_loses_ten_per_bid_trick() -> None:
    assert score_team((4, None, 2, None), (2, 0, 2, 0), (0, 2), bags=0).points == -60


def test_team_limits_end_the_game() -> None:
    won = team_limit_check((500, 10), 500, -200)
    assert won.ended and won.reason == "win_score" and won.winners == (0, 2)

    lost = team_limit_check((0, -200), 500, -200)
    assert lost.ended and lost.reason == "lose_score" and lost.winners == (0, 2)

    assert not team_limit_check((120, -40), 500, -200).ended


def test_deal_gives_thirteen_cards_each_and_is_reproducible() -> None:
    state = _dealt_state(seed=11)
    assert [len(hand) for hand in state.hands] == [13, 13, 13, 13]
    assert len({card for hand in state.hands for card in hand}) == 52
    assert state.phase is Phase.BIDDING
    assert state.turn == Turn(1)
    assert _dealt_state(seed=11).hands == state.hands
    assert _dealt_state(seed=12).hands != state.hands


def test_bidding_runs_clockwise_from_left_of_dealer_then_play_starts() -> None:
    game = SpadesGame()
    state = _dealt_state()
    for seat in (1, 2, 3, 0):
        assert state.turn == Turn(seat)
        assert game.validate_move(state, seat, Bid(bid=3)) == (True, None)
        state = game.advance_turn(game.apply_move(state, seat, Bid(bid=3)))
    assert state.phase is Phase.PLAYING
    assert state.turn == Turn(1)


def test_bid_out_of_range_is_rejected() -> None:
    game = SpadesGame()
    state = _dealt_state()
    assert game.validate_move(state, 1, Bid(bid=14)) == (False, "invalid_bid")
    assert game.validate_move(state, 1, Bid(bid="nil")) == (True, None)
    assert game.validate_move(state, 2, Bid(bid=3)) == (False, "not_your_turn")


def test_must_follow_suit_when_able() -> None:
    game = SpadesGame()
    state = _playing_state(
        hands=(("hearts_2",), ("hearts_K", "spades_2"), ("clubs_3",), ("clubs_4",)),
        trick=(TrickPlay(0, "hearts_5"),),
    )
    assert game.validate_move(state, 1, PlayCard(card="spades_2")) == (False, "must_follow")
    assert game.validate_move(state, 1, PlayCard(card="hearts_K")) == (True, None)
    assert game.validate_move(state, 1, PlayCard(card="clubs_9")) == (False, "invalid_card")
    assert game.validate_move(state, 2, PlayCard(card="clubs_3")) == (False, "not_your_turn")


def test_spades_cannot_be_led_until_broken() -> None:
    game = SpadesGame()
    state = _playing_state(hands=(("spades_A", "hearts_2"), ("clubs_2",), ("clubs_3",), ("clubs_4",)))
    assert game.validate_move(state, 0, PlayCard(card="spades_A")) == (False, "spades_not_broken")

    only_spades = _playing_state(hands=(("spades_A", "spades_2"), ("clubs_2",), ("clubs_3",), ("clubs_4",)))
    assert game.validate_move(only_spades, 0, PlayCard(card="spades_A")) == (True, None)

    broken = replace(state, spades_broken=True)
    assert game.validate_move(broken, 0, PlayCard(card="spades_A")) == (True, None)


def test_last_trick_scores_round_and_opens_next_round_gate() -> None:
    game = SpadesGame()
    state = _playing_state(
        hands=(("hearts_5",), ("hearts_K",), ("spades_2",), ("hearts_A",)),
        bids=(1, 1, 1, 1),
    )
    for seat, card in enumerate(("hearts_5", "hearts_K", "spades_2", "hearts_A")):
        state = game.advance_turn(game.apply_move(state, seat, PlayCard(card=card)))

    assert state.tricks_won == (0, 0, 1, 0)
    assert state.phase is Phase.ROUND_END
    assert state.team_scores == (-20, -20)
    assert isinstance(state.turn, AwaitingGate)
    assert state.gate == "next_round"
    assert game.get_valid_moves(state, 0) == [Continue()]
    assert game.validate_move(state, 0, PlayCard(card="hearts_5")) == (False, "invalid_phase")
    assert not game.check_end_condition(state).ended

    next_round = game.advance_turn(game.apply_move(state, 0, Continue()))
    assert next_round.round_number == 2
    assert next_round.dealer == 1
    assert next_round.turn == Turn(2)
    assert [len(hand) for hand in next_round.hands] == [13, 13, 13, 13]


def test_forfeit_hands_the_win_to_the_other_team() -> None:
    assert SpadesGame().forfeit_winners(_dealt_state(), 1) == (0, 2)


def test_parse_move_accepts_nil_and_card_id_alias() -> None:
    game = SpadesGame()
    assert game.parse_move({"type": "Bid", "bid": "nil"}) == Bid(bid=0)
    assert game.parse_move({"type": "PlayCard", "card_id": "spades_A"}) == PlayCard(card="spades_A")
    with pytest.raises(ValueError):
        game.parse_move({"type": "Pass"})


def test_public_state_hides_other_hands_and_seed() -> None:
    game = SpadesGame()
    payload = game.get_public_state(_dealt_state(), 2)
    assert "seed" not in payload
    assert isinstance(payload["hands"][2], list)
    assert payload["hands"][0] == 13


def test_ai_bids_and_plays_legal_moves() -> None:
    game = SpadesGame()
    state = _dealt_state()
    bid = game.ai_move(state, 1, Difficulty.EXPERT)
    assert isinstance(bid, Bid)
    assert game.validate_move(state, 1, bid) == (True, None)

    following = _playing_state(
        hands=(("hearts_2",), ("hearts_K", "hearts_3", "spades_2"), ("clubs_3",), ("clubs_4",)),
        trick=(TrickPlay(0, "hearts_5"),),
    )
    assert game.ai_move(following, 1, Difficulty.EXPERT) == PlayCard(card="hearts_3")