"""Rule-level tests for Hearts passing, trick play and moon scoring."""

from __future__ import annotations

from dataclasses import replace

from engine.cards import TrickPlay
from engine.contract import Difficulty
from engine.move import Continue
from engine.state import SeatInfo
from engine.turn import AwaitingGate, AwaitingResolution, Simultaneous, Turn
from hearts.hearts_game import HeartsGame, card_points
from hearts.hearts_moves import PassCards, PlayCard
from hearts.hearts_state import HeartsState, PassDirection, Phase


def _players() -> tuple[SeatInfo, ...]:
    return tuple(SeatInfo(seat=seat, display_name=f"P{seat}") for seat in range(4))


def _dealt_state(round_number: int = 1) -> HeartsState:
    game = HeartsGame()
    state = replace(game.init_state(_players(), {}), seed=21, round_number=round_number)
    return game.deal_or_setup(state)


def _playing_state(hands: tuple[tuple[str, ...], ...], **changes) -> HeartsState:
    base = HeartsState(turn=Turn(0), players=_players(), seed=21, phase=Phase.PLAYING, hands=hands, trick_leader=0)
    return replace(base, **changes)


def test_card_points() -> None:
    assert card_points("spades_Q") == 13
    assert card_points("hearts_2") == 1
    assert card_points("clubs_A") == 0


def test_pass_direction_rotates_targets() -> None:
    assert PassDirection.LEFT.target(3) == 0
    assert PassDirection.RIGHT.target(0) == 3
    assert PassDirection.ACROSS.target(1) == 3
    assert PassDirection.NONE.target(2) == 2


def test_round_opens_with_simultaneous_passing() -> None:
    game = HeartsGame()
    state = _dealt_state()
    assert state.phase is Phase.PASSING
    assert state.turn == Simultaneous()
    assert game.simultaneous_pending_seats(state) == frozenset({0, 1, 2, 3})


def test_fourth_round_skips_passing() -> None:
    state = _dealt_state(round_number=4)
    assert state.phase is Phase.PLAYING
    assert state.pass_direction is PassDirection.NONE
    assert "clubs_2" in state.hands[state.turn.seat]


def test_passed_cards_are_exchanged_once_everyone_has_passed() -> None:
    game = HeartsGame()
    state = _dealt_state()
    passed = {seat: state.hands[seat][:3] for seat in range(4)}
    for seat in range(4):
        assert game.validate_move(state, seat, PassCards(cards=passed[seat])) == (True, None)
        state = game.advance_turn(game.apply_move(state, seat, PassCards(cards=passed[seat])))
        if seat < 3:
            assert seat not in game.simultaneous_pending_seats(state)

    assert state.phase is Phase.PLAYING
    assert [len(hand) for hand in state.hands] == [13, 13, 13, 13]
    assert set(passed[0]) <= set(state.hands[1])
    assert state.received_cards[1] == passed[0]
    assert state.turn == Turn(state.trick_leader)
    assert "clubs_2" in state.hands[state.trick_leader]


def test_pass_must_be_three_cards_from_hand() -> None:
    game = HeartsGame()
    state = _dealt_state()
    hand = state.hands[0]
    assert game.validate_move(state, 0, PassCards(cards=hand[:2])) == (False, "invalid_pass")
    stranger = state.hands[1][0]
    assert game.validate_move(state, 0, PassCards(cards=(hand[0], hand[1], stranger))) == (False, "invalid_card")

    passed = game.apply_move(state, 0, PassCards(cards=hand[:3]))
    assert game.validate_move(passed, 0, PassCards(cards=hand[3:6])) == (False, "already_passed")


def test_first_trick_rules() -> None:
    game = HeartsGame()
    state = _playing_state(
        (("clubs_2", "hearts_4"), ("clubs_9", "spades_Q"), ("hearts_2", "diamonds_5"), ("clubs_A", "hearts_K"))
    )
    assert game.validate_move(state, 0, PlayCard(card="hearts_4")) == (False, "must_lead_2c")
    assert game.validate_move(state, 0, PlayCard(card="clubs_2")) == (True, None)

    state = game.advance_turn(game.apply_move(state, 0, PlayCard(card="clubs_2")))
    assert game.validate_move(state, 1, PlayCard(card="spades_Q")) == (False, "must_follow")

    state = replace(state, trick=state.trick + (TrickPlay(1, "clubs_9"),), turn=Turn(2))
    assert game.validate_move(state, 2, PlayCard(card="hearts_2")) == (False, "no_points_first")
    assert game.validate_move(state, 2, PlayCard(card="diamonds_5")) == (True, None)

    all_points = replace(state, hands=(state.hands[0], state.hands[1], ("hearts_2", "spades_Q"), state.hands[3]))
    assert game.validate_move(all_points, 2, PlayCard(card="hearts_2")) == (True, None)


def test_hearts_cannot_be_led_until_broken() -> None:
    game = HeartsGame()
    state = _playing_state(
        (("hearts_4", "clubs_3"), ("clubs_5",), ("clubs_6",), ("clubs_7",)),
        tricks_taken=(1, 0, 0, 0),
    )
    assert game.validate_move(state, 0, PlayCard(card="hearts_4")) == (False, "hearts_not_broken")
    assert game.validate_move(replace(state, hearts_broken=True), 0, PlayCard(card="hearts_4")) == (True, None)

    only_hearts = replace(state, hands=(("hearts_4", "hearts_9"),) + state.hands[1:])
    assert game.validate_move(only_hearts, 0, PlayCard(card="hearts_4")) == (True, None)


def test_full_trick_waits_for_resolution_then_scores_round() -> None:
    game = HeartsGame()
    state = _playing_state((("clubs_2",), ("clubs_9",), ("spades_Q",), ("hearts_K",)))
    for seat, card in enumerate(("clubs_2", "clubs_9", "spades_Q", "hearts_K")):
        state = game.advance_turn(game.apply_move(state, seat, PlayCard(card=card)))
    assert state.turn == AwaitingResolution()

    resolved = game.resolve_pending(state)
    assert resolved.points_taken == (0, 14, 0, 0)
    assert resolved.phase is Phase.ROUND_END
    assert resolved.scores == (0, 14, 0, 0)
    assert isinstance(resolved.turn, AwaitingGate)
    assert game.get_valid_moves(resolved, 3) == [Continue()]
    assert not game.check_end_condition(resolved).ended


def test_shooting_the_moon_charges_everyone_else() -> None:
    game = HeartsGame()
    state = _playing_state(((), (), (), ()), phase=Phase.ROUND_END, points_taken=(26, 0, 0, 0), scores=(10, 0, 5, 0))
    scored = game.score_round(state)
    assert scored.round_scores == (0, 26, 26, 26)
    assert scored.scores == (10, 26, 31, 26)
    assert scored.moon_shooter == 0


def test_game_ends_at_100_and_lowest_score_wins() -> None:
    game = HeartsGame()
    state = _playing_state(((), (), (), ()), phase=Phase.ROUND_END, scores=(40, 100, 20, 60))
    end = game.check_end_condition(state)
    assert end.ended
    assert end.reason == "max_score"
    assert end.winners == (2,)


def test_ai_passes_queen_of_spades_and_high_hearts() -> None:
    game = HeartsGame()
    state = _dealt_state()
    hand = ("spades_Q", "hearts_A", "hearts_3", "clubs_K", "clubs_2")
    state = replace(state, hands=(hand,) + state.hands[1:])
    move = game.ai_move(state, 0, Difficulty.BEGINNER)
    assert move == PassCards(cards=("spades_Q", "hearts_A", "hearts_3"))


def test_ai_play_depends_on_difficulty() -> None:
    game = HeartsGame()
    following = _playing_state(
        ((), ("clubs_3", "clubs_9", "clubs_J", "hearts_5"), ("clubs_4",), ("clubs_5",)),
        trick=(TrickPlay(0, "clubs_10"),),
        turn=Turn(1),
        tricks_taken=(1, 0, 0, 0),
    )
    assert game.ai_move(following, 1, Difficulty.INTERMEDIATE) == PlayCard(card="clubs_3")
    assert game.ai_move(following, 1, Difficulty.EXPERT) == PlayCard(card="clubs_9")

    void = replace(following, hands=((), ("spades_Q", "hearts_K", "diamonds_2"), ("clubs_4",), ("clubs_5",)))
    assert game.ai_move(void, 1, Difficulty.INTERMEDIATE) == PlayCard(card="diamonds_2")
    assert game.ai_move(void, 1, Difficulty.EXPERT) == PlayCard(card="spades_Q")

    no_queen = replace(void, hands=((), ("hearts_K", "hearts_3", "diamonds_2"), ("clubs_4",), ("clubs_5",)))
    assert game.ai_move(no_queen, 1, Difficulty.EXPERT) == PlayCard(card="hearts_K")

    beginner = game.ai_move(following, 1, Difficulty.BEGINNER)
    assert game.validate_move(following, 1, beginner) == (True, None)


def test_public_state_hides_other_passes() -> None:
    game = HeartsGame()
    state = _dealt_state()
    state = game.apply_move(state, 1, PassCards(cards=state.hands[1][:3]))
    payload = game.get_public_state(state, 0)
    assert payload["passed_cards"] == [[], True, False, False]
    assert payload["hands"][1] == 13
    assert "seed" not in payload
