"""Every registered game honours the module contract through a full engine loop."""

from __future__ import annotations

import pytest

from engine.ai import AITurnProcessor
from engine.contract import GameMetadata
from engine.errors import ConfigurationError, GameNotFoundError
from engine.registry import GameRegistry, default_registry
from engine.rooms import RoomManager
from engine.storage import MemoryStorage
from engine.store import GameStateStore
from engine.turn import AwaitingGate, Turn
from pig.pig_game import PigGame

GAME_IDS = ["checkers", "diamonds", "even-at-odds", "hearts", "pig", "spades"]
MAX_STEPS = 80


def _acting_seats(module, state) -> list[int]:
    if isinstance(state.turn, Turn):
        return [state.turn.seat]
    if module.is_simultaneous(state):
        return sorted(module.simultaneous_pending_seats(state))
    if isinstance(state.turn, AwaitingGate):
        return [0]
    return []


def _check_invariants(module, state) -> None:
    acting = _acting_seats(module, state)
    legal = []
    for seat in acting:
        for move in module.get_valid_moves(state, seat):
            assert module.validate_move(state, seat, move) == (True, None), (seat, move)
            legal.append(move)
    if not state.game_over and not isinstance(state.turn, AwaitingGate):
        for seat in state.seats():
            if seat in acting:
                continue
            candidates = list(legal)
            if not module.is_simultaneous(state):
                candidates += module.get_valid_moves(state.with_turn(Turn(seat)), seat)
            for move in candidates:
                assert module.validate_move(state, seat, move)[0] is False, (seat, move)
    assert "seed" not in module.get_public_state(state, 0)
    assert module.decode_state(state.to_dict()).to_dict() == state.to_dict()


def test_default_registry_lists_every_game() -> None:
    registry = default_registry()
    assert registry.ids() == GAME_IDS
    listed = registry.list_metadata()
    assert [item["id"] for item in listed] == GAME_IDS
    for item in listed:
        assert 1 <= item["min_players"] <= item["max_players"]
        assert item["rules"]


def test_registry_rejects_duplicates_and_unknown_ids() -> None:
    registry = GameRegistry([PigGame()])
    with pytest.raises(ConfigurationError):
        registry.register(PigGame())
    with pytest.raises(GameNotFoundError):
        registry.get("chess")
    assert registry.find("chess") is None
    assert isinstance(registry.metadata("pig"), GameMetadata)


def _check_views(module, state) -> None:
    hands = getattr(state, "hands", None)
    for viewer in [None, *state.seats()]:
        payload = module.get_public_state(state, viewer)
        assert "seed" not in payload
        if hands is None:
            continue
        for seat, hand in enumerate(hands):
            expected = list(hand) if seat == viewer else len(hand)
            assert payload["hands"][seat] == expected, (viewer, seat)


def _run_game(game_id: str, check) -> None:
    storage = MemoryStorage()
    registry = default_registry()
    store = GameStateStore(storage, registry)
    rooms = RoomManager(storage, registry, store)
    ai = AITurnProcessor(store)
    module = registry.get(game_id)

    room = rooms.create_room(game_id)
    for _ in range(module.register().min_players):
        rooms.add_ai_player(room.id, "intermediate")
    stored = rooms.start_game(room.room_code, seed=1234)
    check(module, stored.game_data)

    for _ in range(MAX_STEPS):
        state = stored.game_data
        if state.game_over:
            break
        if isinstance(state.turn, AwaitingGate):
            gate_move = module.get_valid_moves(state, 0)[0]
            after = store.apply_move(room.id, 0, gate_move, expected_etag=stored.etag)
        else:
            after = ai.process_ai_turns(room.id)
        assert after.state_version > stored.state_version
        stored = after
        check(module, stored.game_data)


@pytest.mark.parametrize("game_id", GAME_IDS)
def test_game_runs_through_the_engine(game_id: str) -> None:
    _run_game(game_id, _check_invariants)


@pytest.mark.parametrize("game_id", GAME_IDS)
def test_public_views_show_other_hands_only_as_counts(game_id: str) -> None:
    _run_game(game_id, _check_views)
