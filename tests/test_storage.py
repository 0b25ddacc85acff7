"""Contract tests shared by the in-memory and SQLite storage backends."""

from __future__ import annotations

from dataclasses import replace

import pytest

from engine.errors import StorageError
from engine.records import Player, Room, RoomStatus, StateRecord
from engine.sqlite_storage import SqliteStorage
from engine.storage import MemoryStorage, Storage


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path) -> Storage:
    if request.param == "memory":
        return MemoryStorage()
    return SqliteStorage(str(tmp_path / "arcade.db"))


def _room(room_id: str = "room-1", code: str = "ABC234", created_at: float = 100.0, **overrides) -> Room:
    fields = dict(
        id=room_id,
        room_code=code,
        game_id="pig",
        status=RoomStatus.LOBBY,
        settings={"target_score": 50},
        expires_at=created_at + 480,
        created_at=created_at,
        updated_at=created_at,
    )
    fields.update(overrides)
    return Room(**fields)


def _player(player_id: str, seat: int, room_id: str = "room-1", **overrides) -> Player:
    fields = dict(
        id=player_id,
        room_id=room_id,
        seat_position=seat,
        display_name=f"Player {seat}",
        guest_token=f"token-{player_id}",
        last_seen=100.0,
        joined_at=100.0,
    )
    fields.update(overrides)
    return Player(**fields)


def _state(version: int, room_id: str = "room-1") -> StateRecord:
    return StateRecord(
        room_id=room_id,
        state_version=version,
        current_turn=0,
        game_data={"scores": [version, 0], "turn": {"kind": "turn", "seat": 0}},
        etag=f"etag-{version}",
        updated_at=100.0 + version,
    )


def test_rooms_round_trip_and_lookup_by_code(storage: Storage) -> None:
    storage.add_room(_room())
    assert storage.get_room("room-1") == _room()
    assert storage.find_room_by_code("ABC234").id == "room-1"
    assert storage.find_room_by_code("ABC234", [RoomStatus.ACTIVE]) is None
    assert storage.get_room("missing") is None

    storage.save_room(replace(_room(), status=RoomStatus.ACTIVE, updated_at=150.0))
    assert storage.get_room("room-1").status is RoomStatus.ACTIVE
    assert storage.find_room_by_code("ABC234", [RoomStatus.ACTIVE]).updated_at == 150.0


def test_reused_code_resolves_to_most_recent_room(storage: Storage) -> None:
    storage.add_room(_room("old", created_at=10.0, status=RoomStatus.COMPLETED))
    storage.add_room(_room("new", created_at=20.0))
    assert storage.find_room_by_code("ABC234").id == "new"
    assert [room.id for room in storage.list_rooms()] == ["old", "new"]


def test_saving_unknown_room_fails(storage: Storage) -> None:
    with pytest.raises(StorageError):
        storage.save_room(_room("ghost"))


def test_players_are_listed_by_seat_and_taken_seats_rejected(storage: Storage) -> None:
    storage.add_room(_room())
    storage.add_player(_player("b", 1))
    storage.add_player(_player("a", 0, client_id="tab-a"))
    assert [player.id for player in storage.list_players("room-1")] == ["a", "b"]

    with pytest.raises(StorageError) as excinfo:
        storage.add_player(_player("c", 1))
    assert excinfo.value.code == "seat_taken"

    storage.save_player(replace(_player("b", 1), connected=False, last_seen=200.0))
    assert storage.get_player("b").connected is False
    assert storage.get_player("b").last_seen == 200.0
    assert [player.id for player in storage.find_players_by_client("tab-a")] == ["a"]

    storage.delete_player("a")
    assert [player.id for player in storage.list_players("room-1")] == ["b"]


def test_ai_seat_fields_survive_storage(storage: Storage) -> None:
    storage.add_room(_room())
    bot = _player("bot", 0, guest_token=None, is_ai=True, ai_difficulty="expert", display_name="Bot Alpha")
    storage.add_player(bot)
    assert storage.get_player("bot") == bot


def test_state_swap_only_succeeds_on_expected_version(storage: Storage) -> None:
    storage.add_room(_room())
    storage.put_state(_state(1))
    assert storage.get_state("room-1") == _state(1)

    assert storage.swap_state(_state(2), expected_version=1)
    assert not storage.swap_state(_state(3), expected_version=1)
    assert storage.get_state("room-1").state_version == 2
    assert storage.get_state("room-1").game_data["scores"] == [2, 0]
    assert not storage.swap_state(_state(1, room_id="missing"), expected_version=0)


def test_state_documents_are_not_shared_with_callers(storage: Storage) -> None:
    storage.add_room(_room())
    storage.put_state(_state(1))
    loaded = storage.get_state("room-1")
    loaded.game_data["scores"].append(99)
    assert storage.get_state("room-1").game_data["scores"] == [1, 0]


def test_deleting_room_removes_seats_and_state(storage: Storage) -> None:
    storage.add_room(_room())
    storage.add_player(_player("a", 0))
    storage.put_state(_state(1))

    storage.delete_room("room-1")
    assert storage.get_room("room-1") is None
    assert storage.get_player("a") is None
    assert storage.get_state("room-1") is None
    assert storage.list_players("room-1") == []


def test_state_for_unknown_room_is_rejected(storage: Storage) -> None:
    with pytest.raises(StorageError):
        storage.put_state(_state(1, room_id="ghost"))
