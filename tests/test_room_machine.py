import random

import pytest

from impostor.models.room import RoomStatus
from impostor.services import room_machine


def _word(language: str) -> str:
    return f"word-{language}"


def _room(*names, disallow=False, language="en"):
    room = room_machine.new_room("r1", "p0", names[0] if names else "Alice", language, disallow, now=0.0)
    for i, name in enumerate(names[1:], start=1):
        room = room_machine.add_player(room, f"p{i}", name)
    return room


def _hosts(room):
    return [p for p in room.players if p.is_host]


def test_new_room_has_single_waiting_host():
    room = _room("Alice")
    assert room.status == RoomStatus.WAITING
    assert room.game_count == 1
    assert [p.name for p in room.players] == ["Alice"]
    host = room.players[0]
    assert host.is_host is True
    assert host.is_playing is False
    assert host.is_impostor is None


def test_exactly_one_host_through_random_joins_and_leaves():
    rng = random.Random(1234)
    room = _room("Alice")
    next_id = 1
    for _ in range(300):
        if room.players and rng.random() < 0.45:
            victim = rng.choice(room.players).id
            room = room_machine.remove_player(room, victim)
        else:
            room = room_machine.add_player(room, f"p{next_id}", f"P{next_id}")
            next_id += 1
        if room.players:
            assert len(_hosts(room)) == 1


def test_host_leaving_promotes_first_remaining_player():
    room = _room("Alice", "Bob", "Carol")
    room = room_machine.remove_player(room, "p0")
    assert [p.id for p in room.players] == ["p1", "p2"]
    assert room.players[0].is_host is True
    assert room.players[1].is_host is False


def test_last_player_leaving_keeps_empty_room():
    room = room_machine.remove_player(_room("Alice"), "p0")
    assert room is not None
    assert room.players == []
    rejoined = room_machine.add_player(room, "p9", "Zoe")
    assert rejoined.players[0].is_host is True


def test_remove_unknown_player_fails():
    assert room_machine.remove_player(_room("Alice"), "nobody") is None


def test_transitions_do_not_mutate_input():
    room = _room("Alice", "Bob")
    room_machine.remove_player(room, "p0")
    room_machine.start_round(room, "p0", _word)
    assert [p.id for p in room.players] == ["p0", "p1"]
    assert room.status == RoomStatus.WAITING
    assert room.word is None


def test_kick_host_self_fails():
    room = _room("Alice", "Bob")
    assert room_machine.kick_player(room, "p0", "p0") is None


def test_kick_requires_host():
    room = _room("Alice", "Bob", "Carol")
    assert room_machine.kick_player(room, "p2", "p1") is None
    kicked = room_machine.kick_player(room, "p2", "p0")
    assert [p.id for p in kicked.players] == ["p0", "p1"]


def test_kick_unknown_target_fails():
    assert room_machine.kick_player(_room("Alice", "Bob"), "ghost", "p0") is None


def test_start_assigns_one_impostor_word_and_starter():
    room = room_machine.start_round(_room("Alice", "Bob", "Carol"), "p0", _word, rng=random.Random(7))
    assert room.status == RoomStatus.PLAYING
    assert room.game_count == 1
    assert room.word == "word-en"
    assert all(p.is_playing for p in room.players)
    assert sum(1 for p in room.players if p.is_impostor) == 1
    assert all(p.is_impostor in (True, False) for p in room.players)
    assert room.find_player(room.starting_player_id) is not None


def test_start_requires_host():
    assert room_machine.start_round(_room("Alice", "Bob"), "p1", _word) is None


def test_start_uses_room_language():
    room = room_machine.start_round(_room("Alice", language="fr"), "p0", _word)
    assert room.word == "word-fr"


@pytest.mark.parametrize("seed", range(40))
def test_disallow_impostor_start_never_picks_impostor(seed):
    room = _room("Alice", "Bob", "Carol", "Dan", disallow=True)
    room = room_machine.start_round(room, "p0", _word, rng=random.Random(seed))
    assert room.starting_player_id != room.impostor().id


def test_disallow_impostor_start_single_player_falls_back():
    room = room_machine.start_round(_room("Alice", disallow=True), "p0", _word)
    assert room.impostor().id == "p0"
    assert room.starting_player_id == "p0"


def test_restart_increments_game_count_and_includes_late_joiner():
    room = room_machine.start_round(_room("Alice", "Bob", "Carol"), "p0", _word)
    room = room_machine.add_player(room, "p3", "Dan")
    late = room.find_player("p3")
    assert late.is_playing is False
    assert late.is_impostor is None
    assert room.status == RoomStatus.PLAYING

    room = room_machine.start_round(room, "p0", _word)
    assert room.game_count == 2
    assert all(p.is_playing for p in room.players)
    assert room.find_player("p3").is_impostor in (True, False)
    assert sum(1 for p in room.players if p.is_impostor) == 1


def test_min_players_policy():
    room = _room("Alice", "Bob")
    assert room_machine.start_round(room, "p0", _word, min_players=3) is None
    assert room_machine.start_round(room, "p0", _word, min_players=2) is not None


def test_finished_room_rejects_join_and_start():
    room = _room("Alice", "Bob")
    room.status = RoomStatus.FINISHED
    assert room_machine.add_player(room, "p5", "Eve") is None
    assert room_machine.start_round(room, "p0", _word) is None


def test_choose_starting_player_is_roughly_uniform():
    room = room_machine.start_round(_room("A", "B", "C"), "p0", _word, rng=random.Random(0))
    rng = random.Random(99)
    counts = {p.id: 0 for p in room.players}
    for _ in range(3000):
        counts[room_machine.choose_starting_player(room.players, False, rng).id] += 1
    assert all(800 < c < 1200 for c in counts.values())
