from impostor.services import room_machine
from impostor.services.room_view import event_message, project_room


def _playing_room():
    room = room_machine.new_room("r1", "p0", "Alice", "en", False, now=0.0)
    room = room_machine.add_player(room, "p1", "Bob")
    room = room_machine.add_player(room, "p2", "Carol")
    room = room_machine.start_round(room, "p0", lambda lang: "volcano")
    impostor = room.impostor()
    crew = [p for p in room.players if not p.is_impostor]
    return room, impostor, crew


def test_word_visible_to_crew_only():
    room, impostor, crew = _playing_room()
    assert project_room(room, crew[0].id).word == "volcano"
    assert project_room(room, impostor.id).word is None
    assert project_room(room).word is None
    assert project_room(room, "stranger").word is None


def test_is_impostor_only_for_requester():
    room, impostor, crew = _playing_room()
    view = project_room(room, crew[0].id)
    for player in view.players:
        if player.id == crew[0].id:
            assert player.is_impostor is False
        else:
            assert player.is_impostor is None

    own = project_room(room, impostor.id).find_player(impostor.id)
    assert own.is_impostor is True


def test_late_joiner_sees_no_word_or_role():
    room, _, _ = _playing_room()
    room = room_machine.add_player(room, "p3", "Dan")
    view = project_room(room, "p3")
    assert view.word is None
    assert view.find_player("p3").is_impostor is None
    assert view.find_player("p3").is_playing is False


def test_waiting_room_payload_has_no_role_fields():
    room = room_machine.new_room("r1", "p0", "Alice", "en", False, now=0.0)
    payload = project_room(room, "p0").to_payload()
    assert payload["status"] == "waiting"
    assert payload["gameCount"] == 1
    assert payload["players"] == [{"id": "p0", "name": "Alice", "isHost": True, "isPlaying": False}]
    assert "word" not in payload


def test_event_message_is_projected_per_recipient():
    room, impostor, crew = _playing_room()
    to_crew = event_message(room, "game-started", crew[0].id)
    to_impostor = event_message(room, "game-started", impostor.id)
    assert to_crew["room"]["word"] == "volcano"
    assert "word" not in to_impostor["room"]

    kicked = event_message(room, "player-kicked", None, {"kickedPlayerId": "p9", "kickedPlayerName": "X"})
    assert kicked["kickedPlayerId"] == "p9"
    assert all("isImpostor" not in p for p in kicked["room"]["players"])
