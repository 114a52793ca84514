import orjson

from impostor.client.session_storage import SessionStorage


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def test_save_then_load(tmp_path):
    clock = FakeClock()
    storage = SessionStorage(tmp_path / "session.json", max_age_seconds=60, clock=clock)

    storage.save("r1", "p1", "Alice")
    record = storage.load()

    assert (record.room_id, record.player_id, record.player_name) == ("r1", "p1", "Alice")
    stored = orjson.loads((tmp_path / "session.json").read_bytes())
    assert stored == {"roomId": "r1", "playerId": "p1", "playerName": "Alice", "timestamp": 100.0}


def test_missing_file_loads_none(tmp_path):
    assert SessionStorage(tmp_path / "none.json").load() is None


def test_expired_record_is_cleared(tmp_path):
    clock = FakeClock()
    path = tmp_path / "session.json"
    storage = SessionStorage(path, max_age_seconds=60, clock=clock)
    storage.save("r1", "p1", "Alice")

    clock.now += 61
    assert storage.load() is None
    assert not path.exists()


def test_corrupted_or_invalid_record_is_cleared(tmp_path):
    path = tmp_path / "session.json"
    storage = SessionStorage(path)

    path.write_bytes(b"{broken")
    assert storage.load() is None
    assert not path.exists()

    path.write_bytes(orjson.dumps({"roomId": "r1"}))
    assert storage.load() is None
    assert not path.exists()


def test_clear_is_idempotent(tmp_path):
    storage = SessionStorage(tmp_path / "session.json")
    storage.save("r1", "p1", "Alice")
    storage.clear()
    storage.clear()
    assert storage.load() is None
