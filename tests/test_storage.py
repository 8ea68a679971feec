import pytest

from storage import SessionStore


def test_new_chat_gets_defaults(store):
    session = store.get(42)
    assert session.items == []
    assert session.settings.design_type == "default"
    assert store.get(42) is session


def test_saved_session_is_restored(store, tmp_path):
    session = store.get(1)
    session.set_design(True)
    session.add_item("Earl Grey", 1299)
    store.save(1)

    assert (tmp_path / "sessions" / "1.json").exists()

    restored = SessionStore(tmp_path).get(1)
    assert restored.settings.design is True
    assert restored.items[0].label == "Earl Grey"
    assert restored.items[0].discount_price == 1234


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    (sessions / "5.json").write_text("{not json", encoding="utf-8")

    session = SessionStore(tmp_path).get(5)
    assert session.items == []
    assert session.settings.design is False


def test_bad_item_falls_back_to_defaults(tmp_path):
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    (sessions / "6.json").write_text('{"items": [{"label": "no id"}]}', encoding="utf-8")

    assert SessionStore(tmp_path).get(6).items == []


def test_reset(store, tmp_path):
    store.get(3).add_item("Tea", 10)
    store.save(3)
    store.reset(3)
    assert SessionStore(tmp_path).get(3).items == []


def test_save_unknown_chat_is_noop(store, tmp_path):
    store.save(99)
    assert not (tmp_path / "sessions" / "99.json").exists()


@pytest.mark.parametrize(
    "content",
    [
        "[]",
        '"text"',
        '{"items": {"a": 1}}',
        '{"items": ["tea", "coffee"]}',
        '{"settings": [1, 2], "items": []}',
        '{"items": [{"id": "x", "label": "A", "price": 1}]}',
        '{"items": [], "next_id": "7"}',
    ],
)
def test_wrong_shape_falls_back_to_defaults(tmp_path, content):
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    (sessions / "7.json").write_text(content, encoding="utf-8")

    session = SessionStore(tmp_path).get(7)
    assert session.items == []
    assert session.settings.design_type == "default"


def test_deleted_id_not_reused_after_reload(store, tmp_path):
    session = store.get(1)
    session.add_item("A", 10)
    b = session.add_item("B", 20)
    session.delete_item(b.id)
    store.save(1)

    c = SessionStore(tmp_path).get(1).add_item("C", 30)
    assert c.id == 3


def test_cleared_list_keeps_counter_after_reload(store, tmp_path):
    session = store.get(1)
    session.add_item("A", 10)
    session.add_item("B", 20)
    session.clear_items()
    store.save(1)

    assert SessionStore(tmp_path).get(1).add_item("C", 30).id == 3


def test_cache_is_bounded(tmp_path):
    store = SessionStore(tmp_path, cache_size=2)
    first = store.get(1)
    first.add_item("Tea", 10)
    store.save(1)
    store.get(2)
    store.get(3)

    assert len(store._cache) == 2
    assert 1 not in store._cache
    reloaded = store.get(1)
    assert reloaded is not first
    assert [i.label for i in reloaded.items] == ["Tea"]


def test_recently_used_session_stays_cached(tmp_path):
    store = SessionStore(tmp_path, cache_size=2)
    first = store.get(1)
    store.get(2)
    store.get(1)
    store.get(3)
    assert store.get(1) is first
    assert 2 not in store._cache
