import pytest

from models import Item, Settings
from session import TagSession


def test_ids_are_unique_and_not_reused(session):
    a = session.add_item("A", 100)
    b = session.add_item("B", 200)
    session.delete_item(b.id)
    c = session.add_item("C", 300)
    assert [a.id, b.id, c.id] == [1, 2, 3]


def test_add_item_rejects_bad_price(session):
    with pytest.raises(ValueError):
        session.add_item("A", 0)
    with pytest.raises(ValueError):
        session.add_item("A", float("nan"))


def test_settings_changes_recompute_everything(session):
    item = session.add_item("Tea", 1299)
    assert item.discount_price == 1299

    session.set_design(True)
    assert item.discount_price == 1234

    session.set_discount_amount(50)
    assert item.discount_price == 1249

    session.set_max_discount_percent(1)
    assert item.discount_price == 1286

    session.set_design(False)
    assert item.discount_price == 1299


def test_price_update_recomputes(session):
    session.set_design(True)
    item = session.add_item("Tea", 1299)
    session.update_item(item.id, "price", 1000)
    assert item.discount_price == 950


def test_update_item_errors(session):
    item = session.add_item("Tea", 100)
    with pytest.raises(KeyError):
        session.update_item(999, "price", 10)
    with pytest.raises(ValueError):
        session.update_item(item.id, "price", -5)
    with pytest.raises(ValueError):
        session.update_item(item.id, "color", "red")


def test_switching_to_table_turns_global_flag_off(session):
    session.set_items(
        [
            Item(id=0, label="A", price=1299, has_discount=True),
            Item(id=0, label="B", price=1299),
        ],
        has_table_designs=False,
        has_table_discounts=True,
    )
    session.set_design(True)
    session.set_design_type("table")

    assert session.settings.design is False
    a, b = session.items
    assert a.discount_price == 1234
    assert b.discount_price == 1299


def test_set_items_reassigns_ids(session):
    session.add_item("Old", 10)
    session.set_items([Item(id=1, label="A", price=1), Item(id=1, label="B", price=2)])
    ids = [item.id for item in session.items]
    assert len(set(ids)) == 2
    assert 1 not in ids


def test_append_and_duplicate(session):
    session.add_item("A", 10)
    session.append_items([Item(id=0, label="B", price=20)])
    copies = session.duplicate_items([session.items[0].id])
    assert [i.label for i in session.items] == ["A", "B", "A"]
    assert copies[0].id == 3
    assert session.duplicate_items([999]) == []


def test_undo_redo(session):
    assert not session.can_undo()
    session.add_item("A", 10)
    session.add_item("B", 20)

    assert session.undo()
    assert [i.label for i in session.items] == ["A"]
    assert session.can_redo()

    assert session.redo()
    assert [i.label for i in session.items] == ["A", "B"]
    assert not session.redo()


def test_undo_recomputes_with_current_settings(session):
    session.add_item("Tea", 1299)
    session.set_design(True)
    session.add_item("Coffee", 1000)
    session.undo()
    assert session.items[0].discount_price == 1234


def test_clear_items_resets_history(session):
    session.add_item("A", 10)
    session.clear_items()
    assert session.items == []
    assert not session.can_undo()


def test_setting_validation(session):
    with pytest.raises(ValueError):
        session.set_discount_amount(-1)
    with pytest.raises(ValueError):
        session.set_max_discount_percent(150)
    with pytest.raises(ValueError):
        session.set_font("comic-sans")
    with pytest.raises(ValueError):
        session.set_cutting_line_color("red")
    with pytest.raises(ValueError):
        session.set_design_type("nonexistent-key")

    session.set_cutting_line_color("#FF0000")
    assert session.settings.cutting_line_color == "#ff0000"


def test_discount_text_keeps_two_lines(session):
    session.set_discount_text("one\ntwo\nthree")
    assert session.settings.discount_text == "one\ntwo"


def test_clear_settings(session):
    session.set_discount_amount(100)
    session.set_items([Item(id=0, label="A", price=10)], True, True)
    session.set_design_type("table")
    session.set_show_theme_labels(False)

    session.clear_settings()

    s = session.settings
    assert s.design_type == "default"
    assert not s.has_table_designs and not s.has_table_discounts
    assert s.show_theme_labels is True
    assert s.discount_amount == 100
    assert len(session.items) == 1


def test_round_trip_keeps_counter(session):
    session.set_design(True)
    session.add_item("Tea", 1299, price_for_2=1200, price_from_3=1100)
    session.add_item("Coffee", 500, has_discount=False)

    restored = TagSession.from_dict(session.to_dict())
    assert restored.settings == session.settings
    assert [i.to_dict() for i in restored.items] == [i.to_dict() for i in session.items]
    assert restored.new_id() == 3


def test_from_dict_rejects_duplicate_ids():
    data = {"settings": {}, "items": [{"id": 1, "label": "A", "price": 1}, {"id": 1, "label": "B", "price": 2}]}
    with pytest.raises(ValueError):
        TagSession.from_dict(data)


def test_loaded_session_is_recomputed():
    data = {"settings": Settings(design=True).to_dict(), "items": [{"id": 5, "label": "Tea", "price": 1299}]}
    restored = TagSession.from_dict(data)
    assert restored.items[0].discount_price == 1234
    assert restored.dirty is False


def test_tag_params(session, sample_items):
    session.set_items(sample_items)
    params = session.tag_params()
    assert [p.display_label for p in params] == ["Earl Grey", "Sencha", "Puer"]


def test_undo_import_restores_table_flags(session):
    session.add_item("Tea", 1299)
    session.set_items([Item(id=0, label="A", price=10, has_discount=True)], True, True)
    assert session.settings.has_table_discounts

    session.undo()
    assert [i.label for i in session.items] == ["Tea"]
    assert not session.settings.has_table_designs
    assert not session.settings.has_table_discounts

    session.redo()
    assert session.settings.has_table_designs and session.settings.has_table_discounts


def test_discount_amount_must_be_finite(session):
    with pytest.raises(ValueError):
        session.set_discount_amount(float("nan"))
    with pytest.raises(ValueError):
        session.set_discount_amount(float("inf"))
    session.set_discount_amount(0)
    assert session.settings.discount_amount == 0


def test_saved_counter_wins_over_item_ids():
    data = {"settings": {}, "items": [{"id": 2, "label": "A", "price": 1}], "next_id": 10}
    assert TagSession.from_dict(data).new_id() == 10


def test_counter_never_below_existing_ids():
    data = {"settings": {}, "items": [{"id": 5, "label": "A", "price": 1}], "next_id": 2}
    assert TagSession.from_dict(data).new_id() == 6


@pytest.mark.parametrize("data", [[], {"items": {"a": 1}}, {"items": ["tea"]}, {"settings": "x"}])
def test_from_dict_rejects_wrong_shape(data):
    with pytest.raises(ValueError):
        TagSession.from_dict(data)
