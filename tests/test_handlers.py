import asyncio
from unittest.mock import AsyncMock, MagicMock

from aiogram.types.input_file import BufferedInputFile

from handlers import (
    ItemsFSM,
    SettingsFSM,
    cb_design_set,
    cb_design_toggle,
    cb_export_pdf,
    cb_item_discount,
    cb_items_clear_ok,
    cb_items_history,
    import_receive_sheets,
    item_edit_value,
    items_add_text,
    settings_number,
)


def make_message(text="", chat_id=1):
    message = MagicMock()
    message.text = text
    message.chat.id = chat_id
    message.answer = AsyncMock()
    message.answer_document = AsyncMock()
    return message


def make_query(data, chat_id=1):
    query = MagicMock()
    query.data = data
    query.message = make_message(chat_id=chat_id)
    query.answer = AsyncMock()
    return query


def make_state(data=None, state=None):
    fsm = AsyncMock()
    fsm.get_data.return_value = data or {}
    fsm.get_state.return_value = state
    return fsm


def test_add_items_from_text(store, tmp_path):
    message = make_message("Earl Grey; 1 299\nSencha; 890")
    state = make_state()

    asyncio.run(items_add_text(message, state, store))

    session = store.get(1)
    assert [(i.label, i.price) for i in session.items] == [("Earl Grey", 1299), ("Sencha", 890)]
    assert (tmp_path / "sessions" / "1.json").exists()
    state.clear.assert_awaited()


def test_add_items_keeps_state_on_garbage(store):
    message = make_message("nothing useful")
    state = make_state()

    asyncio.run(items_add_text(message, state, store))

    assert store.get(1).items == []
    state.clear.assert_not_awaited()
    message.answer.assert_awaited()


def test_edit_price_rejects_text(store):
    item = store.get(1).add_item("Tea", 100)
    message = make_message("free")
    state = make_state({"item_id": item.id, "field": "price"})

    asyncio.run(item_edit_value(message, state, store))

    assert item.price == 100
    assert "число" in message.answer.await_args.args[0]


def test_edit_price(store):
    item = store.get(1).add_item("Tea", 100)
    message = make_message("1 500")
    state = make_state({"item_id": item.id, "field": "price"})

    asyncio.run(item_edit_value(message, state, store))

    assert store.get(1).get_item(item.id).price == 1500
    state.clear.assert_awaited()


def test_clear_tier_price(store):
    item = store.get(1).add_item("Tea", 100, price_for_2=90, price_from_3=80)
    message = make_message("-")
    state = make_state({"item_id": item.id, "field": "price_for_2"})

    asyncio.run(item_edit_value(message, state, store))

    assert store.get(1).get_item(item.id).price_for_2 is None


def test_discount_flag_cycles(store):
    item = store.get(1).add_item("Tea", 100)
    query = make_query(f"item:discount:{item.id}")

    asyncio.run(cb_item_discount(query, store))
    assert item.has_discount is True
    asyncio.run(cb_item_discount(query, store))
    assert item.has_discount is False
    asyncio.run(cb_item_discount(query, store))
    assert item.has_discount is None


def test_toggle_design_recomputes(store):
    item = store.get(1).add_item("Tea", 1299)
    asyncio.run(cb_design_toggle(make_query("design:toggle"), store))

    assert store.get(1).settings.design is True
    assert item.discount_price == 1234


def test_unknown_theme_is_reported(store):
    query = make_query("design:set:nonexistent-key")
    asyncio.run(cb_design_set(query, store))

    assert store.get(1).settings.design_type == "default"
    assert query.answer.await_args.kwargs["show_alert"] is True


def test_settings_amount(store):
    message = make_message("100")
    state = make_state(state=SettingsFSM.amount.state)

    asyncio.run(settings_number(message, state, store))

    assert store.get(1).settings.discount_amount == 100


def test_settings_percent_out_of_range(store):
    message = make_message("150")
    state = make_state(state=SettingsFSM.percent.state)

    asyncio.run(settings_number(message, state, store))

    assert store.get(1).settings.max_discount_percent == 5
    state.clear.assert_not_awaited()


def test_undo_without_history(store):
    query = make_query("items:undo")
    asyncio.run(cb_items_history(query, store))
    query.answer.assert_awaited_with("Нечего отменять", show_alert=True)


def test_clear_items(store):
    store.get(1).add_item("Tea", 100)
    asyncio.run(cb_items_clear_ok(make_query("items:clear_ok"), store))
    assert store.get(1).items == []


def test_export_pdf_with_empty_list(store):
    query = make_query("export:pdf")
    asyncio.run(cb_export_pdf(query, store, {}))
    query.answer.assert_awaited_with("Список товаров пуст", show_alert=True)
    query.message.answer_document.assert_not_awaited()


def test_export_pdf(store):
    store.get(1).add_item("Earl Grey", 1299)
    query = make_query("export:pdf")

    asyncio.run(cb_export_pdf(query, store, {}))

    document = query.message.answer_document.await_args.args[0]
    assert isinstance(document, BufferedInputFile)
    assert document.data.startswith(b"%PDF")


def test_bad_sheets_link(store):
    message = make_message("https://example.com/not-a-sheet")
    state = make_state()

    asyncio.run(import_receive_sheets(message, state, store))

    assert "Google" in message.answer.await_args.args[0]
    state.clear.assert_not_awaited()


def test_states_are_distinct():
    assert ItemsFSM.add.state != ItemsFSM.edit_value.state
