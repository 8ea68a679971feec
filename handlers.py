import logging
from typing import Dict, Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message
from aiogram.types.input_file import BufferedInputFile

from config import MAX_UPLOAD_MB, MAX_UPLOAD_SIZE, PREVIEW_BASE_URL
from importer import (
    DataImportError,
    build_xlsx_template,
    fetch_google_sheet,
    load_excel,
    parse_clipboard_text,
    parse_csv,
    parse_number,
)
from keyboards import (
    back_cancel_kb,
    confirm_kb,
    cut_colors_kb,
    design_kb,
    fonts_kb,
    export_kb,
    import_kb,
    item_kb,
    item_title,
    items_kb,
    main_menu_kb,
    theme_categories_kb,
    themes_kb,
)
from models import ImportResult
from pricing import TABLE_DESIGN, multi_tier_savings
from render import Fonts, build_preview_url, fonts_for, make_pdf_tags, render_preview_png, render_tags_html
from storage import SessionStore
from tags import format_price
from themes import AUTO_CUT_LINE_COLOR, CATEGORY_NAMES, theme_title

logger = logging.getLogger(__name__)

router = Router()

WELCOME_TEXT = (
    "Привет! Я делаю ценники 🏷\n\n"
    "• 📥 Загрузи таблицу (Excel, CSV, Google Таблица) или добавь товары вручную\n"
    "• 🎨 Выбери тему и настрой скидку по подписке\n"
    "• 🖨 Скачай PDF или HTML: 18 ценников на листе A4\n\n"
    "Выбирай действие кнопками ниже 👇"
)

IMPORT_HELP_TEXT = (
    "📥 Загрузка таблицы\n\n"
    "Первая колонка — название, вторая — цена.\n"
    "Необязательные колонки (по заголовку): «Дизайн», «Скидка», «Цена за 2», «Цена от 3».\n"
    "Загрузка заменяет текущий список товаров."
)

ADD_ITEMS_TEXT = (
    "➕ Пришли товары, по одному в строке:\n"
    "Название; цена\n\n"
    "Например:\n"
    "Эрл Грей; 1 299\n"
    "Сенча; 890"
)

FIELD_PROMPTS = {
    "label": "✏️ Введи новое название:",
    "price": "💰 Введи новую цену:",
    "price_for_2": "2️⃣ Введи цену за 2 шт. (или «-», чтобы убрать):",
    "price_from_3": "3️⃣ Введи цену от 3 шт. (или «-», чтобы убрать):",
}

ERROR_TEXT = "⚠️ Что-то пошло не так. Попробуй ещё раз."


class ItemsFSM(StatesGroup):
    add = State()
    edit_value = State()


class SettingsFSM(StatesGroup):
    amount = State()
    percent = State()
    text = State()


class ImportFSM(StatesGroup):
    file = State()
    sheets = State()
    text = State()


def parse_id(data: str, index: int = 2) -> int:
    return int(data.split(":")[index])


def describe_settings(store: SessionStore, chat_id: int) -> str:
    s = store.get(chat_id).settings
    design = "из таблицы" if s.design_type == TABLE_DESIGN else theme_title(s.design_type)
    cut = "авто" if s.cutting_line_color in ("", AUTO_CUT_LINE_COLOR) else s.cutting_line_color
    lines = [
        "🎨 Дизайн и скидки\n",
        f"Тема: {design}",
        f"Скидка по подписке: {'включена' if s.design else 'выключена'}",
        f"Размер скидки: {format_price(s.discount_amount)} ₽, но не больше {format_price(s.max_discount_percent)}%",
        "Текст под скидкой: " + s.discount_text.replace("\n", " / "),
        f"Линия отреза: {cut}",
    ]
    if s.has_table_designs or s.has_table_discounts:
        lines.append(
            f"Из таблицы: темы — {'да' if s.has_table_designs else 'нет'}, "
            f"скидки — {'да' if s.has_table_discounts else 'нет'}"
        )
    return "\n".join(lines)


def describe_item(store: SessionStore, chat_id: int, item_id: int) -> str:
    item = store.get(chat_id).get_item(item_id)
    lines = [
        f"🏷 {item.label}",
        f"Цена: {format_price(item.price)} ₽",
    ]
    if item.discount_price != item.price:
        lines.append(f"Со скидкой: {format_price(item.discount_price)} ₽")
    lines.append(f"Тема: {theme_title(item.design_type) if item.design_type else 'как у всех'}")
    if item.price_for_2 is not None or item.price_from_3 is not None:
        savings = multi_tier_savings(item)
        lines.append(
            f"За 2 шт.: {format_price(item.price_for_2) or '—'} (−{savings['savings_2']:.0f}%), "
            f"от 3 шт.: {format_price(item.price_from_3) or '—'} (−{savings['savings_3']:.0f}%)"
        )
    return "\n".join(lines)


async def show_items(message: Message, store: SessionStore, chat_id: int, page: int = 0):
    session = store.get(chat_id)
    if not session.items:
        text = "📋 Список товаров пуст. Добавь товары или загрузи таблицу."
    else:
        text = f"📋 Товары: {len(session.items)}"
    await message.answer(
        text,
        reply_markup=items_kb(session.items, page, session.can_undo(), session.can_redo()),
    )


async def show_design(message: Message, store: SessionStore, chat_id: int):
    await message.answer(describe_settings(store, chat_id), reply_markup=design_kb(store.get(chat_id).settings))


async def report_import(message: Message, store: SessionStore, chat_id: int, result: ImportResult):
    if not result.items:
        await message.answer("Не нашёл ни одного товара. Проверь данные и попробуй ещё раз.")
        return

    session = store.get(chat_id)
    session.set_items(result.items, result.has_table_designs, result.has_table_discounts)
    store.save(chat_id)
    logger.info("Chat %s imported %s items", chat_id, len(result.items))

    text = f"✅ Загружено товаров: {len(result.items)}\nКолонки: {', '.join(result.column_labels)}"
    if result.skipped_rows:
        text += f"\nПропущено строк: {result.skipped_rows}"
    await message.answer(text, reply_markup=main_menu_kb())


# -------------------------
# Меню
# -------------------------
@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(WELCOME_TEXT, reply_markup=main_menu_kb())


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(WELCOME_TEXT, reply_markup=main_menu_kb())


@router.callback_query(F.data.in_({"menu:cancel", "menu:main"}))
async def cb_main(query: CallbackQuery, state: FSMContext):
    await state.clear()
    await query.message.answer(WELCOME_TEXT, reply_markup=main_menu_kb())
    await query.answer()


# -------------------------
# Товары
# -------------------------
@router.callback_query(F.data == "menu:items")
async def cb_items(query: CallbackQuery, state: FSMContext, store: SessionStore):
    await state.clear()
    await show_items(query.message, store, query.message.chat.id)
    await query.answer()


@router.callback_query(F.data.startswith("items:page:"))
async def cb_items_page(query: CallbackQuery, store: SessionStore):
    await show_items(query.message, store, query.message.chat.id, page=parse_id(query.data))
    await query.answer()


@router.callback_query(F.data == "items:noop")
async def cb_items_noop(query: CallbackQuery):
    await query.answer()


@router.callback_query(F.data == "items:add")
async def cb_items_add(query: CallbackQuery, state: FSMContext):
    await state.set_state(ItemsFSM.add)
    await query.message.answer(ADD_ITEMS_TEXT, reply_markup=back_cancel_kb("menu:items"))
    await query.answer()


@router.message(ItemsFSM.add)
async def items_add_text(message: Message, state: FSMContext, store: SessionStore):
    result = parse_clipboard_text(message.text or "")
    if not result.items:
        await message.answer(
            "Не понял ни одной строки. Формат: Название; цена",
            reply_markup=back_cancel_kb("menu:items"),
        )
        return

    chat_id = message.chat.id
    session = store.get(chat_id)
    for item in result.items:
        session.add_item(
            item.label,
            item.price,
            design_type=item.design_type,
            has_discount=item.has_discount,
            price_for_2=item.price_for_2,
            price_from_3=item.price_from_3,
        )
    store.save(chat_id)

    text = f"✅ Добавлено товаров: {len(result.items)}"
    if result.skipped_rows:
        text += f"\nПропущено строк: {result.skipped_rows}"
    await state.clear()
    await message.answer(text)
    await show_items(message, store, chat_id)


@router.callback_query(F.data == "items:clear")
async def cb_items_clear(query: CallbackQuery):
    await query.message.answer(
        "🗑 Удалить все товары?",
        reply_markup=confirm_kb("items:clear_ok", "menu:items"),
    )
    await query.answer()


@router.callback_query(F.data == "items:clear_ok")
async def cb_items_clear_ok(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    store.get(chat_id).clear_items()
    store.save(chat_id)
    await query.message.answer("Список очищен.")
    await show_items(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data.in_({"items:undo", "items:redo"}))
async def cb_items_history(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    session = store.get(chat_id)
    done = session.undo() if query.data == "items:undo" else session.redo()
    if not done:
        await query.answer("Нечего отменять", show_alert=True)
        return
    store.save(chat_id)
    await show_items(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data.startswith("item:open:"))
async def cb_item_open(query: CallbackQuery, state: FSMContext, store: SessionStore):
    await state.clear()
    chat_id = query.message.chat.id
    item_id = parse_id(query.data)
    try:
        text = describe_item(store, chat_id, item_id)
    except KeyError:
        await query.answer("Товар не найден", show_alert=True)
        return
    await query.message.answer(text, reply_markup=item_kb(store.get(chat_id).get_item(item_id)))
    await query.answer()


@router.callback_query(F.data.startswith("item:edit:"))
async def cb_item_edit(query: CallbackQuery, state: FSMContext):
    _, _, item_id, field = query.data.split(":", 3)
    await state.set_state(ItemsFSM.edit_value)
    await state.update_data(item_id=int(item_id), field=field)
    await query.message.answer(FIELD_PROMPTS[field], reply_markup=back_cancel_kb(f"item:open:{item_id}"))
    await query.answer()


@router.message(ItemsFSM.edit_value)
async def item_edit_value(message: Message, state: FSMContext, store: SessionStore):
    data = await state.get_data()
    item_id = data.get("item_id")
    field = data.get("field")
    back = back_cancel_kb(f"item:open:{item_id}")

    text = (message.text or "").strip()
    if field == "label":
        value = text
        if not value:
            await message.answer("Название не может быть пустым.", reply_markup=back)
            return
    elif field in ("price_for_2", "price_from_3") and text in ("-", "—", ""):
        value = None
    else:
        value = parse_number(text)
        if value is None:
            await message.answer("Не похоже на число. Попробуй ещё раз:", reply_markup=back)
            return

    chat_id = message.chat.id
    try:
        item = store.get(chat_id).update_item(item_id, field, value)
    except KeyError:
        await state.clear()
        await message.answer("Товар не найден.")
        return
    except ValueError as e:
        await message.answer(f"⚠️ {e}", reply_markup=back)
        return

    store.save(chat_id)
    await state.clear()
    await message.answer(describe_item(store, chat_id, item.id), reply_markup=item_kb(item))


@router.callback_query(F.data.startswith("item:discount:"))
async def cb_item_discount(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    item_id = parse_id(query.data)
    session = store.get(chat_id)
    try:
        current = session.get_item(item_id).has_discount
    except KeyError:
        await query.answer("Товар не найден", show_alert=True)
        return

    # как у всех -> да -> нет -> как у всех
    next_value = {None: True, True: False, False: None}[current]
    item = session.update_item(item_id, "has_discount", next_value)
    store.save(chat_id)
    await query.message.answer(describe_item(store, chat_id, item_id), reply_markup=item_kb(item))
    await query.answer()


@router.callback_query(F.data.startswith("item:dup:"))
async def cb_item_dup(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    copies = store.get(chat_id).duplicate_items([parse_id(query.data)])
    if not copies:
        await query.answer("Товар не найден", show_alert=True)
        return
    store.save(chat_id)
    await query.message.answer(f"📄 Создана копия: {item_title(copies[0])}")
    await show_items(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data.startswith("item:del:"))
async def cb_item_del(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    try:
        store.get(chat_id).delete_item(parse_id(query.data))
    except KeyError:
        await query.answer("Товар не найден", show_alert=True)
        return
    store.save(chat_id)
    await show_items(query.message, store, chat_id)
    await query.answer("Удалено")


@router.callback_query(F.data.startswith("item:preview:"))
async def cb_item_preview(query: CallbackQuery, store: SessionStore, fonts: Dict[str, Fonts]):
    await send_preview(query, store, fonts, parse_id(query.data))


# -------------------------
# Тема товара
# -------------------------
@router.callback_query(F.data.startswith("item:theme:"))
async def cb_item_theme(query: CallbackQuery):
    item_id = parse_id(query.data)
    await query.message.answer(
        "🎨 Тема для этого товара:",
        reply_markup=theme_categories_kb(f"itheme:{item_id}", f"item:open:{item_id}", with_inherit=True),
    )
    await query.answer()


@router.callback_query(F.data.regexp(r"^itheme:\d+:cats$"))
async def cb_item_theme_cats(query: CallbackQuery):
    item_id = parse_id(query.data, 1)
    await query.message.answer(
        "🎨 Тема для этого товара:",
        reply_markup=theme_categories_kb(f"itheme:{item_id}", f"item:open:{item_id}", with_inherit=True),
    )
    await query.answer()


@router.callback_query(F.data.regexp(r"^itheme:\d+:cat:"))
async def cb_item_theme_category(query: CallbackQuery, store: SessionStore):
    _, item_id, _, category = query.data.split(":", 3)
    try:
        current = store.get(query.message.chat.id).get_item(int(item_id)).design_type
    except KeyError:
        await query.answer("Товар не найден", show_alert=True)
        return
    await query.message.answer(
        CATEGORY_NAMES.get(category, category),
        reply_markup=themes_kb(f"itheme:{item_id}", category, current),
    )
    await query.answer()


@router.callback_query(F.data.regexp(r"^itheme:\d+:set:"))
async def cb_item_theme_set(query: CallbackQuery, store: SessionStore):
    _, item_id, _, key = query.data.split(":", 3)
    chat_id = query.message.chat.id
    try:
        item = store.get(chat_id).update_item(int(item_id), "design_type", None if key == "-" else key)
    except KeyError:
        await query.answer("Товар не найден", show_alert=True)
        return
    store.save(chat_id)
    await query.message.answer(describe_item(store, chat_id, item.id), reply_markup=item_kb(item))
    await query.answer()


# -------------------------
# Загрузка данных
# -------------------------
@router.callback_query(F.data == "menu:import")
async def cb_import(query: CallbackQuery, state: FSMContext):
    await state.clear()
    await query.message.answer(IMPORT_HELP_TEXT, reply_markup=import_kb())
    await query.answer()


@router.callback_query(F.data == "import:template")
async def cb_import_template(query: CallbackQuery, state: FSMContext):
    await state.set_state(ImportFSM.file)
    await query.message.answer("Заполни шаблон и пришли его обратно.")
    await query.message.answer_document(BufferedInputFile(build_xlsx_template(), filename="Шаблон ценников.xlsx"))
    await query.answer()


@router.callback_query(F.data == "import:file")
async def cb_import_file(query: CallbackQuery, state: FSMContext):
    await state.set_state(ImportFSM.file)
    await query.message.answer("📗 Пришли файл .xlsx или .csv", reply_markup=back_cancel_kb("menu:import"))
    await query.answer()


@router.message(ImportFSM.file)
async def import_receive_file(message: Message, state: FSMContext, store: SessionStore):
    name = (message.document.file_name or "").lower() if message.document else ""
    if not name.endswith((".xlsx", ".csv")):
        await message.answer("Пришли файл .xlsx (Excel) или .csv.")
        return
    if message.document.file_size and message.document.file_size > MAX_UPLOAD_SIZE:
        await message.answer(f"Файл слишком большой: максимум {MAX_UPLOAD_MB} МБ.")
        return

    file = await message.bot.get_file(message.document.file_id)
    fb = await message.bot.download_file(file.file_path)
    raw = fb.read()

    try:
        if name.endswith(".csv"):
            result = parse_csv(raw.decode("utf-8-sig"))
        else:
            result = load_excel(raw)
    except UnicodeDecodeError:
        await message.answer("CSV должен быть в кодировке UTF-8.")
        return
    except DataImportError as e:
        await message.answer(f"Ошибка в таблице: {e}")
        return

    await state.clear()
    await report_import(message, store, message.chat.id, result)


@router.callback_query(F.data == "import:sheets")
async def cb_import_sheets(query: CallbackQuery, state: FSMContext):
    await state.set_state(ImportFSM.sheets)
    await query.message.answer(
        "🔗 Пришли ссылку на Google Таблицу.\nДоступ: «Все, у кого есть ссылка».",
        reply_markup=back_cancel_kb("menu:import"),
    )
    await query.answer()


@router.message(ImportFSM.sheets)
async def import_receive_sheets(message: Message, state: FSMContext, store: SessionStore):
    url = (message.text or "").strip()
    await message.answer("⏳ Загружаю таблицу…")
    try:
        result = await fetch_google_sheet(url)
    except DataImportError as e:
        await message.answer(f"⚠️ {e}", reply_markup=back_cancel_kb("menu:import"))
        return

    await state.clear()
    await report_import(message, store, message.chat.id, result)


@router.callback_query(F.data == "import:text")
async def cb_import_text(query: CallbackQuery, state: FSMContext):
    await state.set_state(ImportFSM.text)
    await query.message.answer(
        "📋 Вставь строки из таблицы (колонки через табуляцию, «;» или «,»).",
        reply_markup=back_cancel_kb("menu:import"),
    )
    await query.answer()


@router.message(ImportFSM.text)
async def import_receive_text(message: Message, state: FSMContext, store: SessionStore):
    result = parse_clipboard_text(message.text or "")
    if not result.items:
        await message.answer("Не нашёл ни одного товара. Проверь данные.", reply_markup=back_cancel_kb("menu:import"))
        return
    await state.clear()
    await report_import(message, store, message.chat.id, result)


# -------------------------
# Дизайн и скидки
# -------------------------
@router.callback_query(F.data == "menu:design")
async def cb_design(query: CallbackQuery, state: FSMContext, store: SessionStore):
    await state.clear()
    await show_design(query.message, store, query.message.chat.id)
    await query.answer()


@router.callback_query(F.data == "design:toggle")
async def cb_design_toggle(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    session = store.get(chat_id)
    session.set_design(not session.settings.design)
    store.save(chat_id)
    await show_design(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data == "design:labels")
async def cb_design_labels(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    session = store.get(chat_id)
    session.set_show_theme_labels(not session.settings.show_theme_labels)
    store.save(chat_id)
    await show_design(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data == "design:cats")
async def cb_design_cats(query: CallbackQuery):
    await query.message.answer(
        "🎨 Выбери тему для всех ценников:",
        reply_markup=theme_categories_kb("design", "menu:design", with_table=True),
    )
    await query.answer()


@router.callback_query(F.data.startswith("design:cat:"))
async def cb_design_category(query: CallbackQuery, store: SessionStore):
    category = query.data.split(":", 2)[2]
    current = store.get(query.message.chat.id).settings.design_type
    await query.message.answer(
        CATEGORY_NAMES.get(category, category),
        reply_markup=themes_kb("design", category, current),
    )
    await query.answer()


@router.callback_query(F.data.startswith("design:set:"))
async def cb_design_set(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    key = query.data.split(":", 2)[2]
    try:
        store.get(chat_id).set_design_type(key)
    except ValueError as e:
        await query.answer(str(e), show_alert=True)
        return
    store.save(chat_id)
    await show_design(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data == "design:amount")
async def cb_design_amount(query: CallbackQuery, state: FSMContext):
    await state.set_state(SettingsFSM.amount)
    await query.message.answer("➖ Введи размер скидки в рублях:", reply_markup=back_cancel_kb("menu:design"))
    await query.answer()


@router.callback_query(F.data == "design:percent")
async def cb_design_percent(query: CallbackQuery, state: FSMContext):
    await state.set_state(SettingsFSM.percent)
    await query.message.answer(
        "📉 Введи максимальный процент скидки (0–100):",
        reply_markup=back_cancel_kb("menu:design"),
    )
    await query.answer()


@router.message(SettingsFSM.amount)
@router.message(SettingsFSM.percent)
async def settings_number(message: Message, state: FSMContext, store: SessionStore):
    value = parse_number((message.text or "").strip())
    if value is None:
        await message.answer("Не похоже на число. Попробуй ещё раз:", reply_markup=back_cancel_kb("menu:design"))
        return

    chat_id = message.chat.id
    session = store.get(chat_id)
    current = await state.get_state()
    try:
        if current == SettingsFSM.amount.state:
            session.set_discount_amount(value)
        else:
            session.set_max_discount_percent(value)
    except ValueError as e:
        await message.answer(f"⚠️ {e}", reply_markup=back_cancel_kb("menu:design"))
        return

    store.save(chat_id)
    await state.clear()
    await show_design(message, store, chat_id)


@router.callback_query(F.data == "design:text")
async def cb_design_text(query: CallbackQuery, state: FSMContext):
    await state.set_state(SettingsFSM.text)
    await query.message.answer(
        "💬 Введи текст под ценой со скидкой (не больше двух строк):",
        reply_markup=back_cancel_kb("menu:design"),
    )
    await query.answer()


@router.message(SettingsFSM.text)
async def settings_text(message: Message, state: FSMContext, store: SessionStore):
    chat_id = message.chat.id
    store.get(chat_id).set_discount_text((message.text or "").strip())
    store.save(chat_id)
    await state.clear()
    await show_design(message, store, chat_id)


@router.callback_query(F.data == "design:cut")
async def cb_design_cut(query: CallbackQuery, store: SessionStore):
    color = store.get(query.message.chat.id).settings.cutting_line_color
    current = "auto" if color in ("", AUTO_CUT_LINE_COLOR) else color
    await query.message.answer("✂️ Цвет линии отреза:", reply_markup=cut_colors_kb(current))
    await query.answer()


@router.callback_query(F.data.startswith("cut:set:"))
async def cb_cut_set(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    value = query.data.split(":", 2)[2]
    try:
        store.get(chat_id).set_cutting_line_color(AUTO_CUT_LINE_COLOR if value == "auto" else value)
    except ValueError as e:
        await query.answer(str(e), show_alert=True)
        return
    store.save(chat_id)
    await show_design(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data == "design:font")
async def cb_design_font(query: CallbackQuery, store: SessionStore):
    await query.message.answer(
        "🔤 Шрифт ценников:",
        reply_markup=fonts_kb(store.get(query.message.chat.id).settings.font),
    )
    await query.answer()


@router.callback_query(F.data.startswith("font:set:"))
async def cb_font_set(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    try:
        store.get(chat_id).set_font(query.data.split(":", 2)[2])
    except ValueError as e:
        await query.answer(str(e), show_alert=True)
        return
    store.save(chat_id)
    await show_design(query.message, store, chat_id)
    await query.answer()


@router.callback_query(F.data == "settings:reset")
async def cb_settings_reset(query: CallbackQuery):
    await query.message.answer(
        "♻️ Сбросить тему, скидку и режим таблицы? Товары останутся.",
        reply_markup=confirm_kb("settings:reset_ok", "menu:main"),
    )
    await query.answer()


@router.callback_query(F.data == "settings:reset_ok")
async def cb_settings_reset_ok(query: CallbackQuery, store: SessionStore):
    chat_id = query.message.chat.id
    store.get(chat_id).clear_settings()
    store.save(chat_id)
    await query.message.answer("Настройки сброшены.")
    await show_design(query.message, store, chat_id)
    await query.answer()


# -------------------------
# Экспорт
# -------------------------
@router.callback_query(F.data == "menu:export")
async def cb_export(query: CallbackQuery, state: FSMContext, store: SessionStore):
    await state.clear()
    count = len(store.get(query.message.chat.id).items)
    await query.message.answer(f"🖨 Ценников к печати: {count}", reply_markup=export_kb())
    await query.answer()


@router.callback_query(F.data == "export:pdf")
async def cb_export_pdf(query: CallbackQuery, store: SessionStore, fonts: Dict[str, Fonts]):
    session = store.get(query.message.chat.id)
    if not session.items:
        await query.answer("Список товаров пуст", show_alert=True)
        return

    await query.message.answer(f"⏳ Генерирую PDF… ценников: {len(session.items)}")
    try:
        pdf_bytes = make_pdf_tags(session.tag_params(), fonts_for(fonts, session.settings.font))
    except Exception:
        logger.exception("PDF generation failed for chat %s", query.message.chat.id)
        await query.message.answer(ERROR_TEXT)
        await query.answer()
        return

    await query.message.answer_document(BufferedInputFile(pdf_bytes, filename="Ценники.pdf"))
    await query.message.answer("Готово. Что делаем дальше?", reply_markup=main_menu_kb())
    await query.answer()


@router.callback_query(F.data == "export:html")
async def cb_export_html(query: CallbackQuery, store: SessionStore):
    session = store.get(query.message.chat.id)
    if not session.items:
        await query.answer("Список товаров пуст", show_alert=True)
        return

    html_doc = render_tags_html(session.tag_params(), session.settings.font)
    logger.info("HTML generated: chat=%s tags=%s", query.message.chat.id, len(session.items))
    await query.message.answer_document(BufferedInputFile(html_doc.encode("utf-8"), filename="Ценники.html"))
    await query.message.answer("Открой файл в браузере и распечатай (Ctrl+P).", reply_markup=main_menu_kb())
    await query.answer()


@router.callback_query(F.data == "export:preview")
async def cb_export_preview(query: CallbackQuery, store: SessionStore, fonts: Dict[str, Fonts]):
    await send_preview(query, store, fonts)


async def send_preview(
    query: CallbackQuery,
    store: SessionStore,
    fonts: Dict[str, Fonts],
    item_id: Optional[int] = None,
):
    session = store.get(query.message.chat.id)
    params = session.tag_params()
    if item_id is not None:
        params = [p for p in params if p.item_id == item_id]
    if not params:
        await query.answer("Нет товара для превью", show_alert=True)
        return

    p = params[0]
    try:
        png = render_preview_png(p, fonts_for(fonts, session.settings.font))
    except Exception:
        logger.exception("Preview failed for chat %s", query.message.chat.id)
        await query.message.answer(ERROR_TEXT)
        await query.answer()
        return

    caption = f"{p.display_label} — {p.base_price_formatted} ₽"
    if PREVIEW_BASE_URL:
        caption += "\n" + build_preview_url(p, PREVIEW_BASE_URL, session.settings.font)
    await query.message.answer_photo(BufferedInputFile(png, filename="preview.png"), caption=caption[:1024])
    await query.answer()
