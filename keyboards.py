from typing import List, Optional

from aiogram.utils.keyboard import InlineKeyboardBuilder

from models import Item, Settings
from pricing import TABLE_DESIGN
from session import FONTS
from tags import format_price
from themes import CATEGORY_NAMES, theme_title, themes_by_category

ITEMS_PER_PAGE = 8

CUT_LINE_COLORS = [
    ("🤖 Авто", "auto"),
    ("⚫ Чёрный", "#000000"),
    ("⚪ Белый", "#ffffff"),
    ("🔘 Серый", "#888888"),
    ("🔴 Красный", "#ff0000"),
    ("🔵 Синий", "#0000ff"),
]

FONT_TITLES = {
    "montserrat": "Montserrat",
    "nunito": "Nunito",
    "inter": "Inter",
    "mont": "Mont",
}

DISCOUNT_FLAG_TITLES = {None: "как у всех", True: "да", False: "нет"}


def main_menu_kb():
    kb = InlineKeyboardBuilder()
    kb.button(text="📋 Товары", callback_data="menu:items")
    kb.button(text="📥 Загрузить таблицу", callback_data="menu:import")
    kb.button(text="🎨 Дизайн и скидки", callback_data="menu:design")
    kb.button(text="🖨 Скачать ценники", callback_data="menu:export")
    kb.button(text="♻️ Сбросить настройки", callback_data="settings:reset")
    kb.adjust(1)
    return kb.as_markup()


def back_cancel_kb(back_cb: str):
    kb = InlineKeyboardBuilder()
    kb.button(text="⬅️ Назад", callback_data=back_cb)
    kb.button(text="⛔️ Отмена", callback_data="menu:cancel")
    kb.adjust(2)
    return kb.as_markup()


def confirm_kb(yes_cb: str, no_cb: str):
    kb = InlineKeyboardBuilder()
    kb.button(text="✅ Да", callback_data=yes_cb)
    kb.button(text="❌ Нет", callback_data=no_cb)
    kb.adjust(2)
    return kb.as_markup()


# -------------------------
# Товары
# -------------------------
def item_title(item: Item) -> str:
    text = f"{item.label} — {format_price(item.price)} ₽"
    if item.discount_price != item.price:
        text += f" → {format_price(item.discount_price)}"
    return text


def page_count(total: int) -> int:
    return max(1, (total + ITEMS_PER_PAGE - 1) // ITEMS_PER_PAGE)


def items_kb(items: List[Item], page: int, can_undo: bool, can_redo: bool):
    kb = InlineKeyboardBuilder()
    pages = page_count(len(items))
    page = min(max(page, 0), pages - 1)
    start = page * ITEMS_PER_PAGE
    sizes = []

    for item in items[start : start + ITEMS_PER_PAGE]:
        kb.button(text=item_title(item)[:60], callback_data=f"item:open:{item.id}")
        sizes.append(1)

    if pages > 1:
        nav = 0
        if page > 0:
            kb.button(text="◀️", callback_data=f"items:page:{page - 1}")
            nav += 1
        kb.button(text=f"{page + 1}/{pages}", callback_data="items:noop")
        nav += 1
        if page < pages - 1:
            kb.button(text="▶️", callback_data=f"items:page:{page + 1}")
            nav += 1
        sizes.append(nav)

    kb.button(text="➕ Добавить", callback_data="items:add")
    kb.button(text="🗑 Очистить", callback_data="items:clear")
    sizes.append(2)

    history = 0
    if can_undo:
        kb.button(text="↩️ Отменить", callback_data="items:undo")
        history += 1
    if can_redo:
        kb.button(text="↪️ Вернуть", callback_data="items:redo")
        history += 1
    if history:
        sizes.append(history)

    kb.button(text="🏠 Меню", callback_data="menu:main")
    sizes.append(1)
    kb.adjust(*sizes)
    return kb.as_markup()


def item_kb(item: Item):
    kb = InlineKeyboardBuilder()
    kb.button(text="✏️ Название", callback_data=f"item:edit:{item.id}:label")
    kb.button(text="💰 Цена", callback_data=f"item:edit:{item.id}:price")
    kb.button(text="🎨 Тема", callback_data=f"item:theme:{item.id}")
    kb.button(
        text=f"🏷 Скидка: {DISCOUNT_FLAG_TITLES[item.has_discount]}",
        callback_data=f"item:discount:{item.id}",
    )
    kb.button(text="2️⃣ Цена за 2", callback_data=f"item:edit:{item.id}:price_for_2")
    kb.button(text="3️⃣ Цена от 3", callback_data=f"item:edit:{item.id}:price_from_3")
    kb.button(text="👁 Превью", callback_data=f"item:preview:{item.id}")
    kb.button(text="📄 Дублировать", callback_data=f"item:dup:{item.id}")
    kb.button(text="🗑 Удалить", callback_data=f"item:del:{item.id}")
    kb.button(text="⬅️ К списку", callback_data="menu:items")
    kb.adjust(2, 2, 2, 2, 1, 1)
    return kb.as_markup()


# -------------------------
# Темы
# -------------------------
def theme_categories_kb(prefix: str, back_cb: str, with_table: bool = False, with_inherit: bool = False):
    """prefix: куда отправлять выбор, например "design" или "itheme:12"."""
    kb = InlineKeyboardBuilder()
    for category, title in CATEGORY_NAMES.items():
        kb.button(text=title, callback_data=f"{prefix}:cat:{category}")
    if with_table:
        kb.button(text="📊 Из таблицы", callback_data=f"{prefix}:set:{TABLE_DESIGN}")
    if with_inherit:
        kb.button(text="↩️ Как у всех", callback_data=f"{prefix}:set:-")
    kb.button(text="⬅️ Назад", callback_data=back_cb)
    kb.adjust(2)
    return kb.as_markup()


def themes_kb(prefix: str, category: str, current: Optional[str] = None):
    kb = InlineKeyboardBuilder()
    for meta in themes_by_category(category):
        mark = "✅ " if meta.id == current else ""
        kb.button(text=mark + theme_title(meta.id), callback_data=f"{prefix}:set:{meta.id}")
    kb.button(text="⬅️ Назад", callback_data=f"{prefix}:cats")
    kb.adjust(2)
    return kb.as_markup()


# -------------------------
# Дизайн и скидки
# -------------------------
def design_kb(settings: Settings):
    kb = InlineKeyboardBuilder()
    kb.button(text=f"🏷 Скидка: {'вкл' if settings.design else 'выкл'}", callback_data="design:toggle")
    kb.button(text="🎨 Тема", callback_data="design:cats")
    kb.button(text=f"➖ Скидка: {format_price(settings.discount_amount)} ₽", callback_data="design:amount")
    kb.button(text=f"📉 Максимум: {format_price(settings.max_discount_percent)}%", callback_data="design:percent")
    kb.button(text="💬 Текст под скидкой", callback_data="design:text")
    kb.button(
        text=f"🆕 NEW/SALE: {'вкл' if settings.show_theme_labels else 'выкл'}",
        callback_data="design:labels",
    )
    kb.button(text="✂️ Линия отреза", callback_data="design:cut")
    kb.button(text=f"🔤 Шрифт: {FONT_TITLES.get(settings.font, settings.font)}", callback_data="design:font")
    kb.button(text="🏠 Меню", callback_data="menu:main")
    kb.adjust(1, 1, 2, 1, 1, 2, 1)
    return kb.as_markup()


def cut_colors_kb(current: str):
    kb = InlineKeyboardBuilder()
    for title, value in CUT_LINE_COLORS:
        mark = "✅ " if value == current else ""
        kb.button(text=mark + title, callback_data=f"cut:set:{value}")
    kb.button(text="⬅️ Назад", callback_data="menu:design")
    kb.adjust(2)
    return kb.as_markup()


def fonts_kb(current: str):
    kb = InlineKeyboardBuilder()
    for font in FONTS:
        mark = "✅ " if font == current else ""
        kb.button(text=mark + FONT_TITLES[font], callback_data=f"font:set:{font}")
    kb.button(text="⬅️ Назад", callback_data="menu:design")
    kb.adjust(2)
    return kb.as_markup()


# -------------------------
# Импорт / экспорт
# -------------------------
def import_kb():
    kb = InlineKeyboardBuilder()
    kb.button(text="📗 Excel или CSV файл", callback_data="import:file")
    kb.button(text="🔗 Google Таблица", callback_data="import:sheets")
    kb.button(text="📋 Вставить текстом", callback_data="import:text")
    kb.button(text="📄 Шаблон Excel", callback_data="import:template")
    kb.button(text="🏠 Меню", callback_data="menu:main")
    kb.adjust(1)
    return kb.as_markup()


def export_kb():
    kb = InlineKeyboardBuilder()
    kb.button(text="📕 PDF (A4)", callback_data="export:pdf")
    kb.button(text="🌐 HTML для печати", callback_data="export:html")
    kb.button(text="👁 Превью первого", callback_data="export:preview")
    kb.button(text="🏠 Меню", callback_data="menu:main")
    kb.adjust(2, 1, 1)
    return kb.as_markup()
