from dataclasses import dataclass
from typing import Dict, List, Optional

from models import Item, Theme

ThemeSet = Dict[str, Theme]

REQUIRED_THEMES = ("default", "new", "sale")

# цвет рамки для монохромных ценников
LIGHT_BORDER_COLOR = "#e5e5e5"
DARK_BORDER_COLOR = "#333333"

# "#cccccc" в настройках означает "подобрать цвет линии отреза автоматически"
AUTO_CUT_LINE_COLOR = "#cccccc"

LABEL_TEXTS = {"new": "NEW", "sale": "SALE"}


# -------------------------
# Каталог тем
# -------------------------
DEFAULT_THEMES: ThemeSet = {
    "default": Theme("#222222", "#dd4c9b", "#ffffff"),
    "new": Theme("#222222", "#9cdd4c", "#ffffff"),
    "sale": Theme("#222222", "#dd4c54", "#ffffff"),
    "white": Theme("#ffffff", "#ffffff", "#000000"),
    "black": Theme("#000000", "#000000", "#ffffff"),
    "sunset": Theme("#ff7e5f", "#feb47b", "#ffffff"),
    "ocean": Theme("#667eea", "#764ba2", "#ffffff"),
    "forest": Theme("#134e5e", "#71b280", "#ffffff"),
    "royal": Theme("#4c63d2", "#9c27b0", "#ffffff"),
    "vintage": Theme("#8b4513", "#d2b48c", "#ffffff"),
    "neon": Theme("#00ff00", "#ff00ff", "#000000"),
    "monochrome": Theme("#4a4a4a", "#888888", "#ffffff"),
    "silver": Theme("#c0c0c0", "#e8e8e8", "#000000"),
    "charcoal": Theme("#2c2c2c", "#2c2c2c", "#ffffff"),
    "paper": Theme("#f8f8f8", "#f0f0f0", "#333333"),
    "ink": Theme("#1a1a1a", "#1a1a1a", "#ffffff"),
    "snow": Theme("#ffffff", "#f5f5f5", "#000000"),
}


@dataclass(frozen=True)
class ThemeMeta:
    id: str
    name: str
    emoji: str
    category: str
    order: int


THEME_METADATA: List[ThemeMeta] = [
    # светлые фоны, тёмный текст
    ThemeMeta("white", "Белый", "⚪", "light", 1),
    ThemeMeta("snow", "Снег", "❄️", "light", 2),
    ThemeMeta("silver", "Серебро", "🥈", "light", 3),
    ThemeMeta("paper", "Бумага", "📄", "light", 4),
    ThemeMeta("monochrome", "Монохром", "🎨", "light-monochrome", 1),
    # тёмные фоны, светлый текст
    ThemeMeta("default", "Классик", "🎯", "dark", 1),
    ThemeMeta("new", "Новинка", "✨", "dark", 2),
    ThemeMeta("sale", "Распродажа", "🏷️", "dark", 3),
    ThemeMeta("sunset", "Закат", "🌅", "dark", 4),
    ThemeMeta("ocean", "Океан", "🌊", "dark", 5),
    ThemeMeta("forest", "Лес", "🌲", "dark", 6),
    ThemeMeta("royal", "Королевский", "👑", "dark", 7),
    ThemeMeta("vintage", "Винтаж", "📜", "dark", 8),
    ThemeMeta("neon", "Неон", "💫", "dark", 9),
    ThemeMeta("black", "Черный", "⚫", "dark-monochrome", 1),
    ThemeMeta("charcoal", "Уголь", "⚫", "dark-monochrome", 2),
    ThemeMeta("ink", "Чернила", "🖋️", "dark-monochrome", 3),
]

CATEGORY_NAMES = {
    "light": "Светлые",
    "dark": "Темные",
    "light-monochrome": "Светлые монохром",
    "dark-monochrome": "Темные монохром",
}


def validate_theme_set(themes: ThemeSet) -> None:
    missing = [key for key in REQUIRED_THEMES if key not in themes]
    if missing:
        raise ValueError(f"ThemeSet is missing required themes: {', '.join(missing)}")


def get_theme_meta(key: str) -> Optional[ThemeMeta]:
    for meta in THEME_METADATA:
        if meta.id == key:
            return meta
    return None


def themes_by_category(category: str) -> List[ThemeMeta]:
    return sorted((m for m in THEME_METADATA if m.category == category), key=lambda m: m.order)


def theme_title(key: str) -> str:
    meta = get_theme_meta(key)
    if meta is None:
        return key
    return f"{meta.emoji} {meta.name}"


# -------------------------
# Выбор темы для товара
# -------------------------
def resolve_design_type(
    item: Item,
    global_design_type: str,
    use_table_designs: bool,
    themes: ThemeSet = DEFAULT_THEMES,
) -> str:
    key = global_design_type
    if use_table_designs and item.design_type in themes:
        key = item.design_type
    if key not in themes:
        return "default"
    return key


@dataclass(frozen=True)
class ThemeStyle:
    needs_border: bool
    border_color: str
    is_light: bool
    cut_line_color: str
    should_show_label: bool
    label_text: Optional[str]


def derive_theme_style(
    key: str,
    theme: Theme,
    show_theme_labels: bool,
    cutting_line_color: Optional[str],
) -> ThemeStyle:
    needs_border = key in ("white", "black") or theme.start == theme.end
    border_color = LIGHT_BORDER_COLOR if key == "white" else DARK_BORDER_COLOR

    # светлые темы: те, у которых тёмный текст
    is_light = theme.text_color != "#ffffff"
    auto_color = "#000000" if is_light else "#ffffff"
    if not cutting_line_color or cutting_line_color == AUTO_CUT_LINE_COLOR:
        cut_line_color = auto_color
    else:
        cut_line_color = cutting_line_color

    should_show_label = bool(show_theme_labels) and key in LABEL_TEXTS
    return ThemeStyle(
        needs_border=needs_border,
        border_color=border_color,
        is_light=is_light,
        cut_line_color=cut_line_color,
        should_show_label=should_show_label,
        label_text=LABEL_TEXTS[key] if should_show_label else None,
    )
