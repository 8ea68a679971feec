import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from models import Item, Settings, Theme
from pricing import calculate_discount_price, has_multi_tier, resolve_show_discount
from themes import DEFAULT_THEMES, ThemeSet, derive_theme_style, resolve_design_type, validate_theme_set

MAX_DISCOUNT_TEXT_LINES = 2


# -------------------------
# Форматирование чисел (ru-RU)
# -------------------------
def format_price(value) -> str:
    """
    Группирует разряды по три пробелом, дробная часть через запятую (до 3 знаков).
    Пример: 12000 -> "12 000", 1299.5 -> "1 299,5"
    """
    if value is None or isinstance(value, bool):
        return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if not math.isfinite(number):
        return str(value)

    sign = "-" if number < 0 else ""
    integer, _, fraction = f"{abs(number):.3f}".partition(".")
    fraction = fraction.rstrip("0")
    grouped = f"{int(integer):,}".replace(",", " ")
    if fraction:
        return f"{sign}{grouped},{fraction}"
    if grouped == "0":
        return grouped
    return f"{sign}{grouped}"


def split_discount_text(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    lines = [line.strip() for line in text.split("\n")]
    return tuple(line for line in lines[:MAX_DISCOUNT_TEXT_LINES] if line)


# -------------------------
# Параметры отрисовки ценника
# -------------------------
@dataclass(frozen=True)
class TierPrices:
    for1: str
    for2: str
    from3: str


@dataclass(frozen=True)
class TagParams:
    item_id: int
    display_label: str
    base_price_formatted: str
    show_discount: bool
    discount_price_formatted: Optional[str]
    is_multi_tier: bool
    tier_prices_formatted: Optional[TierPrices]
    resolved_design_key: str
    theme: Theme
    needs_border: bool
    border_color: str
    should_show_label: bool
    label_text: Optional[str]
    cut_line_color: str
    discount_text_lines: Tuple[str, ...]


def build_tag_params(item: Item, settings: Settings, themes: ThemeSet = DEFAULT_THEMES) -> TagParams:
    """
    Собирает всё, что нужно любому рендереру (SVG, HTML, PDF, превью в боте),
    чтобы нарисовать один ценник. Рендереры сами ничего не решают.

    discount_price_formatted заполняется, только если скидка показывается и
    цена со скидкой отличается от базовой. Текст под скидкой выводится только
    для обычной (не оптовой) раскладки.
    """
    show_discount = resolve_show_discount(
        item,
        settings.design,
        settings.design_type,
        settings.has_table_discounts,
    )
    discount_price_formatted = None
    if show_discount:
        discount_price = calculate_discount_price(
            item.price, settings.discount_amount, settings.max_discount_percent
        )
        if discount_price != item.price:
            discount_price_formatted = format_price(discount_price)

    is_multi_tier = has_multi_tier(item)
    tier_prices = None
    if is_multi_tier:
        tier_prices = TierPrices(
            for1=format_price(item.price),
            for2=format_price(item.price_for_2),
            from3=format_price(item.price_from_3),
        )

    key = resolve_design_type(item, settings.design_type, settings.use_table_designs, themes)
    theme = themes[key]
    style = derive_theme_style(key, theme, settings.show_theme_labels, settings.cutting_line_color)

    discount_lines: Tuple[str, ...] = ()
    if show_discount and not is_multi_tier:
        discount_lines = split_discount_text(settings.discount_text)

    return TagParams(
        item_id=item.id,
        display_label=str(item.label),
        base_price_formatted=format_price(item.price),
        show_discount=show_discount,
        discount_price_formatted=discount_price_formatted,
        is_multi_tier=is_multi_tier,
        tier_prices_formatted=tier_prices,
        resolved_design_key=key,
        theme=theme,
        needs_border=style.needs_border,
        border_color=style.border_color,
        should_show_label=style.should_show_label,
        label_text=style.label_text,
        cut_line_color=style.cut_line_color,
        discount_text_lines=discount_lines,
    )


def build_all_tag_params(
    items: Iterable[Item],
    settings: Settings,
    themes: ThemeSet = DEFAULT_THEMES,
) -> List[TagParams]:
    validate_theme_set(themes)
    return [build_tag_params(item, settings, themes) for item in items]
