import logging
import math
from typing import Dict, Iterable, Optional

from models import Item, Settings

logger = logging.getLogger(__name__)

TABLE_DESIGN = "table"


# -------------------------
# Числа
# -------------------------
def is_positive_number(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def validate_price(price) -> bool:
    """Цена допустима, если это конечное число >= 0."""
    if price is None or isinstance(price, bool) or not isinstance(price, (int, float)):
        return False
    return math.isfinite(price) and price >= 0


def round_half_up(value: float) -> int:
    # как Math.round: .5 всегда вверх, в том числе для отрицательных
    return int(math.floor(value + 0.5))


# -------------------------
# Калькулятор скидки
# -------------------------
def calculate_discount_price(price, discount_amount, max_discount_percent):
    """
    Цена со скидкой: price - discount_amount, но скидка не больше
    max_discount_percent процентов от цены. Результат округляется до целого.

    Некорректная цена (<= 0, не число, inf/nan) возвращается как есть.
    Результат меньше нуля или больше исходной цены заменяется исходной ценой.
    """
    if not is_positive_number(price):
        return price
    if not isinstance(discount_amount, (int, float)) or not math.isfinite(discount_amount):
        return price
    if not isinstance(max_discount_percent, (int, float)) or not math.isfinite(max_discount_percent):
        return price

    discounted = price - discount_amount
    percent_off = (price - discounted) / price * 100

    if percent_off > max_discount_percent:
        result = round_half_up(price - price * max_discount_percent / 100)
    else:
        result = round_half_up(discounted)

    if result < 0 or result > price:
        return price
    return result


# -------------------------
# Применимость скидки
# -------------------------
def resolve_show_discount(
    item: Item,
    global_design: bool,
    global_design_type: str,
    has_table_discounts: bool,
) -> bool:
    if has_table_discounts and global_design_type == TABLE_DESIGN:
        if item.has_discount is not None:
            return bool(item.has_discount)
        return bool(global_design)
    return bool(global_design)


def resolve_discount_price(item: Item, settings: Settings):
    show = resolve_show_discount(
        item,
        settings.design,
        settings.design_type,
        settings.has_table_discounts,
    )
    if not show:
        return item.price
    return calculate_discount_price(item.price, settings.discount_amount, settings.max_discount_percent)


# -------------------------
# Оптовые цены (2 шт. / от 3 шт.)
# -------------------------
def has_multi_tier(item: Item) -> bool:
    return is_positive_number(item.price_for_2) and is_positive_number(item.price_from_3)


def multi_tier_savings(item: Item) -> Dict[str, float]:
    """Процент экономии на 2-й и 3-й ступени относительно базовой цены."""
    price = item.price

    def saving(tier: Optional[float]) -> float:
        if not is_positive_number(tier) or not is_positive_number(price):
            return 0.0
        return (price - tier) / price * 100

    return {
        "base_price": price,
        "price_for_2": item.price_for_2,
        "price_from_3": item.price_from_3,
        "savings_2": saving(item.price_for_2),
        "savings_3": saving(item.price_from_3),
    }


# -------------------------
# Пересчёт всего списка
# -------------------------
def update_item_prices(items: Iterable[Item], settings: Settings) -> int:
    """Пересчитывает discount_price у всех товаров. Возвращает число изменённых."""
    total = 0
    changed = 0
    for item in items:
        total += 1
        new_price = resolve_discount_price(item, settings)
        if new_price != item.discount_price:
            changed += 1
        item.discount_price = new_price

    logger.debug("Discount prices recomputed: total=%s changed=%s", total, changed)
    return changed
