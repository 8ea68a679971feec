import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Item, Label, Settings
from pricing import TABLE_DESIGN, is_positive_number, update_item_prices, validate_price
from tags import TagParams, build_all_tag_params
from themes import DEFAULT_THEMES, ThemeSet

logger = logging.getLogger(__name__)

FONTS = ("montserrat", "nunito", "inter", "mont")
EDITABLE_FIELDS = ("label", "price", "design_type", "has_discount", "price_for_2", "price_from_3")

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

# товары + has_table_designs + has_table_discounts
Snapshot = Tuple[List[Item], bool, bool]


class TagSession:
    """
    Состояние одной рабочей сессии (вкладка, чат в боте): товары + настройки.

    Любое изменение, от которого зависит цена со скидкой, сразу запускает
    полный пересчёт всех товаров. Частичного пересчёта нет.
    Идентификаторы выдаются счётчиком и не переиспользуются.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        items: Optional[Iterable[Item]] = None,
        themes: ThemeSet = DEFAULT_THEMES,
        next_id: Optional[int] = None,
    ):
        self.settings = settings or Settings()
        self.themes = themes
        self.items: List[Item] = [item.copy() for item in (items or [])]
        # счётчик не меньше сохранённого: id удалённых товаров не выдаются повторно
        self._next_id = max(next_id or 0, max((item.id for item in self.items), default=0) + 1)
        self.history: List[Snapshot] = [self._snapshot()]
        self.history_index = 0
        self.dirty = True
        self.recompute()

    # -------------------------
    # Пересчёт
    # -------------------------
    def recompute(self) -> int:
        changed = update_item_prices(self.items, self.settings)
        self.dirty = False
        return changed

    def _changed(self):
        self.dirty = True
        self.recompute()

    # -------------------------
    # История
    # -------------------------
    def _snapshot(self) -> Snapshot:
        # флаги таблицы откатываются вместе со списком
        return (
            [item.copy() for item in self.items],
            self.settings.has_table_designs,
            self.settings.has_table_discounts,
        )

    def _push_history(self):
        self.history = self.history[: self.history_index + 1]
        self.history.append(self._snapshot())
        self.history_index = len(self.history) - 1

    def _restore(self, index: int):
        items, has_table_designs, has_table_discounts = self.history[index]
        self.history_index = index
        self.items = [item.copy() for item in items]
        self.settings.has_table_designs = has_table_designs
        self.settings.has_table_discounts = has_table_discounts
        self._changed()

    def can_undo(self) -> bool:
        return self.history_index > 0

    def can_redo(self) -> bool:
        return self.history_index < len(self.history) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self._restore(self.history_index - 1)
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self._restore(self.history_index + 1)
        return True

    # -------------------------
    # Товары
    # -------------------------
    def new_id(self) -> int:
        item_id = self._next_id
        self._next_id += 1
        return item_id

    def get_item(self, item_id: int) -> Item:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def add_item(
        self,
        label: Label,
        price: float,
        *,
        design_type: Optional[str] = None,
        has_discount: Optional[bool] = None,
        price_for_2: Optional[float] = None,
        price_from_3: Optional[float] = None,
    ) -> Item:
        if not is_positive_number(price):
            raise ValueError("Цена должна быть положительным числом")
        item = Item(
            id=self.new_id(),
            label=label,
            price=price,
            discount_price=price,
            design_type=design_type,
            has_discount=has_discount,
            price_for_2=price_for_2,
            price_from_3=price_from_3,
        )
        self.items.append(item)
        self._changed()
        self._push_history()
        return item

    def set_items(self, items: Iterable[Item], has_table_designs: bool = False, has_table_discounts: bool = False):
        """Заменяет список товаров результатом импорта. Id выдаются заново."""
        self.items = [item.copy(id=self.new_id()) for item in items]
        self.settings.has_table_designs = has_table_designs
        self.settings.has_table_discounts = has_table_discounts
        self._changed()
        self._push_history()

    def append_items(self, items: Iterable[Item], has_table_designs: bool = False, has_table_discounts: bool = False):
        """Добавляет импортированные товары к уже имеющимся."""
        self.items.extend(item.copy(id=self.new_id()) for item in items)
        self.settings.has_table_designs = has_table_designs
        self.settings.has_table_discounts = has_table_discounts
        self._changed()
        self._push_history()

    def update_item(self, item_id: int, field: str, value: Any) -> Item:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown item field: {field}")
        item = self.get_item(item_id)

        if field == "price":
            if not is_positive_number(value):
                raise ValueError("Цена должна быть положительным числом")
            item.price = value
        elif field == "design_type":
            item.design_type = value or None
        elif field == "has_discount":
            item.has_discount = None if value is None else bool(value)
        elif field in ("price_for_2", "price_from_3"):
            if value is not None and not is_positive_number(value):
                raise ValueError("Оптовая цена должна быть положительным числом")
            setattr(item, field, value)
        else:
            item.label = value

        self._changed()
        self._push_history()
        return item

    def delete_item(self, item_id: int):
        self.get_item(item_id)
        self.items = [item for item in self.items if item.id != item_id]
        self._changed()
        self._push_history()

    def duplicate_items(self, ids: Iterable[int]) -> List[Item]:
        wanted = set(ids)
        copies = [item.copy(id=self.new_id()) for item in self.items if item.id in wanted]
        if not copies:
            return []
        self.items.extend(copies)
        self._changed()
        self._push_history()
        return copies

    def clear_items(self):
        self.items = []
        self.history = [self._snapshot()]
        self.history_index = 0
        self._changed()

    # -------------------------
    # Настройки
    # -------------------------
    def set_design(self, design: bool):
        self.settings.design = bool(design)
        self._changed()

    def set_design_type(self, design_type: str):
        if design_type != TABLE_DESIGN and design_type not in self.themes:
            raise ValueError(f"Неизвестная тема: {design_type}")
        # в табличном режиме со скидками из таблицы глобальный флаг выключаем
        if design_type == TABLE_DESIGN and self.settings.has_table_discounts:
            self.settings.design = False
        self.settings.design_type = design_type
        self._changed()

    def set_discount_amount(self, amount: float):
        if not validate_price(amount):
            raise ValueError("Размер скидки должен быть неотрицательным числом")
        self.settings.discount_amount = amount
        self._changed()

    def set_max_discount_percent(self, percent: float):
        if not isinstance(percent, (int, float)) or isinstance(percent, bool) or not 0 <= percent <= 100:
            raise ValueError("Процент должен быть от 0 до 100")
        self.settings.max_discount_percent = percent
        self._changed()

    def set_table_flags(self, has_table_designs: bool, has_table_discounts: bool):
        self.settings.has_table_designs = bool(has_table_designs)
        self.settings.has_table_discounts = bool(has_table_discounts)
        self._changed()

    def set_discount_text(self, text: str):
        lines = (text or "").split("\n")
        self.settings.discount_text = "\n".join(lines[:2])

    def set_show_theme_labels(self, show: bool):
        self.settings.show_theme_labels = bool(show)

    def set_cutting_line_color(self, color: str):
        if not _COLOR_RE.match(color or ""):
            raise ValueError(f"Цвет должен быть в формате #rrggbb: {color}")
        self.settings.cutting_line_color = color.lower()

    def set_font(self, font: str):
        if font not in FONTS:
            raise ValueError(f"Неизвестный шрифт: {font}")
        self.settings.font = font

    def clear_settings(self):
        s = self.settings
        s.design = False
        s.design_type = "default"
        s.has_table_designs = False
        s.has_table_discounts = False
        s.show_theme_labels = True
        self._changed()

    # -------------------------
    # Отрисовка и сохранение
    # -------------------------
    def tag_params(self) -> List[TagParams]:
        if self.dirty:
            self.recompute()
        return build_all_tag_params(self.items, self.settings, self.themes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": self.settings.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "next_id": self._next_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], themes: ThemeSet = DEFAULT_THEMES) -> "TagSession":
        if not isinstance(data, dict):
            raise ValueError("Saved session must be a JSON object")
        raw_settings = data.get("settings") or {}
        raw_items = data.get("items") or []
        next_id = data.get("next_id")
        if not isinstance(raw_settings, dict):
            raise ValueError("Saved settings must be a JSON object")
        if not isinstance(raw_items, list) or not all(isinstance(raw, dict) for raw in raw_items):
            raise ValueError("Saved items must be a list of JSON objects")
        if next_id is not None and (not isinstance(next_id, int) or isinstance(next_id, bool)):
            raise ValueError("Saved next_id must be an integer")

        settings = Settings.from_dict(raw_settings)
        items = [Item.from_dict(raw) for raw in raw_items]
        ids = [item.id for item in items]
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            raise ValueError("Item ids must be integers")
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate item ids in saved session")
        return cls(settings=settings, items=items, themes=themes, next_id=next_id)
