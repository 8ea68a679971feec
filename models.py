from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

Label = Union[str, int, float]


# -------------------------
# Товар
# -------------------------
@dataclass
class Item:
    id: int
    label: Label
    price: float
    discount_price: float = 0
    design_type: Optional[str] = None  # None = брать глобальную тему
    has_discount: Optional[bool] = None  # None = нет мнения, решает глобальный флаг
    price_for_2: Optional[float] = None
    price_from_3: Optional[float] = None

    def copy(self, **changes) -> "Item":
        data = asdict(self)
        data.update(changes)
        return Item(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "discount_price" not in kwargs:
            kwargs["discount_price"] = kwargs["price"]
        return cls(**kwargs)


# -------------------------
# Тема
# -------------------------
@dataclass(frozen=True)
class Theme:
    start: str
    end: str
    text_color: str


# -------------------------
# Глобальные настройки сессии
# -------------------------
DEFAULT_DISCOUNT_TEXT = "цена при подписке\nна телеграм канал"


@dataclass
class Settings:
    design: bool = False
    design_type: str = "default"
    discount_amount: float = 500
    max_discount_percent: float = 5
    has_table_designs: bool = False
    has_table_discounts: bool = False
    show_theme_labels: bool = True
    discount_text: str = DEFAULT_DISCOUNT_TEXT
    cutting_line_color: str = "#cccccc"
    font: str = "montserrat"

    @property
    def use_table_designs(self) -> bool:
        return self.has_table_designs and self.design_type == "table"

    @property
    def use_table_discounts(self) -> bool:
        return self.has_table_discounts and self.design_type == "table"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ImportResult:
    items: List[Item] = field(default_factory=list)
    has_table_designs: bool = False
    has_table_discounts: bool = False
    column_labels: List[str] = field(default_factory=list)
    skipped_rows: int = 0
