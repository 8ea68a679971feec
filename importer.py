import asyncio
import csv
import io
import logging
import math
import re
import zipfile
from typing import Any, List, Optional, Sequence

import aiohttp
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils.exceptions import InvalidFileException

from models import ImportResult, Item, Label
from themes import DEFAULT_THEMES

logger = logging.getLogger(__name__)

HEADER_DESIGN = "дизайн"
HEADER_DISCOUNT = "скидка"
HEADER_PRICE_FOR_2 = "цена за 2"
HEADER_PRICE_FROM_3 = "цена от 3"

DEFAULT_COLUMN_LABELS = ["Название", "Цена", "Дизайн", "Скидка", "Цена за 2", "Цена от 3"]

# дизайн без заголовка распознаём только по этим значениям
HEADERLESS_DESIGN_VALUES = ("default", "new", "sale")

TRUE_VALUES = {"да", "true", "yes", "1", "истина", "y", "д", "+", "т", "true1"}
FALSE_VALUES = {"нет", "false", "no", "0", "ложь", "n", "н", "-", "ф", "false0"}

SHEETS_TIMEOUT = 30


class DataImportError(ValueError):
    """Ошибка во входных данных. Текст сообщения показывается пользователю."""


# -------------------------
# Разбор значений ячеек
# -------------------------
def parse_discount_value(value) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        value = str(value)
    s = str(value).strip().lower()
    if s == "":
        return None
    if s in TRUE_VALUES:
        return True
    if s in FALSE_VALUES:
        return False
    return None


def parse_number(value) -> Optional[float]:
    """
    Число из ячейки. Понимает "1 299", "1299,50", "1 299.5".
    Целые значения возвращаются как int.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        s = re.sub(r"\s", "", str(value))
        s = re.sub(r",(\d{1,2})$", r".\1", s).replace(",", "")
        if not s:
            return None
        try:
            number = float(s)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_design_value(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip().lower()
    return s if s in DEFAULT_THEMES else None


def _cell_str(value) -> str:
    return "" if value is None else str(value).strip()


def _cell(row: Sequence[Any], index: Optional[int]):
    if index is None or index >= len(row):
        return None
    return row[index]


def _label_value(value) -> Label:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return _cell_str(value)


def _positive_or_none(value) -> Optional[float]:
    number = parse_number(value)
    if number is None or number <= 0:
        return None
    return number


# -------------------------
# Таблица с заголовком (Excel, CSV, Google Таблицы)
# -------------------------
def parse_table(rows: Sequence[Sequence[Any]]) -> ImportResult:
    """
    Первая строка: заголовки. Название в первой колонке, цена во второй.
    Колонки «Дизайн», «Скидка», «Цена за 2», «Цена от 3» ищутся по заголовку
    без учёта регистра.
    """
    rows = [list(r) for r in rows]
    if not rows:
        raise DataImportError("Таблица пустая: заполни хотя бы одну строку.")

    header = [_cell_str(c) for c in rows[0]]
    lowered = [h.lower() for h in header]

    def find(name: str) -> Optional[int]:
        return lowered.index(name) if name in lowered else None

    design_col = find(HEADER_DESIGN)
    discount_col = find(HEADER_DISCOUNT)
    for2_col = find(HEADER_PRICE_FOR_2)
    from3_col = find(HEADER_PRICE_FROM_3)

    # нет колонки «Дизайн», но в 3-й колонке 3-й строки стоит тема, значит дизайн без заголовка
    headerless_design = False
    if design_col is None and len(rows) > 2:
        if _cell_str(_cell(rows[2], 2)).lower() in HEADERLESS_DESIGN_VALUES:
            design_col = 2
            headerless_design = True

    items: List[Item] = []
    for row_no, row in enumerate(rows[1:], start=2):
        if all(_cell_str(c) == "" for c in row):
            continue

        name = _cell(row, 0)
        if _cell_str(name) == "":
            raise DataImportError(f"Строка {row_no}: пустое название товара.")

        price = parse_number(_cell(row, 1))
        if price is None or price <= 0:
            raise DataImportError(f"Строка {row_no}: цена должна быть положительным числом.")

        items.append(
            Item(
                id=0,
                label=_label_value(name),
                price=price,
                discount_price=price,
                design_type=parse_design_value(_cell(row, design_col)),
                has_discount=parse_discount_value(_cell(row, discount_col)),
                price_for_2=_positive_or_none(_cell(row, for2_col)),
                price_from_3=_positive_or_none(_cell(row, from3_col)),
            )
        )

    if not items:
        raise DataImportError("В таблице нет товаров: заполни хотя бы одну строку.")

    labels = [
        (header[0] if header else "") or DEFAULT_COLUMN_LABELS[0],
        (header[1] if len(header) > 1 else "") or DEFAULT_COLUMN_LABELS[1],
    ]
    for col, default in (
        (design_col, "Дизайн"),
        (discount_col, "Скидка"),
        (for2_col, "Цена за 2"),
        (from3_col, "Цена от 3"),
    ):
        if col is not None:
            labels.append(default if headerless_design and col == design_col else header[col])

    result = ImportResult(
        items=items,
        has_table_designs=design_col is not None,
        has_table_discounts=discount_col is not None,
        column_labels=labels,
    )
    logger.info(
        "Table parsed: items=%s table_designs=%s table_discounts=%s",
        len(items),
        result.has_table_designs,
        result.has_table_discounts,
    )
    return result


def load_excel(xlsx_bytes: bytes) -> ImportResult:
    try:
        wb = load_workbook(io.BytesIO(xlsx_bytes), data_only=True, read_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise DataImportError("Не удалось прочитать Excel-файл. Нужен файл .xlsx.") from e

    try:
        if not wb.worksheets:
            raise DataImportError("Excel-файл не содержит листов.")
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    return parse_table(rows)


# -------------------------
# CSV и текст из буфера обмена
# -------------------------
def detect_delimiter(line: str):
    if "\t" in line:
        return "\t"
    if ";" in line:
        return ";"
    if "," in line:
        return ","
    return None  # два и более пробела


def split_line(line: str) -> List[str]:
    delimiter = detect_delimiter(line)
    if delimiter is None:
        return [c.strip() for c in re.split(r"\s{2,}", line)]
    return [c.strip() for c in line.split(delimiter)]


def parse_csv(text: str) -> ImportResult:
    text = (text or "").lstrip("\ufeff")
    first_line = text.splitlines()[0] if text.strip() else ""
    delimiter = detect_delimiter(first_line) or ","
    rows = list(csv.reader(io.StringIO(text), delimiter=delimiter))
    return parse_table(rows)


def _has_header_row(cells: List[str]) -> bool:
    if len(cells) < 2:
        return False
    return parse_number(cells[1]) is None


def parse_clipboard_text(raw: str) -> ImportResult:
    """
    Строки вида «Название<TAB>Цена[<TAB>Дизайн<TAB>Скидка<TAB>Цена за 2<TAB>Цена от 3]».
    Разделитель: табуляция, «;», «,» или несколько пробелов. Заголовок необязателен.
    Строки без названия или с неразборчивой ценой пропускаются.
    """
    lines = [line.strip() for line in (raw or "").splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return ImportResult()

    first = split_line(lines[0])
    header_present = _has_header_row(first)
    labels = first if header_present else DEFAULT_COLUMN_LABELS[: max(len(first), 2)]
    data_lines = lines[1:] if header_present else lines

    items: List[Item] = []
    skipped = 0
    columns_seen = len(labels)
    for line in data_lines:
        parts = split_line(line)
        if len(parts) < 2 or not parts[0]:
            skipped += 1
            continue
        columns_seen = max(columns_seen, len(parts))
        cells = parts + [""] * 6

        price = parse_number(cells[1])
        if price is None or price <= 0:
            skipped += 1
            continue

        design = cells[2].lower()
        items.append(
            Item(
                id=0,
                label=cells[0],
                price=price,
                discount_price=price,
                design_type=design if design in HEADERLESS_DESIGN_VALUES else None,
                has_discount=parse_discount_value(cells[3]),
                price_for_2=_positive_or_none(cells[4]),
                price_from_3=_positive_or_none(cells[5]),
            )
        )

    if len(labels) < 2:
        labels = DEFAULT_COLUMN_LABELS[: max(columns_seen, 2)]

    return ImportResult(
        items=items,
        has_table_designs=any(i.design_type is not None for i in items),
        has_table_discounts=any(i.has_discount is not None for i in items),
        column_labels=list(labels),
        skipped_rows=skipped,
    )


# -------------------------
# Google Таблицы
# -------------------------
def extract_sheet_id(url: str) -> str:
    m = re.search(r"/d/([a-zA-Z0-9_-]+)", url or "")
    return m.group(1) if m else ""


def extract_gid(url: str) -> str:
    m = re.search(r"[#&?]gid=([0-9]+)", url or "")
    return m.group(1) if m else "0"


def is_google_sheets_url(url: str) -> bool:
    return "docs.google.com/spreadsheets" in (url or "") or "drive.google.com" in (url or "")


def sheets_export_url(url: str) -> str:
    sheet_id = extract_sheet_id(url)
    if not sheet_id:
        raise DataImportError("Не удалось найти ID таблицы в ссылке.")
    return f"https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={extract_gid(url)}"


async def fetch_google_sheet(url: str) -> ImportResult:
    """Скачивает лист (таблица должна быть доступна по ссылке) и разбирает его как CSV."""
    if not is_google_sheets_url(url):
        raise DataImportError("Это не похоже на ссылку на Google Таблицу.")
    export_url = sheets_export_url(url)

    logger.info("Fetching Google Sheet: %s", export_url)
    timeout = aiohttp.ClientTimeout(total=SHEETS_TIMEOUT)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as http:
            async with http.get(export_url) as resp:
                if resp.status != 200:
                    raise DataImportError(
                        f"Google Таблицы ответили {resp.status}. Открой доступ к таблице по ссылке."
                    )
                text = await resp.text(encoding="utf-8")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise DataImportError("Не удалось скачать Google Таблицу. Проверь ссылку и доступ.") from e

    return parse_csv(text)


# -------------------------
# Excel шаблон
# -------------------------
def build_xlsx_template() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Ценники"
    ws.append(DEFAULT_COLUMN_LABELS)

    header_font = Font(bold=True)
    for col in range(1, len(DEFAULT_COLUMN_LABELS) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for letter, width in zip("ABCDEF", (42, 14, 14, 12, 14, 14)):
        ws.column_dimensions[letter].width = width

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
