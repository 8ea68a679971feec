import html
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from tags import TagParams

logger = logging.getLogger(__name__)


# -------------------------
# Размеры
# -------------------------
TAG_W = 160  # px, как в веб-версии
TAG_H = 110
PX = 0.75  # pt на 1 px (96 dpi)

COLUMNS = 3
ROWS = 6
TAGS_PER_PAGE = COLUMNS * ROWS

PREVIEW_SCALE = 4


# -------------------------
# Шрифты
# -------------------------
FONT_FAMILIES = {
    "montserrat": "Montserrat",
    "nunito": "Nunito",
    "inter": "Inter",
    "mont": "Mont",
}

CSS_FONT_FAMILIES = {
    "montserrat": "'Montserrat', sans-serif",
    "nunito": "'Nunito', sans-serif",
    "inter": "'Inter', sans-serif",
    "mont": "'Mont', 'Montserrat', sans-serif",
}


@dataclass
class Fonts:
    regular: str
    medium: str
    bold: str
    medium_path: Optional[Path] = None
    bold_path: Optional[Path] = None


FALLBACK_FONTS = Fonts(regular="Helvetica", medium="Helvetica", bold="Helvetica-Bold")


def register_fonts(fonts_dir: Path) -> Dict[str, Fonts]:
    """
    Регистрирует TTF из fonts/ (<Family>-Regular/Medium/Bold.ttf).
    Семейства без файлов рисуются встроенной Helvetica.
    """
    out: Dict[str, Fonts] = {}
    for key, family in FONT_FAMILIES.items():
        med_path = fonts_dir / f"{family}-Medium.ttf"
        bold_path = fonts_dir / f"{family}-Bold.ttf"
        reg_path = fonts_dir / f"{family}-Regular.ttf"

        if not med_path.exists() or not bold_path.exists():
            logger.warning("Font %s not found in %s, using Helvetica", family, fonts_dir)
            out[key] = FALLBACK_FONTS
            continue

        if not reg_path.exists():
            reg_path = med_path  # fallback

        pdfmetrics.registerFont(TTFont(f"{family}-Regular", str(reg_path)))
        pdfmetrics.registerFont(TTFont(f"{family}-Medium", str(med_path)))
        pdfmetrics.registerFont(TTFont(f"{family}-Bold", str(bold_path)))

        out[key] = Fonts(
            regular=f"{family}-Regular",
            medium=f"{family}-Medium",
            bold=f"{family}-Bold",
            medium_path=med_path,
            bold_path=bold_path,
        )
    return out


def fonts_for(fonts: Dict[str, Fonts], family: str) -> Fonts:
    return fonts.get(family) or fonts.get("montserrat") or FALLBACK_FONTS


# -------------------------
# Утилиты
# -------------------------
def chunk(params: Sequence[TagParams], size: int = TAGS_PER_PAGE) -> List[Sequence[TagParams]]:
    return [params[i : i + size] for i in range(0, len(params), size)]


def text_width(font_name: str, size: float, text: str) -> float:
    return pdfmetrics.stringWidth(text, font_name, size)


def break_long_word(word: str, font_name: str, size: float, max_width: float) -> List[str]:
    parts, buf = [], ""
    for ch in word:
        test = buf + ch
        if text_width(font_name, size, test) <= max_width:
            buf = test
        else:
            if buf:
                parts.append(buf)
                buf = ch
            else:
                parts.append(ch)
                buf = ""
    if buf:
        parts.append(buf)
    return parts


def wrap_lines(
    text: str,
    font_name: str,
    size: float,
    max_width: float,
    max_lines: int,
    allow_word_break: bool = True,
) -> Optional[List[str]]:
    """
    Разбивает текст на строки по словам.
    allow_word_break=False: слово, которое не влезает, не режем, возвращаем None (тогда уменьшаем шрифт).
    """
    text = re.sub(r"\s+", " ", (text or "").strip())
    if not text:
        return None

    words = text.split(" ")
    lines: List[str] = []
    current = ""

    i = 0
    while i < len(words):
        w = words[i]

        if text_width(font_name, size, w) > max_width:
            if not allow_word_break:
                return None
            pieces = break_long_word(w, font_name, size, max_width)
            words = words[:i] + pieces + words[i + 1 :]
            w = words[i]

        test = (current + " " + w).strip() if current else w
        if text_width(font_name, size, test) <= max_width:
            current = test
            i += 1
        else:
            lines.append(current)
            current = ""
            if len(lines) >= max_lines:
                return None

    if current:
        lines.append(current)

    return lines if len(lines) <= max_lines else None


def fit_text(
    text: str,
    font_name: str,
    max_size: float,
    min_size: float,
    max_width: float,
    max_lines: int = 1,
    step: float = 0.5,
) -> Tuple[float, List[str]]:
    """Подбирает максимально возможный размер шрифта, чтобы текст влез."""
    size = max_size
    while size >= min_size:
        lines = wrap_lines(text, font_name, size, max_width, max_lines, allow_word_break=False)
        if lines:
            return size, lines
        size -= step

    lines = wrap_lines(text, font_name, min_size, max_width, max_lines) or [((text or "").strip()[:20] + "…").strip()]
    return min_size, lines


# -------------------------
# PDF
# -------------------------
def _fill(c: canvas.Canvas, color: str, alpha: float = 1.0):
    c.setFillColor(HexColor(color))
    c.setFillAlpha(alpha)


def draw_tag(c: canvas.Canvas, p: TagParams, fonts: Fonts):
    """Рисует один ценник в координатах 160x110 (начало в левом нижнем углу)."""
    theme = p.theme
    text_color = theme.text_color

    c.saveState()
    clip = c.beginPath()
    clip.rect(0, 0, TAG_W, TAG_H)
    c.clipPath(clip, stroke=0, fill=0)

    # фон
    if theme.start == theme.end:
        _fill(c, theme.start)
        c.rect(0, 0, TAG_W, TAG_H, stroke=0, fill=1)
    else:
        c.linearGradient(13.75, TAG_H - 108.41, 148.83, TAG_H - 10.42, (HexColor(theme.start), HexColor(theme.end)))

    # NEW / SALE вдоль правого края
    if p.should_show_label and p.label_text:
        c.saveState()
        size = 52 if p.label_text == "NEW" else 48
        c.translate(TAG_W + size * 0.28, 4)
        c.rotate(90)
        _fill(c, theme.start)
        c.setFont(fonts.bold, size)
        c.drawString(0, 0, p.label_text)
        c.restoreState()

    # название
    size_n, lines_n = fit_text(p.display_label.upper(), fonts.medium, 16, 4, TAG_W - 14)
    _fill(c, text_color)
    c.setFont(fonts.medium, size_n)
    c.drawString(10, TAG_H - 8 - 12 - size_n * 0.35, lines_n[0])

    if p.is_multi_tier and p.tier_prices_formatted:
        tiers = p.tier_prices_formatted
        right = TAG_W - 14
        c.setFont(fonts.regular, 6)
        c.drawString(10, 66, "При покупке:")
        c.setFont(fonts.regular, 10)
        c.drawString(10, 56, "от 3 шт.")
        c.setFont(fonts.bold, 26)
        c.drawRightString(right, 54, tiers.from3)

        c.setFont(fonts.regular, 10)
        c.drawString(10, 32, "2 шт.")
        c.setFont(fonts.bold, 20)
        c.drawRightString(right, 30, tiers.for2)

        c.setFont(fonts.regular, 10)
        c.drawString(10, 12, "1 шт.")
        c.setFont(fonts.bold, 16)
        c.drawRightString(right, 10, tiers.for1)
    else:
        size_p, lines_p = fit_text(p.base_price_formatted, fonts.bold, 52, 20, TAG_W - 10)
        baseline = 32 if p.show_discount else 22
        c.setFont(fonts.bold, size_p)
        c.drawCentredString(TAG_W / 2, baseline, lines_p[0])

        if p.discount_price_formatted:
            _fill(c, text_color, 0.8)
            c.setFont(fonts.regular, 18)
            c.drawString(10, 6, p.discount_price_formatted)

        if p.discount_text_lines:
            _fill(c, text_color, 0.8)
            c.setFont(fonts.medium, 8)
            y = 15
            for line in p.discount_text_lines:
                c.drawString(65, y, line)
                y -= 9

    c.restoreState()

    # рамка для однотонных ценников
    if p.needs_border:
        c.setStrokeColor(HexColor(p.border_color))
        c.setLineWidth(1.5 if p.resolved_design_key == "white" else 1)
        c.rect(0, 0, TAG_W, TAG_H, stroke=1, fill=0)

    # линии отреза
    c.setStrokeColor(HexColor(p.cut_line_color))
    c.setLineWidth(0.75)
    c.setDash(12, 3)
    c.line(0, 0, TAG_W, 0)
    c.line(0, TAG_H, TAG_W, TAG_H)
    c.setDash(8, 3)
    c.line(0, 0, 0, TAG_H)
    c.line(TAG_W, 0, TAG_W, TAG_H)
    c.setDash()


def make_pdf_tags(params: Sequence[TagParams], fonts: Fonts) -> bytes:
    """A4, сетка 3x6 ценников на странице."""
    buff = io.BytesIO()
    page_w, page_h = A4
    c = canvas.Canvas(buff, pagesize=A4)
    c.setTitle("Ценники")

    grid_w = COLUMNS * TAG_W * PX
    grid_h = ROWS * TAG_H * PX
    x0 = (page_w - grid_w) / 2
    y_top = page_h - (page_h - grid_h) / 2

    pages = chunk(params) or [[]]
    for page in pages:
        for idx, p in enumerate(page):
            col = idx % COLUMNS
            row = idx // COLUMNS
            c.saveState()
            c.translate(x0 + col * TAG_W * PX, y_top - (row + 1) * TAG_H * PX)
            c.scale(PX, PX)
            draw_tag(c, p, fonts)
            c.restoreState()
        c.showPage()

    c.save()
    logger.info("PDF generated: tags=%s pages=%s", len(params), len(pages))
    return buff.getvalue()


# -------------------------
# SVG / HTML
# -------------------------
def _esc(text: str) -> str:
    return html.escape(str(text), quote=True)


def _name_font_size(label: str, max_width: float = TAG_W - 14) -> float:
    # ширина символа в верхнем регистре ~0.65 кегля
    if not label:
        return 16
    size = max_width / (0.65 * len(label))
    return max(4.0, min(16.0, round(size * 2) / 2))


def render_tag_svg(p: TagParams, font: str = "montserrat") -> str:
    family = _esc(CSS_FONT_FAMILIES.get(font, CSS_FONT_FAMILIES["montserrat"]))
    theme = p.theme
    grad_id = f"linear-gradient-{p.item_id}"
    fill = theme.start if theme.start == theme.end else f"url(#{grad_id})"
    label = p.display_label.upper()

    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{TAG_W}" height="{TAG_H}" '
        f'viewBox="0 0 {TAG_W} {TAG_H}" font-family="{family}" class="price-tag" data-id="{p.item_id}">',
        "<defs>",
        f'<linearGradient id="{grad_id}" x1="13.75" y1="108.41" x2="148.83" y2="10.42" gradientUnits="userSpaceOnUse">',
        f'<stop offset="0" stop-color="{theme.start}"/>',
        f'<stop offset="1" stop-color="{theme.end}"/>',
        "</linearGradient>",
        f'<clipPath id="clip-{p.item_id}"><rect width="{TAG_W}" height="{TAG_H}"/></clipPath>',
        "</defs>",
    ]

    border = ""
    if p.needs_border:
        width = "1.5" if p.resolved_design_key == "white" else "1"
        border = f' stroke="{p.border_color}" stroke-width="{width}"'
    parts.append(f'<rect width="{TAG_W}" height="{TAG_H}" fill="{fill}"{border}/>')

    parts.append(f'<g clip-path="url(#clip-{p.item_id})" fill="{theme.text_color}">')
    if p.should_show_label and p.label_text:
        size = 52 if p.label_text == "NEW" else 48
        parts.append(
            f'<text x="0" y="0" font-size="{size}" font-weight="900" fill="{theme.start}" '
            f'transform="translate({TAG_W + size * 0.28:g} {TAG_H - 4}) rotate(-90)">{_esc(p.label_text)}</text>'
        )

    parts.append(
        f'<text x="10" y="26" font-size="{_name_font_size(label):g}" font-weight="500" '
        f'class="product-name">{_esc(label)}</text>'
    )

    if p.is_multi_tier and p.tier_prices_formatted:
        tiers = p.tier_prices_formatted
        right = TAG_W - 14
        parts += [
            '<text x="10" y="44" font-size="6">При покупке:</text>',
            '<text x="10" y="54" font-size="10">от 3 шт.</text>',
            f'<text x="{right}" y="56" font-size="26" font-weight="bold" text-anchor="end">{_esc(tiers.from3)}</text>',
            '<text x="10" y="78" font-size="10">2 шт.</text>',
            f'<text x="{right}" y="80" font-size="20" font-weight="bold" text-anchor="end">{_esc(tiers.for2)}</text>',
            '<text x="10" y="98" font-size="10">1 шт.</text>',
            f'<text x="{right}" y="100" font-size="16" font-weight="bold" text-anchor="end">{_esc(tiers.for1)}</text>',
        ]
    else:
        baseline = TAG_H - (32 if p.show_discount else 22)
        parts.append(
            f'<text x="{TAG_W / 2:g}" y="{baseline}" font-size="52" font-weight="bold" text-anchor="middle" '
            f'class="price">{_esc(p.base_price_formatted)}</text>'
        )
        if p.discount_price_formatted:
            parts.append(
                f'<text x="10" y="{TAG_H - 6}" font-size="18" opacity="0.8" class="discount-price">'
                f"{_esc(p.discount_price_formatted)}</text>"
            )
        if p.discount_text_lines:
            y = TAG_H - 15
            for line in p.discount_text_lines:
                parts.append(
                    f'<text x="65" y="{y}" font-size="8" font-weight="500" opacity="0.8" class="discount-text">'
                    f"{_esc(line)}</text>"
                )
                y += 9
    parts.append("</g>")

    color = p.cut_line_color
    parts += [
        f'<line x1="0" y1="0" x2="{TAG_W}" y2="0" stroke="{color}" stroke-width="0.75" stroke-dasharray="12,3"/>',
        f'<line x1="0" y1="{TAG_H}" x2="{TAG_W}" y2="{TAG_H}" stroke="{color}" stroke-width="0.75" stroke-dasharray="12,3"/>',
        f'<line x1="0" y1="0" x2="0" y2="{TAG_H}" stroke="{color}" stroke-width="0.75" stroke-dasharray="8,3"/>',
        f'<line x1="{TAG_W}" y1="0" x2="{TAG_W}" y2="{TAG_H}" stroke="{color}" stroke-width="0.75" stroke-dasharray="8,3"/>',
        "</svg>",
    ]
    return "".join(parts)


HTML_STYLE = """
@page { size: A4; margin: 0; }
body { margin: 0; }
.print-page {
  width: 210mm; height: 297mm; display: grid;
  grid-template-columns: repeat(3, 160px); grid-auto-rows: 110px;
  justify-content: center; align-content: center;
  page-break-after: always; break-after: page;
}
.print-page:last-child { page-break-after: auto; break-after: auto; }
"""


def render_tags_html(params: Sequence[TagParams], font: str = "montserrat") -> str:
    """HTML-документ для печати: по 18 ценников на страницу."""
    pages = []
    for page in chunk(params):
        svgs = "".join(render_tag_svg(p, font) for p in page)
        pages.append(f'<div class="print-page">{svgs}</div>')

    return (
        "<!DOCTYPE html>"
        '<html lang="ru"><head><meta charset="utf-8"><title>Ценники</title>'
        f"<style>{HTML_STYLE}</style></head><body>"
        + "".join(pages)
        + "</body></html>"
    )


# -------------------------
# PNG превью (для бота)
# -------------------------
def _rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def _pil_font(path: Optional[Path], size: int):
    if path is not None:
        return ImageFont.truetype(str(path), size)
    return ImageFont.load_default(size=size)


def _gradient(w: int, h: int, start: str, end: str) -> Image.Image:
    # маска: 0 в левом нижнем углу, 255 в правом верхнем
    mask = Image.linear_gradient("L").rotate(135, expand=True)
    cx, cy = mask.width // 2, mask.height // 2
    mask = mask.crop((cx - 90, cy - 90, cx + 90, cy + 90)).resize((w, h))
    return Image.composite(Image.new("RGB", (w, h), _rgb(end)), Image.new("RGB", (w, h), _rgb(start)), mask)


def _dashed(draw: ImageDraw.ImageDraw, xy, dash: int, gap: int, fill, width: int):
    (x1, y1), (x2, y2) = xy
    horizontal = y1 == y2
    length = (x2 - x1) if horizontal else (y2 - y1)
    pos = 0
    while pos < length:
        seg = min(dash, length - pos)
        if horizontal:
            draw.line([(x1 + pos, y1), (x1 + pos + seg, y1)], fill=fill, width=width)
        else:
            draw.line([(x1, y1 + pos), (x1, y1 + pos + seg)], fill=fill, width=width)
        pos += dash + gap


def render_preview_png(p: TagParams, fonts: Fonts = FALLBACK_FONTS) -> bytes:
    s = PREVIEW_SCALE
    w, h = TAG_W * s, TAG_H * s
    theme = p.theme

    if theme.start == theme.end:
        img = Image.new("RGB", (w, h), _rgb(theme.start))
    else:
        img = _gradient(w, h, theme.start, theme.end)
    draw = ImageDraw.Draw(img)
    text_rgb = _rgb(theme.text_color)

    if p.should_show_label and p.label_text:
        size = (52 if p.label_text == "NEW" else 48) * s
        font = _pil_font(fonts.bold_path, size)
        layer = Image.new("RGBA", (int(draw.textlength(p.label_text, font=font)) + 4, size + 8 * s), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text((0, 0), p.label_text, font=font, fill=_rgb(theme.start))
        layer = layer.rotate(90, expand=True)
        img.paste(layer, (w - layer.width // 2, h - layer.height - 4 * s), layer)

    label = p.display_label.upper()
    font_n = _pil_font(fonts.medium_path, int(_name_font_size(label) * s))
    draw.text((10 * s, 8 * s), label, font=font_n, fill=text_rgb)

    if p.is_multi_tier and p.tier_prices_formatted:
        tiers = p.tier_prices_formatted
        right = (TAG_W - 14) * s
        rows = [("от 3 шт.", tiers.from3, 26, 36), ("2 шт.", tiers.for2, 20, 64), ("1 шт.", tiers.for1, 16, 86)]
        small = _pil_font(fonts.medium_path, 10 * s)
        for caption, value, size, top in rows:
            font_v = _pil_font(fonts.bold_path, size * s)
            draw.text((10 * s, (top + size / 3) * s), caption, font=small, fill=text_rgb)
            draw.text((right, top * s), value, font=font_v, fill=text_rgb, anchor="ra")
    else:
        font_p = _pil_font(fonts.bold_path, 52 * s)
        baseline = TAG_H - (32 if p.show_discount else 22)
        draw.text((w // 2, baseline * s), p.base_price_formatted, font=font_p, fill=text_rgb, anchor="ms")
        if p.discount_price_formatted:
            font_d = _pil_font(fonts.medium_path, 18 * s)
            draw.text((10 * s, (TAG_H - 6) * s), p.discount_price_formatted, font=font_d, fill=text_rgb, anchor="ls")
        font_t = _pil_font(fonts.medium_path, 8 * s)
        y = TAG_H - 15
        for line in p.discount_text_lines:
            draw.text((65 * s, y * s), line, font=font_t, fill=text_rgb, anchor="ls")
            y += 9

    if p.needs_border:
        draw.rectangle([0, 0, w - 1, h - 1], outline=_rgb(p.border_color), width=s)

    cut = _rgb(p.cut_line_color)
    _dashed(draw, ((0, 0), (w, 0)), 12 * s, 3 * s, cut, s)
    _dashed(draw, ((0, h - 1), (w, h - 1)), 12 * s, 3 * s, cut, s)
    _dashed(draw, ((0, 0), (0, h)), 8 * s, 3 * s, cut, s)
    _dashed(draw, ((w - 1, 0), (w - 1, h)), 8 * s, 3 * s, cut, s)

    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


# -------------------------
# Ссылка на превью
# -------------------------
def build_preview_url(p: TagParams, base_url: str, font: str = "montserrat") -> str:
    params = {
        "type": "theme",
        "designType": p.resolved_design_key,
        "font": font,
        "hasDiscount": str(p.show_discount).lower(),
        "discountText": "\n".join(p.discount_text_lines),
        "productName": p.display_label,
        "price": p.base_price_formatted,
        "showThemeLabels": str(p.should_show_label).lower(),
        "themeStart": p.theme.start,
        "themeEnd": p.theme.end,
        "themeTextColor": p.theme.text_color,
        "cutLineColor": p.cut_line_color,
    }
    if p.discount_price_formatted:
        params["discountPrice"] = p.discount_price_formatted
    if p.is_multi_tier and p.tier_prices_formatted:
        params["priceFor2"] = p.tier_prices_formatted.for2
        params["priceFrom3"] = p.tier_prices_formatted.from3
    return f"{base_url.rstrip('/')}/api/preview?{urlencode(params)}"
