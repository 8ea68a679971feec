from urllib.parse import parse_qs, urlparse

from models import Item, Settings
from render import (
    FALLBACK_FONTS,
    build_preview_url,
    fit_text,
    fonts_for,
    make_pdf_tags,
    register_fonts,
    render_preview_png,
    render_tag_svg,
    render_tags_html,
    wrap_lines,
)
from tags import build_all_tag_params, build_tag_params


def params_for(count, settings=None):
    items = [Item(id=i + 1, label=f"Tea {i + 1}", price=100 * (i + 1)) for i in range(count)]
    return build_all_tag_params(items, settings or Settings())


def test_missing_fonts_fall_back_to_helvetica(tmp_path):
    fonts = register_fonts(tmp_path)
    assert set(fonts) == {"montserrat", "nunito", "inter", "mont"}
    assert fonts["montserrat"] == FALLBACK_FONTS
    assert fonts_for({}, "inter") == FALLBACK_FONTS


def test_wrap_lines_does_not_split_words_when_asked():
    assert wrap_lines("short", "Helvetica", 10, 200, 1) == ["short"]
    assert wrap_lines("supercalifragilistic", "Helvetica", 10, 20, 1, allow_word_break=False) is None


def test_fit_text_shrinks_long_name():
    size, lines = fit_text("A VERY LONG PRODUCT NAME FOR A SMALL TAG", "Helvetica", 16, 4, 146)
    assert size < 16
    assert len(lines) == 1


def test_svg_contains_descriptor_values():
    settings = Settings(design=True)
    p = build_tag_params(Item(id=3, label="Tea & <Milk>", price=1299), settings)
    svg = render_tag_svg(p)

    assert svg.startswith("<svg")
    assert "TEA &amp; &lt;MILK&gt;" in svg
    assert "1 299" in svg
    assert "1 234" in svg
    assert "цена при подписке" in svg
    assert 'stop-color="#222222"' in svg
    assert 'stroke="#ffffff"' in svg


def test_svg_multi_tier_and_label():
    settings = Settings(design_type="new")
    item = Item(id=1, label="Puer", price=1000, price_for_2=900, price_from_3=800)
    svg = render_tag_svg(build_tag_params(item, settings), font="inter")
    assert "от 3 шт." in svg
    assert ">NEW<" in svg
    assert "Inter" in svg


def test_svg_border_for_white_theme():
    p = build_tag_params(Item(id=1, label="Tea", price=10), Settings(design_type="white"))
    assert 'stroke="#e5e5e5"' in render_tag_svg(p)


def test_html_pages_of_eighteen():
    html_doc = render_tags_html(params_for(19))
    assert html_doc.startswith("<!DOCTYPE html>")
    assert html_doc.count('<div class="print-page">') == 2
    assert html_doc.count("<svg") == 19


def test_pdf_is_generated():
    settings = Settings(design=True, design_type="sale")
    items = [
        Item(id=1, label="Earl Grey", price=1299),
        Item(id=2, label="Puer", price=1000, price_for_2=900, price_from_3=800),
        Item(id=3, label="White tea", price=500, design_type="white"),
    ]
    pdf = make_pdf_tags(build_all_tag_params(items, settings), FALLBACK_FONTS)
    assert pdf.startswith(b"%PDF")


def test_pdf_for_several_pages():
    pdf = make_pdf_tags(params_for(40, Settings(design_type="black")), FALLBACK_FONTS)
    assert pdf.startswith(b"%PDF")


def test_png_preview():
    p = build_tag_params(Item(id=1, label="Earl Grey", price=1299), Settings(design=True, design_type="new"))
    png = render_preview_png(p)
    assert png.startswith(b"\x89PNG")


def test_png_preview_multi_tier_solid_theme():
    item = Item(id=1, label="Puer", price=1000, price_for_2=900, price_from_3=800)
    png = render_preview_png(build_tag_params(item, Settings(design_type="charcoal")))
    assert png.startswith(b"\x89PNG")


def test_preview_url():
    settings = Settings(design=True)
    p = build_tag_params(Item(id=1, label="Earl Grey", price=1299), settings)
    url = build_preview_url(p, "https://tags.example.com/", font="nunito")

    parsed = urlparse(url)
    assert parsed.path == "/api/preview"
    query = parse_qs(parsed.query)
    assert query["productName"] == ["Earl Grey"]
    assert query["price"] == ["1 299"]
    assert query["discountPrice"] == ["1 234"]
    assert query["hasDiscount"] == ["true"]
    assert query["designType"] == ["default"]
    assert query["font"] == ["nunito"]
    assert query["discountText"] == ["цена при подписке\nна телеграм канал"]
    assert "priceFor2" not in query
