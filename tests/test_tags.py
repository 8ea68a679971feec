import pytest

from models import Item, Settings
from tags import build_all_tag_params, build_tag_params, format_price, split_discount_text
from themes import DEFAULT_THEMES


@pytest.mark.parametrize(
    "value, expected",
    [
        (12000, "12 000"),
        (1299.5, "1 299,5"),
        (1234567, "1 234 567"),
        (999, "999"),
        (0, "0"),
        (-1500, "-1 500"),
        (1.23456, "1,235"),
        (None, ""),
    ],
)
def test_format_price(value, expected):
    assert format_price(value) == expected


def test_split_discount_text_keeps_two_lines():
    assert split_discount_text("one\n\ntwo\nthree") == ("one",)
    assert split_discount_text("one\ntwo\nthree") == ("one", "two")
    assert split_discount_text("") == ()


def test_params_with_discount(discount_settings):
    p = build_tag_params(Item(id=7, label="Earl Grey", price=1299), discount_settings)
    assert p.item_id == 7
    assert p.base_price_formatted == "1 299"
    assert p.show_discount is True
    assert p.discount_price_formatted == "1 234"
    assert p.discount_text_lines == ("цена при подписке", "на телеграм канал")
    assert p.resolved_design_key == "default"
    assert p.theme == DEFAULT_THEMES["default"]
    assert p.cut_line_color == "#ffffff"
    assert p.is_multi_tier is False
    assert p.tier_prices_formatted is None


def test_params_without_discount():
    p = build_tag_params(Item(id=1, label="Tea", price=1299), Settings())
    assert p.show_discount is False
    assert p.discount_price_formatted is None
    assert p.discount_text_lines == ()


def test_zero_discount_has_no_second_price():
    settings = Settings(design=True, discount_amount=0)
    p = build_tag_params(Item(id=1, label="Tea", price=1299), settings)
    assert p.show_discount is True
    assert p.discount_price_formatted is None


def test_multi_tier_params(discount_settings):
    item = Item(id=1, label="Puer", price=1000, price_for_2=900, price_from_3=800)
    p = build_tag_params(item, discount_settings)
    assert p.is_multi_tier
    assert (p.tier_prices_formatted.for1, p.tier_prices_formatted.for2, p.tier_prices_formatted.from3) == (
        "1 000",
        "900",
        "800",
    )
    assert p.discount_text_lines == ()


def test_table_design_and_label():
    settings = Settings(design_type="table", has_table_designs=True)
    p = build_tag_params(Item(id=1, label=12345, price=10, design_type="new"), settings)
    assert p.display_label == "12345"
    assert p.resolved_design_key == "new"
    assert p.label_text == "NEW"


def test_white_theme_border():
    p = build_tag_params(Item(id=1, label="Tea", price=10), Settings(design_type="white"))
    assert p.needs_border
    assert p.border_color == "#e5e5e5"
    assert p.cut_line_color == "#000000"


def test_build_all_validates_theme_set(sample_items):
    assert len(build_all_tag_params(sample_items, Settings())) == 3
    with pytest.raises(ValueError):
        build_all_tag_params(sample_items, Settings(), {"default": DEFAULT_THEMES["default"]})
