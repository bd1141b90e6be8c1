import pytest

from providers.utils import (
    infer_currency,
    is_fast_delivery_text,
    normalize_url,
    parse_delivery_days,
    parse_price,
    store_from_url,
    title_merge_key,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (199, 199.0),
        (12.5, 12.5),
        ("$272.00", 272.0),
        ("1,234.56", 1234.56),
        ("1.234,56 lei", 1234.56),
        ("€ 89,99", 89.99),
        ("$14.95 delivery", 14.95),
        ("0", 0.0),
        (0, 0.0),
        ("1.234 lei", 1234.0),
        ("1.234.567 €", 1234567.0),
        ("$1,234", 1234.0),
        ("12.5 lei", 12.5),
        ("1.234", 1.234),
        ("-5 lei", None),
        (-5, None),
        ("free", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_price(value, expected):
    assert parse_price(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [("€ 10", "EUR"), ("£5", "GBP"), ("199 lei", "RON"), ("$3", "USD"), ("42", "USD"), (42, "USD")],
)
def test_infer_currency(value, expected):
    assert infer_currency(value) == expected


def test_title_merge_key_is_deterministic():
    assert title_merge_key("Galaxy S24 Ultra", "Samsung") == "title:samsung:galaxy-s24-ultra"
    assert title_merge_key("  Galaxy   S24 ULTRA ", "SAMSUNG") == title_merge_key("Galaxy S24 Ultra", "Samsung")
    assert title_merge_key("Widget") == "title::widget"


def test_store_from_url_and_normalize_url():
    assert store_from_url("https://www.emag.ro/p/1") == "emag.ro"
    assert store_from_url(None) is None
    assert normalize_url("//cdn.example.com/x") == "https://cdn.example.com/x"
    assert normalize_url("www.example.com") == "https://www.example.com"
    assert normalize_url("   ") is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Ships in 3-5 business days", 3),
        ("Ships in 2 weeks", 14),
        ("Ships in 1 month", 30),
        ("Ships overnight", 1),
        ("Next-day delivery", 1),
        ("In stock", None),
        (None, None),
    ],
)
def test_parse_delivery_days(text, expected):
    assert parse_delivery_days(text) == expected


def test_is_fast_delivery_text():
    assert is_fast_delivery_text("Same-day delivery")
    assert is_fast_delivery_text("EXPRESS shipping")
    assert not is_fast_delivery_text("Free delivery by Thu")
    assert not is_fast_delivery_text(None)
