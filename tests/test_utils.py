from datetime import datetime

from app.kinygroup.utils import format_date_id, is_safe_next, make_excerpt, pagination, parse_bool, parse_int, slugify


def test_slugify():
    assert slugify("  Kiny Tours & Travel!  ") == "kiny-tours-travel"
    assert slugify(None) == ""


def test_make_excerpt_strips_markup():
    assert make_excerpt("<p>Hello <b>world</b></p>") == "Hello world..."
    assert make_excerpt("x" * 200) == "x" * 150 + "..."


def test_parse_helpers():
    assert parse_bool("on") is True
    assert parse_bool("false") is False
    assert parse_int("7") == 7
    assert parse_int("abc", 3) == 3
    assert parse_int("-5", 1, minimum=1) == 1


def test_pagination():
    assert pagination(2, 10, 25) == {"page": 2, "limit": 10, "total": 25, "pages": 3}


def test_is_safe_next():
    assert is_safe_next("/dashboard")
    assert not is_safe_next("//evil.example.com")
    assert not is_safe_next("https://evil.example.com")
    assert not is_safe_next("")


def test_format_date_id():
    assert format_date_id(datetime(2024, 3, 5)) == "5 Maret 2024"
