from datetime import date, datetime, timezone

from entitykit.domain.services.field_values import (
    get_field_value,
    normalize_date,
    parse_datetime,
    to_epoch_ms,
    to_number,
    to_search_text,
)


def test_get_field_value_paths():
    entity = {"customer": {"name": "Acme"}, "items": [{"qty": 2}]}

    assert get_field_value(entity, "customer.name") == "Acme"
    assert get_field_value(entity, "items.0.qty") == 2
    assert get_field_value(entity, "items.5.qty") is None
    assert get_field_value(entity, "customer.city", "n/a") == "n/a"
    assert get_field_value(entity, "customer.name.first") is None


def test_parse_datetime_is_aware():
    assert parse_datetime("2024-01-01").tzinfo == timezone.utc
    assert parse_datetime("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_datetime(date(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_datetime("soon") is None
    assert parse_datetime(20240101) is None


def test_to_epoch_ms():
    assert to_epoch_ms("1970-01-01T00:00:01Z") == 1000
    assert to_epoch_ms(None) is None


def test_to_number_excludes_bool():
    assert to_number(3) == 3.0
    assert to_number(True) is None
    assert to_number("3") is None


def test_normalize_date():
    assert normalize_date(date(2024, 2, 29)) == "2024-02-29"
    assert normalize_date("2024-02-29") == "2024-02-29"


def test_to_search_text():
    assert to_search_text(None) == ""
    assert to_search_text(False) == "false"
    assert to_search_text({"a": "x", "b": ["y", 1]}) == "x y 1"
