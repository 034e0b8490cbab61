import pytest

from promoter_slots.shared.validators import (
    normalize_time,
    validate_age,
    validate_email,
    validate_optional_phone,
    validate_phone,
    validate_week_days,
)


def test_email_is_trimmed_and_lowercased():
    assert validate_email("  Ana@Example.COM ") == "ana@example.com"


@pytest.mark.parametrize("email", ["ana", "ana@", "ana@example", "@example.com"])
def test_invalid_email(email):
    with pytest.raises(ValueError):
        validate_email(email)


def test_phone_counts_digits_only():
    assert validate_phone("+52 (55) 1234-5678") == "+52 (55) 1234-5678"
    with pytest.raises(ValueError):
        validate_phone("55-1234-567")


@pytest.mark.parametrize("value", ["", "   ", None])
def test_blank_email_and_phone_are_required(value):
    with pytest.raises(ValueError, match="required"):
        validate_email(value)
    with pytest.raises(ValueError, match="required"):
        validate_phone(value)


def test_optional_phone_treats_blank_as_missing():
    assert validate_optional_phone(None) is None
    assert validate_optional_phone("  ") is None
    assert validate_optional_phone("5512345678") == "5512345678"
    with pytest.raises(ValueError):
        validate_optional_phone("123")


@pytest.mark.parametrize("age", [17, 101])
def test_age_out_of_range(age):
    with pytest.raises(ValueError):
        validate_age(age)


def test_age_bounds_accepted():
    assert validate_age(18) == 18
    assert validate_age(100) == 100


def test_normalize_time_pads_hour():
    assert normalize_time("9:05") == "09:05"
    assert normalize_time("23:59") == "23:59"


@pytest.mark.parametrize("value", ["24:00", "9:5", "nine", ""])
def test_invalid_time(value):
    with pytest.raises(ValueError):
        normalize_time(value)


def test_week_days_sorted_and_unique():
    assert validate_week_days([5, 1, 1, 3]) == [1, 3, 5]
    with pytest.raises(ValueError):
        validate_week_days([0, 1])
    with pytest.raises(ValueError):
        validate_week_days([])
