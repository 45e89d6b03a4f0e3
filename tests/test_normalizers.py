import pytest

from core.normalizers import (
    clean_telegram_username,
    collect_emails,
    collect_phones,
    name_key,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from core.transliteration import is_latin_name, transliterate_to_cyrillic


@pytest.mark.parametrize("raw", [
    "+375291234567",
    "375291234567",
    "80291234567",
    "8 029 123 45 67",
    "+375 (29) 123-45-67",
    "(29) 123-45-67",
    "291234567",
])
def test_equivalent_phone_formats_share_one_key(raw):
    assert normalize_phone(raw) == "375291234567"


def test_russian_trunk_prefix_becomes_country_code():
    assert normalize_phone("8 916 123 45 67") == "79161234567"
    assert normalize_phone("+7 (916) 123-45-67") == "79161234567"


@pytest.mark.parametrize("raw", [
    "+375291234567", "80291234567", "291234567", "8 916 123 45 67",
    "+44 20 7946 0958", "12345", "", None, "  ", "-",
])
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


def test_blank_phone_is_empty():
    assert normalize_phone(None) == ""
    assert normalize_phone("nan") == ""


def test_normalize_email():
    assert normalize_email("  A@X.COM ") == "a@x.com"
    assert normalize_email(None) == ""
    assert normalize_email("") == ""


def test_normalize_name_keeps_letters_of_any_script():
    assert normalize_name("Анна-Мария  O'Brien 2") == "анна мария o brien"
    assert normalize_name("ЁЛКИН Пётр") == "ёлкин пётр"
    assert normalize_name(None) == ""


def test_name_key_ignores_word_order_and_yo():
    assert name_key("Иванова Алёна") == name_key("алена иванова")


@pytest.mark.parametrize("raw, expected", [
    ("@User_Name", "user_name"),
    ("sergei_p", "sergei_p"),
    ("https://t.me/someone", None),
    ("t.me/someone", None),
    ("abc", None),
    ("bad-name!", None),
    ("a" * 33, None),
    ("", None),
    (None, None),
])
def test_clean_telegram_username(raw, expected):
    assert clean_telegram_username(raw) == expected


def test_phone_split_across_two_columns_deduplicates():
    assert collect_phones(["291112233", "+375291112233"]) == ["375291112233"]


def test_phone_written_with_spaces_stays_one_value():
    assert collect_phones(["+375 29 111 22 33"]) == ["375291112233"]


def test_several_phones_in_one_cell():
    assert collect_phones(["+375291112233; +375447654321"]) == ["375291112233", "375447654321"]
    assert collect_phones(["+375291112233 +375447654321"]) == ["375291112233", "375447654321"]


def test_collect_emails_splits_validates_and_deduplicates():
    cells = ["a@x.com; B@x.com", "a@x.com", "not-an-email", None]
    assert collect_emails(cells) == ["a@x.com", "b@x.com"]


def test_transliteration_uses_literal_mapping():
    assert transliterate_to_cyrillic("IVAN IVANOV") == "Иван Иванов"


def test_transliteration_prefers_known_spellings():
    assert transliterate_to_cyrillic("SIARHEI SHAUCHENKA") == "Сергей Шевченко"
    assert transliterate_to_cyrillic("Zhanna") == "Жанна"


def test_is_latin_name():
    assert is_latin_name("Ivan Ivanov")
    assert not is_latin_name("Иван Иванов")
    assert not is_latin_name("")
