import pytest

from tools.phones import canonical_phone, mask_phone, phones_match


@pytest.mark.parametrize(
    "raw",
    ["+1 (415) 555-0134", "4155550134", "001-415-555-0134", "+1.415.555.0134"],
)
def test_country_code_and_formatting_are_ignored(raw):
    assert canonical_phone(raw) == "4155550134"


def test_indian_number_with_prefix_matches_bare():
    assert phones_match("+91 98765 43210", "9876543210")
    assert phones_match("0091 98765-43210", "(987) 654-3210")


def test_short_numbers_are_not_padded():
    assert canonical_phone("12-34") == "1234"
    assert canonical_phone("") == ""
    assert canonical_phone(None) == ""


def test_short_input_never_matches_full_number():
    assert not phones_match("3210", "9876543210")
    assert not phones_match("", "")
    assert not phones_match("abc", "abc")


def test_equally_short_numbers_match():
    assert phones_match("43210", "43210")
    assert phones_match("12-345", "(123) 45")
    assert not phones_match("12345", "12346")


def test_different_numbers_do_not_match():
    assert not phones_match("0000000000", "9876543210")


def test_mask_keeps_last_four_digits():
    masked = mask_phone("+91 98765 43210")
    assert masked.endswith("3210")
    assert "9876" not in masked
    assert mask_phone("") is None
