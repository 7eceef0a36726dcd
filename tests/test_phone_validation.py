import pytest

from utils.phone_rules import PHONE_RULES, get_rule, supported_countries
from utils.validation_utils import (
    PhoneErrorKind,
    detect_country_from_phone,
    format_phone_with_country_code,
    normalize_phone,
    split_canonical_phone,
    validate_email,
    validate_full_name,
    validate_otp_format,
    validate_password,
)


def _sample_numbers(rule):
    """A few digit strings each rule's pattern accepts, at both length bounds."""
    source = rule.pattern.pattern
    if source.startswith("["):
        firsts = [source[1]]
    elif source[0].isdigit():
        firsts = [source[0]]
    else:
        firsts = ["5", "0"] if not rule.strip_leading_zero else ["5"]

    samples = []
    for first in firsts:
        for length in {rule.min_length, rule.max_length}:
            digits = first + "2" * (length - 1)
            if rule.pattern.fullmatch(digits):
                samples.append(digits)
    return samples


@pytest.mark.parametrize("country_code", sorted(PHONE_RULES))
def test_every_valid_number_normalizes_to_calling_code_plus_digits(country_code):
    rule = PHONE_RULES[country_code]
    samples = _sample_numbers(rule)
    assert samples, f"no sample numbers for {country_code}"

    for digits in samples:
        result = normalize_phone(digits, country_code)
        assert result.valid, (country_code, digits, result.message)
        assert result.canonical == f"{rule.calling_code}{digits}"
        assert result.error_kind is None


class TestKenyanNumbers:

    def test_trunk_zero_is_stripped(self):
        result = normalize_phone("0712345678", "KE")
        assert result.valid
        assert result.canonical == "+254712345678"

    def test_separators_are_ignored(self):
        assert normalize_phone("0712 345-678", "KE").canonical == "+254712345678"

    def test_typed_calling_code_is_not_duplicated(self):
        assert normalize_phone("+254712345678", "KE").canonical == "+254712345678"
        assert normalize_phone("254 0712 345 678", "KE").canonical == "+254712345678"

    def test_short_input_is_too_short_not_invalid_format(self):
        for partial in ("1", "12", "123", "0712", "71234567"):
            result = normalize_phone(partial, "KE")
            assert not result.valid
            assert result.error_kind is PhoneErrorKind.TOO_SHORT
            assert result.display_message == ""

    def test_long_input_is_too_long(self):
        result = normalize_phone("71234567890123", "KE")
        assert not result.valid
        assert result.error_kind is PhoneErrorKind.TOO_LONG

    def test_wrong_leading_digit_explains_format(self):
        result = normalize_phone("512345678", "KE")
        assert result.error_kind is PhoneErrorKind.INVALID_FORMAT
        assert "start with 7 or 1" in result.message
        assert result.display_message == result.message


def test_empty_input_is_required():
    result = normalize_phone("  ", "KE")
    assert result.error_kind is PhoneErrorKind.REQUIRED
    assert result.display_message == ""


def test_unsupported_country():
    result = normalize_phone("0712345678", "ZZ")
    assert not result.valid
    assert result.error_kind is PhoneErrorKind.UNSUPPORTED_COUNTRY
    assert result.canonical is None


def test_country_code_is_case_insensitive():
    assert normalize_phone("0712345678", "ke").canonical == "+254712345678"


def test_leading_zero_kept_where_pattern_allows_it():
    # UK national numbers may start with 0 in the rule table
    result = normalize_phone("0123456789", "GB")
    assert result.valid
    assert result.canonical == "+440123456789"


def test_detect_country_prefers_longest_calling_code():
    assert detect_country_from_phone("+254712345678") == "KE"
    assert detect_country_from_phone("+2348012345678") == "NG"
    assert detect_country_from_phone("+12125551234") == "US"
    assert detect_country_from_phone("") is None


def test_split_canonical_phone():
    assert split_canonical_phone("+254712345678") == ("KE", "712345678")


def test_format_phone_with_country_code_does_not_validate():
    assert format_phone_with_country_code("0712", "KE") == "+254712"


def test_supported_countries_lists_popular_first():
    countries = supported_countries()
    assert len(countries) == len(PHONE_RULES) == 35
    popular = [rule.popular for rule in countries]
    assert popular == sorted(popular, reverse=True)
    assert get_rule("KE") in countries


class TestFieldValidators:

    def test_email(self):
        assert validate_email("jane@example.com") is None
        assert validate_email("") == "Email is required"
        assert validate_email("jane@example") is not None
        assert validate_email("jane..doe@example.com") is not None

    def test_password_strength(self):
        assert validate_password("Secret#123") is None
        assert validate_password("secret123") is not None
        assert validate_password("Sh#1") is not None

    def test_full_name(self):
        assert validate_full_name("Jane O'Neil-Wanjiku") is None
        assert validate_full_name("J") is not None
        assert validate_full_name("Jane 2") is not None

    def test_otp(self):
        assert validate_otp_format("123456")
        assert not validate_otp_format("12345")
        assert not validate_otp_format("12a456")
