"""
utils/phone_rules.py

Purpose: Per-country phone number rules

- One immutable record per supported country
- Built once at import time, never mutated afterwards
- Lookup helpers used by the phone normalizer and the country picker
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Pattern


@dataclass(frozen=True)
class CountryPhoneRule:
    """
    Validation and formatting rule for one country.

    `pattern` applies to the national digits only (no calling code, no
    trunk zero). `format_hint` is the human explanation shown when the
    digits have the right length but the wrong shape.
    """
    country_code: str
    name: str
    calling_code: str  # "+254"
    min_length: int
    max_length: int
    pattern: Pattern = field(repr=False)
    strip_leading_zero: bool = True
    format_hint: Optional[str] = None
    popular: bool = False

    @property
    def calling_digits(self) -> str:
        """Calling code without the leading +."""
        return self.calling_code.lstrip("+")

    @property
    def expected_length(self) -> str:
        if self.min_length == self.max_length:
            return f"{self.min_length} digits"
        return f"{self.min_length}-{self.max_length} digits"

    @property
    def invalid_format_message(self) -> str:
        if self.format_hint:
            return self.format_hint
        return f"Invalid format for {self.name}. Please check the number format."


def _rule(
    country_code: str,
    name: str,
    calling_code: str,
    min_length: int,
    max_length: int,
    pattern: str,
    strip_leading_zero: bool,
    format_hint: Optional[str] = None,
    popular: bool = False,
) -> CountryPhoneRule:
    return CountryPhoneRule(
        country_code=country_code,
        name=name,
        calling_code=calling_code,
        min_length=min_length,
        max_length=max_length,
        pattern=re.compile(pattern),
        strip_leading_zero=strip_leading_zero,
        format_hint=format_hint,
        popular=popular,
    )


# Leading zeros are only stripped where the national pattern cannot start
# with 0, so every digit string the pattern accepts survives unchanged.
_RULES = [
    _rule("US", "United States", "+1", 10, 10, r"\d{10}", False,
          "North American numbers should be 10 digits (e.g., 2125551234)", popular=True),
    _rule("CA", "Canada", "+1", 10, 10, r"\d{10}", False,
          "North American numbers should be 10 digits (e.g., 2125551234)", popular=True),
    _rule("GB", "United Kingdom", "+44", 10, 11, r"\d{10,11}", False, popular=True),
    _rule("KE", "Kenya", "+254", 9, 9, r"[71]\d{8}", True,
          "Kenyan numbers should start with 7 or 1 (e.g., 712345678)", popular=True),
    _rule("UG", "Uganda", "+256", 9, 9, r"[37]\d{8}", True,
          "Ugandan numbers should start with 3 or 7 (e.g., 712345678)", popular=True),
    _rule("TZ", "Tanzania", "+255", 9, 9, r"[67]\d{8}", True,
          "Tanzanian numbers should start with 6 or 7 (e.g., 712345678)", popular=True),
    _rule("NG", "Nigeria", "+234", 10, 10, r"[789]\d{9}", True,
          "Nigerian numbers should start with 7, 8, or 9 (e.g., 8012345678)", popular=True),
    _rule("ZA", "South Africa", "+27", 9, 9, r"\d{9}", False, popular=True),
    _rule("GH", "Ghana", "+233", 9, 9, r"\d{9}", False, popular=True),
    _rule("ET", "Ethiopia", "+251", 9, 9, r"9\d{8}", True),
    _rule("EG", "Egypt", "+20", 10, 11, r"\d{10,11}", False),
    _rule("MA", "Morocco", "+212", 9, 9, r"[567]\d{8}", True),
    _rule("IN", "India", "+91", 10, 10, r"[6789]\d{9}", True,
          "Indian numbers should start with 6, 7, 8, or 9 (e.g., 9876543210)"),
    _rule("CN", "China", "+86", 11, 11, r"1\d{10}", True),
    _rule("JP", "Japan", "+81", 10, 11, r"\d{10,11}", False),
    _rule("KR", "South Korea", "+82", 10, 11, r"\d{10,11}", False),
    _rule("AU", "Australia", "+61", 9, 9, r"[24578]\d{8}", True),
    _rule("NZ", "New Zealand", "+64", 8, 9, r"\d{8,9}", False),
    _rule("DE", "Germany", "+49", 10, 12, r"\d{10,12}", False),
    _rule("FR", "France", "+33", 9, 9, r"[1-9]\d{8}", True),
    _rule("IT", "Italy", "+39", 9, 10, r"\d{9,10}", False),
    _rule("ES", "Spain", "+34", 9, 9, r"[679]\d{8}", True),
    _rule("BR", "Brazil", "+55", 10, 11, r"\d{10,11}", False),
    _rule("MX", "Mexico", "+52", 10, 10, r"\d{10}", False),
    _rule("AR", "Argentina", "+54", 10, 11, r"\d{10,11}", False),
    _rule("RU", "Russia", "+7", 10, 10, r"\d{10}", False),
    _rule("TR", "Turkey", "+90", 10, 10, r"5\d{9}", True),
    _rule("SA", "Saudi Arabia", "+966", 9, 9, r"5\d{8}", True),
    _rule("AE", "UAE", "+971", 9, 9, r"5\d{8}", True),
    _rule("SG", "Singapore", "+65", 8, 8, r"[89]\d{7}", True),
    _rule("MY", "Malaysia", "+60", 9, 10, r"1\d{8,9}", True),
    _rule("TH", "Thailand", "+66", 9, 9, r"[689]\d{8}", True),
    _rule("PH", "Philippines", "+63", 10, 10, r"9\d{9}", True),
    _rule("ID", "Indonesia", "+62", 10, 12, r"8\d{9,11}", True),
    _rule("VN", "Vietnam", "+84", 9, 10, r"[389]\d{8,9}", True),
]

PHONE_RULES: Mapping[str, CountryPhoneRule] = MappingProxyType(
    {rule.country_code: rule for rule in _RULES}
)

DEFAULT_COUNTRY = "KE"


def get_rule(country_code: Optional[str]) -> Optional[CountryPhoneRule]:
    """
    Looks up the rule for a two-letter country code.

    Args:
        country_code: ISO 3166-1 alpha-2 code, any case

    Returns:
        CountryPhoneRule or None if the country is not supported
    """
    if not country_code:
        return None
    return PHONE_RULES.get(country_code.strip().upper())


def supported_countries() -> List[CountryPhoneRule]:
    """
    Returns all rules for a country picker: popular countries first,
    then the rest alphabetically.
    """
    return sorted(PHONE_RULES.values(), key=lambda r: (not r.popular, r.name))

