"""
utils/validation_utils.py

Purpose: Input validation

- Country-aware phone normalization (canonical +<calling code><digits>)
- Country detection from a full international number
- Email, password, name and OTP checks used before any auth call
- Input sanitization
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from utils.phone_rules import PHONE_RULES, CountryPhoneRule, get_rule


class PhoneErrorKind(str, Enum):
    REQUIRED = "required"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    INVALID_FORMAT = "invalid_format"
    UNSUPPORTED_COUNTRY = "unsupported_country"


@dataclass(frozen=True)
class PhoneValidationResult:
    valid: bool
    canonical: Optional[str] = None
    error_kind: Optional[PhoneErrorKind] = None
    message: str = ""
    country_code: Optional[str] = None
    national_digits: str = ""

    @property
    def display_message(self) -> str:
        """
        Message to show next to an input the user is still typing into.

        Empty and too-short input can still become valid by typing more,
        so nothing is shown for those.
        """
        if self.error_kind in (PhoneErrorKind.REQUIRED, PhoneErrorKind.TOO_SHORT):
            return ""
        return self.message


def _is_complete(digits: str, rule: CountryPhoneRule) -> bool:
    return (
        rule.min_length <= len(digits) <= rule.max_length
        and rule.pattern.fullmatch(digits) is not None
    )


def extract_national_digits(raw: str, rule: CountryPhoneRule) -> str:
    """
    Reduces raw user input to the national digits for a country.

    Strips separators, trunk zeros (where the rule allows) and a calling
    code the user typed themselves. A calling-code prefix is only removed
    when the digits are not already a complete national number, so a
    national number that happens to begin with the calling code is kept.
    """
    digits = re.sub(r"\D", "", raw or "")

    if rule.strip_leading_zero:
        digits = digits.lstrip("0")

    prefix = rule.calling_digits
    if (
        digits.startswith(prefix)
        and len(digits) > len(prefix)
        and not _is_complete(digits, rule)
    ):
        digits = digits[len(prefix):]
        # "+254 0712..." leaves a trunk zero behind the calling code
        if rule.strip_leading_zero:
            digits = digits.lstrip("0")

    return digits


def normalize_phone(raw: Optional[str], country_code: Optional[str]) -> PhoneValidationResult:
    """
    Validates a phone number for a country and builds its canonical form.

    Example:
        normalize_phone("0712 345 678", "KE").canonical == "+254712345678"

    Args:
        raw: Phone number as typed (separators, +, trunk zero allowed)
        country_code: Two-letter country code

    Returns:
        PhoneValidationResult; `canonical` is set only when valid
    """
    rule = get_rule(country_code)
    if rule is None:
        return PhoneValidationResult(
            valid=False,
            error_kind=PhoneErrorKind.UNSUPPORTED_COUNTRY,
            message="Unsupported country",
            country_code=country_code,
        )

    if not re.sub(r"\D", "", raw or ""):
        return PhoneValidationResult(
            valid=False,
            error_kind=PhoneErrorKind.REQUIRED,
            message="Phone number is required",
            country_code=rule.country_code,
        )

    digits = extract_national_digits(raw, rule)

    if len(digits) < rule.min_length:
        return PhoneValidationResult(
            valid=False,
            error_kind=PhoneErrorKind.TOO_SHORT,
            message=(
                f"Phone number is too short. Expected {rule.expected_length} "
                f"for {rule.name}"
            ),
            country_code=rule.country_code,
            national_digits=digits,
        )

    if len(digits) > rule.max_length:
        return PhoneValidationResult(
            valid=False,
            error_kind=PhoneErrorKind.TOO_LONG,
            message=(
                f"Phone number is too long. Expected {rule.expected_length} "
                f"for {rule.name}"
            ),
            country_code=rule.country_code,
            national_digits=digits,
        )

    if not rule.pattern.fullmatch(digits):
        return PhoneValidationResult(
            valid=False,
            error_kind=PhoneErrorKind.INVALID_FORMAT,
            message=rule.invalid_format_message,
            country_code=rule.country_code,
            national_digits=digits,
        )

    return PhoneValidationResult(
        valid=True,
        canonical=f"{rule.calling_code}{digits}",
        message=f"Valid {rule.name} phone number",
        country_code=rule.country_code,
        national_digits=digits,
    )


def format_phone_with_country_code(raw: str, country_code: str) -> str:
    """
    Prefixes the national digits with the country's calling code without
    validating them. Use normalize_phone() when validity matters.
    """
    rule = get_rule(country_code)
    if rule is None:
        return re.sub(r"\D", "", raw or "")
    return f"{rule.calling_code}{extract_national_digits(raw, rule)}"


def detect_country_from_phone(raw: str) -> Optional[str]:
    """
    Detects the country of an international number.

    The longest matching calling code wins; countries sharing a calling
    code (US/CA) resolve to the one that validates, or the first listed.

    Args:
        raw: Phone number including its calling code

    Returns:
        Two-letter country code or None
    """
    digits = re.sub(r"\D", "", raw or "")
    if not digits:
        return None

    candidates = [
        rule for rule in PHONE_RULES.values()
        if digits.startswith(rule.calling_digits)
    ]
    if not candidates:
        return None

    longest = max(len(rule.calling_digits) for rule in candidates)
    candidates = [rule for rule in candidates if len(rule.calling_digits) == longest]

    for rule in candidates:
        if _is_complete(digits[longest:], rule):
            return rule.country_code
    return candidates[0].country_code


def split_canonical_phone(phone: str) -> Tuple[Optional[str], str]:
    """
    Splits a canonical number into (country_code, national digits).
    """
    country = detect_country_from_phone(phone)
    rule = get_rule(country)
    digits = re.sub(r"\D", "", phone or "")
    if rule is None:
        return None, digits
    return rule.country_code, digits[len(rule.calling_digits):]


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")
PASSWORD_MIN_LENGTH = 8


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validates an email address.

    Returns:
        Error message, or None if the address is acceptable
    """
    if not email or not email.strip():
        return "Email is required"

    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        return "Please enter a valid email address"
    if len(email) > 254:
        return "Email address is too long"
    if ".." in email:
        return "Email address cannot contain consecutive dots"
    return None


def validate_password(password: Optional[str]) -> Optional[str]:
    """
    Validates password strength.

    Returns:
        Error message, or None if the password is acceptable
    """
    if not password:
        return "Password is required"
    if len(password) < PASSWORD_MIN_LENGTH or not PASSWORD_PATTERN.match(password):
        return (
            "Password must be at least 8 characters with uppercase, lowercase, "
            "number, and special character"
        )
    return None


def validate_full_name(name: Optional[str]) -> Optional[str]:
    """Returns an error message for an unusable name, else None."""
    if not name or not name.strip():
        return "Full name is required"

    name = name.strip()
    if len(name) < 2:
        return "Name must be at least 2 characters"
    if len(name) > 50:
        return "Name must be less than 50 characters"
    if not NAME_PATTERN.match(name):
        return "Name must contain only letters, spaces, hyphens, and apostrophes"
    return None


def validate_otp_format(otp: str) -> bool:
    """
    Validates OTP format (must be 6 digits).

    Args:
        otp: OTP string

    Returns:
        True if valid 6-digit OTP
    """
    if not otp:
        return False

    return bool(re.match(r"^\d{6}$", otp.strip()))


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Full years between date_of_birth and today."""
    today = today or date.today()
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitizes free-text input before it is sent to the backend.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text[:max_length]
    text = re.sub(r"[<>{}\[\]]", "", text)
    text = " ".join(text.split())

    return text.strip()
