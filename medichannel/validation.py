"""Field validation for signup and profile forms.

Pure functions, no I/O. Every check runs before any persistence call.
"""
import re
from dataclasses import dataclass
from typing import Optional

from medichannel.models import Role

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
NAME_PATTERN = re.compile(r'^[a-zA-Z\s.]+$')
PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]{8,15}$')
WHOLE_NUMBER_PATTERN = re.compile(r'\d+', re.ASCII)

MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2


@dataclass
class ValidationResult:
    """Outcome of a check; message explains the first failure."""
    is_valid: bool
    message: Optional[str] = None


def validate_email(email: str) -> bool:
    """Validate email format (something@domain.tld, no whitespace)."""
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_password(password: str) -> ValidationResult:
    """
    Check password strength.

    Rules: at least 6 characters, one lowercase, one uppercase, one digit.

    Example:
        >>> validate_password("abc").is_valid
        False
        >>> validate_password("abcdefA1").is_valid
        True
    """
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return ValidationResult(False, "Password must be at least 6 characters long")
    if not re.search(r'[a-z]', password):
        return ValidationResult(False, "Password must contain at least one lowercase letter")
    if not re.search(r'[A-Z]', password):
        return ValidationResult(False, "Password must contain at least one uppercase letter")
    if not re.search(r'\d', password):
        return ValidationResult(False, "Password must contain at least one number")
    return ValidationResult(True)


def validate_name(name: str) -> bool:
    """Letters, spaces and dots only, at least 2 non-blank characters."""
    name = name or ""
    return len(name.strip()) >= MIN_NAME_LENGTH and bool(NAME_PATTERN.match(name))


def validate_phone(phone: str) -> bool:
    """8-15 characters of digits, spaces, hyphens or parentheses, optional leading +."""
    return bool(PHONE_PATTERN.match(phone or ""))


@dataclass
class SignupForm:
    """Raw signup form input, as typed by the user."""
    name: str
    email: str
    password: str
    confirm_password: str
    role: str = Role.PATIENT.value
    specialization: str = ""
    hospital: str = ""
    consultation_fee: str = ""
    experience: str = ""
    phone: str = ""
    date_of_birth: str = ""
    address: str = ""


def validate_signup(form: SignupForm) -> ValidationResult:
    """
    Validate a signup form, including role-specific required fields.

    Args:
        form: Raw form input

    Returns:
        ValidationResult with the first problem found
    """
    if not form.name or not form.email or not form.password:
        return ValidationResult(False, "Please fill in all required fields")

    if form.role not in {role.value for role in Role}:
        return ValidationResult(False, "Please select a valid account type")

    if not validate_name(form.name):
        return ValidationResult(False, "Name may only contain letters, spaces and dots")

    if not validate_email(form.email):
        return ValidationResult(False, "Please enter a valid email address")

    password_check = validate_password(form.password)
    if not password_check.is_valid:
        return password_check

    if form.password != form.confirm_password:
        return ValidationResult(False, "Passwords do not match")

    if form.role == Role.DOCTOR.value:
        if not form.specialization or not form.hospital:
            return ValidationResult(
                False, "Please fill in specialization and hospital for doctor account"
            )
        for label, raw in (("Consultation fee", form.consultation_fee),
                           ("Experience", form.experience)):
            if raw and not WHOLE_NUMBER_PATTERN.fullmatch(str(raw).strip()):
                return ValidationResult(False, f"{label} must be a whole number")

    if form.role == Role.PATIENT.value:
        if not form.phone:
            return ValidationResult(False, "Please provide a phone number for patient account")
        if not validate_phone(form.phone):
            return ValidationResult(False, "Please enter a valid phone number")

    return ValidationResult(True)
