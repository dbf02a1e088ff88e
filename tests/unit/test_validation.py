"""Tests for signup and field validation."""
import pytest

from medichannel.validation import (
    SignupForm,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
    validate_signup,
)


def make_form(**overrides):
    fields = dict(
        name="Nimal Perera",
        email="nimal@email.com",
        password="Secret123",
        confirm_password="Secret123",
        role="patient",
        phone="+94 77 123 4567",
    )
    fields.update(overrides)
    return SignupForm(**fields)


class TestPasswordRules:

    def test_too_short(self):
        result = validate_password("abc")
        assert result.is_valid is False
        assert "at least 6 characters" in result.message

    def test_valid_password(self):
        assert validate_password("abcdefA1").is_valid is True

    def test_requires_uppercase(self):
        result = validate_password("alllowercase1")
        assert result.is_valid is False
        assert "uppercase" in result.message

    def test_requires_lowercase(self):
        result = validate_password("ALLUPPER1")
        assert result.is_valid is False
        assert "lowercase" in result.message

    def test_requires_digit(self):
        result = validate_password("NoDigitsHere")
        assert result.is_valid is False
        assert "number" in result.message


class TestFieldValidators:

    @pytest.mark.parametrize("email", ["john@email.com", "dr.perera@hospital.lk"])
    def test_valid_emails(self, email):
        assert validate_email(email)

    @pytest.mark.parametrize("email", ["", "john", "john@email", "jo hn@email.com", "@email.com"])
    def test_invalid_emails(self, email):
        assert not validate_email(email)

    def test_names(self):
        assert validate_name("Dr. Samantha Perera")
        assert not validate_name("J")
        assert not validate_name("John3")

    def test_phones(self):
        assert validate_phone("+94771234567")
        assert validate_phone("(011) 234-5678")
        assert not validate_phone("123")
        assert not validate_phone("phone-number-x")


class TestSignupForm:

    def test_valid_patient(self):
        assert validate_signup(make_form()).is_valid

    def test_missing_required_fields(self):
        result = validate_signup(make_form(email=""))
        assert result.message == "Please fill in all required fields"

    def test_unknown_role(self):
        result = validate_signup(make_form(role="nurse"))
        assert result.message == "Please select a valid account type"

    def test_bad_email(self):
        result = validate_signup(make_form(email="not-an-email"))
        assert result.message == "Please enter a valid email address"

    def test_weak_password_reported(self):
        result = validate_signup(make_form(password="abc", confirm_password="abc"))
        assert result.message == "Password must be at least 6 characters long"

    def test_password_mismatch(self):
        result = validate_signup(make_form(confirm_password="Secret124"))
        assert result.message == "Passwords do not match"

    def test_patient_needs_phone(self):
        result = validate_signup(make_form(phone=""))
        assert result.message == "Please provide a phone number for patient account"

    def test_patient_phone_format(self):
        result = validate_signup(make_form(phone="12"))
        assert result.message == "Please enter a valid phone number"

    def test_doctor_needs_specialization_and_hospital(self):
        result = validate_signup(make_form(role="doctor", phone="", specialization="Cardiology"))
        assert result.message == "Please fill in specialization and hospital for doctor account"

    def test_doctor_fee_must_be_whole_number(self):
        form = make_form(
            role="doctor", specialization="Cardiology", hospital="Asiri", consultation_fee="25.5"
        )
        result = validate_signup(form)
        assert result.is_valid is False
        assert "Consultation fee" in result.message

    @pytest.mark.parametrize("experience", ["²", "７"])
    def test_doctor_experience_must_be_ascii_digits(self, experience):
        form = make_form(
            role="doctor", specialization="Cardiology", hospital="Asiri", experience=experience
        )
        result = validate_signup(form)
        assert result.is_valid is False
        assert result.message == "Experience must be a whole number"

    def test_valid_doctor_without_phone(self):
        form = make_form(
            role="doctor",
            phone="",
            specialization="Cardiology",
            hospital="Asiri",
            consultation_fee="2800",
            experience="7",
        )
        assert validate_signup(form).is_valid
