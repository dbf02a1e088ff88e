"""Authentication session.

Holds the currently logged-in user. Failures never reveal whether the email,
the password or the role was wrong.
"""
from dataclasses import dataclass
from typing import Optional

from medichannel.data_access import DataAccess
from medichannel.errors import EmailAlreadyRegisteredError, PersistenceError
from medichannel.logging_config import get_logger
from medichannel.models import CreateUserData, Role, User
from medichannel.validation import SignupForm, validate_signup

logger = get_logger(__name__)

EMAIL_TAKEN_MESSAGE = "An account with this email already exists"
SIGNUP_FAILED_MESSAGE = "Failed to create account. Please try again."


@dataclass
class SignupResult:
    success: bool
    message: Optional[str] = None
    user: Optional[User] = None


def _optional_int(raw: str) -> Optional[int]:
    raw = (raw or "").strip()
    return int(raw) if raw else None


class AuthSession:
    """Login state for one client."""

    def __init__(self, data_access: DataAccess):
        self.data_access = data_access
        self.current_user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def login(self, email: str, password: str, role: str) -> bool:
        """
        Log in with credentials for a given account type.

        Args:
            email: Account email
            password: Plaintext password
            role: Account type chosen on the login form

        Returns:
            True on success. Unknown email, wrong password, role mismatch and
            backend failure all return False.
        """
        try:
            user = self.data_access.authenticate_user(email, password)
        except PersistenceError as e:
            logger.error("login_backend_error", email=email, error=str(e))
            return False

        if user is None or user.role.value != role:
            logger.info("login_failed", email=email, role=role)
            return False

        self.current_user = user
        logger.info("login_succeeded", user_id=user.id, role=user.role.value)
        return True

    def signup(self, form: SignupForm) -> SignupResult:
        """
        Validate the form, create the account and log it in.

        Nothing is persisted unless validation passes.
        """
        check = validate_signup(form)
        if not check.is_valid:
            return SignupResult(success=False, message=check.message)

        try:
            if self.data_access.get_user_by_email(form.email):
                return SignupResult(success=False, message=EMAIL_TAKEN_MESSAGE)

            is_doctor = form.role == Role.DOCTOR.value
            user = self.data_access.create_user(CreateUserData(
                name=form.name.strip(),
                email=form.email.strip(),
                password=form.password,
                role=Role(form.role),
                specialization=(form.specialization or None) if is_doctor else None,
                hospital=(form.hospital or None) if is_doctor else None,
                consultation_fee=_optional_int(form.consultation_fee) if is_doctor else None,
                experience=_optional_int(form.experience) if is_doctor else None,
                phone=form.phone or None,
                date_of_birth=form.date_of_birth or None,
                address=form.address or None,
            ))
        except EmailAlreadyRegisteredError:
            return SignupResult(success=False, message=EMAIL_TAKEN_MESSAGE)
        except PersistenceError as e:
            logger.error("signup_backend_error", email=form.email, error=str(e))
            return SignupResult(success=False, message=SIGNUP_FAILED_MESSAGE)

        self.current_user = user
        logger.info("signup_succeeded", user_id=user.id, role=user.role.value)
        return SignupResult(success=True, user=user)

    def logout(self):
        if self.current_user:
            logger.info("logout", user_id=self.current_user.id)
        self.current_user = None

    def restore(self, user_id: Optional[str]) -> Optional[User]:
        """Rebuild the session from a remembered user id (e.g. a cookie)."""
        self.current_user = self.data_access.get_user_by_id(user_id) if user_id else None
        return self.current_user
