"""
Exception hierarchy for the ReachMAI API.

Services raise these; the handlers registered in ``main.create_app`` turn
them into JSON responses using ``status_code``. Anything that is not a
``ReachError`` is reported as a generic internal error.
"""

from typing import Any, Optional


class ReachError(Exception):
    """Base exception for all ReachMAI errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {"detail": self.message, "code": self.code}


class ConfigurationError(ReachError):
    """Settings are unusable for the current environment."""


class ValidationError(ReachError):
    """Input validation failed."""

    status_code = 400


class ConflictError(ReachError):
    """The request conflicts with existing state; retrying will not help."""

    status_code = 400


class AuthenticationError(ReachError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(ReachError):
    """Authorization failed (credentials present but not acceptable)."""

    status_code = 403


class NotFoundError(ReachError):
    """Resource not found."""

    status_code = 404


class RateLimitError(ReachError):
    status_code = 429


# Validation


class PasswordMismatchError(ValidationError):
    def __init__(self, message: str = "Passwords do not match"):
        super().__init__(message, code="PASSWORD_MISMATCH")


class InvalidRoleError(ValidationError):
    def __init__(self, role: str):
        super().__init__(
            f"Invalid staff role: {role}",
            code="INVALID_ROLE",
            details={"role": role},
        )


class ProfileTypeNotAllowedError(ValidationError):
    """Staff profile types are only created through invitations."""

    def __init__(self, profile_type: str):
        super().__init__(
            f"Profile type cannot be self-assigned: {profile_type}",
            code="PROFILE_TYPE_NOT_ALLOWED",
            details={"type": profile_type},
        )


class InvalidOrExpiredInvitationError(ValidationError):
    """The invitation link no longer works (unknown, expired or used)."""

    def __init__(self, message: str = "Invalid or expired invitation"):
        super().__init__(message, code="INVALID_OR_EXPIRED_INVITATION")


class SetupTokenInvalidError(ValidationError):
    def __init__(self, message: str = "Invalid or expired setup link"):
        super().__init__(message, code="INVALID_SETUP_TOKEN")


class ResetTokenInvalidError(ValidationError):
    def __init__(self, message: str = "Invalid or expired password reset link"):
        super().__init__(message, code="INVALID_RESET_TOKEN")


# Conflicts


class DuplicateAccountError(ConflictError):
    def __init__(self, email: str, message: str = "An account with this email already exists"):
        super().__init__(message, code="DUPLICATE_ACCOUNT", details={"email": email})


class DuplicatePendingInvitationError(ConflictError):
    def __init__(self, email: str):
        super().__init__(
            "A pending invitation already exists for this email",
            code="DUPLICATE_PENDING_INVITATION",
            details={"email": email},
        )


class ProfileAlreadyActiveError(ConflictError):
    def __init__(self, message: str = "This profile has already been activated"):
        super().__init__(message, code="PROFILE_ALREADY_ACTIVE")


# Authentication / authorization


class MissingTokenError(AuthenticationError):
    def __init__(self, message: str = "Access token required"):
        super().__init__(message, code="MISSING_TOKEN")


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class InvalidTokenError(AuthorizationError):
    """Raised when a signed token is malformed, forged or of the wrong kind."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(InvalidTokenError):
    """Raised when a signed token is past its expiry."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)
        self.code = "TOKEN_EXPIRED"


class InsufficientPermissionsError(AuthorizationError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, code="INSUFFICIENT_PERMISSIONS")


# Not found


class InvitationNotFoundError(NotFoundError):
    """Unknown invitation, or one that is no longer pending."""

    def __init__(self, invitation_id: int):
        super().__init__(
            "Invitation not found or already processed",
            code="INVITATION_NOT_FOUND",
            details={"invitation_id": invitation_id},
        )


class AccountNotFoundError(NotFoundError):
    def __init__(self, account_id: int):
        super().__init__(
            "Account not found",
            code="ACCOUNT_NOT_FOUND",
            details={"account_id": account_id},
        )


class ProfileNotFoundError(NotFoundError):
    def __init__(self, message: str = "Profile not found"):
        super().__init__(message, code="PROFILE_NOT_FOUND")
