"""API error classes.

HTTP status codes and error codes for the verification flow.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_DOMAIN").
        message: Human-readable error message, surfaced verbatim to callers.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


# =============================================================================
# Verification flow: caller errors (strict path, no state change)
# =============================================================================


class InvalidDomainError(APIError):
    """Email is outside the institutional domain (400).

    Raised before any record is created or any email is sent.
    """

    def __init__(self, domain: str) -> None:
        super().__init__(
            code="INVALID_DOMAIN",
            message=f"Invalid email domain. Must be {domain}",
            status_code=400,
        )


class MissingIdentifierError(APIError):
    """Redemption supplied neither a token nor an email (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="MISSING_IDENTIFIER",
            message="Missing data: email or token required",
            status_code=400,
        )


class InvalidOrExpiredCodeError(APIError):
    """No redeemable record matched (400).

    WHY ONE ERROR FOR WRONG / USED / NONEXISTENT:
    - Distinguishing them lets a caller enumerate issued codes
    - From the user's perspective the fix is the same: request a new code
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED_CODE",
            message="Invalid or expired code.",
            status_code=400,
        )


class ExpiredCodeError(APIError):
    """Matching record exists but its expiry has passed (400).

    The record is not burned; it stays unused until cleanup.
    """

    def __init__(self) -> None:
        super().__init__(
            code="CODE_EXPIRED",
            message="Code expired. Please request a new one.",
            status_code=400,
        )


# =============================================================================
# Verification flow: upstream failures (logged server-side, generic to caller)
# =============================================================================


class StorageError(APIError):
    """Code Store write or read failed (500)."""

    def __init__(
        self, message: str = "Could not process the request. Please try again."
    ) -> None:
        super().__init__(
            code="STORAGE_ERROR",
            message=message,
            status_code=500,
        )


class DeliveryError(APIError):
    """Verification email could not be delivered (502).

    The record stays persisted and unused; a retry issues a new record.
    """

    def __init__(
        self,
        message: str = "Could not send the verification email. Please request a new code.",
    ) -> None:
        super().__init__(
            code="DELIVERY_ERROR",
            message=message,
            status_code=502,
        )


class SignInLinkError(APIError):
    """One-time sign-in link could not be generated (502).

    The code is already burned at this point; the user requests a new one.
    """

    def __init__(
        self, message: str = "Could not complete sign-in. Please request a new code."
    ) -> None:
        super().__init__(
            code="SIGN_IN_LINK_ERROR",
            message=message,
            status_code=502,
        )
